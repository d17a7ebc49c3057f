"""Semantic index ports and reference record encoding."""

import hashlib
import re
from typing import Protocol

from meal_tracker.domain.foods import DEFAULT_UNIT, ReferenceFoodRow, ReferenceSource
from meal_tracker.domain.index import IndexMatch, SemanticIndexRecord

# Index backends bound identifier length; SHA-256 hex truncated to this size.
RECORD_ID_LENGTH = 32

_WHITESPACE = re.compile(r"\s+")


class EmbeddingClient(Protocol):
    """Interface for text embedding inference."""

    async def embed(self, text: str) -> list[float]:
        """Return a fixed-length embedding vector for ``text``."""


class SemanticIndex(Protocol):
    """Interface for the vector index holding reference foods."""

    async def query(self, vector: list[float], top_k: int) -> list[IndexMatch]:
        """Return matches ranked by descending score, with metadata."""

    async def upsert(self, records: list[SemanticIndexRecord]) -> int:
        """Insert or overwrite records by id and return the count written."""


def normalize_name(value: str) -> str:
    """Lowercase, trim and collapse internal whitespace."""
    return _WHITESPACE.sub(" ", value.strip().lower())


def reference_key(name: str, unit: str) -> str:
    """Content key identifying a reference row."""
    return f"{normalize_name(name)}|{normalize_name(unit)}"


def record_id(name: str, unit: str) -> str:
    """Deterministic index id for a ``(name, unit)`` pair."""
    digest = hashlib.sha256(reference_key(name, unit).encode("utf-8")).hexdigest()
    return digest[:RECORD_ID_LENGTH]


def row_to_metadata(row: ReferenceFoodRow) -> dict[str, object]:
    """Encode a reference row as index metadata."""
    metadata: dict[str, object] = {
        "name": row.name,
        "unit": row.unit,
        "quantity": row.base_quantity,
        "calories": row.calories,
        "protein": row.protein,
        "fat": row.fat,
        "carbs": row.carbs,
        "source": str(row.source),
    }
    if row.vitamins:
        metadata["vitamins"] = row.vitamins
    return metadata


def row_from_metadata(metadata: dict[str, object]) -> ReferenceFoodRow:
    """Decode index metadata back into a reference row."""
    source_raw = str(metadata.get("source") or ReferenceSource.CURATED)
    try:
        source = ReferenceSource(source_raw)
    except ValueError:
        source = ReferenceSource.LEARNED
    vitamins = metadata.get("vitamins")
    return ReferenceFoodRow(
        name=str(metadata.get("name") or ""),
        unit=str(metadata.get("unit") or DEFAULT_UNIT),
        base_quantity=_positive_or_one(metadata.get("quantity")),
        calories=_to_float(metadata.get("calories")),
        protein=_to_float(metadata.get("protein")),
        fat=_to_float(metadata.get("fat")),
        carbs=_to_float(metadata.get("carbs")),
        vitamins=str(vitamins) if vitamins else None,
        source=source,
    )


def _positive_or_one(value: object) -> float:
    number = _to_float(value)
    return number if number > 0 else 1.0


def _to_float(value: object) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return 0.0
    return 0.0
