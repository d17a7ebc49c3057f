"""Supabase implementation for the reference food tables."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from meal_tracker.domain.foods import DEFAULT_UNIT, ReferenceFoodRow, ReferenceSource
from meal_tracker.services.references import ReferenceRepository

CURATED_TABLE = "reference_foods"
LEARNED_TABLE = "learned_foods"

_COLUMNS = "name, unit, quantity, calories, protein, fat, carbs, vitamins"


@dataclass
class SupabaseReferenceRepository(ReferenceRepository):
    """Supabase-backed repository for curated and learned reference foods."""

    client: Client

    def list_curated(self) -> list[ReferenceFoodRow]:
        """Return curated rows ordered by name."""
        response = (
            self.client.table(CURATED_TABLE).select(_COLUMNS).order("name").execute()
        )
        rows = [
            _parse_row(row, ReferenceSource.CURATED) for row in response.data or []
        ]
        return [row for row in rows if row.name]

    def list_learned(self) -> list[ReferenceFoodRow]:
        """Return learned rows in insertion order."""
        response = (
            self.client.table(LEARNED_TABLE)
            .select(_COLUMNS)
            .order("created_at")
            .execute()
        )
        rows = [
            _parse_row(row, ReferenceSource.LEARNED) for row in response.data or []
        ]
        return [row for row in rows if row.name]

    def append_learned(self, row: ReferenceFoodRow, provider: str | None) -> None:
        """Append a learned row."""
        response = (
            self.client.table(LEARNED_TABLE)
            .insert(
                {
                    **_serialize_row(row),
                    "provider": provider,
                    "created_at": datetime.now(tz=UTC).isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to append learned food")

    def insert_curated(self, rows: list[ReferenceFoodRow]) -> int:
        """Insert curated rows."""
        if not rows:
            return 0
        response = (
            self.client.table(CURATED_TABLE)
            .insert([_serialize_row(row) for row in rows])
            .execute()
        )
        return len(response.data or [])


def _serialize_row(row: ReferenceFoodRow) -> dict[str, object]:
    return {
        "name": row.name.strip(),
        "unit": row.unit.strip() or DEFAULT_UNIT,
        "quantity": row.base_quantity,
        "calories": row.calories,
        "protein": row.protein,
        "fat": row.fat,
        "carbs": row.carbs,
        "vitamins": row.vitamins,
    }


def _parse_row(row: dict[str, object], source: ReferenceSource) -> ReferenceFoodRow:
    """Parse a reference table row into a domain model."""
    quantity = _to_float(row.get("quantity"))
    vitamins = row.get("vitamins")
    return ReferenceFoodRow(
        name=str(row.get("name") or "").strip(),
        unit=str(row.get("unit") or "").strip() or "n",
        base_quantity=quantity if quantity > 0 else 1.0,
        calories=_to_float(row.get("calories")),
        protein=_to_float(row.get("protein")),
        fat=_to_float(row.get("fat")),
        carbs=_to_float(row.get("carbs")),
        vitamins=str(vitamins) if vitamins is not None else None,
        source=source,
    )


def _to_float(value: object) -> float:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return 0.0
    return 0.0
