"""Semantic index domain models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SemanticIndexRecord:
    """Embedding record stored in the semantic index."""

    id: str
    vector: list[float]
    metadata: dict[str, object]


@dataclass(frozen=True)
class IndexMatch:
    """Nearest-neighbour match returned by the semantic index."""

    score: float
    metadata: dict[str, object] | None
