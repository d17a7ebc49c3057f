"""Republishes curated and learned reference foods into the semantic index."""

import logging
from dataclasses import dataclass, field, replace

from meal_tracker.domain.foods import ReferenceFoodRow, ReferenceSource
from meal_tracker.domain.index import SemanticIndexRecord
from meal_tracker.services.references import ReferenceService
from meal_tracker.services.retry import RetryPolicy
from meal_tracker.services.semantic_index import (
    EmbeddingClient,
    SemanticIndex,
    record_id,
    reference_key,
    row_to_metadata,
)

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncResult:
    """Counts reported by a store-driven sync."""

    curated: int
    learned: int
    upserted: int


@dataclass
class ReferenceSynchronizer:
    """Builds one index record per distinct ``(name, unit)`` reference food.

    Record ids are content hashes of the normalized key, so re-running with the
    same data overwrites the same records. Concurrent runs are not serialized
    here; callers must not overlap them.
    """

    embedding_client: EmbeddingClient
    index: SemanticIndex
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    batch_size: int = 100

    async def sync(
        self, curated: list[ReferenceFoodRow], learned: list[ReferenceFoodRow]
    ) -> int:
        """Merge both sources, embed each food and upsert; returns records written."""
        rows = merge_reference_rows(curated, learned)
        _logger.info(
            "Reference sync started: curated=%s learned=%s merged=%s",
            len(curated),
            len(learned),
            len(rows),
        )
        records: list[SemanticIndexRecord] = []
        for row in rows:
            vector = await self.retry.run(
                lambda row=row: self.embedding_client.embed(row.name),
                action="embed:sync",
            )
            records.append(
                SemanticIndexRecord(
                    id=record_id(row.name, row.unit),
                    vector=vector,
                    metadata=row_to_metadata(row),
                )
            )

        upserted = 0
        size = max(1, self.batch_size)
        for start in range(0, len(records), size):
            batch = records[start : start + size]
            upserted += await self.retry.run(
                lambda batch=batch: self.index.upsert(batch), action="index:upsert"
            )
        _logger.info(
            "Reference sync complete: merged=%s upserted=%s", len(rows), upserted
        )
        return upserted

    async def sync_from_store(self, references: ReferenceService) -> SyncResult:
        """Read both reference tables and sync them."""
        curated = await references.curated_rows(refresh=True)
        learned = await references.learned_rows()
        upserted = await self.sync(curated, learned)
        return SyncResult(curated=len(curated), learned=len(learned), upserted=upserted)


def merge_reference_rows(
    curated: list[ReferenceFoodRow], learned: list[ReferenceFoodRow]
) -> list[ReferenceFoodRow]:
    """Merge by normalized ``(name, unit)``; curated rows win on conflict."""
    merged: dict[str, ReferenceFoodRow] = {}
    for row in curated:
        merged[reference_key(row.name, row.unit)] = replace(
            row, source=ReferenceSource.CURATED
        )
    for row in learned:
        key = reference_key(row.name, row.unit)
        if key not in merged:
            merged[key] = replace(row, source=ReferenceSource.LEARNED)
    return list(merged.values())
