"""Tests for semantic index synchronization."""

import asyncio

from meal_tracker.domain.foods import ReferenceFoodRow, ReferenceSource
from meal_tracker.services.semantic_index import record_id
from meal_tracker.services.sync import (
    ReferenceSynchronizer,
    SyncResult,
    merge_reference_rows,
)
from tests.conftest import (
    FakeEmbeddingClient,
    InMemorySemanticIndex,
    Pipeline,
    curated_rows,
    fast_retry,
)


def test_sync_is_idempotent(pipeline: Pipeline) -> None:
    first = asyncio.run(pipeline.synchronizer.sync(curated_rows(), []))
    ids_after_first = set(pipeline.index.records)
    second = asyncio.run(pipeline.synchronizer.sync(curated_rows(), []))

    assert first == 3
    assert second == 3
    assert set(pipeline.index.records) == ids_after_first
    assert len(pipeline.index.records) == 3


def test_record_ids_use_normalized_key() -> None:
    assert record_id("Egg", "n") == record_id("  egg ", "N")
    assert record_id("Egg", "n") != record_id("Egg", "cup")
    assert len(record_id("Egg", "n")) == 32


def test_curated_rows_win_over_learned(pipeline: Pipeline) -> None:
    learned = [
        ReferenceFoodRow("egg", "n", 1, 90, 7, 6, 1),
        ReferenceFoodRow("Quinoa", "g", 100, 120, 4.4, 1.9, 21.3),
    ]

    upserted = asyncio.run(pipeline.synchronizer.sync(curated_rows(), learned))

    assert upserted == 4
    egg = pipeline.index.records[record_id("Egg", "n")].metadata
    assert egg["calories"] == 78
    assert egg["source"] == "curated"
    quinoa = pipeline.index.records[record_id("quinoa", "g")].metadata
    assert quinoa["source"] == "learned"
    assert quinoa["quantity"] == 100


def test_last_curated_duplicate_wins() -> None:
    merged = merge_reference_rows(
        [
            ReferenceFoodRow("Egg", "n", 1, 78, 6, 5, 1),
            ReferenceFoodRow("EGG ", "n", 1, 80, 6, 5, 1),
        ],
        [],
    )

    assert len(merged) == 1
    assert merged[0].calories == 80
    assert merged[0].source == ReferenceSource.CURATED


def test_sync_upserts_in_batches() -> None:
    index = InMemorySemanticIndex()
    synchronizer = ReferenceSynchronizer(
        FakeEmbeddingClient(), index, retry=fast_retry(), batch_size=2
    )

    upserted = asyncio.run(synchronizer.sync(curated_rows(), []))

    assert upserted == 3
    assert index.upsert_calls == 2


def test_sync_embeds_each_food_name(pipeline: Pipeline) -> None:
    asyncio.run(pipeline.synchronizer.sync(curated_rows(), []))

    assert sorted(pipeline.embedding_client.calls) == ["Chapati", "Egg", "Sambar"]


def test_sync_from_store_rereads_curated_table(pipeline: Pipeline) -> None:
    pipeline.reference_repository.learned = [
        ReferenceFoodRow("Quinoa", "g", 100, 120, 4.4, 1.9, 21.3)
    ]
    asyncio.run(pipeline.reference_service.curated_rows())

    result = asyncio.run(
        pipeline.synchronizer.sync_from_store(pipeline.reference_service)
    )

    assert result == SyncResult(curated=3, learned=1, upserted=4)
    assert pipeline.reference_repository.curated_reads == 2
