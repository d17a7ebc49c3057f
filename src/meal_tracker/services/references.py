"""Services for the curated and learned reference food tables."""

import logging
from dataclasses import dataclass, field
from typing import Protocol

from meal_tracker.domain.foods import ReferenceFoodRow
from meal_tracker.services.cache import Cache
from meal_tracker.services.retry import RetryPolicy, as_async

_CURATED_CACHE_KEY = "reference:curated"

_logger = logging.getLogger(__name__)


class ReferenceRepository(Protocol):
    """Persistence interface for reference nutrition tables."""

    def list_curated(self) -> list[ReferenceFoodRow]:
        """Return all curated rows ordered by name."""

    def list_learned(self) -> list[ReferenceFoodRow]:
        """Return all learned rows in insertion order."""

    def append_learned(self, row: ReferenceFoodRow, provider: str | None) -> None:
        """Append a row discovered through an external lookup."""

    def insert_curated(self, rows: list[ReferenceFoodRow]) -> int:
        """Insert curated rows and return how many were written."""


@dataclass
class ReferenceService:
    """Application service for reference table reads and writes."""

    repository: ReferenceRepository
    cache: Cache
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    cache_ttl_seconds: int = 300

    async def curated_rows(self, *, refresh: bool = False) -> list[ReferenceFoodRow]:
        """Return curated rows, served from cache unless ``refresh`` is set."""
        cached = None if refresh else self.cache.get(_CURATED_CACHE_KEY)
        if isinstance(cached, list):
            return cached
        rows = await self.retry.run(
            as_async(self.repository.list_curated), action="reference:list_curated"
        )
        self.cache.set(_CURATED_CACHE_KEY, rows, ttl_seconds=self.cache_ttl_seconds)
        return rows

    async def learned_rows(self) -> list[ReferenceFoodRow]:
        """Return learned rows straight from the store."""
        return await self.retry.run(
            as_async(self.repository.list_learned), action="reference:list_learned"
        )

    async def append_learned(
        self, row: ReferenceFoodRow, provider: str | None = None
    ) -> None:
        """Append a learned row."""
        await self.retry.run(
            as_async(lambda: self.repository.append_learned(row, provider)),
            action="reference:append_learned",
        )
        _logger.info("Learned food appended: name=%s unit=%s", row.name, row.unit)

    async def insert_curated(self, rows: list[ReferenceFoodRow]) -> int:
        """Insert curated rows and invalidate the curated cache."""
        if not rows:
            return 0
        inserted = await self.retry.run(
            as_async(lambda: self.repository.insert_curated(rows)),
            action="reference:insert_curated",
        )
        self.cache.delete(_CURATED_CACHE_KEY)
        return inserted

