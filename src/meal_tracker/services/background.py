"""Fire-and-forget execution of async work."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol

_logger = logging.getLogger(__name__)

TaskFactory = Callable[[], Awaitable[object]]


class BackgroundRunner(Protocol):
    """Runs work detached from the caller; results are not returned."""

    def submit(self, factory: TaskFactory, *, name: str) -> None:
        """Schedule ``factory()`` to run in the background."""


@dataclass
class AsyncioBackgroundRunner(BackgroundRunner):
    """Runs submitted work as tasks on the running event loop."""

    _tasks: set[asyncio.Task[None]] = field(default_factory=set, repr=False)

    def submit(self, factory: TaskFactory, *, name: str) -> None:
        """Create a task for ``factory``; failures are logged, never raised."""
        task = asyncio.get_running_loop().create_task(
            _run_logged(factory, name), name=name
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @property
    def pending(self) -> int:
        """Number of tasks still running."""
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for all outstanding tasks to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))


async def _run_logged(factory: TaskFactory, name: str) -> None:
    try:
        await factory()
    except Exception:
        _logger.exception("Background task %s failed", name)
