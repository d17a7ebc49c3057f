"""Retry helpers for network-bound operations."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff retry for async operations.

    Every exception is treated as transient. The delay before retry ``n`` is
    ``initial_delay_seconds * 2 ** (n - 1)``; the last failure is re-raised once
    ``max_attempts`` calls have failed.
    """

    max_attempts: int = 3
    initial_delay_seconds: float = 0.5
    sleep: Callable[[float], Awaitable[None]] = field(
        default=asyncio.sleep, repr=False, compare=False
    )

    async def run(
        self, func: Callable[[], Awaitable[T]], *, action: str = "operation"
    ) -> T:
        """Call ``func`` until it succeeds or attempts are exhausted."""
        attempts = max(1, self.max_attempts)
        attempt = 0
        while True:
            attempt += 1
            try:
                return await func()
            except Exception as exc:
                _logger.warning(
                    "%s failed (attempt %s/%s, status=%s): %s",
                    action,
                    attempt,
                    attempts,
                    _status_code_from_exception(exc),
                    exc,
                )
                if attempt >= attempts:
                    raise
                await self.sleep(self.initial_delay_seconds * 2 ** (attempt - 1))


async def with_retry(
    func: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    initial_delay_seconds: float = 0.5,
    action: str = "operation",
) -> T:
    """Run ``func`` under a one-off :class:`RetryPolicy`."""
    policy = RetryPolicy(
        max_attempts=max_attempts, initial_delay_seconds=initial_delay_seconds
    )
    return await policy.run(func, action=action)


def _status_code_from_exception(exc: Exception) -> str:
    """Extract HTTP status code from an exception, if available."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    return "n/a"


def as_async(func: Callable[[], T]) -> Callable[[], Awaitable[T]]:
    """Adapt a synchronous call so it can be passed to :meth:`RetryPolicy.run`."""

    async def call() -> T:
        return func()

    return call
