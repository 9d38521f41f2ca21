"""
Interval-based rate limiting for outbound work.

One ``IntervalLimiter`` spaces marketplace requests process-wide; a second
instance with ``max_concurrent=1`` queues whole bundle batches so an
adjustment batch never overlaps the batch before it.
"""

import asyncio
import contextlib
import functools
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class IntervalLimiter:
    """
    Limit how often (and how many at once) scheduled coroutines start.

    Starts are spaced at least ``min_interval`` seconds apart. When
    ``max_concurrent`` is set, at most that many scheduled calls run at
    the same time; the rest wait for a slot before taking their turn.
    """

    def __init__(
        self,
        min_interval: float,
        max_concurrent: int | None = None,
        name: str = "limiter",
        clock: Callable[[], float] = time.monotonic,
    ):
        if min_interval < 0:
            raise ValueError("min_interval must not be negative")
        if max_concurrent is not None and max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self.min_interval = min_interval
        self.max_concurrent = max_concurrent
        self.name = name
        self._clock = clock
        self._lock = asyncio.Lock()
        self._slots = asyncio.Semaphore(max_concurrent) if max_concurrent else None
        self._last_start: float | None = None

    async def schedule(
        self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> T:
        """Run ``fn(*args, **kwargs)`` once the limiter allows it."""
        async with self._slots or contextlib.nullcontext():
            await self._wait_turn()
            return await fn(*args, **kwargs)

    def wrap(self, fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        """Return a coroutine function that always goes through ``schedule``."""

        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await self.schedule(fn, *args, **kwargs)

        return wrapper

    async def _wait_turn(self) -> None:
        # The lock is held across the sleep so waiters start strictly in turn
        async with self._lock:
            if self._last_start is not None:
                wait = self._last_start + self.min_interval - self._clock()
                if wait > 0:
                    logger.debug(f"{self.name}: waiting {wait:.2f}s for next slot")
                    await asyncio.sleep(wait)
            self._last_start = self._clock()
