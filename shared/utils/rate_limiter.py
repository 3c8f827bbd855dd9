"""
Async rate limiter for outbound API calls

Bounded concurrency (semaphore) plus timed admission: a new task starts no
sooner than `interval_ms` after the previous admission. Every external call
goes through one instance so the upstream requests-per-second ceiling is
respected in a single place.
"""

import asyncio
from typing import Awaitable, Callable, TypeVar

from .logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RateLimiter:
    """
    FIFO queue with bounded concurrency and minimum spacing between starts

    Usage:
        limiter = RateLimiter(interval_ms=100, max_concurrent=1)
        data = await limiter.execute(lambda: client.get_quote("AAPL"))
    """

    def __init__(self, interval_ms: int = 100, max_concurrent: int = 1):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        if interval_ms < 0:
            raise ValueError("interval_ms must be >= 0")

        self.interval_ms = interval_ms
        self.max_concurrent = max_concurrent

        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._admission_lock = asyncio.Lock()
        self._next_admission = 0.0

        self._queued = 0
        self._pending = 0
        self._idle = asyncio.Event()
        self._idle.set()

    async def execute(self, task: Callable[[], Awaitable[T]]) -> T:
        """
        Run `task` once admitted and return its result

        Exceptions raised by the task are logged and re-raised to this caller
        only; other queued tasks are unaffected.
        """
        self._queued += 1
        self._idle.clear()
        admitted = False

        try:
            async with self._semaphore:
                await self._wait_for_admission()
                self._queued -= 1
                admitted = True
                self._pending += 1
                try:
                    return await task()
                except Exception as e:
                    logger.error(
                        "rate_limiter_task_failed",
                        error=str(e),
                        error_type=type(e).__name__
                    )
                    raise
                finally:
                    self._pending -= 1
        finally:
            if not admitted:
                self._queued -= 1
            self._maybe_idle()

    async def _wait_for_admission(self) -> None:
        """Sleep until the next admission slot, then reserve the following one"""
        async with self._admission_lock:
            loop = asyncio.get_running_loop()
            delay = self._next_admission - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
            self._next_admission = loop.time() + self.interval_ms / 1000

    def _maybe_idle(self) -> None:
        if self._queued == 0 and self._pending == 0:
            self._idle.set()

    def size(self) -> int:
        """Tasks waiting for admission"""
        return self._queued

    def pending(self) -> int:
        """Tasks currently running"""
        return self._pending

    async def wait_for_empty(self) -> None:
        """Wait until nothing is queued or running"""
        await self._idle.wait()

    def __repr__(self) -> str:
        return (
            f"RateLimiter(interval_ms={self.interval_ms}, "
            f"max_concurrent={self.max_concurrent}, "
            f"queued={self._queued}, pending={self._pending})"
        )
