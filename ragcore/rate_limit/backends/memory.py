"""
ragcore — Memory Rate Limiter

Per-process fixed window per key. State is lost on restart.
"""

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ...observability import get_observability
from ..interface import RateLimiter

logger = logging.getLogger(__name__)


@dataclass
class WindowRecord:
    """Request count for one key within its current window."""

    count: int
    reset_at: float


class MemoryRateLimiter(RateLimiter):
    """
    In-process rate limiter.

    On check: if the key has no record or its window has passed, start a new
    window with count 1 and allow; if the count has reached max_requests,
    deny; otherwise increment and allow.

    check() and the periodic sweep share one asyncio.Lock over the record map.
    """

    def __init__(
        self,
        name: str,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize memory rate limiter.

        Args:
            name: Limiter name (e.g., "chat")
            max_requests: Requests allowed per window
            window_seconds: Window length in seconds
            clock: Monotonic time source in seconds (injectable for tests)
        """
        super().__init__(name, max_requests, window_seconds)
        self._clock = clock
        self._records: dict[str, WindowRecord] = {}
        self._lock = asyncio.Lock()
        self._sweeper: asyncio.Task | None = None
        self._obs = get_observability()

        self._allowed = 0
        self._denied = 0
        self._swept = 0

    async def check(self, key: str) -> bool:
        async with self._lock:
            now = self._clock()
            record = self._records.get(key)

            if record is None or now > record.reset_at:
                self._records[key] = WindowRecord(count=1, reset_at=now + self.window_seconds)
                allowed = True
            elif record.count >= self.max_requests:
                allowed = False
            else:
                record.count += 1
                allowed = True

        if allowed:
            self._allowed += 1
            self._obs.increment("rate_limit.allowed", tags={"limiter": self.name})
        else:
            self._denied += 1
            self._obs.increment("rate_limit.denied", tags={"limiter": self.name})
            logger.info(
                f"Rate limit exceeded for '{self.name}'",
                extra={"limiter": self.name, "key": key, "max_requests": self.max_requests},
            )

        return allowed

    async def cleanup(self) -> int:
        """
        Remove records whose window has passed.

        Returns:
            Number of records removed
        """
        async with self._lock:
            now = self._clock()
            expired = [key for key, record in self._records.items() if now > record.reset_at]
            for key in expired:
                del self._records[key]

        if expired:
            self._swept += len(expired)
            logger.debug(
                f"Swept {len(expired)} expired rate limit records",
                extra={"limiter": self.name, "removed": len(expired)},
            )
        return len(expired)

    def start_sweeper(self, interval_seconds: float) -> asyncio.Task:
        """
        Run cleanup() every ``interval_seconds`` on the running event loop.

        Idempotent: returns the existing task if already running.
        """
        if self._sweeper is not None and not self._sweeper.done():
            return self._sweeper

        async def _sweep_loop() -> None:
            while True:
                await asyncio.sleep(interval_seconds)
                try:
                    await self.cleanup()
                except Exception as e:
                    logger.error(
                        f"Rate limit sweep failed: {e}",
                        extra={"limiter": self.name, "error": str(e)},
                        exc_info=True,
                    )

        self._sweeper = asyncio.get_running_loop().create_task(_sweep_loop(), name=f"rate-limit-sweep-{self.name}")
        return self._sweeper

    async def get_stats(self) -> dict[str, Any]:
        async with self._lock:
            tracked = len(self._records)
        return {
            "backend": "memory",
            "name": self.name,
            "max_requests": self.max_requests,
            "window_seconds": self.window_seconds,
            "tracked_keys": tracked,
            "allowed": self._allowed,
            "denied": self._denied,
            "swept": self._swept,
            "sweeper_running": self._sweeper is not None and not self._sweeper.done(),
        }

    async def close(self) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None
