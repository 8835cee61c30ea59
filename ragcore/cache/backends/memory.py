"""
ragcore — Memory Hash Store

In-process hash-bucket store with whole-bucket TTL.
Suitable for single-process deployments and tests.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from ..interface import HashStore

logger = logging.getLogger(__name__)


class MemoryHashStore(HashStore):
    """
    In-memory hash store.

    Features:
    - Insertion-ordered fields per bucket (iteration order is stable)
    - Whole-bucket expiry, checked lazily on access
    - asyncio.Lock around every mutation
    """

    def __init__(
        self,
        namespace: str = "",
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize memory hash store.

        Args:
            namespace: Optional bucket name prefix
            clock: Monotonic time source in seconds (injectable for tests)
        """
        self.namespace = namespace
        self._clock = clock

        # bucket -> {field: value}
        self._buckets: dict[str, dict[str, str]] = {}
        # bucket -> absolute expiry (clock seconds)
        self._expiry: dict[str, float] = {}

        self._reads = 0
        self._writes = 0
        self._deletes = 0
        self._expired = 0

        self._lock = asyncio.Lock()

    def _make_key(self, bucket: str) -> str:
        """Create namespaced bucket key."""
        return f"{self.namespace}:{bucket}" if self.namespace else bucket

    def _purge_if_expired(self, key: str) -> None:
        """Drop the bucket if its expiry has passed. Caller holds the lock."""
        expiry = self._expiry.get(key)
        if expiry is not None and self._clock() >= expiry:
            self._buckets.pop(key, None)
            self._expiry.pop(key, None)
            self._expired += 1
            logger.debug(f"Bucket expired: {key}")

    async def hset(self, bucket: str, field: str, value: str) -> None:
        async with self._lock:
            key = self._make_key(bucket)
            self._purge_if_expired(key)
            self._buckets.setdefault(key, {})[field] = value
            self._writes += 1

    async def hgetall(self, bucket: str) -> dict[str, str]:
        async with self._lock:
            key = self._make_key(bucket)
            self._purge_if_expired(key)
            self._reads += 1
            return dict(self._buckets.get(key, {}))

    async def hdel(self, bucket: str, *fields: str) -> int:
        if not fields:
            return 0

        async with self._lock:
            key = self._make_key(bucket)
            self._purge_if_expired(key)
            entries = self._buckets.get(key)
            if not entries:
                return 0

            removed = 0
            for field in fields:
                if entries.pop(field, None) is not None:
                    removed += 1

            # An empty hash does not exist (same as Redis)
            if not entries:
                self._buckets.pop(key, None)
                self._expiry.pop(key, None)

            self._deletes += removed
            return removed

    async def expire(self, bucket: str, seconds: int) -> bool:
        async with self._lock:
            key = self._make_key(bucket)
            self._purge_if_expired(key)
            if key not in self._buckets:
                return False
            self._expiry[key] = self._clock() + seconds
            return True

    async def hlen(self, bucket: str) -> int:
        async with self._lock:
            key = self._make_key(bucket)
            self._purge_if_expired(key)
            return len(self._buckets.get(key, {}))

    async def delete(self, bucket: str) -> bool:
        async with self._lock:
            key = self._make_key(bucket)
            self._expiry.pop(key, None)
            return self._buckets.pop(key, None) is not None

    async def get_stats(self) -> dict[str, Any]:
        async with self._lock:
            return {
                "backend": "memory",
                "namespace": self.namespace,
                "buckets": len(self._buckets),
                "reads": self._reads,
                "writes": self._writes,
                "deletes": self._deletes,
                "expired_buckets": self._expired,
            }

    async def close(self) -> None:
        # Data lives in-process; nothing to release
        logger.debug(f"Memory hash store closed for namespace '{self.namespace}'")
