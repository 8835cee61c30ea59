"""
Semantic Cache Implementation

Caches (query embedding, response) pairs in a single hash bucket and answers
lookups by cosine similarity.

- Lookup returns the FIRST entry at or above the threshold in the backing
  store's iteration order, not necessarily the most similar one.
- Every write refreshes the expiry of the whole bucket (sliding TTL).
- After each write, entries beyond max_entries are evicted oldest-first.
- Backing-store failures never reach the caller: lookups degrade to a miss,
  writes report failure through CacheWriteResult.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Callable, Sequence
from typing import Any

from ..cache.interface import HashStore
from ..config import SemanticCacheConfig
from ..errors import CacheError, DimensionMismatchError
from ..observability import get_observability
from .models import CacheEntry, CacheMatch, CacheWriteResult
from .similarity import cosine_similarity, meets_threshold

logger = logging.getLogger(__name__)


class SemanticCache:
    """
    Semantic cache over a HashStore bucket.

    Concurrency: insert, expiry refresh, size check and eviction run under one
    asyncio.Lock, so the capacity bound is exact for writers sharing this
    instance. Separate processes sharing a Redis bucket may overshoot
    transiently; the next insert trims back to max_entries.
    """

    def __init__(
        self,
        store: HashStore,
        config: SemanticCacheConfig | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize semantic cache.

        Args:
            store: Backing hash store
            config: Cache configuration (defaults if None)
            clock: Wall-clock source for entry timestamps
        """
        self.config = config or SemanticCacheConfig()
        self._store = store
        self._clock = clock
        self._write_lock = asyncio.Lock()
        self._obs = get_observability()

        self._hits = 0
        self._misses = 0
        self._stores = 0
        self._evictions = 0
        self._errors = 0

    @property
    def bucket(self) -> str:
        return self.config.hash_key

    def _check_dimensions(self, embedding: Sequence[float], context: str) -> None:
        expected = self.config.dimensions
        if expected is not None and len(embedding) != expected:
            raise DimensionMismatchError(expected, len(embedding), context=context)

    def _record_error(self, operation: str, error: Exception) -> None:
        self._errors += 1
        self._obs.increment("semantic_cache.errors", tags={"operation": operation})
        logger.warning(
            f"Semantic cache {operation} failed: {error}",
            extra={"operation": operation, "bucket": self.bucket, "error": str(error)},
        )

    async def lookup(
        self,
        query_embedding: Sequence[float],
        threshold: float | None = None,
    ) -> str | None:
        """
        Find a cached response for a semantically similar query.

        Args:
            query_embedding: Embedding of the incoming query
            threshold: Minimum cosine similarity (config default if None)

        Returns:
            Cached response text, or None on miss (including backend failure)
        """
        match = await self.lookup_entry(query_embedding, threshold)
        return match.response if match else None

    async def lookup_entry(
        self,
        query_embedding: Sequence[float],
        threshold: float | None = None,
    ) -> CacheMatch | None:
        """
        Like lookup(), but returns the matched entry and its similarity.

        Raises:
            DimensionMismatchError: If the query embedding has the wrong dimension
        """
        if not self.config.enabled:
            return None

        self._check_dimensions(query_embedding, "semantic cache lookup")
        threshold = self.config.similarity_threshold if threshold is None else threshold

        try:
            raw_entries = await self._store.hgetall(self.bucket)
        except CacheError as e:
            self._record_error("lookup", e)
            self._misses += 1
            self._obs.increment("semantic_cache.misses")
            return None

        for entry_id, raw in raw_entries.items():
            try:
                entry = CacheEntry.from_json(entry_id, raw)
            except ValueError as e:
                logger.warning(
                    f"Skipping unreadable cache entry {entry_id}: {e}",
                    extra={"entry_id": entry_id, "bucket": self.bucket},
                )
                continue

            if len(entry.embedding) != len(query_embedding):
                # Written under a different EMBEDDING_DIMENSIONS; unusable, not fatal
                logger.warning(
                    f"Skipping cache entry {entry_id} with {len(entry.embedding)} dimensions",
                    extra={"entry_id": entry_id, "bucket": self.bucket, "expected": len(query_embedding)},
                )
                continue

            similarity = cosine_similarity(query_embedding, entry.embedding)
            if meets_threshold(similarity, threshold):
                self._hits += 1
                self._obs.increment("semantic_cache.hits")
                logger.info(
                    f"Semantic cache hit (similarity: {similarity:.3f})",
                    extra={"entry_id": entry_id, "similarity": round(similarity, 4), "threshold": threshold},
                )
                return CacheMatch(entry=entry, similarity=similarity)

        self._misses += 1
        self._obs.increment("semantic_cache.misses")
        logger.debug(
            "Semantic cache miss",
            extra={"entries_scanned": len(raw_entries), "threshold": threshold},
        )
        return None

    async def store(
        self,
        query: str,
        embedding: Sequence[float],
        response: str,
        ttl: int | None = None,
    ) -> CacheWriteResult:
        """
        Insert a new entry, refresh the bucket expiry and enforce capacity.

        Args:
            query: Original query text
            embedding: Query embedding
            response: Response to cache
            ttl: Bucket TTL in seconds (config default if None)

        Returns:
            CacheWriteResult describing the outcome. Backend failures are
            reported here, never raised.

        Raises:
            DimensionMismatchError: If the embedding has the wrong dimension
        """
        if not self.config.enabled:
            return CacheWriteResult(stored=False, error="semantic cache disabled")

        self._check_dimensions(embedding, "semantic cache store")
        ttl = self.config.ttl_seconds if ttl is None else ttl

        entry = CacheEntry(
            id=str(uuid.uuid4()),
            query=query,
            embedding=[float(x) for x in embedding],
            response=response,
            timestamp=self._clock(),
        )

        async with self._write_lock:
            try:
                await self._store.hset(self.bucket, entry.id, entry.to_json())
                await self._store.expire(self.bucket, ttl)
                count = await self._store.hlen(self.bucket)
            except CacheError as e:
                self._record_error("store", e)
                return CacheWriteResult(stored=False, error=str(e))

            self._stores += 1
            self._obs.increment("semantic_cache.stores")

            evicted = 0
            if count > self.config.max_entries:
                try:
                    evicted = await self._evict_oldest(count - self.config.max_entries)
                except CacheError as e:
                    # Leave the cache oversized; the next insert retries
                    self._record_error("evict", e)

        logger.debug(
            f"Cached response for query: {query[:50]}",
            extra={"entry_id": entry.id, "ttl": ttl, "entries": count - evicted, "evicted": evicted},
        )
        return CacheWriteResult(stored=True, entry_id=entry.id, evicted=evicted)

    async def _evict_oldest(self, excess: int) -> int:
        """Delete the ``excess`` oldest entries by timestamp. Caller holds the write lock."""
        raw_entries = await self._store.hgetall(self.bucket)

        def timestamp_of(item: tuple[str, str]) -> float:
            entry_id, raw = item
            try:
                return CacheEntry.from_json(entry_id, raw).timestamp
            except ValueError:
                # Unreadable entries go first
                return float("-inf")

        ordered = sorted(raw_entries.items(), key=timestamp_of)
        victims = [entry_id for entry_id, _ in ordered[:excess]]
        if not victims:
            return 0

        removed = await self._store.hdel(self.bucket, *victims)
        self._evictions += removed
        self._obs.increment("semantic_cache.evictions", value=removed)
        logger.info(
            f"Evicted {removed} oldest semantic cache entries",
            extra={"evicted": removed, "max_entries": self.config.max_entries},
        )
        return removed

    async def size(self) -> int:
        """Number of live entries (0 if the backend is unreachable)."""
        try:
            return await self._store.hlen(self.bucket)
        except CacheError as e:
            self._record_error("size", e)
            return 0

    async def clear(self) -> bool:
        """Remove every entry. Returns False if the backend failed."""
        try:
            await self._store.delete(self.bucket)
            logger.info("Semantic cache cleared", extra={"bucket": self.bucket})
            return True
        except CacheError as e:
            self._record_error("clear", e)
            return False

    async def get_stats(self) -> dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary with hit/miss counts, hit rate, eviction count and size
        """
        total = self._hits + self._misses
        return {
            "enabled": self.config.enabled,
            "bucket": self.bucket,
            "entries": await self.size(),
            "max_entries": self.config.max_entries,
            "similarity_threshold": self.config.similarity_threshold,
            "ttl_seconds": self.config.ttl_seconds,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round((self._hits / total) * 100, 2) if total else 0.0,
            "stores": self._stores,
            "evictions": self._evictions,
            "errors": self._errors,
        }
