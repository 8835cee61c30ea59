"""
Tests for SemanticCache

- Threshold matching and first-match lookup
- Sliding TTL on the whole bucket
- Oldest-first eviction at capacity
- Backend failures degrade to miss / failed write result
- Dimension checks
"""

import asyncio
import math
from typing import Any

import numpy as np
import pytest

from ragcore.cache.backends.memory import MemoryHashStore
from ragcore.cache.interface import HashStore
from ragcore.config import SemanticCacheConfig
from ragcore.errors import CacheOperationError, DimensionMismatchError
from ragcore.observability import get_observability
from ragcore.semantic_cache import CacheEntry, SemanticCache

DIMS = 4


def vec(*values: float) -> list[float]:
    return list(values) + [0.0] * (DIMS - len(values))


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FailingHashStore(HashStore):
    """Every operation fails the way an unreachable Redis would."""

    async def hset(self, bucket: str, field: str, value: str) -> None:
        raise CacheOperationError("connection refused")

    async def hgetall(self, bucket: str) -> dict[str, str]:
        raise CacheOperationError("connection refused")

    async def hdel(self, bucket: str, *fields: str) -> int:
        raise CacheOperationError("connection refused")

    async def expire(self, bucket: str, seconds: int) -> bool:
        raise CacheOperationError("connection refused")

    async def hlen(self, bucket: str) -> int:
        raise CacheOperationError("connection refused")

    async def delete(self, bucket: str) -> bool:
        raise CacheOperationError("connection refused")

    async def get_stats(self) -> dict[str, Any]:
        return {"backend": "failing"}

    async def close(self) -> None:
        pass


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> MemoryHashStore:
    return MemoryHashStore(clock=clock)


@pytest.fixture
def cache(store: MemoryHashStore, clock: FakeClock) -> SemanticCache:
    config = SemanticCacheConfig(similarity_threshold=0.88, ttl_seconds=3600, max_entries=3, dimensions=DIMS)
    return SemanticCache(store, config, clock=clock)


class TestLookup:
    async def test_near_duplicate_query_hits(self, cache: SemanticCache):
        """Cached "weather in Paris" answers a paraphrase at similarity 0.95."""
        await cache.store("weather in Paris", vec(1.0), "sunny", ttl=3600)

        paraphrase = vec(0.95, math.sqrt(1 - 0.95**2))
        assert await cache.lookup(paraphrase, threshold=0.88) == "sunny"

    async def test_below_threshold_misses(self, cache: SemanticCache):
        await cache.store("weather in Paris", vec(1.0), "sunny")

        unrelated = vec(0.5, math.sqrt(1 - 0.5**2))
        assert await cache.lookup(unrelated, threshold=0.88) is None

    async def test_threshold_is_inclusive(self, cache: SemanticCache):
        await cache.store("q", vec(1.0), "r")

        assert await cache.lookup(vec(1.0), threshold=1.0) == "r"

    async def test_default_threshold_from_config(self, cache: SemanticCache):
        await cache.store("q", vec(1.0), "r")

        # 0.9 >= configured 0.88
        assert await cache.lookup(vec(0.9, math.sqrt(1 - 0.81))) == "r"

    async def test_empty_cache_misses(self, cache: SemanticCache):
        assert await cache.lookup(vec(1.0)) is None

    async def test_lookup_returns_an_entry_above_threshold(self, cache: SemanticCache):
        """Lookup returns a qualifying entry, not necessarily the closest one."""
        await cache.store("close", vec(0.9, math.sqrt(1 - 0.81)), "close answer")
        await cache.store("exact", vec(1.0), "exact answer")

        match = await cache.lookup_entry(vec(1.0), threshold=0.88)

        assert match is not None
        assert match.similarity >= 0.88
        assert match.response in {"close answer", "exact answer"}

    async def test_lookup_entry_reports_similarity(self, cache: SemanticCache):
        await cache.store("q", vec(1.0), "r")

        match = await cache.lookup_entry(vec(1.0))

        assert match is not None
        assert match.similarity == pytest.approx(1.0)
        assert match.entry.query == "q"

    async def test_unreadable_entries_are_skipped(self, cache: SemanticCache, store: MemoryHashStore):
        await store.hset(cache.bucket, "garbage", "not json")
        await cache.store("q", vec(1.0), "r")

        assert await cache.lookup(vec(1.0)) == "r"

    async def test_lookup_hits_and_misses_are_counted(self, cache: SemanticCache):
        await cache.store("q", vec(1.0), "r")
        await cache.lookup(vec(1.0))
        await cache.lookup(vec(0.0, 1.0))

        obs = get_observability()
        assert obs.get_counter("semantic_cache.hits") == 1
        assert obs.get_counter("semantic_cache.misses") == 1

        stats = await cache.get_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 50.0


class TestSlidingTTL:
    async def test_entries_expire_after_ttl(self, cache: SemanticCache, clock: FakeClock):
        await cache.store("q", vec(1.0), "r", ttl=60)

        clock.advance(61)

        assert await cache.lookup(vec(1.0)) is None
        assert await cache.size() == 0

    async def test_write_refreshes_expiry_for_all_entries(self, cache: SemanticCache, clock: FakeClock):
        await cache.store("first", vec(1.0), "one", ttl=60)
        clock.advance(50)
        await cache.store("second", vec(0.0, 1.0), "two", ttl=60)
        clock.advance(50)

        # 100s after the first write, but only 50s after the last one
        assert await cache.lookup(vec(1.0)) == "one"
        assert await cache.size() == 2

    async def test_default_ttl_from_config(self, cache: SemanticCache, clock: FakeClock):
        await cache.store("q", vec(1.0), "r")

        clock.advance(3599)
        assert await cache.lookup(vec(1.0)) == "r"

        clock.advance(2)
        assert await cache.lookup(vec(1.0)) is None


class TestEviction:
    async def test_capacity_evicts_oldest(self, cache: SemanticCache, clock: FakeClock):
        for i in range(3):
            await cache.store(f"q{i}", vec(*([0.0] * i), 1.0), f"r{i}")
            clock.advance(1)

        result = await cache.store("q3", vec(1.0, 1.0), "r3")

        assert result.stored is True
        assert result.evicted == 1
        assert await cache.size() == 3
        # q0 (oldest) is gone
        assert await cache.lookup(vec(1.0), threshold=0.99) is None
        assert await cache.lookup(vec(0.0, 1.0), threshold=0.99) == "r1"

    async def test_size_never_exceeds_capacity(self, cache: SemanticCache, clock: FakeClock):
        for i in range(10):
            await cache.store(f"q{i}", vec(1.0, float(i)), f"r{i}")
            clock.advance(1)
            assert await cache.size() <= 3

        stats = await cache.get_stats()
        assert stats["evictions"] == 7

    async def test_concurrent_stores_respect_capacity(self, cache: SemanticCache):
        await asyncio.gather(*(cache.store(f"q{i}", vec(1.0, float(i)), f"r{i}") for i in range(12)))

        assert await cache.size() == 3

    async def test_unreadable_entries_evicted_first(
        self, cache: SemanticCache, store: MemoryHashStore, clock: FakeClock
    ):
        await store.hset(cache.bucket, "garbage", "{}")
        for i in range(3):
            await cache.store(f"q{i}", vec(1.0, float(i)), f"r{i}")
            clock.advance(1)

        raw = await store.hgetall(cache.bucket)
        assert "garbage" not in raw
        assert len(raw) == 3


class TestStoreResult:
    async def test_store_returns_entry_id(self, cache: SemanticCache, store: MemoryHashStore):
        result = await cache.store("q", vec(1.0), "r")

        assert result.stored is True
        assert result.error is None

        raw = await store.hgetall(cache.bucket)
        entry = CacheEntry.from_json(result.entry_id, raw[result.entry_id])
        assert entry.query == "q"
        assert entry.response == "r"
        assert entry.embedding == vec(1.0)
        assert entry.timestamp == 1000.0

    async def test_disabled_cache_stores_nothing(self, store: MemoryHashStore):
        cache = SemanticCache(store, SemanticCacheConfig(enabled=False, dimensions=DIMS))

        result = await cache.store("q", vec(1.0), "r")

        assert result.stored is False
        assert await cache.lookup(vec(1.0)) is None

    async def test_clear_removes_everything(self, cache: SemanticCache):
        await cache.store("q", vec(1.0), "r")

        assert await cache.clear() is True
        assert await cache.size() == 0


class TestBackendFailure:
    @pytest.fixture
    def broken_cache(self) -> SemanticCache:
        return SemanticCache(FailingHashStore(), SemanticCacheConfig(dimensions=DIMS))

    async def test_lookup_failure_is_a_miss(self, broken_cache: SemanticCache):
        assert await broken_cache.lookup(vec(1.0)) is None

    async def test_store_failure_is_reported_not_raised(self, broken_cache: SemanticCache):
        result = await broken_cache.store("q", vec(1.0), "r")

        assert result.stored is False
        assert "connection refused" in result.error

    async def test_failures_are_counted(self, broken_cache: SemanticCache):
        await broken_cache.lookup(vec(1.0))
        await broken_cache.store("q", vec(1.0), "r")

        stats = await broken_cache.get_stats()
        # lookup, store and the size() call inside get_stats
        assert stats["errors"] == 3
        assert stats["entries"] == 0
        assert get_observability().get_counter("semantic_cache.errors", tags={"operation": "store"}) == 1


class TestDimensions:
    async def test_lookup_with_wrong_dimension_raises(self, cache: SemanticCache):
        with pytest.raises(DimensionMismatchError):
            await cache.lookup([1.0, 0.0])

    async def test_store_with_wrong_dimension_raises(self, cache: SemanticCache):
        with pytest.raises(DimensionMismatchError):
            await cache.store("q", [1.0, 0.0], "r")

    async def test_unpinned_cache_skips_entries_of_another_dimension(self, store: MemoryHashStore):
        cache = SemanticCache(store, SemanticCacheConfig(dimensions=None))
        await cache.store("q", [1.0, 0.0, 0.0], "r")

        assert await cache.lookup([1.0, 0.0]) is None

    async def test_stale_dimension_entry_is_skipped(self, cache: SemanticCache, store: MemoryHashStore):
        """An entry left over from an older embedding model must not break lookups."""
        stale = CacheEntry(id="old", query="q", embedding=[1.0, 0.0], response="stale", timestamp=1.0)
        await store.hset(cache.bucket, stale.id, stale.to_json())

        assert await cache.lookup(vec(1.0)) is None

        await cache.store("q", vec(1.0), "fresh")
        assert await cache.lookup(vec(1.0)) == "fresh"


class TestExactMatch:
    async def test_stored_embedding_matches_itself_at_threshold_one(self, store: MemoryHashStore):
        rng = np.random.default_rng(7)
        cache = SemanticCache(store, SemanticCacheConfig(dimensions=1536, max_entries=100))
        embeddings = [rng.standard_normal(1536).tolist() for _ in range(50)]
        for index, embedding in enumerate(embeddings):
            await cache.store(f"q{index}", embedding, f"r{index}")

        for embedding in embeddings:
            assert await cache.lookup(embedding, threshold=1.0) is not None
