"""
ragcore — Test Configuration and Shared Fixtures

Provides pytest configuration and shared fixtures for unit and integration tests.
"""

import asyncio
import hashlib
import os
import socket
from collections.abc import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from redis.asyncio import Redis

from ragcore.cache import reset_hash_store_factory
from ragcore.config import RagCoreConfig, reset_config
from ragcore.embeddings import EmbeddingProvider
from ragcore.observability import reset_observability
from ragcore.rate_limit import reset_rate_limit_factory

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"

TEST_DIMENSIONS = 8


def is_redis_available() -> bool:
    """Check if Redis server is available for testing."""
    try:
        with socket.create_connection(("localhost", 6379), timeout=1):
            return True
    except OSError:
        return False


# Skip marker for Redis tests
redis_available = pytest.mark.skipif(not is_redis_available(), reason="Redis server not available")


class FakeEmbeddingProvider(EmbeddingProvider):
    """
    Deterministic embedding provider.

    Texts registered in ``vectors`` get that exact vector; anything else gets
    a stable pseudo-random vector derived from its SHA-256 digest.
    """

    name = "fake"

    def __init__(self, dimensions: int = TEST_DIMENSIONS, vectors: dict[str, list[float]] | None = None):
        self._dimensions = dimensions
        self.vectors = dict(vectors or {})
        self.calls = 0
        self.batch_calls = 0
        self.fail_with: Exception | None = None
        self.delay = 0.0
        self.closed = False

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def vector_for(self, text: str) -> list[float]:
        if text in self.vectors:
            return list(self.vectors[text])
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [(b - 127.5) / 127.5 for b in digest[: self._dimensions]]

    async def embed(self, text: str) -> list[float]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        return self.vector_for(text)

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.batch_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        return [self.vector_for(text) for text in texts]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def embedder() -> FakeEmbeddingProvider:
    """Deterministic embedding provider producing TEST_DIMENSIONS-long vectors."""
    return FakeEmbeddingProvider()


@pytest.fixture
def test_config() -> RagCoreConfig:
    """Memory-backed configuration sized for the fake embedder."""
    return RagCoreConfig(
        environment="test",
        embedding={"dimensions": TEST_DIMENSIONS, "api_key": "test-key"},
        vector_store={"dimensions": TEST_DIMENSIONS},
        rate_limit={"sweep_interval_seconds": 0},
    )


@pytest.fixture
def test_redis_url() -> str:
    """Get Redis URL for testing (database 15 for isolation)."""
    return os.environ.get("TEST_REDIS_URL", "redis://localhost:6379/15")


@pytest_asyncio.fixture
async def redis_client(test_redis_url: str) -> AsyncGenerator[Redis, None]:
    """
    Create a Redis client for testing.

    Automatically skips tests if Redis is not available.
    Clears the test database before and after each test.
    """
    client: Redis = Redis.from_url(test_redis_url, decode_responses=True)

    try:
        await client.ping()
    except Exception as e:
        await client.aclose()
        pytest.skip(f"Redis not available for testing: {e}")

    await client.flushdb()

    yield client

    try:
        await client.flushdb()
    finally:
        await client.aclose()


@pytest.fixture(autouse=True)
def reset_global_state() -> Generator[None, None, None]:
    """Reset factories, metrics and config around each test to prevent state leakage."""
    reset_observability()
    yield
    reset_hash_store_factory()
    reset_rate_limit_factory()
    reset_observability()
    reset_config()
