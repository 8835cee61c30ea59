"""
ragcore — Redis Hash Store

Asynchronous Redis implementation of the hash-bucket primitives (HSET,
HGETALL, HDEL, EXPIRE, HLEN). Every Redis failure is re-raised as
CacheOperationError so the semantic cache can absorb it.

Example:
    store = RedisHashStore(redis_url="redis://localhost:6379/0")
    await store.hset("semantic_cache:v1", "f1", '{"query": "hi"}')
    await store.expire("semantic_cache:v1", 3600)
"""

import logging
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ...errors import CacheOperationError
from ..interface import HashStore

logger = logging.getLogger(__name__)


class RedisHashStore(HashStore):
    """
    Redis hash store.

    Notes:
    - Bucket names are optionally prefixed with a namespace.
    - Values are stored as-is (callers serialize to JSON).
    - Expiry is Redis' native key TTL, applied to the whole hash.
    """

    def __init__(
        self,
        redis_url: str,
        namespace: str = "",
        max_connections: int = 10,
        socket_timeout: int = 5,
        client: Redis | None = None,
    ) -> None:
        """
        Initialize Redis hash store.

        Args:
            redis_url: Connection URL, e.g., redis://localhost:6379/0 or rediss:// for TLS
            namespace: Optional prefix for bucket keys
            max_connections: Connection pool size
            socket_timeout: Socket timeout in seconds
            client: Pre-built client (tests)
        """
        if not redis_url and client is None:
            raise ValueError("redis_url is required")

        self.namespace = namespace.strip()
        self._reads = 0
        self._writes = 0
        self._deletes = 0
        self._errors = 0

        # Lazy connection; connects on first command
        self._client = client or Redis.from_url(  # type: ignore[call-overload]
            url=redis_url,
            decode_responses=True,
            max_connections=max_connections,
            socket_timeout=socket_timeout,
        )

    def _make_key(self, bucket: str) -> str:
        """Create namespaced bucket key."""
        return f"{self.namespace}:{bucket}" if self.namespace else bucket

    def _fail(self, operation: str, bucket: str, error: Exception) -> CacheOperationError:
        self._errors += 1
        logger.warning(
            f"Redis {operation} failed for bucket '{bucket}': {error}",
            extra={"operation": operation, "bucket": bucket, "error": str(error)},
        )
        return CacheOperationError(
            f"Redis {operation} failed: {error}",
            details={"operation": operation, "bucket": bucket},
        )

    async def hset(self, bucket: str, field: str, value: str) -> None:
        try:
            await self._client.hset(self._make_key(bucket), field, value)
            self._writes += 1
        except (RedisError, OSError) as e:
            raise self._fail("hset", bucket, e) from e

    async def hgetall(self, bucket: str) -> dict[str, str]:
        try:
            data = await self._client.hgetall(self._make_key(bucket))
            self._reads += 1
            return dict(data)
        except (RedisError, OSError) as e:
            raise self._fail("hgetall", bucket, e) from e

    async def hdel(self, bucket: str, *fields: str) -> int:
        if not fields:
            return 0
        try:
            removed = int(await self._client.hdel(self._make_key(bucket), *fields))
            self._deletes += removed
            return removed
        except (RedisError, OSError) as e:
            raise self._fail("hdel", bucket, e) from e

    async def expire(self, bucket: str, seconds: int) -> bool:
        try:
            return bool(await self._client.expire(self._make_key(bucket), seconds))
        except (RedisError, OSError) as e:
            raise self._fail("expire", bucket, e) from e

    async def hlen(self, bucket: str) -> int:
        try:
            return int(await self._client.hlen(self._make_key(bucket)))
        except (RedisError, OSError) as e:
            raise self._fail("hlen", bucket, e) from e

    async def delete(self, bucket: str) -> bool:
        try:
            return bool(await self._client.delete(self._make_key(bucket)))
        except (RedisError, OSError) as e:
            raise self._fail("delete", bucket, e) from e

    async def get_stats(self) -> dict[str, Any]:
        """Return operation counters and connectivity."""
        stats: dict[str, Any] = {
            "backend": "redis",
            "namespace": self.namespace,
            "reads": self._reads,
            "writes": self._writes,
            "deletes": self._deletes,
            "errors": self._errors,
            "connected": False,
        }

        try:
            stats["connected"] = bool(await self._client.ping())
        except (RedisError, OSError) as e:
            logger.warning(f"Redis ping failed: {e}", extra={"error": str(e)})

        return stats

    async def close(self) -> None:
        """Close the Redis client and release resources."""
        try:
            await self._client.aclose()
            logger.info(f"Closed Redis hash store for namespace '{self.namespace}'")
        except (RedisError, OSError) as e:
            logger.error(
                f"Error closing Redis client: {e}",
                extra={"namespace": self.namespace, "error": str(e)},
                exc_info=True,
            )
