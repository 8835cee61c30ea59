"""
ragcore — Redis Rate Limiter

Distributed fixed-window limiter. All shared state lives in Redis counters
keyed "<prefix>:<key>"; the first increment in a window sets the counter's
expiry, and expiry is what resets the window.

Fixed window, not sliding: up to 2 x max_requests may pass across a window
boundary.
"""

import logging
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ...observability import get_observability
from ..interface import RateLimiter

logger = logging.getLogger(__name__)


class RedisRateLimiter(RateLimiter):
    """
    Redis-backed rate limiter.

    Backend failures resolve to ``fail_open`` (True = allow) and are logged
    and counted; they are never raised to the caller.
    """

    def __init__(
        self,
        name: str,
        max_requests: int,
        window_seconds: int,
        key_prefix: str,
        redis_url: str | None = None,
        fail_open: bool = True,
        max_connections: int = 10,
        socket_timeout: int = 5,
        client: Redis | None = None,
    ):
        """
        Initialize Redis rate limiter.

        Args:
            name: Limiter name (e.g., "chat")
            max_requests: Requests allowed per window
            window_seconds: Window length in seconds
            key_prefix: Counter key prefix
            redis_url: Connection URL (ignored when ``client`` is given)
            fail_open: Admit requests when Redis is unreachable
            max_connections: Connection pool size
            socket_timeout: Socket timeout in seconds
            client: Pre-built client (tests)
        """
        super().__init__(name, max_requests, window_seconds)
        if client is None and not redis_url:
            raise ValueError("redis_url is required")

        self.key_prefix = key_prefix
        self.fail_open = fail_open
        self._client = client or Redis.from_url(  # type: ignore[call-overload]
            url=redis_url,
            decode_responses=True,
            max_connections=max_connections,
            socket_timeout=socket_timeout,
        )
        self._obs = get_observability()

        self._allowed = 0
        self._denied = 0
        self._backend_errors = 0

    def _make_key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}"

    async def check(self, key: str) -> bool:
        redis_key = self._make_key(key)

        try:
            count = int(await self._client.incr(redis_key))
            if count == 1:
                await self._client.expire(redis_key, self.window_seconds)
            elif count > self.max_requests and await self._client.ttl(redis_key) == -1:
                # Counter survived a failed EXPIRE; give it a window so it cannot block forever
                await self._client.expire(redis_key, self.window_seconds)
        except (RedisError, OSError) as e:
            self._backend_errors += 1
            self._obs.increment("rate_limit.backend_errors", tags={"limiter": self.name})
            logger.warning(
                f"Rate limiter backend unavailable, {'allowing' if self.fail_open else 'denying'} request: {e}",
                extra={"limiter": self.name, "key": key, "fail_open": self.fail_open, "error": str(e)},
            )
            return self.fail_open

        allowed = count <= self.max_requests
        if allowed:
            self._allowed += 1
            self._obs.increment("rate_limit.allowed", tags={"limiter": self.name})
        else:
            self._denied += 1
            self._obs.increment("rate_limit.denied", tags={"limiter": self.name})
            logger.info(
                f"Rate limit exceeded for '{self.name}'",
                extra={"limiter": self.name, "key": key, "count": count, "max_requests": self.max_requests},
            )
        return allowed

    async def get_stats(self) -> dict[str, Any]:
        stats: dict[str, Any] = {
            "backend": "redis",
            "name": self.name,
            "key_prefix": self.key_prefix,
            "max_requests": self.max_requests,
            "window_seconds": self.window_seconds,
            "fail_open": self.fail_open,
            "allowed": self._allowed,
            "denied": self._denied,
            "backend_errors": self._backend_errors,
            "connected": False,
        }
        try:
            stats["connected"] = bool(await self._client.ping())
        except (RedisError, OSError) as e:
            logger.warning(f"Redis ping failed: {e}", extra={"limiter": self.name, "error": str(e)})
        return stats

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except (RedisError, OSError) as e:
            logger.error(
                f"Error closing Redis client: {e}",
                extra={"limiter": self.name, "error": str(e)},
                exc_info=True,
            )
