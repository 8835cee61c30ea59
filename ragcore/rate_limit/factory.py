"""
ragcore — Rate Limiter Factory

Resolves the limiter backend once from configuration. Callers receive a
RateLimiter and never know which backend is behind it.

build_rate_limiter() returns a fresh instance owned by the caller; this is
what KnowledgeService uses. create_rate_limiter() is a process-wide
convenience that hands back one shared instance per (rule, settings).

Examples:
    from ragcore.rate_limit import build_rate_limiter

    chat_limiter = build_rate_limiter(config.rate_limit, "chat", config.redis)
    if not await chat_limiter.check(client_ip):
        ...
"""

import logging

from ..config import RateLimitBackend, RateLimitConfig, RedisConfig
from ..errors import ConfigurationError
from .backends.memory import MemoryRateLimiter
from .interface import RateLimiter

logger = logging.getLogger(__name__)

# Shared limiters, keyed by rule name plus the settings they were built with
_limiter_instances: dict[tuple, RateLimiter] = {}


def _registry_key(config: RateLimitConfig, name: str, redis_config: RedisConfig | None) -> tuple:
    rule = config.rule(name)
    return (
        name,
        config.backend.value,
        config.fail_open,
        rule.max_requests,
        rule.window_seconds,
        rule.key_prefix,
        redis_config.url if redis_config else None,
    )


def build_rate_limiter(
    config: RateLimitConfig,
    name: str,
    redis_config: RedisConfig | None = None,
) -> RateLimiter:
    """
    Construct a new limiter for a named rule.

    Args:
        config: Rate limit configuration (backend + rules)
        name: Rule name ("chat" or "upload")
        redis_config: Redis connection settings (required for redis backend)

    Raises:
        ConfigurationError: If the rule or backend is unknown or misconfigured
    """
    try:
        rule = config.rule(name)
    except KeyError as e:
        raise ConfigurationError(
            f"Unknown rate limit rule: {name}",
            details={"name": name, "supported": ["chat", "upload"]},
        ) from e

    logger.info(
        "Creating rate limiter '%s' with backend: %s",
        name,
        config.backend.value,
        extra={
            "limiter": name,
            "backend": config.backend.value,
            "max_requests": rule.max_requests,
            "window_seconds": rule.window_seconds,
        },
    )

    if config.backend == RateLimitBackend.MEMORY:
        return MemoryRateLimiter(
            name=name,
            max_requests=rule.max_requests,
            window_seconds=rule.window_seconds,
        )

    if config.backend == RateLimitBackend.REDIS:
        redis_config = redis_config or RedisConfig()
        if not redis_config.url:
            raise ConfigurationError(
                "REDIS_URL must be set when RATE_LIMIT_BACKEND=redis",
                details={"env": "REDIS_URL", "backend": "redis"},
            )

        from .backends.redis import RedisRateLimiter

        return RedisRateLimiter(
            name=name,
            max_requests=rule.max_requests,
            window_seconds=rule.window_seconds,
            key_prefix=rule.key_prefix,
            redis_url=redis_config.url,
            fail_open=config.fail_open,
            max_connections=redis_config.max_connections,
            socket_timeout=redis_config.socket_timeout,
        )

    raise ConfigurationError(
        f"Unknown rate limit backend: {config.backend}",
        details={"backend": str(config.backend), "supported": ["memory", "redis"]},
    )


def create_rate_limiter(
    config: RateLimitConfig,
    name: str,
    redis_config: RedisConfig | None = None,
) -> RateLimiter:
    """
    Shared limiter for a named rule.

    Repeated calls with the same rule settings return the same instance;
    changed settings get a new one. Registered limiters are closed by
    close_all_rate_limiters().
    """
    try:
        key = _registry_key(config, name, redis_config)
    except KeyError:
        # Unknown rule; build_rate_limiter raises the ConfigurationError
        return build_rate_limiter(config, name, redis_config)

    if key in _limiter_instances:
        return _limiter_instances[key]

    limiter = build_rate_limiter(config, name, redis_config)
    _limiter_instances[key] = limiter
    return limiter


async def close_all_rate_limiters() -> None:
    """Close every registered limiter (stops sweepers, closes connections)."""
    for key, limiter in list(_limiter_instances.items()):
        try:
            await limiter.close()
        except Exception as e:
            logger.error(
                "Error closing rate limiter '%s': %s",
                limiter.name,
                e,
                extra={"limiter": limiter.name, "error": str(e)},
                exc_info=True,
            )

    _limiter_instances.clear()


def reset_rate_limit_factory() -> None:
    """
    Clear registry references without closing them.

    Warning: Only use this in testing contexts.
    """
    _limiter_instances.clear()
