"""
ragcore — Hash Store Factory

Canonical factory for the semantic cache's backing store.

- Select backend with CACHE_BACKEND=memory|redis (see SemanticCacheConfig)
- When redis is selected, RedisConfig.url must be set
- build_hash_store() returns a caller-owned store; create_hash_store()
  registers one shared store per name

Examples:
    from ragcore.cache import create_hash_store
    from ragcore.config import SemanticCacheConfig, CacheBackend

    store = create_hash_store(SemanticCacheConfig(backend=CacheBackend.MEMORY), name="test")
"""

import logging

from ..config import CacheBackend, RedisConfig, SemanticCacheConfig
from ..errors import ConfigurationError
from .backends.memory import MemoryHashStore
from .interface import HashStore

logger = logging.getLogger(__name__)

# Global hash store registry
_store_instances: dict[str, tuple[tuple[str, str | None], HashStore]] = {}


def _create_redis_store(redis_config: RedisConfig) -> HashStore:
    """Construct a Redis hash store with lazy import."""
    if not redis_config.url:
        raise ConfigurationError(
            "REDIS_URL must be set when CACHE_BACKEND=redis",
            details={"env": "REDIS_URL", "backend": "redis"},
        )

    from .backends.redis import RedisHashStore

    return RedisHashStore(
        redis_url=redis_config.url,
        max_connections=redis_config.max_connections,
        socket_timeout=redis_config.socket_timeout,
    )


def build_hash_store(config: SemanticCacheConfig, redis_config: RedisConfig | None = None) -> HashStore:
    """
    Construct a new hash store owned by the caller.

    Raises:
        ConfigurationError: If the backend is unknown or misconfigured
    """
    if config.backend == CacheBackend.MEMORY:
        return MemoryHashStore()
    if config.backend == CacheBackend.REDIS:
        return _create_redis_store(redis_config or RedisConfig())
    raise ConfigurationError(
        f"Unknown cache backend: {config.backend}",
        details={"backend": str(config.backend), "supported": ["memory", "redis"]},
    )


def create_hash_store(
    config: SemanticCacheConfig,
    redis_config: RedisConfig | None = None,
    name: str = "default",
) -> HashStore:
    """
    Shared hash store registered under ``name``.

    A second call with the same name and backend settings returns the same
    instance. Asking for a different backend under a registered name is a
    configuration conflict.

    Args:
        config: Semantic cache configuration (selects the backend)
        redis_config: Redis connection settings (required for redis backend)
        name: Registry name

    Raises:
        ConfigurationError: If the backend is unknown, misconfigured, or
            conflicts with the store already registered under ``name``
    """
    settings = (config.backend.value, redis_config.url if redis_config else None)
    if name in _store_instances:
        registered_settings, store = _store_instances[name]
        if registered_settings != settings:
            raise ConfigurationError(
                f"Hash store '{name}' is already registered with different settings",
                details={"store_name": name, "registered": registered_settings[0], "requested": settings[0]},
            )
        logger.debug("Returning existing hash store: %s", name)
        return store

    logger.info(
        "Creating hash store '%s' with backend: %s",
        name,
        config.backend.value,
        extra={"store_name": name, "backend": config.backend.value},
    )
    store = build_hash_store(config, redis_config)
    _store_instances[name] = (settings, store)
    return store


async def close_all_hash_stores() -> None:
    """
    Close all registered hash stores and release resources.

    Stores built with build_hash_store() are not tracked here; their owner
    closes them.
    """
    if not _store_instances:
        return

    logger.info("Closing %d hash store(s)...", len(_store_instances))

    for name, (_, store) in list(_store_instances.items()):
        try:
            await store.close()
        except Exception as e:
            logger.error(
                "Error closing hash store '%s': %s",
                name,
                e,
                extra={"store_name": name, "error": str(e)},
                exc_info=True,
            )

    _store_instances.clear()


def reset_hash_store_factory() -> None:
    """
    Clear registry references without closing them.

    Warning: Only use this in testing contexts.
    """
    _store_instances.clear()


def list_hash_stores() -> list[str]:
    """List registered hash store names."""
    return list(_store_instances.keys())
