"""
ragcore — Configuration Module

Provides typed configuration loading and validation.
"""

from .loader import get_config, load_config, reload_config, reset_config
from .schemas import (
    CacheBackend,
    EmbeddingConfig,
    Environment,
    IngestionConfig,
    LogFormat,
    LogLevel,
    RagCoreConfig,
    RateLimitBackend,
    RateLimitConfig,
    RateLimitRule,
    RedisConfig,
    RetrievalConfig,
    SemanticCacheConfig,
    VectorStoreBackend,
    VectorStoreConfig,
)

__all__ = [
    # Loader functions
    "load_config",
    "get_config",
    "reload_config",
    "reset_config",
    # Main config
    "RagCoreConfig",
    # Enums
    "Environment",
    "CacheBackend",
    "RateLimitBackend",
    "VectorStoreBackend",
    "LogLevel",
    "LogFormat",
    # Config sections
    "RedisConfig",
    "SemanticCacheConfig",
    "RateLimitConfig",
    "RateLimitRule",
    "EmbeddingConfig",
    "VectorStoreConfig",
    "RetrievalConfig",
    "IngestionConfig",
]
