"""
ragcore — Cache Module

Hash-bucket backing stores for the semantic cache.

Usage:
    from ragcore.cache import build_hash_store

    store = build_hash_store(config.semantic_cache, config.redis)
    await store.hset("bucket", "field", "value")
"""

from .factory import (
    build_hash_store,
    close_all_hash_stores,
    create_hash_store,
    list_hash_stores,
    reset_hash_store_factory,
)
from .interface import HashStore

__all__ = [
    "build_hash_store",
    "create_hash_store",
    "close_all_hash_stores",
    "list_hash_stores",
    "reset_hash_store_factory",
    "HashStore",
]
