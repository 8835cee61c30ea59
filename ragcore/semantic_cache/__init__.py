"""
ragcore — Semantic Cache

Similarity-matched response cache with sliding TTL and oldest-first eviction.

Usage:
    from ragcore.cache import build_hash_store
    from ragcore.semantic_cache import SemanticCache

    cache = SemanticCache(build_hash_store(config.semantic_cache, config.redis), config.semantic_cache)
    await cache.store("weather in Paris", embedding, "sunny")
    response = await cache.lookup(other_embedding, threshold=0.88)
"""

from .cache import SemanticCache
from .models import CacheEntry, CacheMatch, CacheWriteResult
from .similarity import cosine_similarity

__all__ = [
    "SemanticCache",
    "CacheEntry",
    "CacheMatch",
    "CacheWriteResult",
    "cosine_similarity",
]
