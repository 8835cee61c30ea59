"""
ragcore — Retrieval-Augmented Query Pipeline

Semantic response cache, content-hash deduplication, pluggable rate limiting
and retrieval orchestration over an embedding provider and a vector store.
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
