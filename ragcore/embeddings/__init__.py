"""
ragcore — Embeddings

Text-to-vector providers.
"""

from .factory import create_embedding_provider
from .interface import EmbeddingProvider

__all__ = [
    "EmbeddingProvider",
    "create_embedding_provider",
]
