"""
ragcore — Vector Store

Similarity search over document chunks.
"""

from .factory import create_vector_store
from .interface import Document, SearchResult, VectorStore
from .memory import MemoryVectorStore

__all__ = [
    "VectorStore",
    "Document",
    "SearchResult",
    "MemoryVectorStore",
    "create_vector_store",
]
