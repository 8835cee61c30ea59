"""
ragcore — Vector Store Interface

Persists (content, embedding, metadata) records and answers top-K cosine
similarity queries and exact source-hash existence checks.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Document:
    """A stored record. ``source_hash`` is the dedup key of the source document."""

    id: str
    content: str
    embedding: list[float]
    source_hash: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SearchResult:
    """One similarity-query hit."""

    id: str
    content: str
    similarity: float
    metadata: dict[str, Any] = field(default_factory=dict)


class VectorStore(ABC):
    """
    Abstract base class for vector similarity stores.

    query() must return only results at or above the threshold, ordered by
    descending similarity.
    """

    @abstractmethod
    async def insert(
        self,
        content: str,
        embedding: Sequence[float],
        metadata: dict[str, Any] | None = None,
    ) -> Document:
        """
        Persist one record. ``metadata["source_hash"]`` is indexed for exists_by_hash().

        Raises:
            DimensionMismatchError: If the embedding does not match the store schema
            VectorStoreError: On backend failure
        """
        pass

    @abstractmethod
    async def query(
        self,
        embedding: Sequence[float],
        threshold: float,
        limit: int,
    ) -> list[SearchResult]:
        """
        Top-``limit`` records with similarity >= ``threshold``, most similar first.

        Raises:
            VectorStoreError: On backend failure
        """
        pass

    @abstractmethod
    async def exists_by_hash(self, source_hash: str) -> bool:
        """True if any record carries ``source_hash``."""
        pass

    @abstractmethod
    async def count(self) -> int:
        """Number of stored records."""
        pass

    @abstractmethod
    async def count_by_hash(self, source_hash: str) -> int:
        """Number of records (chunks) carrying ``source_hash``."""
        pass

    @abstractmethod
    async def delete_by_hash(self, source_hash: str) -> int:
        """
        Remove every record carrying ``source_hash``.

        Returns:
            Number of records removed

        Raises:
            VectorStoreError: On backend failure
        """
        pass

    async def close(self) -> None:
        """Release backend resources."""
        return None
