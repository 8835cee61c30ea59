"""
ragcore — Memory Vector Store

Brute-force cosine search over a numpy matrix. Intended for development and
tests; production deployments use the Chroma backend.
"""

import logging
import uuid
from collections.abc import Sequence
from typing import Any

import numpy as np

from ..errors import DimensionMismatchError
from .interface import Document, SearchResult, VectorStore

logger = logging.getLogger(__name__)


class MemoryVectorStore(VectorStore):
    """In-process vector store with exact (non-approximate) cosine search."""

    def __init__(self, dimensions: int = 1536):
        self.dimensions = dimensions
        self._documents: list[Document] = []
        # Row i is the unit-normalized embedding of _documents[i]
        self._matrix = np.empty((0, dimensions), dtype=np.float64)
        self._hashes: set[str] = set()

    def _as_vector(self, embedding: Sequence[float], context: str) -> np.ndarray:
        vector = np.asarray(embedding, dtype=np.float64).ravel()
        if vector.shape[0] != self.dimensions:
            raise DimensionMismatchError(self.dimensions, vector.shape[0], context=context)
        return vector

    @staticmethod
    def _normalize(vector: np.ndarray) -> np.ndarray:
        norm = np.linalg.norm(vector)
        return vector / norm if norm > 0 else vector

    async def insert(
        self,
        content: str,
        embedding: Sequence[float],
        metadata: dict[str, Any] | None = None,
    ) -> Document:
        vector = self._as_vector(embedding, "vector store insert")
        metadata = dict(metadata or {})
        source_hash = metadata.get("source_hash")

        document = Document(
            id=str(uuid.uuid4()),
            content=content,
            embedding=vector.tolist(),
            source_hash=source_hash,
            metadata=metadata,
        )

        self._documents.append(document)
        self._matrix = np.vstack([self._matrix, self._normalize(vector)])
        if source_hash:
            self._hashes.add(source_hash)

        return document

    async def query(
        self,
        embedding: Sequence[float],
        threshold: float,
        limit: int,
    ) -> list[SearchResult]:
        if not self._documents or limit <= 0:
            return []

        query = self._normalize(self._as_vector(embedding, "vector store query"))
        scores = self._matrix @ query

        order = np.argsort(-scores, kind="stable")
        results: list[SearchResult] = []
        for idx in order:
            score = float(scores[idx])
            if score < threshold or len(results) >= limit:
                break
            doc = self._documents[idx]
            results.append(SearchResult(id=doc.id, content=doc.content, similarity=score, metadata=dict(doc.metadata)))

        return results

    async def exists_by_hash(self, source_hash: str) -> bool:
        return source_hash in self._hashes

    async def count(self) -> int:
        return len(self._documents)

    async def count_by_hash(self, source_hash: str) -> int:
        return sum(1 for doc in self._documents if doc.source_hash == source_hash)

    async def delete_by_hash(self, source_hash: str) -> int:
        keep = [i for i, doc in enumerate(self._documents) if doc.source_hash != source_hash]
        removed = len(self._documents) - len(keep)
        if removed:
            self._documents = [self._documents[i] for i in keep]
            self._matrix = self._matrix[keep]
            self._hashes.discard(source_hash)
        return removed
