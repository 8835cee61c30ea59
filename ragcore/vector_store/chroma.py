"""
ragcore — ChromaDB Vector Store

Persistent (or ephemeral) ChromaDB collection in cosine space. The chromadb
client is synchronous; every call runs in a worker thread via
asyncio.to_thread so the event loop is never blocked.

Similarity is reported as 1 - cosine distance.
"""

import asyncio
import json
import logging
import uuid
from collections.abc import Sequence
from typing import Any

import chromadb
from chromadb.config import Settings

from ..config import VectorStoreConfig
from ..errors import DimensionMismatchError, VectorStoreError
from .interface import Document, SearchResult, VectorStore

logger = logging.getLogger(__name__)


def _sanitize_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    """Chroma accepts only str/int/float/bool values; encode the rest as JSON, drop None."""
    clean: dict[str, Any] = {}
    for key, value in metadata.items():
        if value is None:
            continue
        if isinstance(value, str | int | float | bool):
            clean[key] = value
        else:
            clean[key] = json.dumps(value, default=str)
    return clean


class ChromaVectorStore(VectorStore):
    """ChromaDB-backed vector store."""

    def __init__(self, config: VectorStoreConfig, client: Any = None):
        """
        Initialize ChromaDB vector store.

        Args:
            config: Vector store configuration
            client: Pre-built chromadb client (tests)
        """
        self.config = config
        self.dimensions = config.dimensions

        settings = Settings(anonymized_telemetry=False)
        if client is not None:
            self._client = client
        elif config.persist_directory:
            logger.info(f"Initializing ChromaDB at {config.persist_directory}")
            self._client = chromadb.PersistentClient(path=config.persist_directory, settings=settings)
        else:
            self._client = chromadb.EphemeralClient(settings=settings)

        self._collection = self._client.get_or_create_collection(
            name=config.collection_name,
            metadata={"hnsw:space": "cosine", "description": "ragcore document chunks"},
        )
        logger.info(f"ChromaDB collection '{config.collection_name}' ready")

    def _check_dimensions(self, embedding: Sequence[float], context: str) -> None:
        if len(embedding) != self.dimensions:
            raise DimensionMismatchError(self.dimensions, len(embedding), context=context)

    async def _run(self, operation: str, func: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(func, **kwargs)
        except Exception as e:
            logger.error(
                f"ChromaDB {operation} failed: {e}",
                extra={"operation": operation, "collection": self.config.collection_name, "error": str(e)},
                exc_info=True,
            )
            raise VectorStoreError(
                f"ChromaDB {operation} failed: {e}",
                details={"operation": operation, "collection": self.config.collection_name},
            ) from e

    async def insert(
        self,
        content: str,
        embedding: Sequence[float],
        metadata: dict[str, Any] | None = None,
    ) -> Document:
        self._check_dimensions(embedding, "vector store insert")
        metadata = dict(metadata or {})
        vector = [float(x) for x in embedding]
        doc_id = str(uuid.uuid4())
        clean = _sanitize_metadata(metadata)

        await self._run(
            "insert",
            self._collection.add,
            ids=[doc_id],
            embeddings=[vector],
            documents=[content],
            metadatas=[clean] if clean else None,
        )

        return Document(
            id=doc_id,
            content=content,
            embedding=vector,
            source_hash=metadata.get("source_hash"),
            metadata=metadata,
        )

    async def query(
        self,
        embedding: Sequence[float],
        threshold: float,
        limit: int,
    ) -> list[SearchResult]:
        self._check_dimensions(embedding, "vector store query")

        total = await self.count()
        if total == 0 or limit <= 0:
            return []

        raw = await self._run(
            "query",
            self._collection.query,
            query_embeddings=[[float(x) for x in embedding]],
            n_results=min(limit, total),
            include=["documents", "metadatas", "distances"],
        )

        ids = (raw.get("ids") or [[]])[0]
        documents = (raw.get("documents") or [[]])[0]
        metadatas = (raw.get("metadatas") or [[]])[0]
        distances = (raw.get("distances") or [[]])[0]

        results = []
        for i, doc_id in enumerate(ids):
            similarity = 1.0 - float(distances[i])
            if similarity < threshold:
                continue
            results.append(
                SearchResult(
                    id=doc_id,
                    content=documents[i] or "",
                    similarity=similarity,
                    metadata=dict(metadatas[i] or {}),
                )
            )

        results.sort(key=lambda r: r.similarity, reverse=True)
        return results

    async def exists_by_hash(self, source_hash: str) -> bool:
        raw = await self._run(
            "exists_by_hash",
            self._collection.get,
            where={"source_hash": source_hash},
            limit=1,
            include=[],
        )
        return bool(raw.get("ids"))

    async def count(self) -> int:
        return int(await self._run("count", self._collection.count))

    async def count_by_hash(self, source_hash: str) -> int:
        raw = await self._run(
            "count_by_hash",
            self._collection.get,
            where={"source_hash": source_hash},
            include=[],
        )
        return len(raw.get("ids") or [])

    async def delete_by_hash(self, source_hash: str) -> int:
        removed = await self.count_by_hash(source_hash)
        if removed:
            await self._run("delete_by_hash", self._collection.delete, where={"source_hash": source_hash})
        return removed
