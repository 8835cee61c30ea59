"""
ragcore — Document Ingestion Pipeline

validate -> hash -> dedup gate -> chunk -> batch embed -> insert chunks.

The dedup gate runs before any embedding work. Every chunk record carries
the caller's metadata plus ``source_hash``, ``chunk_index`` and
``total_chunks``.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from ..config import IngestionConfig
from ..embeddings.interface import EmbeddingProvider
from ..errors import DuplicateContentError, IngestionError, ProviderError, ValidationError, VectorStoreError
from ..observability import get_observability
from ..vector_store.interface import Document, VectorStore
from .chunker import TextChunker
from .dedup import DeduplicationGate, compute_hash

logger = logging.getLogger(__name__)


@dataclass
class IngestionResult:
    """Outcome of a successful ingestion."""

    source_hash: str
    chunks_processed: int
    document_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "source_hash": self.source_hash,
            "chunks_processed": self.chunks_processed,
            "document_ids": self.document_ids,
        }


class DocumentIngestor:
    """
    Ingests plain-text documents into the vector store.

    Concurrent ingestion of identical content through the same ingestor is
    serialized by an in-flight hash set: the second caller gets
    DuplicateContentError instead of racing past the exists() check.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        vector_store: VectorStore,
        config: IngestionConfig | None = None,
        gate: DeduplicationGate | None = None,
        chunker: TextChunker | None = None,
    ):
        self.config = config or IngestionConfig()
        self._embedder = embedder
        self._vector_store = vector_store
        self._gate = gate or DeduplicationGate(vector_store)
        self._chunker = chunker or TextChunker(self.config.chunk_size, self.config.chunk_overlap)
        self._in_flight: set[str] = set()
        self._obs = get_observability()

    def _validate(self, text: str) -> None:
        if not text or not text.strip():
            raise ValidationError("No text to process", details={"field": "text"})

        size = len(text.encode("utf-8"))
        if size > self.config.max_document_bytes:
            raise ValidationError(
                f"Document exceeds maximum size of {self.config.max_document_bytes} bytes",
                details={"size": size, "max_document_bytes": self.config.max_document_bytes},
            )

    async def ingest_bytes(self, data: bytes, metadata: dict[str, Any] | None = None) -> IngestionResult:
        """
        Ingest a UTF-8 encoded text upload.

        Raises:
            ValidationError: If the payload is too large or not valid UTF-8
        """
        if len(data) > self.config.max_document_bytes:
            raise ValidationError(
                f"Document exceeds maximum size of {self.config.max_document_bytes} bytes",
                details={"size": len(data), "max_document_bytes": self.config.max_document_bytes},
            )
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValidationError("Document is not valid UTF-8 text", details={"error": str(e)}) from e

        return await self.ingest_text(text, metadata)

    async def ingest_text(self, text: str, metadata: dict[str, Any] | None = None) -> IngestionResult:
        """
        Ingest one document.

        Args:
            text: Full document text
            metadata: Caller metadata copied onto every chunk (filename, type, ...)

        Returns:
            IngestionResult with the source hash and number of chunks stored

        Raises:
            ValidationError: Empty or oversized text
            DuplicateContentError: Content already ingested (or being ingested)
            IngestionError: Embedding or storage failed
        """
        self._validate(text)

        source_hash = compute_hash(text)
        # Reserve before the first await so a concurrent twin sees the claim
        if source_hash in self._in_flight:
            self._obs.increment("ingestion.duplicates")
            raise DuplicateContentError(source_hash, details={"in_flight": True})
        self._in_flight.add(source_hash)

        try:
            await self._gate.ensure_new(text)
            return await self._ingest_new(text, source_hash, metadata or {})
        finally:
            self._in_flight.discard(source_hash)

    async def _ingest_new(self, text: str, source_hash: str, metadata: dict[str, Any]) -> IngestionResult:
        chunks = self._chunker.split(text)
        total = len(chunks)
        logger.info(
            f"Extracted {total} chunks",
            extra={"source_hash": source_hash, "chunks": total},
        )

        try:
            embeddings = await self._embedder.embed_batch(chunks)
        except ProviderError as e:
            raise IngestionError(
                f"Embedding failed during ingestion: {e}",
                details={"stage": "embedding", "source_hash": source_hash},
            ) from e

        if len(embeddings) != total:
            raise IngestionError(
                f"Embedding provider returned {len(embeddings)} vectors for {total} chunks",
                details={"stage": "embedding", "source_hash": source_hash},
            )

        # Every insert settles before we decide, so a rollback cannot race a late write
        outcomes = await asyncio.gather(
            *(
                self._vector_store.insert(
                    chunk,
                    embedding,
                    {
                        **metadata,
                        "source_hash": source_hash,
                        "chunk_index": index,
                        "total_chunks": total,
                    },
                )
                for index, (chunk, embedding) in enumerate(zip(chunks, embeddings, strict=True))
            ),
            return_exceptions=True,
        )
        failures = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
        if failures:
            await self._rollback(source_hash, failures[0])
        documents = [outcome for outcome in outcomes if isinstance(outcome, Document)]

        self._obs.increment("ingestion.documents")
        self._obs.increment("ingestion.chunks", value=total)
        logger.info(
            f"Stored {total} chunks in vector store",
            extra={"source_hash": source_hash, "chunks": total},
        )

        return IngestionResult(
            source_hash=source_hash,
            chunks_processed=total,
            document_ids=[doc.id for doc in documents],
        )

    async def _rollback(self, source_hash: str, error: BaseException) -> None:
        """Remove the chunks already written for a failed document, then re-raise."""
        try:
            removed = await self._vector_store.delete_by_hash(source_hash)
        except VectorStoreError as cleanup_error:
            # Leftover chunks keep the hash known; retries fail as duplicates until removed
            logger.error(
                f"Rollback failed; partial chunks remain for {source_hash}",
                extra={"source_hash": source_hash, "error": str(cleanup_error)},
            )
        else:
            logger.warning(
                f"Rolled back {removed} chunks after a failed insert",
                extra={"source_hash": source_hash, "removed": removed},
            )

        if isinstance(error, VectorStoreError):
            raise IngestionError(
                f"Storing chunks failed: {error}",
                details={"stage": "insert", "source_hash": source_hash},
            ) from error
        raise error
