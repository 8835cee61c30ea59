"""
ragcore — Knowledge Service

Application-level composition: admission control in front of the retrieval
and ingestion pipelines. Built once at process start with
KnowledgeService.create() and shared by every request handler; close() on
shutdown.

Usage:
    service = await KnowledgeService.create(load_config())
    result = await service.search("203.0.113.7", "What is an AI agent?")
    await service.close()
"""

import logging
from datetime import UTC, datetime
from typing import Any

from .cache import HashStore, build_hash_store
from .config import RagCoreConfig, get_config
from .embeddings import EmbeddingProvider, create_embedding_provider
from .errors import ConfigurationError
from .ingestion import DocumentIngestor, IngestionResult
from .observability import get_observability
from .rate_limit import MemoryRateLimiter, RateLimiter, build_rate_limiter
from .retrieval import KnowledgeSearchResult, RetrievalOrchestrator
from .semantic_cache import CacheWriteResult, SemanticCache
from .vector_store import VectorStore, create_vector_store

logger = logging.getLogger(__name__)


class KnowledgeService:
    """Rate-limited front door to knowledge search and document ingestion."""

    def __init__(
        self,
        orchestrator: RetrievalOrchestrator,
        ingestor: DocumentIngestor,
        chat_limiter: RateLimiter,
        upload_limiter: RateLimiter,
        embedder: EmbeddingProvider,
        vector_store: VectorStore,
        cache: SemanticCache | None = None,
        hash_store: HashStore | None = None,
    ):
        self.orchestrator = orchestrator
        self.ingestor = ingestor
        self.chat_limiter = chat_limiter
        self.upload_limiter = upload_limiter
        self.embedder = embedder
        self.vector_store = vector_store
        self.cache = cache
        self.hash_store = hash_store
        self._closed = False

    @classmethod
    async def create(
        cls,
        config: RagCoreConfig | None = None,
        embedder: EmbeddingProvider | None = None,
        vector_store: VectorStore | None = None,
    ) -> "KnowledgeService":
        """
        Build every component from configuration.

        Args:
            config: Root configuration (loaded from the environment if None)
            embedder: Embedding provider override (tests, custom providers)
            vector_store: Vector store override

        Raises:
            ConfigurationError: If components disagree on embedding dimension
        """
        config = config or get_config()

        embedder = embedder or create_embedding_provider(config.embedding)
        if embedder.dimensions != config.vector_store.dimensions:
            raise ConfigurationError(
                f"Embedding provider dimension ({embedder.dimensions}) does not match "
                f"vector store schema ({config.vector_store.dimensions})",
                details={"embedding": embedder.dimensions, "vector_store": config.vector_store.dimensions},
            )

        vector_store = vector_store or create_vector_store(config.vector_store)

        cache = None
        hash_store = None
        if config.semantic_cache.enabled:
            hash_store = build_hash_store(config.semantic_cache, config.redis)
            cache = SemanticCache(hash_store, config.semantic_cache)

        chat_limiter = build_rate_limiter(config.rate_limit, "chat", config.redis)
        upload_limiter = build_rate_limiter(config.rate_limit, "upload", config.redis)

        interval = config.rate_limit.sweep_interval_seconds
        if interval > 0:
            for limiter in (chat_limiter, upload_limiter):
                if isinstance(limiter, MemoryRateLimiter):
                    limiter.start_sweeper(interval)

        service = cls(
            orchestrator=RetrievalOrchestrator(embedder, vector_store, cache, config.retrieval),
            ingestor=DocumentIngestor(embedder, vector_store, config.ingestion),
            chat_limiter=chat_limiter,
            upload_limiter=upload_limiter,
            embedder=embedder,
            vector_store=vector_store,
            cache=cache,
            hash_store=hash_store,
        )

        get_observability().event("knowledge_service_started", config.summary())
        return service

    async def search(
        self,
        client_key: str,
        query: str,
        top_k: int | None = None,
        threshold: float | None = None,
    ) -> KnowledgeSearchResult:
        """
        Rate-limited knowledge search.

        Raises:
            RateLimitExceededError: If ``client_key`` exceeded the chat limit
            ValidationError: If ``query`` is empty
            RetrievalError: If embedding or vector search fails
        """
        await self.chat_limiter.enforce(client_key)
        return await self.orchestrator.search_knowledge(query, top_k=top_k, threshold=threshold)

    async def ingest(
        self,
        client_key: str,
        text: str,
        metadata: dict[str, Any] | None = None,
    ) -> IngestionResult:
        """
        Rate-limited document ingestion.

        Raises:
            RateLimitExceededError: If ``client_key`` exceeded the upload limit
            ValidationError: Empty or oversized text
            DuplicateContentError: Content already ingested
            IngestionError: Embedding or storage failed
        """
        await self.upload_limiter.enforce(client_key)

        metadata = dict(metadata or {})
        metadata.setdefault("uploaded_at", datetime.now(UTC).isoformat())
        return await self.ingestor.ingest_text(text, metadata)

    async def cache_response(self, query: str, response: str) -> CacheWriteResult:
        """Cache the final answer for ``query``. Never raises on cache failure."""
        return await self.orchestrator.cache_query_response(query, response)

    async def get_stats(self) -> dict[str, Any]:
        """Cache, limiter, vector store and metric statistics."""
        return {
            "semantic_cache": await self.cache.get_stats() if self.cache else {"enabled": False},
            "rate_limits": {
                "chat": await self.chat_limiter.get_stats(),
                "upload": await self.upload_limiter.get_stats(),
            },
            "vector_store": {"documents": await self.vector_store.count()},
            "metrics": get_observability().get_metrics(),
        }

    async def close(self) -> None:
        """Stop this service's background tasks and release its connections. Idempotent."""
        if self._closed:
            return
        self._closed = True

        await self.chat_limiter.close()
        await self.upload_limiter.close()
        if self.hash_store is not None:
            await self.hash_store.close()
        await self.vector_store.close()
        await self.embedder.close()
        logger.info("Knowledge service closed")
