"""
ragcore — Retrieval Orchestrator

Composes embedding provider, semantic cache and vector store:

    embed query -> cache lookup -> (hit) cached response
                                -> (miss) vector search -> context string

Embedding and vector-search failures on this path are raised as
RetrievalError; there is no safe default context to return instead. Cache
reads and writes are best-effort.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ..config import RetrievalConfig
from ..embeddings.interface import EmbeddingProvider
from ..errors import (
    DimensionMismatchError,
    ProviderTimeoutError,
    RagCoreError,
    RetrievalError,
    ValidationError,
)
from ..observability import get_observability
from ..semantic_cache import CacheWriteResult, SemanticCache
from ..vector_store.interface import VectorStore

logger = logging.getLogger(__name__)

NO_RESULTS_MESSAGE = "No relevant information found in the knowledge base."


@dataclass(frozen=True)
class ScoredDocument:
    """A retrieved chunk and its similarity to the query."""

    content: str
    similarity: float
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"content": self.content, "similarity": self.similarity, "metadata": self.metadata}


@dataclass
class RetrievalContext:
    """Result of retrieve(): documents ordered by descending similarity."""

    query: str
    documents: list[ScoredDocument] = field(default_factory=list)
    cache_hit: bool = False

    @property
    def found_documents(self) -> bool:
        return bool(self.documents)


@dataclass
class KnowledgeSearchResult:
    """Result of search_knowledge(): either a cached response or retrieved context."""

    cached: bool
    response: str | None = None
    documents: list[ScoredDocument] = field(default_factory=list)
    context: str | None = None
    found_documents: bool = False

    def to_dict(self) -> dict[str, Any]:
        if self.cached:
            return {"success": True, "cached": True, "response": self.response, "documents": []}
        return {
            "success": True,
            "cached": False,
            "documents": [doc.to_dict() for doc in self.documents],
            "context": self.context,
            "found_documents": self.found_documents,
        }


def build_context_string(docs: Sequence[ScoredDocument]) -> str:
    """
    Render documents as numbered, relevance-annotated blocks.

    Returns NO_RESULTS_MESSAGE (never an empty string) when ``docs`` is empty.

    Example:
        [Document 1] (Relevance: 91.2%)
        Agents use tools

        ---

        [Document 2] (Relevance: 78.0%)
        ...
    """
    if not docs:
        return NO_RESULTS_MESSAGE

    return "\n\n---\n\n".join(
        f"[Document {index + 1}] (Relevance: {doc.similarity * 100:.1f}%)\n{doc.content}"
        for index, doc in enumerate(docs)
    )


class RetrievalOrchestrator:
    """
    Query-time retrieval pipeline.

    Every embedding and vector-store call is bounded by
    ``config.timeout_seconds``.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        vector_store: VectorStore,
        cache: SemanticCache | None = None,
        config: RetrievalConfig | None = None,
    ):
        """
        Initialize orchestrator.

        Args:
            embedder: Embedding provider
            vector_store: Vector similarity store
            cache: Semantic cache (None disables caching)
            config: Retrieval defaults (top_k, threshold, timeouts)
        """
        self.config = config or RetrievalConfig()
        self._embedder = embedder
        self._vector_store = vector_store
        self._cache = cache
        self._obs = get_observability()

    def _fail(self, stage: str, cause: Exception) -> RetrievalError:
        self._obs.increment("retrieval.failures", tags={"stage": stage})
        logger.error(
            f"Retrieval failed during {stage}: {cause}",
            extra={"stage": stage, "error": str(cause), "error_type": type(cause).__name__},
        )
        return RetrievalError(stage, cause)

    async def _embed(self, query: str) -> list[float]:
        timeout = self.config.timeout_seconds
        try:
            with self._obs.trace("retrieval.embed"):
                return await asyncio.wait_for(self._embedder.embed(query), timeout=timeout)
        except DimensionMismatchError:
            raise
        except TimeoutError as e:
            raise self._fail("embedding", ProviderTimeoutError(self._embedder.name, timeout)) from e
        except RagCoreError as e:
            raise self._fail("embedding", e) from e

    async def _search(self, embedding: Sequence[float], threshold: float, top_k: int) -> list[ScoredDocument]:
        try:
            with self._obs.trace("retrieval.search"):
                results = await asyncio.wait_for(
                    self._vector_store.query(embedding, threshold, top_k),
                    timeout=self.config.timeout_seconds,
                )
        except DimensionMismatchError:
            raise
        except (TimeoutError, RagCoreError) as e:
            raise self._fail("vector_search", e) from e

        return [ScoredDocument(content=r.content, similarity=r.similarity, metadata=r.metadata) for r in results]

    async def retrieve(
        self,
        query: str,
        top_k: int | None = None,
        threshold: float | None = None,
        query_embedding: Sequence[float] | None = None,
    ) -> RetrievalContext:
        """
        Retrieve documents relevant to ``query``.

        Args:
            query: Query text
            top_k: Maximum documents (config default if None)
            threshold: Minimum similarity (config default if None)
            query_embedding: Precomputed embedding (skips the embedding call)

        Returns:
            RetrievalContext with documents in descending similarity

        Raises:
            RetrievalError: If embedding or vector search fails or times out
        """
        top_k = self.config.top_k if top_k is None else top_k
        threshold = self.config.similarity_threshold if threshold is None else threshold

        self._obs.increment("retrieval.queries")
        embedding = list(query_embedding) if query_embedding is not None else await self._embed(query)
        documents = await self._search(embedding, threshold, top_k)

        logger.info(
            f"Found {len(documents)} relevant documents",
            extra={"top_k": top_k, "threshold": threshold, "found": len(documents)},
        )
        return RetrievalContext(query=query, documents=documents, cache_hit=False)

    async def cache_query_response(
        self,
        query: str,
        response: str,
        ttl: int | None = None,
    ) -> CacheWriteResult:
        """
        Embed ``query`` and cache ``response`` for it. Best-effort.

        Returns:
            CacheWriteResult; embedding and cache failures are reported here
            and never raised
        """
        if self._cache is None:
            return CacheWriteResult(stored=False, error="semantic cache not configured")

        ttl = self.config.response_cache_ttl_seconds if ttl is None else ttl
        try:
            embedding = await asyncio.wait_for(self._embedder.embed(query), timeout=self.config.timeout_seconds)
            result = await self._cache.store(query, embedding, response, ttl=ttl)
        except DimensionMismatchError:
            raise
        except (TimeoutError, RagCoreError) as e:
            logger.warning(
                f"Failed to cache response: {e}",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            return CacheWriteResult(stored=False, error=str(e))

        if not result.stored:
            logger.warning("Failed to cache response", extra={"error": result.error})
        return result

    async def search_knowledge(
        self,
        query: str,
        top_k: int | None = None,
        threshold: float | None = None,
        cache_context: bool = False,
    ) -> KnowledgeSearchResult:
        """
        Full knowledge search: one embedding call, cache first, then vector search.

        Args:
            query: Query text
            top_k: Maximum documents on a cache miss
            threshold: Minimum document similarity on a cache miss
            cache_context: Store the rendered context in the semantic cache
                when documents were found

        Raises:
            ValidationError: If ``query`` is empty
            RetrievalError: If embedding or vector search fails
        """
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("Query is required and must be a string", details={"field": "query"})

        embedding = await self._embed(query)

        if self._cache is not None:
            cached = await self._cache.lookup(embedding)
            if cached is not None:
                logger.info("Knowledge search cache hit")
                return KnowledgeSearchResult(cached=True, response=cached)

        logger.debug("Knowledge search cache miss, searching vector store")
        context = await self.retrieve(query, top_k=top_k, threshold=threshold, query_embedding=embedding)
        context_string = build_context_string(context.documents)

        if cache_context and self._cache is not None and context.found_documents:
            result = await self._cache.store(query, embedding, context_string, ttl=self.config.response_cache_ttl_seconds)
            if not result.stored:
                logger.warning("Failed to cache retrieved context", extra={"error": result.error})

        return KnowledgeSearchResult(
            cached=False,
            documents=context.documents,
            context=context_string,
            found_documents=context.found_documents,
        )
