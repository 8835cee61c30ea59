"""
Tests for RetrievalOrchestrator

- Context string rendering
- Cache-first knowledge search
- RetrievalError on embedding / vector search failure
- Best-effort response caching
"""

import asyncio
import math
from unittest.mock import AsyncMock

import pytest

from ragcore.cache.backends.memory import MemoryHashStore
from ragcore.config import RetrievalConfig, SemanticCacheConfig
from ragcore.errors import ProviderError, RetrievalError, ValidationError, VectorStoreError
from ragcore.retrieval import NO_RESULTS_MESSAGE, RetrievalOrchestrator, ScoredDocument, build_context_string
from ragcore.semantic_cache import SemanticCache
from ragcore.vector_store import MemoryVectorStore


def axis(index: int, dims: int = 8) -> list[float]:
    vector = [0.0] * dims
    vector[index] = 1.0
    return vector


@pytest.fixture
def store(embedder) -> MemoryVectorStore:
    return MemoryVectorStore(dimensions=embedder.dimensions)


@pytest.fixture
def cache(embedder) -> SemanticCache:
    config = SemanticCacheConfig(similarity_threshold=0.88, dimensions=embedder.dimensions)
    return SemanticCache(MemoryHashStore(), config)


@pytest.fixture
def orchestrator(embedder, store: MemoryVectorStore, cache: SemanticCache) -> RetrievalOrchestrator:
    return RetrievalOrchestrator(embedder, store, cache, RetrievalConfig(timeout_seconds=0.5))


class TestBuildContextString:
    def test_empty_returns_sentinel(self):
        assert build_context_string([]) == NO_RESULTS_MESSAGE
        assert NO_RESULTS_MESSAGE == "No relevant information found in the knowledge base."

    def test_single_document(self):
        docs = [ScoredDocument(content="Agents use tools", similarity=0.912)]

        assert build_context_string(docs) == "[Document 1] (Relevance: 91.2%)\nAgents use tools"

    def test_documents_numbered_and_separated(self):
        docs = [
            ScoredDocument(content="first", similarity=0.9),
            ScoredDocument(content="second", similarity=0.75),
        ]

        assert build_context_string(docs) == (
            "[Document 1] (Relevance: 90.0%)\nfirst\n\n---\n\n[Document 2] (Relevance: 75.0%)\nsecond"
        )


class TestRetrieve:
    async def test_empty_store_finds_nothing(self, orchestrator: RetrievalOrchestrator):
        context = await orchestrator.retrieve("What is an AI agent?")

        assert context.documents == []
        assert context.found_documents is False
        assert build_context_string(context.documents) == NO_RESULTS_MESSAGE

    async def test_returns_documents_by_descending_similarity(
        self, orchestrator: RetrievalOrchestrator, store: MemoryVectorStore, embedder
    ):
        embedder.vectors["agents"] = axis(0)
        await store.insert("exact", axis(0))
        await store.insert("close", [0.8, 0.6] + [0.0] * 6)
        await store.insert("unrelated", axis(1))

        context = await orchestrator.retrieve("agents", top_k=3, threshold=0.5)

        assert [doc.content for doc in context.documents] == ["exact", "close"]
        assert context.documents[0].similarity == pytest.approx(1.0)
        assert context.documents[1].similarity == pytest.approx(0.8)

    async def test_top_k_limits_results(self, orchestrator: RetrievalOrchestrator, store: MemoryVectorStore, embedder):
        embedder.vectors["agents"] = axis(0)
        for i in range(5):
            await store.insert(f"doc{i}", [1.0, 0.01 * i] + [0.0] * 6)

        context = await orchestrator.retrieve("agents", top_k=2, threshold=0.0)

        assert len(context.documents) == 2

    async def test_precomputed_embedding_skips_provider(
        self, orchestrator: RetrievalOrchestrator, store: MemoryVectorStore, embedder
    ):
        await store.insert("exact", axis(0))

        context = await orchestrator.retrieve("agents", query_embedding=axis(0), threshold=0.9)

        assert embedder.calls == 0
        assert context.documents[0].content == "exact"

    async def test_embedding_failure_raises_retrieval_error(self, orchestrator: RetrievalOrchestrator, embedder):
        embedder.fail_with = ProviderError("OpenAI API error 500")

        with pytest.raises(RetrievalError) as exc_info:
            await orchestrator.retrieve("agents")

        assert exc_info.value.stage == "embedding"
        assert exc_info.value.status_code == 503

    async def test_embedding_timeout_raises_retrieval_error(self, orchestrator: RetrievalOrchestrator, embedder):
        embedder.delay = 2.0

        with pytest.raises(RetrievalError) as exc_info:
            await orchestrator.retrieve("agents")

        assert exc_info.value.stage == "embedding"
        assert exc_info.value.details["cause"] == "ProviderTimeoutError"
        assert exc_info.value.details["retryable"] is True

    async def test_search_failure_raises_retrieval_error(self, embedder, cache: SemanticCache):
        store = MemoryVectorStore(dimensions=embedder.dimensions)
        store.query = AsyncMock(side_effect=VectorStoreError("chroma down"))  # type: ignore[method-assign]
        orchestrator = RetrievalOrchestrator(embedder, store, cache)

        with pytest.raises(RetrievalError) as exc_info:
            await orchestrator.retrieve("agents")

        assert exc_info.value.stage == "vector_search"

    async def test_search_timeout_raises_retrieval_error(self, embedder):
        store = MemoryVectorStore(dimensions=embedder.dimensions)

        async def hang(*args, **kwargs):
            await asyncio.sleep(2.0)

        store.query = hang  # type: ignore[method-assign]
        orchestrator = RetrievalOrchestrator(embedder, store, config=RetrievalConfig(timeout_seconds=0.05))

        with pytest.raises(RetrievalError) as exc_info:
            await orchestrator.retrieve("agents")

        assert exc_info.value.stage == "vector_search"


class TestSearchKnowledge:
    async def test_cache_hit_skips_vector_store(self, orchestrator: RetrievalOrchestrator, cache: SemanticCache, embedder):
        embedder.vectors["weather in Paris"] = axis(0)
        embedder.vectors["what's the weather like in Paris"] = [0.95, math.sqrt(1 - 0.95**2)] + [0.0] * 6
        await orchestrator.cache_query_response("weather in Paris", "sunny")

        spy = AsyncMock()
        orchestrator._vector_store.query = spy  # type: ignore[method-assign]

        result = await orchestrator.search_knowledge("what's the weather like in Paris")

        assert result.cached is True
        assert result.response == "sunny"
        spy.assert_not_called()
        assert result.to_dict() == {"success": True, "cached": True, "response": "sunny", "documents": []}

    async def test_single_embedding_call_per_search(
        self, orchestrator: RetrievalOrchestrator, store: MemoryVectorStore, embedder
    ):
        embedder.vectors["agents"] = axis(0)
        await store.insert("Agents use tools", axis(0))

        await orchestrator.search_knowledge("agents")

        assert embedder.calls == 1

    async def test_cache_miss_returns_context(
        self, orchestrator: RetrievalOrchestrator, store: MemoryVectorStore, embedder
    ):
        embedder.vectors["agents"] = axis(0)
        await store.insert("Agents use tools", axis(0), {"filename": "a.txt"})

        result = await orchestrator.search_knowledge("agents")

        assert result.cached is False
        assert result.found_documents is True
        assert result.context == "[Document 1] (Relevance: 100.0%)\nAgents use tools"
        payload = result.to_dict()
        assert payload["documents"][0]["metadata"] == {"filename": "a.txt"}

    async def test_nothing_found(self, orchestrator: RetrievalOrchestrator):
        result = await orchestrator.search_knowledge("What is an AI agent?")

        assert result.found_documents is False
        assert result.context == NO_RESULTS_MESSAGE

    async def test_context_not_cached_by_default(
        self, orchestrator: RetrievalOrchestrator, store: MemoryVectorStore, cache: SemanticCache, embedder
    ):
        embedder.vectors["agents"] = axis(0)
        await store.insert("Agents use tools", axis(0))

        await orchestrator.search_knowledge("agents")

        assert await cache.size() == 0

    async def test_cache_context_option(
        self, orchestrator: RetrievalOrchestrator, store: MemoryVectorStore, cache: SemanticCache, embedder
    ):
        embedder.vectors["agents"] = axis(0)
        await store.insert("Agents use tools", axis(0))

        first = await orchestrator.search_knowledge("agents", cache_context=True)
        second = await orchestrator.search_knowledge("agents")

        assert second.cached is True
        assert second.response == first.context

    async def test_empty_context_never_cached(self, orchestrator: RetrievalOrchestrator, cache: SemanticCache):
        await orchestrator.search_knowledge("What is an AI agent?", cache_context=True)

        assert await cache.size() == 0

    @pytest.mark.parametrize("query", ["", "   "])
    async def test_empty_query_rejected(self, orchestrator: RetrievalOrchestrator, query: str):
        with pytest.raises(ValidationError) as exc_info:
            await orchestrator.search_knowledge(query)

        assert exc_info.value.message == "Query is required and must be a string"

    async def test_works_without_cache(self, embedder, store: MemoryVectorStore):
        embedder.vectors["agents"] = axis(0)
        await store.insert("Agents use tools", axis(0))
        orchestrator = RetrievalOrchestrator(embedder, store)

        result = await orchestrator.search_knowledge("agents")

        assert result.cached is False
        assert result.found_documents is True


class TestCacheQueryResponse:
    async def test_stores_response(self, orchestrator: RetrievalOrchestrator, cache: SemanticCache):
        result = await orchestrator.cache_query_response("weather in Paris", "sunny")

        assert result.stored is True
        assert await cache.size() == 1

    async def test_embedding_failure_reported_not_raised(self, orchestrator: RetrievalOrchestrator, embedder):
        embedder.fail_with = ProviderError("OpenAI API error 500")

        result = await orchestrator.cache_query_response("weather in Paris", "sunny")

        assert result.stored is False
        assert "500" in result.error

    async def test_without_cache(self, embedder, store: MemoryVectorStore):
        orchestrator = RetrievalOrchestrator(embedder, store)

        result = await orchestrator.cache_query_response("weather in Paris", "sunny")

        assert result.stored is False
        assert embedder.calls == 0
