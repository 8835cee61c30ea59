"""
Tests for OpenAIEmbeddingProvider

Uses a mocked AsyncOpenAI client; no network access.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from ragcore.config import EmbeddingConfig
from ragcore.embeddings import create_embedding_provider
from ragcore.embeddings.openai_provider import OpenAIEmbeddingProvider
from ragcore.errors import ConfigurationError, DimensionMismatchError, ProviderError, ProviderTimeoutError


def embedding_response(*vectors: list[float], reverse: bool = False) -> SimpleNamespace:
    data = [SimpleNamespace(index=i, embedding=v) for i, v in enumerate(vectors)]
    if reverse:
        data.reverse()
    return SimpleNamespace(data=data)


def make_client(**create_kwargs) -> MagicMock:
    client = MagicMock()
    client.embeddings.create = AsyncMock(**create_kwargs)
    client.close = AsyncMock()
    return client


def make_provider(client: MagicMock, **config_kwargs) -> OpenAIEmbeddingProvider:
    config = EmbeddingConfig(**{"api_key": "test-key", "dimensions": 3, "max_retries": 0, **config_kwargs})
    return OpenAIEmbeddingProvider(config, client=client)


class TestEmbed:
    async def test_embed_single(self):
        client = make_client(return_value=embedding_response([0.1, 0.2, 0.3]))
        provider = make_provider(client)

        assert await provider.embed("Agents use tools") == [0.1, 0.2, 0.3]

    async def test_batch_preserves_input_order(self):
        client = make_client(return_value=embedding_response([1.0, 0.0, 0.0], [0.0, 1.0, 0.0], reverse=True))
        provider = make_provider(client)

        vectors = await provider.embed_batch(["first", "second"])

        assert vectors == [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]]

    async def test_request_parameters(self):
        client = make_client(return_value=embedding_response([0.1, 0.2, 0.3]))
        provider = make_provider(client, model="text-embedding-3-small")

        await provider.embed("hello")

        client.embeddings.create.assert_awaited_once_with(
            model="text-embedding-3-small",
            input=["hello"],
            encoding_format="float",
            dimensions=3,
        )

    async def test_legacy_model_omits_dimensions(self):
        client = make_client(return_value=embedding_response([0.1, 0.2, 0.3]))
        provider = make_provider(client, model="text-embedding-ada-002")

        await provider.embed("hello")

        assert "dimensions" not in client.embeddings.create.await_args.kwargs

    async def test_empty_batch_makes_no_call(self):
        client = make_client()
        provider = make_provider(client)

        assert await provider.embed_batch([]) == []
        client.embeddings.create.assert_not_called()

    def test_dimensions_property(self):
        assert make_provider(make_client()).dimensions == 3


class TestResponseChecks:
    async def test_wrong_vector_length(self):
        client = make_client(return_value=embedding_response([0.1, 0.2]))
        provider = make_provider(client)

        with pytest.raises(DimensionMismatchError):
            await provider.embed("hello")

    async def test_missing_vectors(self):
        client = make_client(return_value=embedding_response([0.1, 0.2, 0.3]))
        provider = make_provider(client)

        with pytest.raises(ProviderError):
            await provider.embed_batch(["one", "two"])


class TestFailures:
    async def test_timeout_maps_to_provider_timeout(self):
        client = make_client(side_effect=TimeoutError())
        provider = make_provider(client, timeout=5.0)

        with pytest.raises(ProviderTimeoutError) as exc_info:
            await provider.embed("hello")

        assert exc_info.value.details == {"provider": "openai", "timeout": 5.0}

    async def test_transient_failure_retried(self):
        client = make_client(side_effect=[TimeoutError(), embedding_response([0.1, 0.2, 0.3])])
        provider = make_provider(client, max_retries=1)

        assert await provider.embed("hello") == [0.1, 0.2, 0.3]
        assert client.embeddings.create.await_count == 2

    async def test_retries_exhausted(self):
        client = make_client(side_effect=TimeoutError())
        provider = make_provider(client, max_retries=1)

        with pytest.raises(ProviderTimeoutError):
            await provider.embed("hello")

        assert client.embeddings.create.await_count == 2


class TestLifecycle:
    async def test_close(self):
        client = make_client()
        provider = make_provider(client)

        await provider.close()

        client.close.assert_awaited_once()


class TestFactory:
    def test_requires_api_key(self):
        with pytest.raises(ConfigurationError) as exc_info:
            create_embedding_provider(EmbeddingConfig(api_key=None))

        assert exc_info.value.details["env"] == "OPENAI_API_KEY"

    def test_creates_openai_provider(self):
        provider = create_embedding_provider(EmbeddingConfig(api_key="test-key"))

        assert isinstance(provider, OpenAIEmbeddingProvider)
        assert provider.dimensions == 1536

    def test_rejects_unknown_provider(self):
        with pytest.raises(ValueError):
            EmbeddingConfig(provider="cohere")
