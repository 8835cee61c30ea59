"""
ragcore — OpenAI Embedding Provider

Embeddings through the OpenAI API (or any OpenAI-compatible endpoint via
base_url). Each API call is bounded by asyncio.wait_for and transient
failures are retried with exponential backoff.
"""

import asyncio
import logging
from typing import Any

import openai
from openai import AsyncOpenAI

from ..config import EmbeddingConfig
from ..errors import (
    DimensionMismatchError,
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
)
from ..resilience import RetryConfig, with_retry
from .interface import EmbeddingProvider

logger = logging.getLogger(__name__)


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """OpenAI embeddings (default model text-embedding-3-small, 1536 dimensions)."""

    name = "openai"

    def __init__(self, config: EmbeddingConfig, client: AsyncOpenAI | None = None):
        """
        Initialize OpenAI embedding provider.

        Args:
            config: Embedding configuration
            client: Pre-built client (tests)
        """
        self.config = config
        self._retry_config = RetryConfig(max_retries=config.max_retries, base_delay=0.5, max_delay=8.0)

        if client is not None:
            self.client = client
        else:
            client_kwargs: dict[str, Any] = {
                "api_key": config.api_key,
                "timeout": config.timeout,
                # Retries are handled by with_retry
                "max_retries": 0,
            }
            if config.base_url:
                client_kwargs["base_url"] = config.base_url
            self.client = AsyncOpenAI(**client_kwargs)

        logger.info(
            "OpenAI embedding provider initialized",
            extra={
                "provider": self.name,
                "model": config.model,
                "dimensions": config.dimensions,
                "base_url": config.base_url or "default",
                "timeout": config.timeout,
            },
        )

    @property
    def dimensions(self) -> int:
        return self.config.dimensions

    async def embed(self, text: str) -> list[float]:
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        return await with_retry(self._create, texts, config=self._retry_config)

    async def _create(self, texts: list[str]) -> list[list[float]]:
        """One embeddings API call, mapped onto the provider error hierarchy."""
        kwargs: dict[str, Any] = {
            "model": self.config.model,
            "input": texts,
            "encoding_format": "float",
        }
        if self.config.model.startswith("text-embedding-3"):
            kwargs["dimensions"] = self.config.dimensions

        try:
            response = await asyncio.wait_for(
                self.client.embeddings.create(**kwargs),
                timeout=self.config.timeout,
            )
        except (TimeoutError, openai.APITimeoutError) as e:
            logger.error(
                f"OpenAI embeddings request timed out after {self.config.timeout}s",
                extra={"provider": self.name, "model": self.config.model, "timeout": self.config.timeout},
            )
            raise ProviderTimeoutError(self.name, self.config.timeout) from e
        except openai.RateLimitError as e:
            retry_after = None
            headers = getattr(getattr(e, "response", None), "headers", None)
            if headers and headers.get("retry-after", "").isdigit():
                retry_after = int(headers["retry-after"])
            logger.warning(
                "OpenAI rate limit exceeded",
                extra={"provider": self.name, "model": self.config.model, "retry_after": retry_after},
            )
            raise ProviderRateLimitError(self.name, retry_after) from e
        except openai.AuthenticationError as e:
            raise ProviderError(
                "OpenAI authentication failed. Check your API key.",
                details={"provider": self.name, "error": str(e)},
            ) from e
        except openai.APIConnectionError as e:
            raise ProviderError(
                f"OpenAI connection error: {e}",
                details={"provider": self.name, "model": self.config.model},
            ) from e
        except openai.APIStatusError as e:
            raise ProviderError(
                f"OpenAI API error {e.status_code}: {e}",
                details={"provider": self.name, "model": self.config.model, "status_code": e.status_code},
            ) from e
        except openai.APIError as e:
            raise ProviderError(
                f"OpenAI API error: {e}",
                details={"provider": self.name, "model": self.config.model},
            ) from e

        data = sorted(response.data, key=lambda item: item.index)
        if len(data) != len(texts):
            raise ProviderError(
                f"OpenAI returned {len(data)} embeddings for {len(texts)} inputs",
                details={"provider": self.name, "model": self.config.model},
            )

        vectors = [list(item.embedding) for item in data]
        for vector in vectors:
            if len(vector) != self.config.dimensions:
                raise DimensionMismatchError(self.config.dimensions, len(vector), context=f"model {self.config.model}")

        return vectors

    async def close(self) -> None:
        """Clean up OpenAI client resources."""
        try:
            await self.client.close()
            logger.debug("Closed OpenAI client", extra={"provider": self.name})
        except Exception as e:
            logger.warning(f"Error closing OpenAI client: {e}", extra={"provider": self.name, "error": str(e)})
