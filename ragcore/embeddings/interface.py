"""
ragcore — Embedding Provider Interface

Converts text to fixed-dimension float vectors.
"""

from abc import ABC, abstractmethod


class EmbeddingProvider(ABC):
    """
    Abstract base class for embedding providers.

    Every vector returned has exactly ``dimensions`` elements; batch calls
    return one vector per input, in input order.
    """

    name: str = "base"

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Output vector dimension."""
        pass

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """
        Embed a single text.

        Raises:
            ProviderError: On provider failure (ProviderTimeoutError on timeout)
        """
        pass

    @abstractmethod
    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """
        Embed several texts in one call.

        Returns:
            One vector per input, in input order
        """
        pass

    async def close(self) -> None:
        """Release client resources."""
        return None
