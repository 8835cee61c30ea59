"""
ragcore — Embedding Provider Factory
"""

import logging

from ..config import EmbeddingConfig
from ..errors import ConfigurationError
from .interface import EmbeddingProvider

logger = logging.getLogger(__name__)


def create_embedding_provider(config: EmbeddingConfig) -> EmbeddingProvider:
    """
    Create the embedding provider named by configuration.

    Raises:
        ConfigurationError: If the provider is unknown or lacks credentials
    """
    if config.provider == "openai":
        if not config.api_key:
            raise ConfigurationError(
                "OPENAI_API_KEY must be set for the openai embedding provider",
                details={"env": "OPENAI_API_KEY", "provider": "openai"},
            )

        from .openai_provider import OpenAIEmbeddingProvider

        return OpenAIEmbeddingProvider(config)

    raise ConfigurationError(
        f"Unknown embedding provider: {config.provider}",
        details={"provider": config.provider, "supported": ["openai"]},
    )
