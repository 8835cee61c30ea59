"""
ragcore — Vector Store Factory
"""

import logging

from ..config import VectorStoreBackend, VectorStoreConfig
from ..errors import ConfigurationError
from .interface import VectorStore
from .memory import MemoryVectorStore

logger = logging.getLogger(__name__)


def create_vector_store(config: VectorStoreConfig) -> VectorStore:
    """
    Create the vector store selected by configuration.

    chromadb is imported only when the chroma backend is selected.

    Raises:
        ConfigurationError: If the backend is unknown
    """
    logger.info(
        "Creating vector store with backend: %s",
        config.backend.value,
        extra={"backend": config.backend.value, "dimensions": config.dimensions},
    )

    if config.backend == VectorStoreBackend.MEMORY:
        return MemoryVectorStore(dimensions=config.dimensions)

    if config.backend == VectorStoreBackend.CHROMA:
        from .chroma import ChromaVectorStore

        return ChromaVectorStore(config)

    raise ConfigurationError(
        f"Unknown vector store backend: {config.backend}",
        details={"backend": str(config.backend), "supported": ["memory", "chroma"]},
    )
