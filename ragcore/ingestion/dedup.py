"""
ragcore — Deduplication Gate

Source-document dedup by SHA-256 content hash. The hash is computed once over
the whole document and stored on every chunk record, so dedup works at
document granularity.
"""

import hashlib
import logging

from ..errors import DuplicateContentError
from ..observability import get_observability
from ..vector_store.interface import VectorStore

logger = logging.getLogger(__name__)


def compute_hash(content: str | bytes) -> str:
    """
    SHA-256 hex digest of the exact content.

    Text is hashed as its UTF-8 bytes, so identical text yields the same hash
    regardless of how it arrived.
    """
    data = content.encode("utf-8") if isinstance(content, str) else content
    return hashlib.sha256(data).hexdigest()


class DeduplicationGate:
    """Rejects content whose source hash the vector store already holds."""

    def __init__(self, vector_store: VectorStore):
        self._vector_store = vector_store
        self._obs = get_observability()

    async def exists(self, source_hash: str) -> bool:
        """
        True if a record with ``source_hash`` is stored.

        Raises:
            VectorStoreError: If the store cannot answer
        """
        return await self._vector_store.exists_by_hash(source_hash)

    async def ensure_new(self, content: str | bytes) -> str:
        """
        Hash ``content`` and fail if it was ingested before.

        Returns:
            The source hash

        Raises:
            DuplicateContentError: If the content already exists
        """
        source_hash = compute_hash(content)
        if await self.exists(source_hash):
            self._obs.increment("ingestion.duplicates")
            logger.info(
                "Duplicate document rejected",
                extra={"source_hash": source_hash},
            )
            raise DuplicateContentError(source_hash)
        return source_hash
