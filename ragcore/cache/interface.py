"""
ragcore — Hash Store Interface

Defines the abstract key-value structure the semantic cache is built from.
A "bucket" is a named hash of string fields to string values; expiry applies
to the bucket as a whole.

Backends raise CacheOperationError on failure. Absorbing failures (treating
them as misses) is the caller's decision, not the backend's.
"""

from abc import ABC, abstractmethod
from typing import Any


class HashStore(ABC):
    """
    Abstract base class for hash-bucket backing stores.

    All implementations must provide the five primitives the semantic cache
    relies on: hset, hgetall, hdel, expire and hlen.
    """

    @abstractmethod
    async def hset(self, bucket: str, field: str, value: str) -> None:
        """
        Set one field in a bucket, creating the bucket if needed.

        Args:
            bucket: Bucket name
            field: Field name
            value: Serialized value
        """
        pass

    @abstractmethod
    async def hgetall(self, bucket: str) -> dict[str, str]:
        """
        Read all fields of a bucket.

        Args:
            bucket: Bucket name

        Returns:
            Mapping of field to value (empty if the bucket is missing or expired)
        """
        pass

    @abstractmethod
    async def hdel(self, bucket: str, *fields: str) -> int:
        """
        Delete fields from a bucket.

        Returns:
            Number of fields actually removed
        """
        pass

    @abstractmethod
    async def expire(self, bucket: str, seconds: int) -> bool:
        """
        Set the expiry of the whole bucket to now + seconds.

        Returns:
            True if the bucket exists and the expiry was set
        """
        pass

    @abstractmethod
    async def hlen(self, bucket: str) -> int:
        """Count fields in a bucket."""
        pass

    @abstractmethod
    async def delete(self, bucket: str) -> bool:
        """Remove a bucket entirely. Returns True if it existed."""
        pass

    @abstractmethod
    async def get_stats(self) -> dict[str, Any]:
        """Backend statistics (operation counts, connectivity)."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """
        Close the backend and release resources.

        Should be called during graceful shutdown.
        """
        pass
