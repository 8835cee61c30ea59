"""
ragcore — Rate Limiter Interface

One capability ("may this caller proceed?") with interchangeable backends.
The rest of the system depends only on this interface; the backend is chosen
once at startup by the factory.
"""

from abc import ABC, abstractmethod
from typing import Any

from ..errors import RateLimitExceededError


class RateLimiter(ABC):
    """
    Abstract base class for fixed-window rate limiters.

    check() is side-effecting: every call for a key counts against that key's
    window. Calls for different keys may run concurrently.
    """

    def __init__(self, name: str, max_requests: int, window_seconds: int):
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self.name = name
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    @abstractmethod
    async def check(self, key: str) -> bool:
        """
        Count one request for ``key`` and decide admission.

        Args:
            key: Caller identity (e.g., client address)

        Returns:
            True if the request is allowed
        """
        pass

    async def enforce(self, key: str) -> None:
        """
        check() that raises instead of returning False.

        Raises:
            RateLimitExceededError: If the request is denied
        """
        if not await self.check(key):
            raise RateLimitExceededError(
                self.name,
                key,
                details={"max_requests": self.max_requests, "window_seconds": self.window_seconds},
            )

    @abstractmethod
    async def get_stats(self) -> dict[str, Any]:
        """Limiter statistics (allowed/denied counts, backend state)."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release resources (background tasks, connections)."""
        pass
