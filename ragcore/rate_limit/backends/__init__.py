"""
ragcore — Rate Limiter Backends

The memory backend is imported eagerly; the Redis backend is loaded lazily
by the factory.
"""

from .memory import MemoryRateLimiter, WindowRecord

__all__ = ["MemoryRateLimiter", "WindowRecord"]
