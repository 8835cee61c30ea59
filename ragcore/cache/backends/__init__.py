"""
ragcore — Hash Store Backends

The memory backend is imported eagerly; the Redis backend is loaded lazily
by the factory.
"""

from .memory import MemoryHashStore

__all__ = ["MemoryHashStore"]
