"""
ragcore — Rate Limiting

Fixed-window admission control with memory and Redis backends.
"""

from .backends.memory import MemoryRateLimiter
from .factory import build_rate_limiter, close_all_rate_limiters, create_rate_limiter, reset_rate_limit_factory
from .interface import RateLimiter

__all__ = [
    "RateLimiter",
    "MemoryRateLimiter",
    "build_rate_limiter",
    "create_rate_limiter",
    "close_all_rate_limiters",
    "reset_rate_limit_factory",
]
