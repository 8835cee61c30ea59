"""
ragcore — Resilience Module

Exponential backoff retry for transient provider and vector-store failures.
"""

from .retry import RetryConfig, exponential_backoff, with_retry

__all__ = [
    "RetryConfig",
    "exponential_backoff",
    "with_retry",
]
