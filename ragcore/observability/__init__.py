"""
ragcore — Observability Module

Single observability adapter for the runtime. All metrics and spans go
through get_observability().

Usage:
    from ragcore.observability import get_observability

    obs = get_observability()
    obs.increment("semantic_cache.hits")

    with obs.trace("retrieval.search"):
        # traced code here
        pass
"""

from .monitoring import (
    JSONFormatter,
    ObservabilityAdapter,
    get_observability,
    initialize_observability,
    reset_observability,
    setup_logging,
)

__all__ = [
    "ObservabilityAdapter",
    "JSONFormatter",
    "get_observability",
    "initialize_observability",
    "reset_observability",
    "setup_logging",
]
