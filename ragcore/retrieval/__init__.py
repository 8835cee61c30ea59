"""
ragcore — Retrieval

Query-time orchestration of embedding, semantic cache and vector search.
"""

from .orchestrator import (
    NO_RESULTS_MESSAGE,
    KnowledgeSearchResult,
    RetrievalContext,
    RetrievalOrchestrator,
    ScoredDocument,
    build_context_string,
)

__all__ = [
    "RetrievalOrchestrator",
    "RetrievalContext",
    "KnowledgeSearchResult",
    "ScoredDocument",
    "build_context_string",
    "NO_RESULTS_MESSAGE",
]
