"""
ragcore — Document Ingestion

Hash-gated chunk/embed/store pipeline.
"""

from .chunker import TextChunker
from .dedup import DeduplicationGate, compute_hash
from .pipeline import DocumentIngestor, IngestionResult

__all__ = [
    "compute_hash",
    "DeduplicationGate",
    "TextChunker",
    "DocumentIngestor",
    "IngestionResult",
]
