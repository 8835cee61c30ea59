"""
ragcore — Input Validation Module

Pydantic validation for MCP tool inputs.
"""

from .decorators import validate_input
from .tool_schemas import (
    CacheResponseInput,
    CheckStatusInput,
    IngestDocumentInput,
    SearchKnowledgeInput,
)

__all__ = [
    "validate_input",
    "CheckStatusInput",
    "SearchKnowledgeInput",
    "IngestDocumentInput",
    "CacheResponseInput",
]
