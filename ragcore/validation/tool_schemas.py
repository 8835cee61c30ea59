"""
ragcore — Tool Input Validation Schemas

Pydantic models for validating MCP tool inputs.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator


def _not_blank(value: str, field_name: str) -> str:
    if not value.strip():
        raise ValueError(f"{field_name} cannot be empty or only whitespace")
    return value


class CheckStatusInput(BaseModel):
    """Input validation for check_status tool."""

    include_details: bool = Field(default=False, description="Include cache, limiter and metric statistics")


class SearchKnowledgeInput(BaseModel):
    """Input validation for search_knowledge tool."""

    query: str = Field(
        ...,
        min_length=1,
        max_length=10_000,
        description="Natural-language query (1-10K characters)",
    )
    client_id: str = Field(
        default="anonymous",
        min_length=1,
        max_length=256,
        description="Caller identity used for rate limiting",
    )
    top_k: int | None = Field(
        default=None, ge=1, le=100, description="Maximum documents to return (1-100, RETRIEVAL_TOP_K if omitted)"
    )
    similarity_threshold: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Minimum document similarity (0-1, RETRIEVAL_THRESHOLD if omitted)",
    )

    @field_validator("query")
    @classmethod
    def validate_query_not_empty(cls, v: str) -> str:
        """Ensure query is not just whitespace."""
        return _not_blank(v, "Query")


class IngestDocumentInput(BaseModel):
    """Input validation for ingest_document tool."""

    text: str = Field(..., min_length=1, description="Full document text")
    client_id: str = Field(default="anonymous", min_length=1, max_length=256)
    filename: str | None = Field(default=None, max_length=512, description="Original file name")
    content_type: str = Field(default="text/plain", max_length=128, description="MIME type of the upload")
    metadata: dict[str, Any] | None = Field(default=None, description="Extra metadata stored on every chunk")

    @field_validator("text")
    @classmethod
    def validate_text_not_empty(cls, v: str) -> str:
        """Ensure text is not just whitespace."""
        return _not_blank(v, "Text")


class CacheResponseInput(BaseModel):
    """Input validation for cache_response tool."""

    query: str = Field(..., min_length=1, max_length=10_000, description="Query the response answers")
    response: str = Field(..., min_length=1, description="Final response to cache")

    @field_validator("query")
    @classmethod
    def validate_query_not_empty(cls, v: str) -> str:
        return _not_blank(v, "Query")
