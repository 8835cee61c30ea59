"""
ragcore — Server

FastMCP server using stdio transport (Model Context Protocol). Thin layer
over KnowledgeService: validates tool input, calls the service and maps
ragcore errors onto structured error responses.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP

from . import __version__
from .config import load_config
from .errors import RagCoreError, extract_error_code, make_error_response
from .observability import get_observability, initialize_observability, setup_logging
from .service import KnowledgeService
from .validation import validate_input
from .validation.tool_schemas import (
    CacheResponseInput,
    CheckStatusInput,
    IngestDocumentInput,
    SearchKnowledgeInput,
)

logger = logging.getLogger(__name__)

_service: KnowledgeService | None = None


@asynccontextmanager
async def server_lifespan(server: Any) -> Any:
    """Server lifespan manager (startup/shutdown)."""
    await initialize_server()
    try:
        yield
    finally:
        await cleanup_server()


mcp = FastMCP("ragcore - Retrieval Pipeline", lifespan=server_lifespan)


def _get_service() -> KnowledgeService:
    if _service is None:
        raise RuntimeError("Server not initialized")
    return _service


def _start_request(tool_name: str, client_id: str | None = None) -> str:
    """Open a new trace for one tool call; log records emitted during the call carry its ids."""
    obs = get_observability()
    obs.increment(f"tools.{tool_name}")
    trace_id = obs.generate_trace_id()
    obs.set_request_id(client_id or trace_id)
    return trace_id


def _error_response(error: RagCoreError) -> dict[str, Any]:
    return make_error_response(
        extract_error_code(error),
        error.message,
        {**error.details, "status_code": error.status_code, "trace_id": get_observability().get_trace_id()},
    )


@mcp.tool()
@validate_input(CheckStatusInput)
async def check_status(include_details: bool = False) -> dict[str, Any]:
    """
    Check system health and status.

    Args:
        include_details: Include cache, limiter and metric statistics

    Returns:
        System status information
    """
    _start_request("check_status")

    service = _get_service()
    status: dict[str, Any] = {
        "status": "healthy",
        "service": "ragcore",
        "version": __version__,
        "documents": await service.vector_store.count(),
        "semantic_cache_enabled": service.cache is not None,
    }

    if include_details:
        status["details"] = await service.get_stats()

    return status


@mcp.tool()
@validate_input(SearchKnowledgeInput)
async def search_knowledge(
    query: str,
    client_id: str = "anonymous",
    top_k: int | None = None,
    similarity_threshold: float | None = None,
) -> dict[str, Any]:
    """
    Search the knowledge base, answering from the semantic cache when possible.

    Args:
        query: Natural-language query
        client_id: Caller identity for rate limiting
        top_k: Maximum documents to return (configured default if omitted)
        similarity_threshold: Minimum document similarity (configured default if omitted)

    Returns:
        Cached response, or retrieved documents with a formatted context string
    """
    _start_request("search_knowledge", client_id)
    logger.info(f'Knowledge search query: "{query[:100]}"')

    try:
        result = await _get_service().search(client_id, query, top_k=top_k, threshold=similarity_threshold)
    except RagCoreError as e:
        return _error_response(e)

    return result.to_dict()


@mcp.tool()
@validate_input(IngestDocumentInput)
async def ingest_document(
    text: str,
    client_id: str = "anonymous",
    filename: str | None = None,
    content_type: str = "text/plain",
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Chunk, embed and store a text document. Identical content is rejected.

    Args:
        text: Full document text
        client_id: Caller identity for rate limiting
        filename: Original file name
        content_type: MIME type of the upload
        metadata: Extra metadata stored on every chunk

    Returns:
        Source hash and number of chunks stored, or a DUPLICATE_CONTENT error
    """
    _start_request("ingest_document", client_id)

    chunk_metadata = {**(metadata or {}), "type": content_type}
    if filename:
        chunk_metadata["filename"] = filename

    try:
        result = await _get_service().ingest(client_id, text, chunk_metadata)
    except RagCoreError as e:
        return _error_response(e)

    return result.to_dict()


@mcp.tool()
@validate_input(CacheResponseInput)
async def cache_response(query: str, response: str) -> dict[str, Any]:
    """
    Cache a final answer so semantically similar queries can reuse it.

    Args:
        query: Query the response answers
        response: Response text

    Returns:
        Whether the response was stored (caching is best-effort)
    """
    _start_request("cache_response")

    try:
        result = await _get_service().cache_response(query, response)
    except RagCoreError as e:
        return _error_response(e)

    return {"success": result.stored, "entry_id": result.entry_id, "evicted": result.evicted, "error": result.error}


async def initialize_server() -> None:
    """Initialize server resources on startup."""
    global _service

    if _service is not None:
        return

    config = load_config()
    setup_logging(config.log_level.value, config.log_format.value)
    obs = initialize_observability()

    logger.info("Initializing ragcore server...", extra=config.summary())
    try:
        _service = await KnowledgeService.create(config)
    except Exception as e:
        logger.error(f"Failed to initialize server: {e}", exc_info=True)
        raise

    obs.increment("server.startup")
    logger.info("ragcore server initialized successfully")


async def cleanup_server() -> None:
    """Cleanup server resources on shutdown."""
    global _service

    if _service is None:
        return

    logger.info("Cleaning up ragcore server...")
    try:
        await _service.close()
    except Exception as e:
        logger.error(f"Error during cleanup: {e}", exc_info=True)
    finally:
        _service = None

    get_observability().increment("server.shutdown")
    logger.info("ragcore server cleanup complete")


def main() -> None:
    """CLI entry point for the ragcore command."""
    mcp.run()


if __name__ == "__main__":
    main()
