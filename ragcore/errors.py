"""
ragcore — Core Error Types

Defines the exception hierarchy for the retrieval pipeline.
All exceptions inherit from RagCoreError so callers can handle them uniformly
and map them to user-facing responses via status_code / ErrorCode.

Propagation policy:
- Cache and rate-limit layer errors are absorbed where a safe default exists
  (cache miss, configured fail-open/closed decision).
- Retrieval-path errors (embedding, vector search) surface as RetrievalError.
- DuplicateContentError is an expected, non-retriable 409-class outcome.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Machine-readable codes carried in tool error responses."""

    INVALID_INPUT = "INVALID_INPUT"
    RATE_LIMITED = "RATE_LIMITED"

    # Upstream services
    PROVIDER_ERROR = "PROVIDER_ERROR"
    PROVIDER_TIMEOUT = "PROVIDER_TIMEOUT"
    VECTOR_STORE_ERROR = "VECTOR_STORE_ERROR"
    CACHE_FAILURE = "CACHE_FAILURE"

    # Pipeline outcomes
    RETRIEVAL_FAILED = "RETRIEVAL_FAILED"
    DUPLICATE_CONTENT = "DUPLICATE_CONTENT"
    INGESTION_FAILED = "INGESTION_FAILED"

    # Misconfiguration / bugs
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    DIMENSION_MISMATCH = "DIMENSION_MISMATCH"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class RagCoreError(Exception):
    """
    Root of the ragcore exception tree.

    status_code is the HTTP-style class of the failure (400, 409, 429, 5xx)
    and details holds structured context for logs and error responses.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(RagCoreError):
    """Invalid or inconsistent settings, detected at startup."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, status_code=500)


class ValidationError(RagCoreError):
    """Caller supplied unusable input (empty query, oversized document, ...)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, status_code=400)


class CacheError(RagCoreError):
    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, status_code=500)


class CacheOperationError(CacheError):
    """A hash-store read or write failed. The semantic cache absorbs these."""


class DimensionMismatchError(RagCoreError):
    """Raised when two vectors (or a vector and a schema) disagree on dimensionality."""

    def __init__(self, expected: int, actual: int, context: str | None = None):
        message = f"Embedding dimension mismatch: expected {expected}, got {actual}"
        if context:
            message = f"{message} ({context})"
        super().__init__(
            message,
            {"expected": expected, "actual": actual, "context": context},
            status_code=500,
        )
        self.expected = expected
        self.actual = actual


class ProviderError(RagCoreError):
    """The embedding provider returned an error or could not be reached."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, status_code=502)


class ProviderTimeoutError(ProviderError):
    def __init__(self, provider: str, timeout: float):
        super().__init__(
            f"Embedding provider '{provider}' did not answer within {timeout}s",
            {"provider": provider, "timeout": timeout},
        )


class ProviderRateLimitError(ProviderError):
    """The provider throttled us (HTTP 429). Retryable."""

    def __init__(self, provider: str, retry_after: int | None = None):
        details: dict[str, Any] = {"provider": provider}
        if retry_after:
            details["retry_after"] = retry_after
        super().__init__(f"Embedding provider '{provider}' is throttling requests", details)
        self.status_code = 429


class VectorStoreError(RagCoreError):
    """Raised when the vector similarity store fails."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, status_code=502)


class RetrievalError(RagCoreError):
    """
    Raised when the critical retrieval path (embedding or vector search) fails.

    The user-facing layer should present a "temporarily unavailable" message;
    there is no safe default context to fabricate.
    """

    def __init__(
        self,
        stage: str,
        cause: Exception,
        details: dict[str, Any] | None = None,
    ):
        message = f"Retrieval failed during {stage}: {cause}"
        error_details = details or {}
        error_details.update(
            {
                "stage": stage,
                "cause": type(cause).__name__,
                "retryable": is_retryable_error(cause),
            }
        )
        super().__init__(message, error_details, status_code=503)
        self.stage = stage
        self.cause = cause


class DuplicateContentError(RagCoreError):
    """Raised by the deduplication gate when the content was already ingested."""

    def __init__(self, source_hash: str, details: dict[str, Any] | None = None):
        error_details = details or {}
        error_details["source_hash"] = source_hash
        super().__init__("Document with identical content already exists", error_details, status_code=409)
        self.source_hash = source_hash


class IngestionError(RagCoreError):
    """Raised when document ingestion fails for reasons other than duplication."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, status_code=500)


class RateLimitExceededError(RagCoreError):
    """Raised when a caller is denied admission by a rate limiter."""

    def __init__(self, limiter: str, key: str, details: dict[str, Any] | None = None):
        error_details = details or {}
        error_details.update({"limiter": limiter, "key": key})
        super().__init__(f"Rate limit exceeded for '{limiter}'", error_details, status_code=429)
        self.limiter = limiter
        self.key = key


def make_error_response(
    error_code: ErrorCode,
    message: str,
    context: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build the failure payload returned by MCP tools.

    >>> make_error_response(ErrorCode.DUPLICATE_CONTENT, "Already ingested", {"source_hash": "ab12"})
    {'success': False, 'error_code': 'DUPLICATE_CONTENT', 'message': 'Already ingested', 'details': {'source_hash': 'ab12'}}
    """
    return {
        "success": False,
        "error_code": error_code.value,
        "message": message,
        "details": context or {},
    }


# Substrings in provider / vector-store messages that point at a transient fault
_TRANSIENT_MARKERS = ("timeout", "timed out", "connection", "network", "unavailable", "temporary", "502", "503", "504")


def is_retryable_error(error: Exception) -> bool:
    """True for transient failures worth another attempt (timeouts, throttling, dropped connections)."""
    if isinstance(error, (TimeoutError, ProviderTimeoutError, ProviderRateLimitError)):
        return True
    if not isinstance(error, (ProviderError, VectorStoreError)):
        return False

    text = str(error).lower()
    return any(marker in text for marker in _TRANSIENT_MARKERS)


# Most specific types first; the first isinstance match wins
_ERROR_CODES: tuple[tuple[type[Exception] | tuple[type[Exception], ...], ErrorCode], ...] = (
    (DuplicateContentError, ErrorCode.DUPLICATE_CONTENT),
    ((RateLimitExceededError, ProviderRateLimitError), ErrorCode.RATE_LIMITED),
    (RetrievalError, ErrorCode.RETRIEVAL_FAILED),
    (ProviderTimeoutError, ErrorCode.PROVIDER_TIMEOUT),
    (ProviderError, ErrorCode.PROVIDER_ERROR),
    (VectorStoreError, ErrorCode.VECTOR_STORE_ERROR),
    (ValidationError, ErrorCode.INVALID_INPUT),
    (CacheError, ErrorCode.CACHE_FAILURE),
    (DimensionMismatchError, ErrorCode.DIMENSION_MISMATCH),
    (IngestionError, ErrorCode.INGESTION_FAILED),
    (ConfigurationError, ErrorCode.CONFIGURATION_ERROR),
)


def extract_error_code(error: Exception) -> ErrorCode:
    """Map an exception to the ErrorCode reported to clients."""
    for error_types, code in _ERROR_CODES:
        if isinstance(error, error_types):
            return code
    return ErrorCode.INTERNAL_ERROR
