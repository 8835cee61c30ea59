"""
ragcore — Configuration Loader

Loads and validates configuration from environment variables and .env files.
Provides a process-wide configuration instance for the runtime entrypoint;
library code receives config sections explicitly.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from ..errors import ConfigurationError
from .schemas import RagCoreConfig

logger = logging.getLogger(__name__)

_config_instance: RagCoreConfig | None = None


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes", "on")


def build_config_dict() -> dict:
    """Translate environment variables into the nested RagCoreConfig structure."""
    environment = os.getenv("ENVIRONMENT", "development")
    redis_url = os.getenv("REDIS_URL")

    # Redis cache if REDIS_URL is set; distributed limiter only in production
    cache_backend = "redis" if redis_url else "memory"
    rate_limit_backend = "redis" if environment == "production" else "memory"

    config_dict = {
        "environment": environment,
        "log_level": os.getenv("LOG_LEVEL", "INFO").upper(),
        "log_format": os.getenv("LOG_FORMAT", "text").lower(),
        "redis": {
            "url": redis_url,
            "max_connections": int(os.getenv("REDIS_MAX_CONNECTIONS", "10")),
            "socket_timeout": int(os.getenv("REDIS_SOCKET_TIMEOUT", "5")),
        },
        "semantic_cache": {
            "enabled": _env_bool("SEMANTIC_CACHE_ENABLED", True),
            "backend": os.getenv("CACHE_BACKEND", cache_backend),
            "hash_key": os.getenv("SEMANTIC_CACHE_KEY", "semantic_cache:v1"),
            "similarity_threshold": float(os.getenv("SEMANTIC_CACHE_THRESHOLD", "0.88")),
            "ttl_seconds": int(os.getenv("SEMANTIC_CACHE_TTL_SECONDS", "3600")),
            "max_entries": int(os.getenv("SEMANTIC_CACHE_MAX_ENTRIES", "500")),
        },
        "rate_limit": {
            "backend": os.getenv("RATE_LIMIT_BACKEND", rate_limit_backend),
            "fail_open": _env_bool("RATE_LIMIT_FAIL_OPEN", True),
            "sweep_interval_seconds": int(os.getenv("RATE_LIMIT_SWEEP_INTERVAL", "60")),
            "chat": {
                "max_requests": int(os.getenv("CHAT_RATE_LIMIT_MAX", "30")),
                "window_seconds": int(os.getenv("CHAT_RATE_LIMIT_WINDOW", "60")),
                "key_prefix": "chat",
            },
            "upload": {
                "max_requests": int(os.getenv("UPLOAD_RATE_LIMIT_MAX", "10")),
                "window_seconds": int(os.getenv("UPLOAD_RATE_LIMIT_WINDOW", "60")),
                "key_prefix": "upload",
            },
        },
        "embedding": {
            "provider": os.getenv("EMBEDDING_PROVIDER", "openai"),
            "model": os.getenv("EMBEDDING_MODEL", "text-embedding-3-small"),
            "dimensions": int(os.getenv("EMBEDDING_DIMENSIONS", "1536")),
            "api_key": os.getenv("OPENAI_API_KEY"),
            "base_url": os.getenv("OPENAI_BASE_URL"),
            "timeout": float(os.getenv("EMBEDDING_TIMEOUT", "30.0")),
            "max_retries": int(os.getenv("EMBEDDING_MAX_RETRIES", "3")),
        },
        "vector_store": {
            "backend": os.getenv("VECTOR_STORE_BACKEND", "memory"),
            "dimensions": int(os.getenv("VECTOR_STORE_DIMENSIONS", os.getenv("EMBEDDING_DIMENSIONS", "1536"))),
            "collection_name": os.getenv("CHROMA_COLLECTION", "documents"),
            "persist_directory": os.getenv("CHROMA_PERSIST_DIRECTORY"),
        },
        "retrieval": {
            "top_k": int(os.getenv("RETRIEVAL_TOP_K", "3")),
            "similarity_threshold": float(os.getenv("RETRIEVAL_THRESHOLD", "0.7")),
            "timeout_seconds": float(os.getenv("RETRIEVAL_TIMEOUT", "30.0")),
            "response_cache_ttl_seconds": int(os.getenv("RESPONSE_CACHE_TTL_SECONDS", "3600")),
        },
        "ingestion": {
            "chunk_size": int(os.getenv("INGEST_CHUNK_SIZE", "500")),
            "chunk_overlap": int(os.getenv("INGEST_CHUNK_OVERLAP", "50")),
            "max_document_bytes": int(os.getenv("INGEST_MAX_BYTES", str(10 * 1024 * 1024))),
        },
    }
    return config_dict


def load_config(
    env_file: str | None = None,
    reload: bool = False,
) -> RagCoreConfig:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Path to .env file (default: .env in working directory)
        reload: Force reload even if config already loaded

    Returns:
        Validated RagCoreConfig instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    global _config_instance

    if _config_instance is not None and not reload:
        return _config_instance

    env_path = Path(env_file) if env_file else Path.cwd() / ".env"

    if env_path.exists():
        logger.info(f"Loading environment from {env_path}")
        try:
            load_dotenv(env_path, override=True)
        except Exception as e:
            logger.error(
                f"Failed to load .env file from {env_path}: {e}",
                extra={"path": str(env_path), "error": str(e)},
                exc_info=True,
            )
            raise ConfigurationError(
                f"Failed to load environment file: {e}",
                details={"path": str(env_path), "error": str(e)},
            ) from e
    else:
        logger.debug("No .env file found, using environment variables only")

    try:
        config_dict = build_config_dict()
    except ValueError as e:
        # int()/float() on a malformed variable
        raise ConfigurationError(
            f"Malformed numeric environment variable: {e}",
            details={"error": str(e)},
        ) from e

    try:
        _config_instance = RagCoreConfig(**config_dict)
        logger.info(
            f"Configuration loaded successfully (environment: {_config_instance.environment.value})",
            extra=_config_instance.summary(),
        )
        return _config_instance
    except ValidationError as e:
        logger.error(
            f"Configuration validation failed: {e}",
            extra={"validation_errors": e.errors(), "config_dict_keys": list(config_dict.keys())},
        )
        raise ConfigurationError(
            "Configuration validation failed. Check your environment variables and configuration.",
            details={"validation_errors": e.errors()},
        ) from e


def get_config() -> RagCoreConfig:
    """
    Get the current configuration instance, loading it on first access.

    Returns:
        Current RagCoreConfig instance
    """
    if _config_instance is None:
        return load_config()

    return _config_instance


def reload_config(env_file: str | None = None) -> RagCoreConfig:
    """
    Force reload configuration.

    Args:
        env_file: Optional path to .env file

    Returns:
        Reloaded RagCoreConfig instance
    """
    return load_config(env_file=env_file, reload=True)


def reset_config() -> None:
    """Drop the cached configuration instance (tests and hot-reload)."""
    global _config_instance
    _config_instance = None
