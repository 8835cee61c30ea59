"""
ragcore — Configuration Schemas

Defines typed configuration models using Pydantic for validation and type safety.
All configuration is defined here and validated once at startup; components
receive their section explicitly rather than reading the environment themselves.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class Environment(str, Enum):
    """Runtime environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class CacheBackend(str, Enum):
    """Supported backing stores for the semantic cache."""

    MEMORY = "memory"
    REDIS = "redis"


class RateLimitBackend(str, Enum):
    """Supported rate limiter backends."""

    MEMORY = "memory"
    REDIS = "redis"


class VectorStoreBackend(str, Enum):
    """Supported vector similarity stores."""

    MEMORY = "memory"
    CHROMA = "chroma"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    TEXT = "text"


class RedisConfig(BaseModel):
    """Shared Redis connection settings (semantic cache and distributed rate limiter)."""

    url: str | None = Field(default=None, description="Redis connection URL")
    max_connections: int = Field(default=10, ge=1, description="Redis connection pool size")
    socket_timeout: int = Field(default=5, ge=1, description="Redis socket timeout in seconds")


class SemanticCacheConfig(BaseModel):
    """Semantic cache configuration."""

    enabled: bool = Field(default=True, description="Enable semantic caching")
    backend: CacheBackend = Field(default=CacheBackend.MEMORY, description="Backing store for cache entries")
    hash_key: str = Field(default="semantic_cache:v1", min_length=1, description="Bucket holding all entries")
    similarity_threshold: float = Field(
        default=0.88,
        ge=0.0,
        le=1.0,
        description="Minimum cosine similarity for a cache hit (0.0-1.0)",
    )
    ttl_seconds: int = Field(default=3600, ge=1, description="Sliding TTL applied to the whole cache on write")
    max_entries: int = Field(default=500, ge=1, description="Maximum live entries before oldest-first eviction")
    dimensions: int | None = Field(
        default=None,
        ge=1,
        description="Pinned embedding dimension (None = accept first-seen dimension per call)",
    )


class RateLimitRule(BaseModel):
    """A single named fixed-window rule."""

    max_requests: int = Field(..., ge=1, description="Requests allowed per window")
    window_seconds: int = Field(default=60, ge=1, description="Window length in seconds")
    key_prefix: str = Field(..., min_length=1, description="Counter key prefix (distributed backend)")


class RateLimitConfig(BaseModel):
    """Rate limiter configuration."""

    backend: RateLimitBackend = Field(default=RateLimitBackend.MEMORY, description="Limiter backend")
    fail_open: bool = Field(
        default=True,
        description="Admit requests when the limiter backend is unreachable",
    )
    sweep_interval_seconds: int = Field(
        default=60,
        ge=0,
        description="Local backend expired-record sweep interval (0 = no background sweep)",
    )
    chat: RateLimitRule = Field(
        default_factory=lambda: RateLimitRule(max_requests=30, window_seconds=60, key_prefix="chat"),
    )
    upload: RateLimitRule = Field(
        default_factory=lambda: RateLimitRule(max_requests=10, window_seconds=60, key_prefix="upload"),
    )

    def rule(self, name: str) -> RateLimitRule:
        """Return the rule registered under ``name``."""
        rules = {"chat": self.chat, "upload": self.upload}
        if name not in rules:
            raise KeyError(f"Unknown rate limit rule: {name}")
        return rules[name]


class EmbeddingConfig(BaseModel):
    """Embedding provider configuration."""

    provider: str = Field(default="openai", description="Embedding provider: 'openai'")
    model: str = Field(default="text-embedding-3-small", description="Embedding model name")
    dimensions: int = Field(default=1536, ge=1, description="Output vector dimension")
    api_key: str | None = Field(default=None, description="API key for the provider")
    base_url: str | None = Field(default=None, description="Custom base URL (OpenAI-compatible endpoints)")
    timeout: float = Field(default=30.0, gt=0, description="Per-call timeout in seconds")
    max_retries: int = Field(default=3, ge=0, description="Retry attempts for transient failures")

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        """Ensure provider is supported."""
        allowed = ["openai"]
        if v.lower() not in allowed:
            raise ValueError(f"embedding provider must be one of: {', '.join(allowed)}")
        return v.lower()


class VectorStoreConfig(BaseModel):
    """Vector similarity store configuration."""

    backend: VectorStoreBackend = Field(default=VectorStoreBackend.MEMORY, description="Vector store backend")
    dimensions: int = Field(default=1536, ge=1, description="Vector schema dimension")
    collection_name: str = Field(default="documents", description="ChromaDB collection name")
    persist_directory: str | None = Field(
        default=None,
        description="ChromaDB persistence directory (None = ephemeral client)",
    )


class RetrievalConfig(BaseModel):
    """Retrieval orchestrator defaults."""

    top_k: int = Field(default=3, ge=1, le=100, description="Documents returned per query")
    similarity_threshold: float = Field(default=0.7, ge=0.0, le=1.0, description="Minimum document similarity")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Timeout for each embedding/search call")
    response_cache_ttl_seconds: int = Field(default=3600, ge=1, description="TTL for cached query responses")


class IngestionConfig(BaseModel):
    """Document ingestion configuration."""

    chunk_size: int = Field(default=500, ge=1, description="Target chunk length in characters")
    chunk_overlap: int = Field(default=50, ge=0, description="Overlap between consecutive chunks")
    max_document_bytes: int = Field(default=10 * 1024 * 1024, ge=1, description="Maximum accepted document size")

    @model_validator(mode="after")
    def validate_overlap(self) -> "IngestionConfig":
        """Overlap must be smaller than the chunk itself."""
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        return self


class RagCoreConfig(BaseModel):
    """Root configuration for ragcore."""

    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Runtime environment")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_format: LogFormat = Field(default=LogFormat.TEXT, description="Log output format")

    redis: RedisConfig = Field(default_factory=RedisConfig)
    semantic_cache: SemanticCacheConfig = Field(default_factory=SemanticCacheConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    vector_store: VectorStoreConfig = Field(default_factory=VectorStoreConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)

    @model_validator(mode="after")
    def validate_dimensions(self) -> "RagCoreConfig":
        """Pin the embedding output dimension to the vector store schema."""
        if self.embedding.dimensions != self.vector_store.dimensions:
            raise ValueError(
                f"embedding.dimensions ({self.embedding.dimensions}) must match "
                f"vector_store.dimensions ({self.vector_store.dimensions})"
            )
        if self.semantic_cache.dimensions is None:
            self.semantic_cache.dimensions = self.embedding.dimensions
        elif self.semantic_cache.dimensions != self.embedding.dimensions:
            raise ValueError("semantic_cache.dimensions must match embedding.dimensions")
        return self

    @model_validator(mode="after")
    def validate_redis(self) -> "RagCoreConfig":
        """Ensure a Redis URL is available to every backend that needs one."""
        needs_redis: list[str] = []
        if self.semantic_cache.backend == CacheBackend.REDIS:
            needs_redis.append("semantic_cache")
        if self.rate_limit.backend == RateLimitBackend.REDIS:
            needs_redis.append("rate_limit")
        if needs_redis and not self.redis.url:
            raise ValueError(f"redis.url is required for redis backends: {', '.join(needs_redis)}")
        return self

    def summary(self) -> dict[str, Any]:
        """Non-secret view of the active configuration for startup logging."""
        return {
            "environment": self.environment.value,
            "cache_backend": self.semantic_cache.backend.value,
            "rate_limit_backend": self.rate_limit.backend.value,
            "vector_store_backend": self.vector_store.backend.value,
            "embedding_model": self.embedding.model,
            "dimensions": self.embedding.dimensions,
        }
