"""
Semantic cache data models.

CacheEntry is immutable once written; it is serialized as compact JSON into
one field of the cache bucket.
"""

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class CacheEntry:
    """One cached (query embedding, response) pair."""

    id: str
    query: str
    embedding: list[float]
    response: str
    timestamp: float

    def to_json(self) -> str:
        return json.dumps(
            {
                "query": self.query,
                "embedding": self.embedding,
                "response": self.response,
                "timestamp": self.timestamp,
            },
            ensure_ascii=False,
            separators=(",", ":"),
        )

    @classmethod
    def from_json(cls, entry_id: str, raw: str) -> "CacheEntry":
        """
        Parse a stored entry.

        Raises:
            ValueError: If the payload is not valid JSON or lacks required fields
        """
        data: dict[str, Any] = json.loads(raw)
        try:
            return cls(
                id=entry_id,
                query=str(data["query"]),
                embedding=[float(x) for x in data["embedding"]],
                response=str(data["response"]),
                timestamp=float(data["timestamp"]),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed cache entry {entry_id}: {e}") from e


@dataclass(frozen=True)
class CacheMatch:
    """A lookup hit: the matched entry and its similarity to the query."""

    entry: CacheEntry
    similarity: float

    @property
    def response(self) -> str:
        return self.entry.response


@dataclass
class CacheWriteResult:
    """
    Outcome of SemanticCache.store().

    Writes are best-effort: failures are reported here for logging and
    never raised to the caller.
    """

    stored: bool
    entry_id: str | None = None
    evicted: int = 0
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
