"""
ragcore — Observability Monitoring

Counters and histograms kept in process memory, span timing, trace/request
id propagation through context variables, and a JSON log formatter. The
status tool and the tests read everything back through get_metrics().
"""

import contextvars
import json
import logging
import threading
import time
from collections import defaultdict
from collections.abc import Generator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

_trace_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar("trace_id", default=None)
_request_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar("request_id", default=None)

# Attributes every LogRecord carries; anything else came in through extra=
_STANDARD_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

PACKAGE_LOGGER = "ragcore"


def series_key(metric: str, tags: dict[str, str] | None = None) -> str:
    """Flatten a metric name and its tags into one series key: ``name{a=1,b=2}``."""
    if not tags:
        return metric
    labels = ",".join(f"{name}={value}" for name, value in sorted(tags.items()))
    return f"{metric}{{{labels}}}"


class _MetricStore:
    """Thread-safe counter and histogram storage keyed by series."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: defaultdict[str, float] = defaultdict(float)
        self._samples: defaultdict[str, list[float]] = defaultdict(list)

    def add(self, key: str, value: float) -> None:
        with self._lock:
            self._counters[key] += value

    def observe(self, key: str, value: float) -> None:
        with self._lock:
            self._samples[key].append(value)

    def counter(self, key: str) -> float:
        with self._lock:
            return self._counters.get(key, 0.0)

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            histograms = {
                key: {"count": len(values), "min": min(values), "max": max(values), "avg": sum(values) / len(values)}
                for key, values in self._samples.items()
                if values
            }
            return {"counters": dict(self._counters), "histograms": histograms}

    def clear(self) -> None:
        with self._lock:
            self._counters.clear()
            self._samples.clear()


class ObservabilityAdapter:
    """
    Single entry point for metrics, spans and structured events.

    Counter names used across the package:
        semantic_cache.hits / misses / stores / evictions / errors
        rate_limit.allowed / denied / backend_errors   (tagged by limiter)
        ingestion.documents / chunks / duplicates
        retrieval.queries / failures
    """

    def __init__(self, enable_metrics: bool = True, enable_tracing: bool = True):
        self.enable_metrics = enable_metrics
        self.enable_tracing = enable_tracing
        # Chroma calls run in worker threads and record metrics from there
        self._store = _MetricStore()
        self.logger = logging.getLogger(PACKAGE_LOGGER)

    def increment(self, metric: str, value: float = 1.0, tags: dict[str, str] | None = None) -> None:
        if self.enable_metrics:
            self._store.add(series_key(metric, tags), value)

    def histogram(self, metric: str, value: float, tags: dict[str, str] | None = None) -> None:
        if self.enable_metrics:
            self._store.observe(series_key(metric, tags), value)

    def event(self, name: str, payload: dict[str, Any]) -> None:
        """Log a named structured event at INFO."""
        self.logger.info(
            f"Event: {name}",
            extra={"event_name": name, "event_payload": payload, "trace_id": self.get_trace_id()},
        )

    @contextmanager
    def trace(self, span_name: str, tags: dict[str, str] | None = None) -> Generator[None, None, None]:
        """
        Time a block as a span and record it under ``span.duration``.

        The duration is recorded whether the block succeeds or raises;
        exceptions are logged and re-raised unchanged.

        Example:
            with observability.trace("retrieval.vector_search"):
                results = await store.query(...)
        """
        if not self.enable_tracing:
            yield
            return

        span_tags = dict(tags or {})
        context = {"span_name": span_name, "trace_id": self.get_trace_id(), "tags": span_tags}
        started = time.perf_counter()
        self.logger.debug(f"Span started: {span_name}", extra=context)
        try:
            yield
        except Exception as e:
            self.logger.error(f"Span failed: {span_name}", extra={**context, "error": str(e)})
            raise
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            self.histogram("span.duration", elapsed_ms, tags={"span_name": span_name, **span_tags})
            self.logger.debug(
                f"Span finished: {span_name}",
                extra={**context, "duration_ms": round(elapsed_ms, 2)},
            )

    def get_trace_id(self) -> str | None:
        return _trace_id_ctx.get()

    def set_trace_id(self, trace_id: str) -> None:
        _trace_id_ctx.set(trace_id)

    def generate_trace_id(self) -> str:
        """Start a new trace in the current context and return its id."""
        trace_id = uuid4().hex
        _trace_id_ctx.set(trace_id)
        return trace_id

    def get_request_id(self) -> str | None:
        return _request_id_ctx.get()

    def set_request_id(self, request_id: str) -> None:
        _request_id_ctx.set(request_id)

    def get_counter(self, metric: str, tags: dict[str, str] | None = None) -> float:
        """Current value of one counter series; 0.0 when never incremented."""
        return self._store.counter(series_key(metric, tags))

    def get_metrics(self) -> dict[str, Any]:
        """
        Snapshot of every series.

        Returns:
            {"counters": {series: value}, "histograms": {series: {count, min, max, avg}}}
        """
        return self._store.snapshot()

    def clear_metrics(self) -> None:
        self._store.clear()


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with trace/request ids and all ``extra=`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for name, ctx in (("trace_id", _trace_id_ctx), ("request_id", _request_id_ctx)):
            value = ctx.get()
            if value:
                payload[name] = value

        extras = {
            key: value
            for key, value in vars(record).items()
            if key not in _STANDARD_RECORD_ATTRS and not key.startswith("_") and key not in payload
        }
        payload.update(extras)

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def setup_logging(level: str = "INFO", fmt: str = "text") -> logging.Logger:
    """
    Attach a single stream handler to the package logger.

    Args:
        level: Level name (DEBUG, INFO, ...); unknown names fall back to INFO
        fmt: "json" for JSONFormatter, anything else for plain text
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.handlers.clear()

    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    logger.addHandler(handler)
    logger.setLevel(logging.getLevelNamesMapping().get(level.upper(), logging.INFO))
    logger.propagate = False
    return logger


_observability_adapter: ObservabilityAdapter | None = None


def get_observability() -> ObservabilityAdapter:
    """Process-wide adapter, created on first use."""
    global _observability_adapter

    if _observability_adapter is None:
        _observability_adapter = ObservabilityAdapter()
    return _observability_adapter


def initialize_observability(enable_metrics: bool = True, enable_tracing: bool = True) -> ObservabilityAdapter:
    """Replace the process-wide adapter (server startup)."""
    global _observability_adapter

    _observability_adapter = ObservabilityAdapter(enable_metrics=enable_metrics, enable_tracing=enable_tracing)
    return _observability_adapter


def reset_observability() -> None:
    global _observability_adapter
    _observability_adapter = None
