"""Tests for the observability adapter and JSON logging."""

import json
import logging

import pytest

from ragcore.observability import (
    JSONFormatter,
    ObservabilityAdapter,
    get_observability,
    initialize_observability,
    setup_logging,
)


class TestCounters:
    def test_increment(self):
        obs = ObservabilityAdapter()

        obs.increment("semantic_cache.hits")
        obs.increment("semantic_cache.hits", value=2)

        assert obs.get_counter("semantic_cache.hits") == 3

    def test_tags_are_separate_series(self):
        obs = ObservabilityAdapter()

        obs.increment("rate_limit.denied", tags={"limiter": "chat"})
        obs.increment("rate_limit.denied", tags={"limiter": "upload"})

        assert obs.get_counter("rate_limit.denied", tags={"limiter": "chat"}) == 1
        assert obs.get_metrics()["counters"]["rate_limit.denied{limiter=upload}"] == 1

    def test_disabled_metrics_record_nothing(self):
        obs = ObservabilityAdapter(enable_metrics=False)

        obs.increment("x")
        obs.histogram("y", 1.0)

        assert obs.get_metrics() == {"counters": {}, "histograms": {}}

    def test_clear(self):
        obs = ObservabilityAdapter()
        obs.increment("x")

        obs.clear_metrics()

        assert obs.get_counter("x") == 0.0


class TestHistogramsAndSpans:
    def test_histogram_summary(self):
        obs = ObservabilityAdapter()
        for value in (1.0, 2.0, 3.0):
            obs.histogram("latency", value)

        assert obs.get_metrics()["histograms"]["latency"] == {"count": 3, "min": 1.0, "max": 3.0, "avg": 2.0}

    def test_trace_records_duration(self):
        obs = ObservabilityAdapter()

        with obs.trace("retrieval.search"):
            pass

        assert obs.get_metrics()["histograms"]["span.duration{span_name=retrieval.search}"]["count"] == 1

    def test_trace_reraises(self):
        obs = ObservabilityAdapter()

        with pytest.raises(RuntimeError), obs.trace("failing"):
            raise RuntimeError("boom")

        assert obs.get_metrics()["histograms"]["span.duration{span_name=failing}"]["count"] == 1


class TestTraceIds:
    def test_generate_sets_context(self):
        obs = ObservabilityAdapter()

        trace_id = obs.generate_trace_id()

        assert obs.get_trace_id() == trace_id


class TestGlobalAdapter:
    def test_singleton(self):
        assert get_observability() is get_observability()

    def test_initialize_replaces(self):
        first = get_observability()

        second = initialize_observability(enable_tracing=False)

        assert second is not first
        assert get_observability() is second


class TestLogging:
    def test_json_formatter_includes_extra_fields(self):
        record = logging.LogRecord("ragcore.test", logging.INFO, __file__, 10, "Cache hit", None, None)
        record.similarity = 0.95

        payload = json.loads(JSONFormatter().format(record))

        assert payload["message"] == "Cache hit"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "ragcore.test"
        assert payload["similarity"] == 0.95

    def test_setup_logging(self):
        logger = setup_logging("DEBUG", "json")

        assert logger.name == "ragcore"
        assert logger.level == logging.DEBUG
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)
