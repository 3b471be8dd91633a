"""Observability module: structured logging, Prometheus/OTel metrics and tracing."""

from keeper_search.observability.context import get_trace_context, set_trace_context, trace_context
from keeper_search.observability.logging import JsonFormatter, configure_logging
from keeper_search.observability.metrics import (
    INDEX_BUILD_LATENCY,
    INDEX_DOC_COUNT,
    PROVIDER_FAILURES,
    SEARCH_COUNT,
    SEARCH_LATENCY,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    track_latency,
)
from keeper_search.observability.tracing import create_span, get_tracer, init_tracing


__all__ = [
    "INDEX_BUILD_LATENCY",
    "INDEX_DOC_COUNT",
    "PROVIDER_FAILURES",
    "SEARCH_COUNT",
    "SEARCH_LATENCY",
    "JsonFormatter",
    "configure_logging",
    "create_span",
    "get_metrics",
    "get_metrics_content_type",
    "get_tracer",
    "get_trace_context",
    "init_metrics",
    "init_tracing",
    "set_trace_context",
    "trace_context",
    "track_latency",
]
