"""Prometheus metrics for search golden signals, mirrored to OpenTelemetry instruments."""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING, Any

from opentelemetry import metrics as otel_metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.resources import Resource
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest


if TYPE_CHECKING:
    from collections.abc import Generator


_meter_holder: dict[str, Any] = {"meter": None, "provider": None}


def init_metrics(
    service_name: str = "keeper-search",
    resource_attributes: dict[str, str] | None = None,
) -> MeterProvider:
    """Initialize the OpenTelemetry meter provider once per process."""
    provider = _meter_holder.get("provider")
    if isinstance(provider, MeterProvider):
        return provider

    attributes = {"service.name": service_name}
    if resource_attributes:
        attributes.update(resource_attributes)
    provider = MeterProvider(resource=Resource.create(attributes))
    otel_metrics.set_meter_provider(provider)
    _meter_holder["provider"] = provider
    _meter_holder["meter"] = otel_metrics.get_meter(__name__)
    return provider


def _get_meter():
    meter = _meter_holder.get("meter")
    if meter is None:
        init_metrics()
        meter = _meter_holder.get("meter")
    return meter


def _label_key(labels: dict[str, str]) -> tuple[tuple[str, str], ...]:
    return tuple(sorted(labels.items()))


class _BoundMetric:
    def __init__(self, wrapper: MetricBridge, labels: dict[str, str]) -> None:
        self._wrapper = wrapper
        self._labels = labels

    def inc(self, amount: float = 1.0) -> None:
        self._wrapper.inc(self._labels, amount)

    def observe(self, value: float) -> None:
        self._wrapper.observe(self._labels, value)

    def set(self, value: float) -> None:
        self._wrapper.set(self._labels, value)


class MetricBridge:
    """Bridge Prometheus metrics to lazily created OTel instruments."""

    def __init__(
        self,
        prom_metric: Counter | Histogram | Gauge,
        *,
        otel_name: str,
        otel_description: str,
        otel_kind: str,
    ) -> None:
        self._prom_metric = prom_metric
        self._otel_name = otel_name
        self._otel_description = otel_description
        self._otel_kind = otel_kind
        self._otel_instrument = None
        self._last_values: dict[tuple[tuple[str, str], ...], float] = {}

    def labels(self, **labels: str) -> _BoundMetric:
        return _BoundMetric(self, labels)

    def _ensure_otel_instrument(self):
        if self._otel_instrument is not None:
            return self._otel_instrument
        meter = _get_meter()
        if self._otel_kind == "counter":
            self._otel_instrument = meter.create_counter(self._otel_name, description=self._otel_description)
        elif self._otel_kind == "histogram":
            self._otel_instrument = meter.create_histogram(self._otel_name, description=self._otel_description)
        elif self._otel_kind == "gauge":
            self._otel_instrument = meter.create_up_down_counter(self._otel_name, description=self._otel_description)
        else:
            raise ValueError(f"Unknown metric kind: {self._otel_kind}")
        return self._otel_instrument

    def inc(self, labels: dict[str, str], amount: float) -> None:
        self._prom_metric.labels(**labels).inc(amount)
        self._ensure_otel_instrument().add(amount, labels)

    def observe(self, labels: dict[str, str], value: float) -> None:
        self._prom_metric.labels(**labels).observe(value)
        self._ensure_otel_instrument().record(value, labels)

    def set(self, labels: dict[str, str], value: float) -> None:
        self._prom_metric.labels(**labels).set(value)
        key = _label_key(labels)
        delta = value - self._last_values.get(key, 0.0)
        if delta:
            self._ensure_otel_instrument().add(delta, labels)
        self._last_values[key] = value


_SEARCH_LATENCY_PROM = Histogram(
    "keeper_search_query_latency_seconds",
    "Search query latency",
    ["provider", "mode"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

_SEARCH_COUNT_PROM = Counter(
    "keeper_search_queries_total",
    "Total search queries",
    ["provider", "status"],
)

_INDEX_DOC_COUNT_PROM = Gauge(
    "keeper_search_index_documents",
    "Documents in a provider index",
    ["provider"],
)

_INDEX_BUILD_LATENCY_PROM = Histogram(
    "keeper_search_index_build_seconds",
    "Index build duration",
    ["provider"],
    buckets=(0.001, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
)

_PROVIDER_FAILURES_PROM = Counter(
    "keeper_search_provider_failures_total",
    "Provider failures isolated by the registry",
    ["provider", "operation"],
)

SEARCH_LATENCY = MetricBridge(
    _SEARCH_LATENCY_PROM,
    otel_name="keeper_search_query_latency_seconds",
    otel_description="Search query latency",
    otel_kind="histogram",
)

SEARCH_COUNT = MetricBridge(
    _SEARCH_COUNT_PROM,
    otel_name="keeper_search_queries_total",
    otel_description="Total search queries",
    otel_kind="counter",
)

INDEX_DOC_COUNT = MetricBridge(
    _INDEX_DOC_COUNT_PROM,
    otel_name="keeper_search_index_documents",
    otel_description="Documents in a provider index",
    otel_kind="gauge",
)

INDEX_BUILD_LATENCY = MetricBridge(
    _INDEX_BUILD_LATENCY_PROM,
    otel_name="keeper_search_index_build_seconds",
    otel_description="Index build duration",
    otel_kind="histogram",
)

PROVIDER_FAILURES = MetricBridge(
    _PROVIDER_FAILURES_PROM,
    otel_name="keeper_search_provider_failures_total",
    otel_description="Provider failures isolated by the registry",
    otel_kind="counter",
)


@contextmanager
def track_latency(histogram: MetricBridge, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - start)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
