from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Protocol

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

_configured = False


def configure_otel(service_name: str) -> None:
    global _configured
    if _configured:
        return
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    trace.set_tracer_provider(provider)
    _configured = True


def get_tracer(name: str) -> trace.Tracer:
    return trace.get_tracer(name)


@dataclass(frozen=True)
class FetchMetric:
    operation: str
    outcome: str
    duration_ms: float


class FetchMetricCollector(Protocol):
    def observe(self, metric: FetchMetric) -> None: ...


class InMemoryFetchMetricsCollector(FetchMetricCollector):
    def __init__(self) -> None:
        self._metrics: list[FetchMetric] = []

    def observe(self, metric: FetchMetric) -> None:
        self._metrics.append(metric)

    def snapshot(self) -> list[dict]:
        return [asdict(item) for item in self._metrics]


class PrometheusFetchMetricsCollector(FetchMetricCollector):
    def __init__(self) -> None:
        self._registry = CollectorRegistry()
        self._request_counter = Counter(
            "hbscan_gateway_requests_total",
            "Total directory gateway requests",
            labelnames=("operation", "outcome"),
            registry=self._registry,
        )
        self._latency_histogram = Histogram(
            "hbscan_gateway_request_duration_ms",
            "Directory gateway latency in milliseconds",
            labelnames=("operation",),
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 3000),
            registry=self._registry,
        )

    def observe(self, metric: FetchMetric) -> None:
        self._request_counter.labels(metric.operation, metric.outcome).inc()
        self._latency_histogram.labels(metric.operation).observe(metric.duration_ms)

    def render(self) -> str:
        return generate_latest(self._registry).decode("utf-8")


class CompositeFetchMetricsCollector(FetchMetricCollector):
    def __init__(self, collectors: list[FetchMetricCollector]) -> None:
        self._collectors = collectors

    def observe(self, metric: FetchMetric) -> None:
        for collector in self._collectors:
            collector.observe(metric)
