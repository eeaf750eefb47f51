"""Prometheus metrics for the requestor.

Three aggregates track request/reply latency (in milliseconds):

1. Summary   - per-service latency distribution
2. Histogram - fixed exponential buckets (1ms .. 32768ms)
3. Counter   - per-service request count

The counter is registered as ``rpc_reqs_count`` but prometheus_client
exposes counters with a ``_total`` suffix, so it is scraped as
``rpc_reqs_count_total``.

Aggregates are created against an explicit registry so tests can use a
fresh ``CollectorRegistry``; the CLI uses the default ``REGISTRY``.

Scraped from ``/metrics`` on the requestor's ``-p`` port (default 8675).
"""

from dataclasses import dataclass

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram, Summary

SERVICE_LABEL = "rpc-demo-req"


def exponential_buckets(start: float, factor: float, count: int) -> list[float]:
    """Return ``count`` bucket bounds, starting at ``start`` and multiplying by ``factor``.

    Raises:
        ValueError: If ``count`` < 1, ``start`` <= 0 or ``factor`` <= 1
    """
    if count < 1:
        raise ValueError("exponential_buckets needs a positive count")
    if start <= 0:
        raise ValueError("exponential_buckets needs a positive start value")
    if factor <= 1:
        raise ValueError("exponential_buckets needs a factor greater than 1")

    return [start * factor**i for i in range(count)]


LATENCY_BUCKETS = exponential_buckets(1.0, 2, 16)


@dataclass
class RpcMetrics:
    """Latency aggregates written by the requestor loop."""

    durations: Summary
    durations_histogram: Histogram
    requests: Counter
    service: str = SERVICE_LABEL

    @classmethod
    def create(cls, registry: CollectorRegistry = REGISTRY, service: str = SERVICE_LABEL) -> "RpcMetrics":
        """Create and register the three aggregates on ``registry``."""
        durations = Summary(
            "rpc_durations_seconds",
            "RPC latency distributions.",
            ["service"],
            registry=registry,
        )
        durations_histogram = Histogram(
            "rpc_durations_histogram_seconds",
            "RPC latency distributions.",
            buckets=LATENCY_BUCKETS,
            registry=registry,
        )
        requests = Counter(
            "rpc_reqs_count",
            "Requests",
            ["service"],
            registry=registry,
        )
        return cls(durations, durations_histogram, requests, service)

    def observe(self, millis: float) -> None:
        """Record one completed request."""
        self.durations.labels(service=self.service).observe(millis)
        self.durations_histogram.observe(millis)
        self.requests.labels(service=self.service).inc()
