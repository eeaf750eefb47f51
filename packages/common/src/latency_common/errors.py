"""Error types for the latency demo clients.

Startup errors are fatal: the CLI entry points log them and exit non-zero.
Steady-state request failures are never raised as these types.
"""


class LatencyDemoError(Exception):
    """Base exception for all latency demo errors."""

    pass


class DurationError(LatencyDemoError, ValueError):
    """Malformed duration string (e.g. a bad ``-delay`` value)."""

    pass


class ConnectError(LatencyDemoError):
    """Could not establish the initial NATS connection."""

    pass


class SubscribeError(LatencyDemoError):
    """Could not create the replier's queue subscription."""

    pass


class MetricsServerError(LatencyDemoError):
    """The Prometheus metrics listener could not be started."""

    pass
