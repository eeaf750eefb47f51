"""Prometheus ``/metrics`` HTTP endpoint for the requestor.

The endpoint is served by ``prometheus_client`` from a daemon thread, so it
keeps answering scrapes while the asyncio loop is busy issuing requests.
"""

import time
from typing import Any, Callable, Optional

from prometheus_client import REGISTRY, CollectorRegistry, start_http_server

from latency_common import MetricsServerError, get_logger

logger = get_logger(__name__)

DEFAULT_LISTEN_ADDRESS = "0.0.0.0"
MAX_START_ATTEMPTS = 10
RETRY_INTERVAL = 0.5  # seconds between bind attempts


class MetricsExporter:
    """Starts the metrics HTTP server with a bounded number of bind attempts.

    Attempts stop at the first successful bind.
    """

    def __init__(
        self,
        port: int,
        addr: str = DEFAULT_LISTEN_ADDRESS,
        registry: CollectorRegistry = REGISTRY,
        max_attempts: int = MAX_START_ATTEMPTS,
        retry_interval: float = RETRY_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.port = port
        self.addr = addr
        self.registry = registry
        self.max_attempts = max_attempts
        self.retry_interval = retry_interval
        self._sleep = sleep
        self._server: Optional[Any] = None
        self._started = False

    @property
    def url(self) -> str:
        return f"http://{self.addr}:{self.port}/metrics"

    @property
    def running(self) -> bool:
        return self._started

    def start(self) -> None:
        """Bind and serve ``/metrics``.

        Raises:
            MetricsServerError: If every attempt fails to bind
        """
        last_error: Optional[OSError] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                self._server = start_http_server(self.port, addr=self.addr, registry=self.registry)
            except OSError as e:
                last_error = e
                logger.debug(
                    "metrics_server_start_failed",
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=str(e),
                )
                if attempt < self.max_attempts:
                    self._sleep(self.retry_interval)
                continue

            self._started = True
            logger.debug("metrics_server_ready", url=self.url, attempt=attempt)
            return

        raise MetricsServerError(
            f"can't start HTTP listener on {self.addr}:{self.port} "
            f"after {self.max_attempts} attempts: {last_error}"
        )

    def stop(self) -> None:
        """Shut the server down if this version of prometheus_client returned one."""
        server = self._server
        self._server = None
        self._started = False
        if isinstance(server, tuple) and server:
            server[0].shutdown()
            server[0].server_close()
