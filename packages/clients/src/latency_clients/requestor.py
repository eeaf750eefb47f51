"""Requestor: request/reply load generator with latency metrics.

Usage:
    latency-requestor [-s nats://127.0.0.1:4222] [-p 8675] [-delay 10ms] [subject]

Each request carries a sequence tag (``request-<n>``). The round-trip time
is recorded in milliseconds into the Prometheus aggregates served on
``http://0.0.0.0:<port>/metrics``.

Interrupt (SIGINT/SIGTERM) closes the connection immediately; the
in-flight request fails with ConnectionClosedError and the loop exits.
"""

import argparse
import asyncio
import itertools
import sys
import time
from typing import Callable, Optional

import nats.errors
from nats.aio.client import Client as NATS

from latency_common import LatencyDemoError, configure_logging, get_logger, get_settings
from latency_clients.connection import (
    DEFAULT_SUBJECT,
    REQUESTOR_NAME,
    ClientConfig,
    connect,
    parse_servers,
)
from latency_clients.duration import parse_duration
from latency_clients.exporter import MetricsExporter
from latency_clients.metrics import RpcMetrics
from latency_clients.shutdown import InterruptListener, ShutdownStrategy, shutdown

logger = get_logger(__name__)

REQUEST_TIMEOUT = 10.0
NANOS_PER_MILLI = 1_000_000


def to_millis(elapsed_ns: int) -> float:
    """Convert nanoseconds to whole milliseconds.

    Integer division happens first, so sub-millisecond remainders are
    truncated: 1_999_999 ns -> 1.0.
    """
    return float(elapsed_ns // NANOS_PER_MILLI)


class RequestorLoop:
    """Issues requests back to back and records their latency.

    The sequence counter is owned by the single task running ``run()``;
    no other code touches it, so no lock is needed.
    """

    def __init__(
        self,
        nc: NATS,
        subject: str,
        metrics: RpcMetrics,
        delay: float = 0.0,
        timeout: float = REQUEST_TIMEOUT,
        clock: Callable[[], int] = time.perf_counter_ns,
        max_requests: Optional[int] = None,
    ):
        self.nc = nc
        self.subject = subject
        self.metrics = metrics
        self.delay = delay
        self.timeout = timeout
        self.max_requests = max_requests
        self._clock = clock
        self._counter = itertools.count(1)
        self._task: Optional[asyncio.Task] = None

        self.sent = 0
        self.completed = 0
        self.failed = 0

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def start(self) -> asyncio.Task:
        """Schedule ``run()`` as a background task."""
        self._task = asyncio.create_task(self.run(), name="requestor-loop")
        return self._task

    async def run(self) -> None:
        """Request until the connection is closed (or ``max_requests`` is hit)."""
        while self.max_requests is None or self.sent < self.max_requests:
            n = next(self._counter)
            # each request has a sequence for tracing
            payload = f"request-{n}".encode()

            self.sent += 1
            start = self._clock()
            try:
                await self.nc.request(self.subject, payload, timeout=self.timeout)
            except nats.errors.ConnectionClosedError:
                logger.debug("request_loop_stopped", sent=self.sent)
                return
            except Exception as e:
                if self.nc.is_closed:
                    logger.debug("request_loop_stopped", sent=self.sent)
                    return
                self.failed += 1
                logger.debug("request_error", seq=n, error=str(e) or type(e).__name__)
                continue

            millis = to_millis(self._clock() - start)
            self.metrics.observe(millis)
            self.completed += 1

            if self.delay > 0:
                await asyncio.sleep(self.delay)


async def run_requestor(config: ClientConfig, interrupt: Optional[InterruptListener] = None) -> None:
    """Connect, start the request loop and block until interrupted."""
    interrupt = (interrupt or InterruptListener()).install()
    try:
        nc = await connect(config)

        loop = RequestorLoop(
            nc,
            config.subject,
            RpcMetrics.create(),
            delay=config.delay,
            timeout=get_settings().request_timeout,
        )
        task = loop.start()

        await interrupt.wait()
    finally:
        interrupt.remove()

    await shutdown(nc, ShutdownStrategy.CLOSE, background=task)

    logger.info("requestor_stopped", sent=loop.sent, completed=loop.completed, failed=loop.failed)


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="latency-requestor",
        description="NATS request/reply load generator with Prometheus latency metrics",
    )
    parser.add_argument("-s", dest="urls", default=settings.nats_url,
                        help="The nats server URLs (separated by comma)")
    parser.add_argument("-subj", dest="subject", default=DEFAULT_SUBJECT,
                        help="The subject to make requests on")
    parser.add_argument("-p", dest="port", type=int, default=settings.metrics_port,
                        help="The prometheus port to listen on")
    parser.add_argument("-debug", dest="debug", action="store_true", default=False,
                        help="Enable debugging")
    parser.add_argument("-tlscert", dest="tlscert", default="",
                        help="Client certificate file")
    parser.add_argument("-tlskey", dest="tlskey", default="",
                        help="Private key for the client certificate")
    parser.add_argument("-tlscacert", dest="tlscacert", default="",
                        help="CA certificate for verifying the server")
    parser.add_argument("-creds", dest="creds", default="", help="Credentials file")
    parser.add_argument("-delay", dest="delay", default="", help="Delay between each request")
    parser.add_argument("args", nargs="*", metavar="subject",
                        help="Subject to make requests on (overrides -subj)")
    return parser


def config_from_args(args: argparse.Namespace) -> ClientConfig:
    """Build the client config from parsed flags.

    Raises:
        DurationError: If ``-delay`` is malformed
    """
    subject = args.subject
    if len(args.args) == 1:
        subject = args.args[0]

    delay = parse_duration(args.delay) if args.delay else 0.0

    return ClientConfig(
        servers=parse_servers(args.urls),
        subject=subject,
        creds=args.creds,
        tls_cert=args.tlscert,
        tls_key=args.tlskey,
        tls_ca=args.tlscacert,
        delay=delay,
        client_name_prefix=REQUESTOR_NAME,
    )


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the latency-requestor command."""
    args = build_parser().parse_args(argv)
    configure_logging(level="DEBUG" if args.debug else None)

    try:
        config = config_from_args(args)

        logger.info(
            "requestor_starting",
            prometheus_port=args.port,
            servers=",".join(config.servers),
            subject=config.subject,
        )

        MetricsExporter(args.port).start()
        asyncio.run(run_requestor(config))
    except LatencyDemoError as e:
        logger.error("fatal_startup_error", error=str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        pass

    print("Exiting...")


if __name__ == "__main__":
    main()
