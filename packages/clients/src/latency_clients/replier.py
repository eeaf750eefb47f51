"""Replier: queue-group responder with optional artificial delay.

Usage:
    latency-replier [-s nats://127.0.0.1:4222] [-subj demo.requests] [-qg demo] [-delay 10ms]

Replier instances in the same queue group share the subject's requests;
each request is delivered to exactly one of them. Every request gets one
empty reply, sent after ``-delay`` has elapsed.

Interrupt (SIGINT/SIGTERM) drains the connection so requests already being
handled are answered before disconnecting.
"""

import argparse
import asyncio
import sys
from enum import Enum
from typing import Optional

from nats.aio.client import Client as NATS
from nats.aio.msg import Msg
from nats.aio.subscription import Subscription

from latency_common import LatencyDemoError, SubscribeError, configure_logging, get_logger, get_settings
from latency_clients.connection import (
    DEFAULT_QUEUE_GROUP,
    DEFAULT_SUBJECT,
    REPLIER_NAME,
    ClientConfig,
    connect,
    parse_servers,
)
from latency_clients.duration import parse_duration
from latency_clients.shutdown import InterruptListener, ShutdownStrategy, shutdown

logger = get_logger(__name__)


class ReplierState(str, Enum):
    IDLE = "idle"
    SUBSCRIBED = "subscribed"
    DRAINING = "draining"
    CLOSED = "closed"


class Replier:
    """Answers every request on ``subject`` with an empty payload."""

    def __init__(self, nc: NATS, subject: str, queue_group: str, delay: float = 0.0):
        self.nc = nc
        self.subject = subject
        self.queue_group = queue_group
        self.delay = delay
        self.state = ReplierState.IDLE
        self.handled = 0
        self._sub: Optional[Subscription] = None

    async def start(self) -> Subscription:
        """Join the queue group on the subject.

        Raises:
            SubscribeError: If the subscription cannot be created
        """
        try:
            self._sub = await self.nc.subscribe(self.subject, queue=self.queue_group, cb=self.handle)
        except Exception as e:
            raise SubscribeError(f"couldn't subscribe: {e}") from e

        self.state = ReplierState.SUBSCRIBED
        logger.info("replier_subscribed", subject=self.subject, queue_group=self.queue_group)
        return self._sub

    async def handle(self, msg: Msg) -> None:
        """Delay (if configured), then reply with an empty payload."""
        if self.state is ReplierState.CLOSED:
            logger.debug("request_after_close", subject=msg.subject)
            return

        if self.delay > 0:
            await asyncio.sleep(self.delay)

        if not msg.reply:
            logger.debug("request_without_reply_subject", subject=msg.subject)
            return

        try:
            await self.nc.publish(msg.reply, b"")
        except Exception as e:
            # fire-and-forget: the requestor times out on its own
            logger.debug("reply_failed", error=str(e))
        else:
            self.handled += 1

        logger.debug("received", data=msg.data.decode(errors="replace"))

    async def stop(self) -> None:
        """Drain the connection: stop deliveries, finish in-flight replies, close."""
        self.state = ReplierState.DRAINING
        try:
            await shutdown(self.nc, ShutdownStrategy.DRAIN)
        finally:
            self.state = ReplierState.CLOSED


async def run_replier(config: ClientConfig, interrupt: Optional[InterruptListener] = None) -> None:
    """Connect, subscribe and serve until interrupted.

    The interrupt handlers go in before connecting: a signal that lands
    while subscribing still drains instead of raising KeyboardInterrupt.
    """
    interrupt = (interrupt or InterruptListener()).install()
    try:
        nc = await connect(config)

        replier = Replier(nc, config.subject, config.queue_group, delay=config.delay)
        try:
            await replier.start()
        except SubscribeError:
            await nc.close()
            raise

        await interrupt.wait()
    finally:
        interrupt.remove()

    await replier.stop()

    logger.info("replier_stopped", handled=replier.handled)


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="latency-replier",
        description="NATS queue-group replier with optional artificial delay",
    )
    parser.add_argument("-s", dest="urls", default=settings.nats_url,
                        help="The nats server URLs (separated by comma)")
    parser.add_argument("-subj", dest="subject", default=DEFAULT_SUBJECT,
                        help="The subject to listen to")
    parser.add_argument("-qg", dest="queue_group", default=DEFAULT_QUEUE_GROUP,
                        help="The name of the queue group")
    parser.add_argument("-delay", dest="delay", default="", help="Artificial workload delay")
    parser.add_argument("-debug", dest="debug", action="store_true", default=False,
                        help="Enable debugging")
    parser.add_argument("-tlscert", dest="tlscert", default="",
                        help="Client certificate file")
    parser.add_argument("-tlskey", dest="tlskey", default="",
                        help="Private key for the client certificate")
    parser.add_argument("-tlscacert", dest="tlscacert", default="",
                        help="CA certificate for verifying the server")
    parser.add_argument("-creds", dest="creds", default="", help="Credentials file")
    return parser


def config_from_args(args: argparse.Namespace) -> ClientConfig:
    """Build the client config from parsed flags.

    Raises:
        DurationError: If ``-delay`` is malformed
    """
    delay = parse_duration(args.delay) if args.delay else 0.0

    return ClientConfig(
        servers=parse_servers(args.urls),
        subject=args.subject,
        queue_group=args.queue_group,
        creds=args.creds,
        tls_cert=args.tlscert,
        tls_key=args.tlskey,
        tls_ca=args.tlscacert,
        delay=delay,
        client_name_prefix=REPLIER_NAME,
    )


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the latency-replier command."""
    args = build_parser().parse_args(argv)
    configure_logging(level="DEBUG" if args.debug else None)

    try:
        config = config_from_args(args)
        asyncio.run(run_replier(config))
    except LatencyDemoError as e:
        logger.error("fatal_startup_error", error=str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        pass

    print("Exiting.")


if __name__ == "__main__":
    main()
