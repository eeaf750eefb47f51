"""Signal-driven shutdown for both clients.

Each role picks a named strategy:

- DRAIN: services (the replier). Unsubscribe, let in-flight replies finish,
  then close. Requests are not dropped mid-flight when scaling down.
  If the client refuses to drain (reconnecting, already closed, drain
  timeout) the connection is closed instead.
- CLOSE: load generators (the requestor). Close immediately; the in-flight
  request fails with ConnectionClosedError and the request loop exits.

Signal handlers are installed before connecting (``InterruptListener``) so
an interrupt that arrives during startup still ends in an orderly shutdown.
"""

import asyncio
import signal
from enum import Enum
from typing import Iterable, Optional

import nats.errors
from nats.aio.client import Client as NATS

from latency_common import get_logger

logger = get_logger(__name__)

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)
DEFAULT_GRACE = 10.0  # one request timeout window


class ShutdownStrategy(str, Enum):
    """How a role tears down its connection."""

    DRAIN = "drain"
    CLOSE = "close"

    async def apply(self, nc: NATS) -> None:
        if self is ShutdownStrategy.DRAIN:
            logger.debug("draining_connection")
            try:
                await nc.drain()
                return
            except nats.errors.Error as e:
                logger.warning("drain_failed", error=str(e) or type(e).__name__)

        logger.debug("closing_connection")
        await nc.close()


class InterruptListener:
    """Signal handlers on the running loop, resolved by the first signal.

    ``install()`` may run long before ``wait()``; a signal delivered in
    between is remembered and ``wait()`` returns at once.
    """

    def __init__(self, signals: Iterable[signal.Signals] = DEFAULT_SIGNALS):
        self.signals = tuple(signals)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._received: Optional[asyncio.Future] = None

    def install(self) -> "InterruptListener":
        if self._loop is not None:
            return self
        self._loop = asyncio.get_running_loop()
        self._received = self._loop.create_future()
        for sig in self.signals:
            self._loop.add_signal_handler(sig, self._handle, sig)
        return self

    def _handle(self, sig: signal.Signals) -> None:
        if not self._received.done():
            self._received.set_result(sig)

    def remove(self) -> None:
        """Uninstall the handlers. Safe to call more than once."""
        if self._loop is None:
            return
        for sig in self.signals:
            self._loop.remove_signal_handler(sig)
        self._loop = None

    async def wait(self) -> signal.Signals:
        """Block until a signal arrives, then uninstall the handlers.

        Returns:
            The signal that was received
        """
        if self._received is None:
            self.install()
        try:
            sig = await self._received
        finally:
            self.remove()

        logger.info("shutdown_signal_received", signal=sig.name)
        return sig


async def shutdown(
    nc: NATS,
    strategy: ShutdownStrategy,
    background: Optional[asyncio.Task] = None,
    grace: float = DEFAULT_GRACE,
) -> None:
    """Apply ``strategy`` and wait for ``background`` to finish.

    The background task gets ``grace`` seconds to notice the closed
    connection before it is cancelled.
    """
    await strategy.apply(nc)

    if background is None or background.done():
        return

    done, _ = await asyncio.wait({background}, timeout=grace)
    if not done:
        logger.warning("background_task_cancelled", grace=grace)
        background.cancel()
        await asyncio.wait({background})
