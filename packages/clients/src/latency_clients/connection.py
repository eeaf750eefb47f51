"""NATS connection configuration.

Builds the ordered list of client options shared by the requestor and the
replier, then folds it into keyword arguments for ``nats.connect``.

Option order:
    name, user_credentials?, disconnected_cb, reconnected_cb, closed_cb,
    error_cb, max_reconnect_attempts, root_ca?, client_cert?
"""

from __future__ import annotations

import asyncio
import socket
import ssl
from typing import Any, NamedTuple, Optional

import nats
import nats.errors
from nats.aio.client import Client as NATS
from pydantic import BaseModel, ConfigDict, Field

from latency_common import ConnectError, get_logger
from latency_common.config import DEFAULT_NATS_URL

logger = get_logger(__name__)

MAX_RECONNECT_ATTEMPTS = 10240
FALLBACK_HOSTNAME = "127.0.0.1"

DEFAULT_SUBJECT = "demo.requests"
DEFAULT_QUEUE_GROUP = "demo"
REQUESTOR_NAME = "NATS_Requestor"
REPLIER_NAME = "NATS_Replier"


def parse_servers(urls: str) -> list[str]:
    """Split a comma-separated server list, dropping blanks."""
    return [u.strip() for u in urls.split(",") if u.strip()]


class ClientConfig(BaseModel):
    """Connection configuration built once from the command line."""

    model_config = ConfigDict(frozen=True)

    servers: list[str] = Field(default_factory=lambda: [DEFAULT_NATS_URL])
    subject: str = DEFAULT_SUBJECT
    queue_group: str = DEFAULT_QUEUE_GROUP
    creds: str = ""
    tls_cert: str = ""
    tls_key: str = ""
    tls_ca: str = ""
    delay: float = 0.0
    client_name_prefix: str = REQUESTOR_NAME


class ClientOption(NamedTuple):
    """A single ``nats.connect`` option."""

    name: str
    value: Any


def local_hostname() -> str:
    """Return the local hostname, or the loopback address if unavailable."""
    try:
        hostname = socket.gethostname()
    except OSError:
        return FALLBACK_HOSTNAME
    return hostname or FALLBACK_HOSTNAME


class LifecycleCallbacks:
    """Log-only connection lifecycle callbacks.

    nats-py invokes these without the client, so the client is attached
    after connecting to report the reconnected address.
    """

    def __init__(self) -> None:
        self.client: Optional[NATS] = None

    async def disconnected(self) -> None:
        logger.warning("nats_disconnected")

    async def reconnected(self) -> None:
        url = None
        if self.client is not None and self.client.connected_url is not None:
            url = self.client.connected_url.netloc
        logger.info("nats_reconnected", url=url)

    async def closed(self) -> None:
        logger.info("nats_connection_closed")

    async def error(self, e: Exception) -> None:
        logger.error("nats_error", error=str(e))


def build_client_options(
    config: ClientConfig,
    callbacks: Optional[LifecycleCallbacks] = None,
) -> list[ClientOption]:
    """Generate the ordered NATS client options for ``config``.

    Empty fields are omitted; building never fails.
    """
    callbacks = callbacks or LifecycleCallbacks()

    opts = [ClientOption("name", f"{config.client_name_prefix} - {local_hostname()}")]

    if config.creds:
        opts.append(ClientOption("user_credentials", config.creds))

    opts.append(ClientOption("disconnected_cb", callbacks.disconnected))
    opts.append(ClientOption("reconnected_cb", callbacks.reconnected))
    opts.append(ClientOption("closed_cb", callbacks.closed))
    opts.append(ClientOption("error_cb", callbacks.error))
    opts.append(ClientOption("max_reconnect_attempts", MAX_RECONNECT_ATTEMPTS))

    if config.tls_ca:
        opts.append(ClientOption("root_ca", config.tls_ca))
    if config.tls_cert:
        opts.append(ClientOption("client_cert", (config.tls_cert, config.tls_key)))

    return opts


def connect_kwargs(options: list[ClientOption]) -> dict[str, Any]:
    """Fold an option list into ``nats.connect`` keyword arguments.

    ``root_ca`` and ``client_cert`` are merged into one SSL context passed
    as ``tls``.

    Raises:
        OSError, ssl.SSLError: If TLS material cannot be loaded
    """
    kwargs: dict[str, Any] = {}
    root_ca: Optional[str] = None
    client_cert: Optional[tuple[str, str]] = None

    for opt in options:
        if opt.name == "root_ca":
            root_ca = opt.value
        elif opt.name == "client_cert":
            client_cert = opt.value
        else:
            kwargs[opt.name] = opt.value

    if root_ca is not None or client_cert is not None:
        ctx = ssl.create_default_context(ssl.Purpose.SERVER_AUTH, cafile=root_ca)
        if client_cert is not None:
            certfile, keyfile = client_cert
            ctx.load_cert_chain(certfile=certfile, keyfile=keyfile or None)
        kwargs["tls"] = ctx

    return kwargs


async def connect(config: ClientConfig) -> NATS:
    """Connect to NATS using ``config``.

    Raises:
        ConnectError: If TLS material is unusable or no server accepts
            the connection
    """
    callbacks = LifecycleCallbacks()
    options = build_client_options(config, callbacks)

    try:
        kwargs = connect_kwargs(options)
        nc = await nats.connect(servers=list(config.servers), **kwargs)
    except (OSError, asyncio.TimeoutError, nats.errors.Error) as e:
        raise ConnectError(f"Can't connect: {e}") from e

    callbacks.client = nc
    logger.info("nats_connected", servers=list(config.servers), name=kwargs.get("name"))
    return nc
