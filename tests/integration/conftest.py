"""Shared fixtures for integration tests.

These tests need a running NATS server, e.g.::

    docker run --rm -p 4222:4222 nats

The server URL is taken from NATS_URL (default nats://127.0.0.1:4222).
Tests are skipped when nothing is listening there.
"""

import os
import socket
from urllib.parse import urlparse

import nats
import pytest
import pytest_asyncio

NATS_URL = os.environ.get("NATS_URL", "nats://127.0.0.1:4222")


def _server_reachable(url: str) -> bool:
    parsed = urlparse(url)
    try:
        with socket.create_connection((parsed.hostname or "127.0.0.1", parsed.port or 4222), timeout=0.5):
            return True
    except OSError:
        return False


@pytest.fixture(scope="session")
def nats_url():
    if not _server_reachable(NATS_URL):
        pytest.skip(f"No NATS server at {NATS_URL}")
    return NATS_URL


@pytest_asyncio.fixture
async def nc(nats_url):
    """Plain connection for driving or observing the system under test."""
    conn = await nats.connect(servers=[nats_url])
    yield conn
    if not conn.is_closed:
        await conn.close()
