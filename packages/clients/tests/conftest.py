"""Pytest fixtures for client tests."""

import os
import signal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from prometheus_client import CollectorRegistry

from latency_clients.metrics import RpcMetrics


@pytest.fixture
def registry():
    """Fresh Prometheus registry per test."""
    return CollectorRegistry()


@pytest.fixture
def rpc_metrics(registry):
    return RpcMetrics.create(registry)


@pytest.fixture
def mock_nc():
    """Mock NATS connection with async request/publish/subscribe/drain/close."""
    nc = MagicMock()
    nc.is_closed = False
    nc.request = AsyncMock()
    nc.publish = AsyncMock()
    nc.subscribe = AsyncMock()
    nc.drain = AsyncMock()
    nc.close = AsyncMock()
    return nc


@pytest.fixture
def make_msg():
    """Factory for minimal stand-ins of nats.aio.msg.Msg."""

    def _make(data: bytes = b"request-1", reply: str = "_INBOX.abc.1", subject: str = "demo.requests"):
        return SimpleNamespace(subject=subject, reply=reply, data=data)

    return _make


@pytest.fixture
def connect_then_interrupt(mock_nc):
    """connect() stand-in that raises SIGUSR1 mid-startup, then returns mock_nc."""

    async def _connect(config):
        os.kill(os.getpid(), signal.SIGUSR1)
        return mock_nc

    return _connect
