"""Shared fixtures."""

import threading

import pytest
from helpers import FakeProtocol

from hypervvm.domain.models import ConnectionConfig
from hypervvm.infrastructure.winrm import RemoteExecutor, SessionManager


@pytest.fixture
def config():
    """A minimal valid connection config."""
    return ConnectionConfig(host="hv01.example.test", username="admin", password="s3cret", timeout=30)


@pytest.fixture
def fake_protocol():
    """A FakeProtocol with no queued responses."""
    return FakeProtocol()


@pytest.fixture
def session_manager(fake_protocol):
    """SessionManager whose factory records options and returns fake_protocol."""

    def factory(**options):
        fake_protocol.options = options
        return fake_protocol

    return SessionManager(protocol_factory=factory)


@pytest.fixture
def executor():
    """RemoteExecutor polling fast enough for tests."""
    return RemoteExecutor(poll_interval=0.01, abort_grace=1.0)


@pytest.fixture
def release():
    """Event that unblocks a FakeProtocol created with block=..."""
    event = threading.Event()
    yield event
    event.set()
