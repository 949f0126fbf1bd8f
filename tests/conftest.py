"""Pytest fixtures for the test suite.

All tests are network-isolated - socket connections are blocked by default.
"""

from __future__ import annotations

import socket
from collections.abc import Iterator

import pytest

from starter_network.infrastructure import InMemoryTokenStore, RetryPolicy
from tests.fakes import RecordingSleeper, StubRandom
from tests.support.errors import NetworkIsolationError

# =============================================================================
# Network Isolation - Block all socket connections in tests
# =============================================================================


def _blocked_socket_connect(self: socket.socket, *args: object, **kwargs: object) -> None:
    """Raise an error if any test tries to make a real network connection."""
    _ = (self, kwargs)
    raise NetworkIsolationError(str(args))


@pytest.fixture(autouse=True)
def block_network_access(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Block all network access in tests.

    This fixture runs automatically for all tests and prevents any real
    network connections. Tests that need HTTP should use ScriptedTransport
    or a MagicMock session.
    """
    monkeypatch.setattr(socket.socket, "connect", _blocked_socket_connect)
    yield


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    """Provide an empty in-memory token store."""
    return InMemoryTokenStore()


@pytest.fixture
def sleeper() -> RecordingSleeper:
    """Provide a sleep function that records delays instead of waiting."""
    return RecordingSleeper()


@pytest.fixture
def retry_policy() -> RetryPolicy:
    """Provide the default retry policy with jitter pinned to 1.0."""
    return RetryPolicy(rng=StubRandom(1.0))
