"""Concrete infrastructure implementations and shared helpers."""

from .resilience import RetryPolicy, parse_retry_after
from .token_store import FileTokenStore, InMemoryTokenStore
from .transport import RequestsTransport, to_transport_error

__all__ = [
    "FileTokenStore",
    "InMemoryTokenStore",
    "RequestsTransport",
    "RetryPolicy",
    "parse_retry_after",
    "to_transport_error",
]
