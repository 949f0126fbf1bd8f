"""Protocol definitions for dependency injection.

These protocols define the abstract interfaces that the request pipeline
depends on, enabling isolated unit testing with fake implementations.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .exceptions import TransportError
    from .types import FailureKind, RawResponse, RequestDescriptor

Sleeper = Callable[[float], Awaitable[None]]
"""Async sleep function, `asyncio.sleep` in production."""


@runtime_checkable
class TokenStore(Protocol):
    """Process-wide holder of the bearer access token and refresh token."""

    def get_token(self) -> str | None:
        """Return the access token, or None when signed out."""
        ...

    def set_token(self, token: str) -> None:
        """Store the access token."""
        ...

    def clear_token(self) -> None:
        """Remove the access token."""
        ...

    def get_refresh_token(self) -> str | None:
        """Return the refresh token, if any."""
        ...

    def set_refresh_token(self, token: str) -> None:
        """Store the refresh token."""
        ...

    def clear_refresh_token(self) -> None:
        """Remove the refresh token."""
        ...

    def clear_all(self) -> None:
        """Remove every stored credential."""
        ...


@runtime_checkable
class Transport(Protocol):
    """Sends one attempt of a request over the wire."""

    async def send(self, request: RequestDescriptor) -> RawResponse:
        """Send the request and return the raw response.

        Any HTTP status is returned as a response; the pipeline decides what
        counts as a failure.

        Raises:
            TransportError: On timeouts, connection and certificate failures,
                cancellation, or anything else the HTTP library reports.
        """
        ...

    def close(self) -> None:
        """Release pooled connections."""
        ...


@runtime_checkable
class RetryPolicy(Protocol):
    """Abstract retry policy for transient failures."""

    max_attempts: int
    retry_statuses: frozenset[int]
    retry_kinds: frozenset[FailureKind]

    def is_retryable(self, failure: TransportError) -> bool:
        """Return True when the failure category qualifies for a retry."""
        ...

    def compute_backoff(self, attempt: int, retry_after: float | None = None) -> float:
        """Return the delay in seconds before the 1-indexed `attempt`."""
        ...


@runtime_checkable
class Interceptor(Protocol):
    """A pipeline stage that observes or rewrites one exchange.

    `on_request` continues with a (possibly new) descriptor, short-circuits by
    returning a response, or short-circuits with an error by raising.
    `on_error` returns a response to recover, or None to let the failure
    propagate.
    """

    async def on_request(self, request: RequestDescriptor) -> RequestDescriptor | RawResponse:
        """Inspect or rewrite an outgoing request."""
        ...

    async def on_response(self, request: RequestDescriptor, response: RawResponse) -> RawResponse:
        """Inspect or rewrite a successful response."""
        ...

    async def on_error(
        self, request: RequestDescriptor, failure: TransportError
    ) -> RawResponse | None:
        """React to a failed attempt."""
        ...


@runtime_checkable
class ProgressReporter(Protocol):
    """CLI-owned progress reporting interface."""

    def start(self, label: str, total: int | None) -> None:
        """Start a progress session."""
        ...

    def advance(self, count: int) -> None:
        """Advance progress by count."""
        ...

    def finish(self) -> None:
        """Finish a progress session."""
        ...
