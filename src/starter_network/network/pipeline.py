"""Request pipeline: interceptor stages, transport send, retry loop and error boundary.

Usage example:
    from starter_network.infrastructure import RequestsTransport, RetryPolicy
    from starter_network.network.errors import ErrorInterceptor
    from starter_network.network.pipeline import RequestPipeline
    from starter_network.network.retry import RetryInterceptor

    pipeline = RequestPipeline(
        RequestsTransport(),
        interceptors=[auth, logging_stage],
        retry=RetryInterceptor(RetryPolicy()),
        errors=ErrorInterceptor(),
    )
    response = await pipeline.execute(descriptor)
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Sequence

from ..exceptions import TransportError
from ..protocols import Interceptor, Transport
from ..types import CancelToken, FailureKind, RawResponse, RequestDescriptor
from .errors import ErrorInterceptor
from .retry import RetryInterceptor


class RequestPipeline:
    """Run one logical request through its stages until it succeeds or gives up.

    Each attempt runs `on_request` for every stage in order, sends through the
    transport, then runs `on_response` (or `on_error`) for every stage in the
    same order. Any HTTP status of 400 or above is treated as a failure. Failed
    attempts go to the retry planner; when it gives up, the failure is
    converted to exactly one `AppError` at the error boundary.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        interceptors: Sequence[Interceptor] = (),
        retry: RetryInterceptor | None = None,
        errors: ErrorInterceptor | None = None,
    ) -> None:
        self.transport = transport
        self.interceptors = list(interceptors)
        self.retry = retry
        self.errors = errors or ErrorInterceptor()

    async def execute(self, request: RequestDescriptor) -> RawResponse:
        """Send `request`, retrying transient failures.

        Raises:
            AppError: The typed error for the final failed attempt.
        """
        current = request
        while True:
            try:
                return await self._attempt(current)
            except TransportError as failure:
                plan = None if self.retry is None else self.retry.plan_retry(current, failure)
                if plan is None:
                    raise self.errors.convert(failure) from failure
                current, delay = plan
            await self._backoff(current, delay)

    async def _backoff(self, request: RequestDescriptor, delay: float) -> None:
        if self.retry is None:
            return
        try:
            await _race(self.retry.sleep(delay), request.cancel_token)
        except TransportError as cancelled:
            raise self.errors.convert(cancelled) from cancelled

    async def _attempt(self, request: RequestDescriptor) -> RawResponse:
        prepared = request
        for stage in self.interceptors:
            outcome = await stage.on_request(prepared)
            if isinstance(outcome, RawResponse):
                return outcome
            prepared = outcome

        try:
            response = await _race(self.transport.send(prepared), prepared.cancel_token)
            if response.status_code >= 400:
                raise TransportError.bad_response(response)
        except TransportError as failure:
            for stage in self.interceptors:
                recovered = await stage.on_error(prepared, failure)
                if recovered is not None:
                    return recovered
            raise

        for stage in self.interceptors:
            response = await stage.on_response(prepared, response)
        return response

    def close(self) -> None:
        self.transport.close()


async def _race[T](awaitable: Awaitable[T], cancel_token: CancelToken | None) -> T:
    """Await `awaitable` unless the cancel token fires first."""
    if cancel_token is None:
        return await awaitable
    if cancel_token.is_cancelled:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise _cancelled(cancel_token)
    work = asyncio.ensure_future(awaitable)
    cancel_wait = asyncio.ensure_future(cancel_token.wait())
    try:
        await asyncio.wait({work, cancel_wait}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        cancel_wait.cancel()
        if not work.done():
            work.cancel()
    if work.done() and not work.cancelled():
        return work.result()
    raise _cancelled(cancel_token)


def _cancelled(cancel_token: CancelToken) -> TransportError:
    return TransportError(FailureKind.CANCEL, cancel_token.reason or "Request was cancelled")
