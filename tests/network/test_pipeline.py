"""End-to-end tests for the request pipeline with scripted transports."""

import asyncio
from dataclasses import dataclass, field, replace
from typing import override

import pytest

from starter_network.exceptions import (
    AppError,
    ErrorCode,
    NetworkError,
    TransportError,
    ValidationError,
)
from starter_network.infrastructure import InMemoryTokenStore, RetryPolicy
from starter_network.network import (
    AuthInterceptor,
    ErrorInterceptor,
    RequestPipeline,
    RetryInterceptor,
)
from starter_network.protocols import Interceptor
from starter_network.types import CancelToken, FailureKind, RawResponse, RequestDescriptor
from tests.fakes import RecordingSleeper, ScriptedTransport, StubRandom

_REQUEST = RequestDescriptor("GET", "/items", base_url="https://api.example.com")


def _ok(body: object = None) -> RawResponse:
    return RawResponse(status_code=200, body=body)


def _timeout() -> TransportError:
    return TransportError(FailureKind.CONNECT_TIMEOUT, "connect timed out")


def _status(status: int, body: object = None, headers: dict[str, str] | None = None) -> RawResponse:
    return RawResponse(status_code=status, body=body, headers=headers or {})


def _pipeline(
    transport: ScriptedTransport,
    *,
    store: InMemoryTokenStore | None = None,
    sleep: RecordingSleeper | None = None,
    interceptors: list[Interceptor] | None = None,
) -> RequestPipeline:
    stages: list[Interceptor] = [AuthInterceptor(store or InMemoryTokenStore())]
    stages.extend(interceptors or [])
    return RequestPipeline(
        transport,
        interceptors=stages,
        retry=RetryInterceptor(
            RetryPolicy(rng=StubRandom(1.0)), sleep=sleep or RecordingSleeper()
        ),
        errors=ErrorInterceptor(),
    )


class TestRetryScenarios:
    def test_recovers_after_two_timeouts(self) -> None:
        transport = ScriptedTransport.of(_timeout(), _timeout(), _ok({"id": 1}))
        sleeper = RecordingSleeper()

        response = asyncio.run(_pipeline(transport, sleep=sleeper).execute(_REQUEST))

        assert response.body == {"id": 1}
        assert transport.send_count == 3
        assert [request.attempt for request in transport.requests] == [0, 1, 2]
        assert sleeper.delays == [1.0, 2.0]

    def test_gives_up_after_max_attempts(self) -> None:
        transport = ScriptedTransport.of(_timeout(), _timeout(), _timeout(), _timeout())
        sleeper = RecordingSleeper()

        with pytest.raises(NetworkError) as exc_info:
            asyncio.run(_pipeline(transport, sleep=sleeper).execute(_REQUEST))

        assert exc_info.value.code == ErrorCode.TIMEOUT
        assert transport.send_count == 4
        assert sleeper.delays == [1.0, 2.0, 4.0]

    def test_429_is_retried(self) -> None:
        transport = ScriptedTransport.of(_status(429), _ok("done"))
        response = asyncio.run(_pipeline(transport).execute(_REQUEST))
        assert response.body == "done"
        assert transport.send_count == 2

    def test_retry_after_header_is_honoured(self) -> None:
        transport = ScriptedTransport.of(_status(503, headers={"Retry-After": "5"}), _ok())
        sleeper = RecordingSleeper()
        asyncio.run(_pipeline(transport, sleep=sleeper).execute(_REQUEST))
        assert sleeper.delays == [5.0]

    def test_server_error_exhausts_to_server_error(self) -> None:
        transport = ScriptedTransport.of(*[_status(500, {"message": "boom"})] * 4)
        with pytest.raises(NetworkError) as exc_info:
            asyncio.run(_pipeline(transport).execute(_REQUEST))
        assert exc_info.value.code == ErrorCode.SERVER_ERROR
        assert exc_info.value.status_code == 500
        assert transport.send_count == 4

    def test_403_is_not_retried(self) -> None:
        transport = ScriptedTransport.of(_status(403))
        sleeper = RecordingSleeper()
        with pytest.raises(NetworkError) as exc_info:
            asyncio.run(_pipeline(transport, sleep=sleeper).execute(_REQUEST))
        assert exc_info.value.code == ErrorCode.FORBIDDEN
        assert transport.send_count == 1
        assert sleeper.delays == []

    def test_400_surfaces_validation_error(self) -> None:
        transport = ScriptedTransport.of(_status(400, {"errors": {"email": ["is invalid"]}}))
        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(_pipeline(transport).execute(_REQUEST))
        assert exc_info.value.message == "is invalid"

    def test_without_retry_component_fails_fast(self) -> None:
        transport = ScriptedTransport.of(_timeout())
        pipeline = RequestPipeline(transport)
        with pytest.raises(NetworkError):
            asyncio.run(pipeline.execute(_REQUEST))
        assert transport.send_count == 1


class TestAuthScenarios:
    def test_token_attached_to_every_attempt(self) -> None:
        store = InMemoryTokenStore(access_token="abc")
        transport = ScriptedTransport.of(_timeout(), _ok())
        asyncio.run(_pipeline(transport, store=store).execute(_REQUEST))
        assert [r.headers.get("Authorization") for r in transport.requests] == [
            "Bearer abc",
            "Bearer abc",
        ]

    def test_401_clears_token_and_is_not_retried(self) -> None:
        store = InMemoryTokenStore(access_token="expired")
        transport = ScriptedTransport.of(_status(401))

        with pytest.raises(NetworkError) as exc_info:
            asyncio.run(_pipeline(transport, store=store).execute(_REQUEST))

        assert exc_info.value.code == ErrorCode.UNAUTHORIZED
        assert exc_info.value.requires_auth is True
        assert store.get_token() is None
        assert transport.send_count == 1


class TestCancellation:
    def test_cancel_while_in_flight(self) -> None:
        transport = ScriptedTransport(block_forever=True)
        sleeper = RecordingSleeper()
        token = CancelToken()

        async def scenario() -> RawResponse:
            task = asyncio.create_task(
                _pipeline(transport, sleep=sleeper).execute(replace(_REQUEST, cancel_token=token))
            )
            while transport.send_count == 0:
                await asyncio.sleep(0)
            token.cancel("user navigated away")
            return await task

        with pytest.raises(NetworkError) as exc_info:
            asyncio.run(scenario())

        assert exc_info.value.code == ErrorCode.REQUEST_CANCELLED
        assert transport.send_count == 1
        assert sleeper.delays == []

    def test_cancel_during_backoff(self) -> None:
        transport = ScriptedTransport.of(_timeout(), _ok())
        token = CancelToken()
        sleeping = asyncio.Event()

        async def slow_sleep(delay: float) -> None:
            _ = delay
            sleeping.set()
            await asyncio.Event().wait()

        pipeline = RequestPipeline(
            transport,
            retry=RetryInterceptor(RetryPolicy(rng=StubRandom(1.0)), sleep=slow_sleep),
        )

        async def scenario() -> RawResponse:
            task = asyncio.create_task(pipeline.execute(replace(_REQUEST, cancel_token=token)))
            await sleeping.wait()
            token.cancel()
            return await task

        with pytest.raises(NetworkError) as exc_info:
            asyncio.run(scenario())

        assert exc_info.value.code == ErrorCode.REQUEST_CANCELLED
        assert transport.send_count == 1

    def test_already_cancelled_never_sends(self) -> None:
        transport = ScriptedTransport.of(_ok())
        token = CancelToken()
        token.cancel()

        with pytest.raises(NetworkError) as exc_info:
            asyncio.run(_pipeline(transport).execute(replace(_REQUEST, cancel_token=token)))

        assert exc_info.value.code == ErrorCode.REQUEST_CANCELLED
        assert transport.send_count == 0


def _empty_events() -> list[str]:
    return []


@dataclass
class RecordingStage(Interceptor):
    """Stage that records hook calls and optionally short-circuits or recovers."""

    name: str
    events: list[str] = field(default_factory=_empty_events)
    short_circuit: RawResponse | None = None
    recover_with: RawResponse | None = None

    @override
    async def on_request(self, request: RequestDescriptor) -> RequestDescriptor | RawResponse:
        self.events.append(f"{self.name}:request")
        if self.short_circuit is not None:
            return self.short_circuit
        return request.with_header(f"X-{self.name}", "seen")

    @override
    async def on_response(self, request: RequestDescriptor, response: RawResponse) -> RawResponse:
        self.events.append(f"{self.name}:response")
        return response

    @override
    async def on_error(
        self, request: RequestDescriptor, failure: TransportError
    ) -> RawResponse | None:
        self.events.append(f"{self.name}:error")
        return self.recover_with


class RejectingStage(Interceptor):
    """Stage that refuses every request before it is sent."""

    @override
    async def on_request(self, request: RequestDescriptor) -> RequestDescriptor | RawResponse:
        raise ValidationError("Client-side check failed")

    @override
    async def on_response(self, request: RequestDescriptor, response: RawResponse) -> RawResponse:
        return response

    @override
    async def on_error(
        self, request: RequestDescriptor, failure: TransportError
    ) -> RawResponse | None:
        return None


class TestStages:
    def test_stages_run_in_order_and_rewrite_request(self) -> None:
        first = RecordingStage("first")
        second = RecordingStage("second", events=first.events)
        transport = ScriptedTransport.of(_ok())

        asyncio.run(_pipeline(transport, interceptors=[first, second]).execute(_REQUEST))

        assert first.events == [
            "first:request",
            "second:request",
            "first:response",
            "second:response",
        ]
        sent = transport.requests[0]
        assert sent.headers["X-first"] == "seen"
        assert sent.headers["X-second"] == "seen"

    def test_short_circuit_with_response_skips_transport(self) -> None:
        cached = _ok({"cached": True})
        transport = ScriptedTransport()
        stage = RecordingStage("cache", short_circuit=cached)

        response = asyncio.run(_pipeline(transport, interceptors=[stage]).execute(_REQUEST))

        assert response is cached
        assert transport.send_count == 0

    def test_short_circuit_with_error_propagates_unchanged(self) -> None:
        transport = ScriptedTransport()
        with pytest.raises(AppError) as exc_info:
            asyncio.run(
                _pipeline(transport, interceptors=[RejectingStage()]).execute(_REQUEST)
            )
        assert exc_info.value.message == "Client-side check failed"
        assert transport.send_count == 0

    def test_error_stage_can_recover(self) -> None:
        fallback = _ok({"offline": True})
        stage = RecordingStage("fallback", recover_with=fallback)
        transport = ScriptedTransport.of(_status(404))

        response = asyncio.run(_pipeline(transport, interceptors=[stage]).execute(_REQUEST))

        assert response is fallback
        assert stage.events == ["fallback:request", "fallback:error"]

    def test_close_closes_transport(self) -> None:
        transport = ScriptedTransport()
        _pipeline(transport).close()
        assert transport.closed is True
