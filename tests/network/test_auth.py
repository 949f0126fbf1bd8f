"""Tests for bearer token injection."""

import asyncio
import threading
from dataclasses import replace
from typing import override

from starter_network.exceptions import TransportError
from starter_network.infrastructure import InMemoryTokenStore
from starter_network.network import AuthInterceptor
from starter_network.types import FailureKind, RawResponse, RequestDescriptor, RequestOptions


_ME = RequestDescriptor("GET", "https://api.example.com/me")


def test_attaches_bearer_token_when_present() -> None:
    auth = AuthInterceptor(InMemoryTokenStore(access_token="abc123"))
    result = asyncio.run(auth.on_request(_ME))
    assert isinstance(result, RequestDescriptor)
    assert result.headers["Authorization"] == "Bearer abc123"


def test_replaces_existing_authorization_header() -> None:
    auth = AuthInterceptor(InMemoryTokenStore(access_token="new"))
    result = asyncio.run(auth.on_request(replace(_ME, headers={"authorization": "Bearer old"})))
    assert isinstance(result, RequestDescriptor)
    assert dict(result.headers) == {"Authorization": "Bearer new"}


def test_no_token_is_not_an_error() -> None:
    auth = AuthInterceptor(InMemoryTokenStore())
    request = _ME
    assert asyncio.run(auth.on_request(request)) is request


def test_empty_token_is_not_attached() -> None:
    auth = AuthInterceptor(InMemoryTokenStore(access_token=""))
    result = asyncio.run(auth.on_request(_ME))
    assert isinstance(result, RequestDescriptor)
    assert "Authorization" not in result.headers


def test_skip_auth_option() -> None:
    auth = AuthInterceptor(InMemoryTokenStore(access_token="abc123"))
    result = asyncio.run(auth.on_request(replace(_ME, options=RequestOptions(skip_auth=True))))
    assert isinstance(result, RequestDescriptor)
    assert "Authorization" not in result.headers


def test_401_clears_access_token_only() -> None:
    store = InMemoryTokenStore(access_token="abc123", refresh_token="refresh")
    auth = AuthInterceptor(store)
    failure = TransportError.bad_response(RawResponse(status_code=401))

    assert asyncio.run(auth.on_error(_ME, failure)) is None
    assert store.get_token() is None
    assert store.get_refresh_token() == "refresh"


def test_other_failures_keep_token() -> None:
    store = InMemoryTokenStore(access_token="abc123")
    auth = AuthInterceptor(store)
    asyncio.run(auth.on_error(_ME, TransportError.bad_response(RawResponse(403))))
    asyncio.run(auth.on_error(_ME, TransportError(FailureKind.CONNECT_TIMEOUT)))
    assert store.get_token() == "abc123"


class _ThreadRecordingStore(InMemoryTokenStore):
    def __init__(self, access_token: str) -> None:
        super().__init__(access_token=access_token)
        self.threads: list[int] = []

    @override
    def get_token(self) -> str | None:
        self.threads.append(threading.get_ident())
        return super().get_token()

    @override
    def clear_token(self) -> None:
        self.threads.append(threading.get_ident())
        super().clear_token()


def test_token_store_is_read_off_the_event_loop_thread() -> None:
    store = _ThreadRecordingStore("abc123")
    auth = AuthInterceptor(store)
    failure = TransportError.bad_response(RawResponse(status_code=401))

    async def exchange() -> int:
        await auth.on_request(_ME)
        await auth.on_error(_ME, failure)
        return threading.get_ident()

    loop_thread = asyncio.run(exchange())

    assert len(store.threads) == 2
    assert loop_thread not in store.threads
    assert store.get_token() is None
