"""Requests-backed transport.

Usage example:
    import requests

    from starter_network.infrastructure.transport import RequestsTransport

    transport = RequestsTransport(session=requests.Session(), connect_timeout_seconds=10)
    response = await transport.send(RequestDescriptor("GET", "https://api.example.com/users/1"))
"""

from __future__ import annotations

import asyncio
import contextlib
import io
from collections.abc import Mapping
from pathlib import Path
from typing import override

import requests
from urllib3.exceptions import ReadTimeoutError
from urllib3.filepost import encode_multipart_formdata

from ..exceptions import TransportError
from ..protocols import Transport
from ..types import (
    FailureKind,
    MultipartBody,
    ProgressCallback,
    RawResponse,
    RequestDescriptor,
)

DEFAULT_CHUNK_SIZE = 64 * 1024


def to_transport_error(error: requests.RequestException) -> TransportError:
    """Classify a requests exception into a failure kind."""
    message = str(error) or type(error).__name__
    if isinstance(error, requests.exceptions.ConnectTimeout):
        return TransportError(FailureKind.CONNECT_TIMEOUT, message)
    if isinstance(error, requests.exceptions.ReadTimeout):
        return TransportError(FailureKind.RECEIVE_TIMEOUT, message)
    if isinstance(error, requests.exceptions.Timeout):
        return TransportError(FailureKind.SEND_TIMEOUT, message)
    if isinstance(error, requests.exceptions.SSLError):
        return TransportError(FailureKind.BAD_CERTIFICATE, message)
    if isinstance(error, requests.exceptions.ConnectionError):
        # Streaming reads surface urllib3 read timeouts wrapped in ConnectionError.
        cause = error.args[0] if error.args else None
        if isinstance(cause, ReadTimeoutError):
            return TransportError(FailureKind.RECEIVE_TIMEOUT, message)
        return TransportError(FailureKind.CONNECTION_ERROR, message)
    return TransportError(FailureKind.UNKNOWN, message)


def decode_body(response: requests.Response) -> object:
    """Return parsed JSON when possible, else text; None for an empty body."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class _ProgressReader(io.BytesIO):
    """In-memory body that reports how much of itself has been read."""

    def __init__(self, data: bytes, callback: ProgressCallback) -> None:
        super().__init__(data)
        self._total = len(data)
        self._sent = 0
        self._callback = callback

    @override
    def read(self, size: int | None = -1) -> bytes:
        chunk = super().read(size)
        if chunk:
            self._sent += len(chunk)
            self._callback(self._sent, self._total)
        return chunk


def _cancelled() -> TransportError:
    return TransportError(FailureKind.CANCEL, "Request was cancelled")


class RequestsTransport(Transport):
    """Transport that sends each attempt through a `requests.Session`.

    Blocking I/O runs in a worker thread so the event loop stays free while a
    request is in flight.
    """

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        connect_timeout_seconds: float = 30.0,
        send_timeout_seconds: float = 30.0,
        receive_timeout_seconds: float = 30.0,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._session = session or requests.Session()
        self.connect_timeout_seconds = connect_timeout_seconds
        self.send_timeout_seconds = send_timeout_seconds
        self.receive_timeout_seconds = receive_timeout_seconds
        self.chunk_size = chunk_size

    @override
    async def send(self, request: RequestDescriptor) -> RawResponse:
        if request.is_cancelled:
            raise _cancelled()
        return await asyncio.to_thread(self._send_blocking, request)

    @override
    def close(self) -> None:
        self._session.close()

    def timeout_for(self, request: RequestDescriptor) -> tuple[float, float]:
        """Return the (connect, read) timeout pair requests expects.

        requests has no separate write timeout, so for requests with a body the
        read timeout is widened to cover the send timeout.
        """
        options = request.options
        connect = options.connect_timeout_seconds or self.connect_timeout_seconds
        receive = options.receive_timeout_seconds or self.receive_timeout_seconds
        if request.body is not None:
            send = options.send_timeout_seconds or self.send_timeout_seconds
            receive = max(receive, send)
        return (connect, receive)

    def _send_blocking(self, request: RequestDescriptor) -> RawResponse:
        headers = {**request.options.headers, **request.headers}
        data: bytes | _ProgressReader | None = None
        json_body: object = None
        body = request.body
        if isinstance(body, MultipartBody):
            payload, content_type = _encode_multipart(body)
            headers = {key: val for key, val in headers.items() if key.lower() != "content-type"}
            headers["Content-Type"] = content_type
            data = _wrap_progress(payload, request.on_send_progress)
        elif isinstance(body, (bytes, bytearray)):
            data = _wrap_progress(bytes(body), request.on_send_progress)
        elif isinstance(body, str):
            data = body.encode("utf-8")
        elif body is not None:
            json_body = body

        try:
            response = self._session.request(
                request.method,
                request.url,
                params=dict(request.query) or None,
                data=data,
                json=json_body,
                headers=headers,
                timeout=self.timeout_for(request),
                stream=request.is_download,
            )
        except requests.RequestException as exc:
            raise to_transport_error(exc) from exc

        try:
            response_headers = dict(response.headers)
            if request.save_path is not None and response.status_code < 400:
                self._stream_to_file(response, request, request.save_path)
                return RawResponse(
                    status_code=response.status_code,
                    headers=response_headers,
                    body=None,
                    url=response.url,
                )
            try:
                content = decode_body(response)
            except requests.RequestException as exc:
                raise to_transport_error(exc) from exc
            return RawResponse(
                status_code=response.status_code,
                headers=response_headers,
                body=content,
                url=response.url,
            )
        finally:
            response.close()

    def _stream_to_file(
        self, response: requests.Response, request: RequestDescriptor, save_path: Path
    ) -> None:
        total = _content_length(response.headers)
        partial = save_path.with_name(save_path.name + ".part")
        received = 0
        try:
            save_path.parent.mkdir(parents=True, exist_ok=True)
            with partial.open("wb") as handle:
                for chunk in response.iter_content(chunk_size=self.chunk_size):
                    if request.is_cancelled:
                        raise _cancelled()
                    if not chunk:
                        continue
                    handle.write(chunk)
                    received += len(chunk)
                    if request.on_receive_progress is not None:
                        request.on_receive_progress(received, total)
            partial.replace(save_path)
        except requests.RequestException as exc:
            _discard(partial)
            raise to_transport_error(exc) from exc
        except TransportError:
            _discard(partial)
            raise
        except OSError as exc:
            _discard(partial)
            message = f"Could not save {save_path}: {exc}"
            raise TransportError(FailureKind.UNKNOWN, message) from exc


def _discard(partial: Path) -> None:
    """Remove a partial download; the original failure is what gets reported."""
    with contextlib.suppress(OSError):
        partial.unlink(missing_ok=True)


def _encode_multipart(body: MultipartBody) -> tuple[bytes, str]:
    parts: list[tuple[str, str | tuple[str, bytes, str]]] = list(body.fields.items())
    for name, upload in body.files.items():
        parts.append((name, (upload.filename, upload.content, upload.content_type)))
    return encode_multipart_formdata(parts)


def _wrap_progress(payload: bytes, callback: ProgressCallback | None) -> bytes | _ProgressReader:
    if callback is None:
        return payload
    return _ProgressReader(payload, callback)


def _content_length(headers: Mapping[str, str]) -> int | None:
    value = headers.get("Content-Length")
    if value is None or not value.strip().isdigit():
        return None
    return int(value)
