"""Caller-facing API client.

Usage example:
    from starter_network.composition import build_api_client
    from starter_network.config import NetworkConfig
    from starter_network.network.client import decode_as

    async with build_api_client(NetworkConfig.from_env()) as client:
        response = await client.get("/users/me", decode=decode_as(User))
        user = response.data
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from types import TracebackType
from typing import Self, cast

from pydantic import TypeAdapter

from ..exceptions import AppError, ErrorCode, UnknownError
from ..types import (
    ApiResponse,
    CancelToken,
    HttpMethod,
    MultipartBody,
    ProgressCallback,
    RawResponse,
    RequestDescriptor,
    RequestOptions,
)
from .pipeline import RequestPipeline

DEFAULT_HEADERS: Mapping[str, str] = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

type Decoder[T] = Callable[[object], T]


def decode_as[T](schema: type[T]) -> Decoder[T]:
    """Build a decode function that validates `data` against a pydantic-compatible type."""
    adapter = TypeAdapter(schema)
    return adapter.validate_python


class ApiClient:
    """Asynchronous HTTP client returning `ApiResponse` envelopes.

    Every failure surfaces as an `AppError` subclass; retries happen
    transparently inside the pipeline.
    """

    def __init__(
        self,
        pipeline: RequestPipeline,
        *,
        base_url: str,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._base_url = base_url
        self._headers = dict(DEFAULT_HEADERS if headers is None else headers)

    @property
    def pipeline(self) -> RequestPipeline:
        return self._pipeline

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    def update_base_url(self, base_url: str) -> None:
        self._base_url = base_url

    def update_headers(self, headers: Mapping[str, str]) -> None:
        self._headers.update(headers)

    def clear_headers(self) -> None:
        """Reset headers back to the JSON defaults."""
        self._headers = dict(DEFAULT_HEADERS)

    def close(self) -> None:
        self._pipeline.close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    async def get[T](
        self,
        path: str,
        *,
        query: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
        options: RequestOptions | None = None,
        cancel_token: CancelToken | None = None,
        decode: Decoder[T] | None = None,
    ) -> ApiResponse[T]:
        return await self.request(
            HttpMethod.GET,
            path,
            query=query,
            headers=headers,
            options=options,
            cancel_token=cancel_token,
            decode=decode,
        )

    async def post[T](
        self,
        path: str,
        body: object = None,
        *,
        query: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
        options: RequestOptions | None = None,
        cancel_token: CancelToken | None = None,
        decode: Decoder[T] | None = None,
    ) -> ApiResponse[T]:
        return await self.request(
            HttpMethod.POST,
            path,
            body=body,
            query=query,
            headers=headers,
            options=options,
            cancel_token=cancel_token,
            decode=decode,
        )

    async def put[T](
        self,
        path: str,
        body: object = None,
        *,
        query: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
        options: RequestOptions | None = None,
        cancel_token: CancelToken | None = None,
        decode: Decoder[T] | None = None,
    ) -> ApiResponse[T]:
        return await self.request(
            HttpMethod.PUT,
            path,
            body=body,
            query=query,
            headers=headers,
            options=options,
            cancel_token=cancel_token,
            decode=decode,
        )

    async def patch[T](
        self,
        path: str,
        body: object = None,
        *,
        query: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
        options: RequestOptions | None = None,
        cancel_token: CancelToken | None = None,
        decode: Decoder[T] | None = None,
    ) -> ApiResponse[T]:
        return await self.request(
            HttpMethod.PATCH,
            path,
            body=body,
            query=query,
            headers=headers,
            options=options,
            cancel_token=cancel_token,
            decode=decode,
        )

    async def delete[T](
        self,
        path: str,
        body: object = None,
        *,
        query: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
        options: RequestOptions | None = None,
        cancel_token: CancelToken | None = None,
        decode: Decoder[T] | None = None,
    ) -> ApiResponse[T]:
        return await self.request(
            HttpMethod.DELETE,
            path,
            body=body,
            query=query,
            headers=headers,
            options=options,
            cancel_token=cancel_token,
            decode=decode,
        )

    async def upload[T](
        self,
        path: str,
        form: MultipartBody,
        *,
        query: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
        options: RequestOptions | None = None,
        cancel_token: CancelToken | None = None,
        on_send_progress: ProgressCallback | None = None,
        decode: Decoder[T] | None = None,
    ) -> ApiResponse[T]:
        """POST a multipart form, reporting upload progress."""
        return await self.request(
            HttpMethod.POST,
            path,
            body=form,
            query=query,
            headers=headers,
            options=options,
            cancel_token=cancel_token,
            decode=decode,
            on_send_progress=on_send_progress,
        )

    async def download(
        self,
        path: str,
        save_path: Path,
        *,
        query: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
        options: RequestOptions | None = None,
        cancel_token: CancelToken | None = None,
        on_receive_progress: ProgressCallback | None = None,
    ) -> RawResponse:
        """Stream `path` to `save_path` and return the raw response."""
        descriptor = self._descriptor(
            HttpMethod.GET,
            path,
            query=query,
            headers=headers,
            options=options,
            cancel_token=cancel_token,
            save_path=Path(save_path),
            on_receive_progress=on_receive_progress,
        )
        return await self._pipeline.execute(descriptor)

    async def request[T](
        self,
        method: str,
        path: str,
        *,
        body: object = None,
        query: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
        options: RequestOptions | None = None,
        cancel_token: CancelToken | None = None,
        decode: Decoder[T] | None = None,
        on_send_progress: ProgressCallback | None = None,
    ) -> ApiResponse[T]:
        """Send any request and decode its body into an envelope.

        Raises:
            AppError: When the request fails after retries, or `decode` rejects the body.
        """
        descriptor = self._descriptor(
            method,
            path,
            body=body,
            query=query,
            headers=headers,
            options=options,
            cancel_token=cancel_token,
            on_send_progress=on_send_progress,
        )
        response = await self._pipeline.execute(descriptor)
        return handle_response(response, decode)

    def _descriptor(
        self,
        method: str,
        path: str,
        *,
        body: object = None,
        query: Mapping[str, object] | None,
        headers: Mapping[str, str] | None,
        options: RequestOptions | None,
        cancel_token: CancelToken | None,
        save_path: Path | None = None,
        on_send_progress: ProgressCallback | None = None,
        on_receive_progress: ProgressCallback | None = None,
    ) -> RequestDescriptor:
        merged = {**self._headers, **(headers or {})}
        return RequestDescriptor(
            method=str(method).upper(),
            path=path,
            base_url=self._base_url,
            query=dict(query or {}),
            body=body,
            headers=merged,
            options=options or RequestOptions(),
            cancel_token=cancel_token,
            save_path=save_path,
            on_send_progress=on_send_progress,
            on_receive_progress=on_receive_progress,
        )


def handle_response[T](response: RawResponse, decode: Decoder[T] | None) -> ApiResponse[T]:
    """Turn a successful raw response into an envelope.

    Bodies shaped like `{data, success, ...}` are unwrapped; anything else is
    treated as the payload itself.

    Any failure inside `decode`, other than an `AppError`, is reported as a
    `PARSE_ERROR`.
    """
    body = response.body
    try:
        if isinstance(body, Mapping) and ("data" in body or "success" in body):
            return ApiResponse.from_json(body, decode, status_code=response.status_code)
        data = decode(body) if decode is not None and body is not None else body
    except AppError:
        raise
    except Exception as exc:
        raise UnknownError(
            "Failed to parse response data", code=ErrorCode.PARSE_ERROR, details=str(exc)
        ) from exc
    return ApiResponse(
        success=True,
        data=cast("T", data),
        message="Request successful",
        status_code=response.status_code,
    )
