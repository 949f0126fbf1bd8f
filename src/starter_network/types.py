"""Typed data contracts shared by the request pipeline and its callers."""

from __future__ import annotations

import asyncio
import math
import mimetypes
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from pathlib import Path
from typing import Self, cast

ProgressCallback = Callable[[int, int | None], None]
"""Progress hook called with (bytes_done, bytes_total); total is None when unknown."""


class HttpMethod(StrEnum):
    """HTTP verbs supported by the pipeline."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class FailureKind(StrEnum):
    """Transport-level failure tags raised by a Transport."""

    CONNECT_TIMEOUT = "connect_timeout"
    SEND_TIMEOUT = "send_timeout"
    RECEIVE_TIMEOUT = "receive_timeout"
    BAD_RESPONSE = "bad_response"
    CANCEL = "cancel"
    CONNECTION_ERROR = "connection_error"
    BAD_CERTIFICATE = "bad_certificate"
    UNKNOWN = "unknown"


TIMEOUT_KINDS: frozenset[FailureKind] = frozenset(
    {FailureKind.CONNECT_TIMEOUT, FailureKind.SEND_TIMEOUT, FailureKind.RECEIVE_TIMEOUT}
)


class CancelToken:
    """Cooperative cancellation handle for a single request.

    Call `cancel()` from the event loop thread. The transport worker thread may
    poll `is_cancelled` between chunks.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str | None = None) -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass(frozen=True)
class UploadFile:
    """A single file part of a multipart upload."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @classmethod
    def from_path(cls, path: Path, *, content_type: str | None = None) -> Self:
        guessed, _ = mimetypes.guess_type(path.name)
        return cls(
            filename=path.name,
            content=path.read_bytes(),
            content_type=content_type or guessed or "application/octet-stream",
        )


@dataclass(frozen=True)
class MultipartBody:
    """Form fields and files sent as multipart/form-data."""

    fields: Mapping[str, str] = field(default_factory=dict)
    files: Mapping[str, UploadFile] = field(default_factory=dict)


@dataclass(frozen=True)
class RequestOptions:
    """Per-request overrides applied on top of client defaults."""

    connect_timeout_seconds: float | None = None
    send_timeout_seconds: float | None = None
    receive_timeout_seconds: float | None = None
    max_attempts: int | None = None
    skip_auth: bool = False
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RequestDescriptor:
    """Everything needed to send one logical request, across all of its attempts.

    A descriptor is never mutated: stages derive new descriptors with
    `with_header()` and the retry loop with `next_attempt()`.
    """

    method: str
    path: str
    base_url: str = ""
    query: Mapping[str, object] = field(default_factory=dict)
    body: object = None
    headers: Mapping[str, str] = field(default_factory=dict)
    options: RequestOptions = field(default_factory=RequestOptions)
    attempt: int = 0
    cancel_token: CancelToken | None = None
    save_path: Path | None = None
    on_send_progress: ProgressCallback | None = None
    on_receive_progress: ProgressCallback | None = None

    @property
    def url(self) -> str:
        """Absolute URL; absolute paths ignore the base URL."""
        if self.path.startswith(("http://", "https://")) or not self.base_url:
            return self.path
        return f"{self.base_url.rstrip('/')}/{self.path.lstrip('/')}"

    @property
    def is_download(self) -> bool:
        return self.save_path is not None

    @property
    def is_cancelled(self) -> bool:
        return self.cancel_token is not None and self.cancel_token.is_cancelled

    def with_header(self, name: str, value: str) -> Self:
        headers = {key: val for key, val in self.headers.items() if key.lower() != name.lower()}
        headers[name] = value
        return replace(self, headers=headers)

    def without_header(self, name: str) -> Self:
        headers = {key: val for key, val in self.headers.items() if key.lower() != name.lower()}
        return replace(self, headers=headers)

    def next_attempt(self) -> Self:
        return replace(self, attempt=self.attempt + 1)


@dataclass(frozen=True)
class RawResponse:
    """Transport-level response before envelope decoding."""

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: object = None
    url: str = ""

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


@dataclass(frozen=True)
class Pagination:
    """Pagination details attached to list responses."""

    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_previous_page: bool

    @classmethod
    def from_params(cls, *, current_page: int, total_items: int, items_per_page: int) -> Self:
        total_pages = math.ceil(total_items / items_per_page) if items_per_page > 0 else 0
        return cls(
            current_page=current_page,
            total_pages=total_pages,
            total_items=total_items,
            items_per_page=items_per_page,
            has_next_page=current_page < total_pages,
            has_previous_page=current_page > 1,
        )

    @classmethod
    def empty(cls) -> Self:
        return cls(
            current_page=1,
            total_pages=0,
            total_items=0,
            items_per_page=0,
            has_next_page=False,
            has_previous_page=False,
        )

    @classmethod
    def from_json(cls, payload: Mapping[str, object]) -> Self:
        return cls(
            current_page=_int_or(payload.get("currentPage"), 1),
            total_pages=_int_or(payload.get("totalPages"), 0),
            total_items=_int_or(payload.get("totalItems"), 0),
            items_per_page=_int_or(payload.get("itemsPerPage"), 0),
            has_next_page=payload.get("hasNextPage") is True,
            has_previous_page=payload.get("hasPreviousPage") is True,
        )

    def to_json(self) -> dict[str, object]:
        return {
            "currentPage": self.current_page,
            "totalPages": self.total_pages,
            "totalItems": self.total_items,
            "itemsPerPage": self.items_per_page,
            "hasNextPage": self.has_next_page,
            "hasPreviousPage": self.has_previous_page,
        }

    @property
    def next_page(self) -> int | None:
        return self.current_page + 1 if self.has_next_page else None

    @property
    def previous_page(self) -> int | None:
        return self.current_page - 1 if self.has_previous_page else None


@dataclass(frozen=True)
class ApiResponse[T]:
    """Uniform success envelope returned by every client call."""

    success: bool
    data: T | None = None
    message: str | None = None
    status_code: int | None = None
    metadata: Mapping[str, object] | None = None

    @classmethod
    def from_json(
        cls,
        payload: Mapping[str, object],
        decode: Callable[[object], T] | None = None,
        *,
        status_code: int | None = None,
    ) -> ApiResponse[T]:
        """Unwrap a `{success, data, message, ...}` body.

        `success` defaults to true when absent. The HTTP status is used when the
        body carries no `status_code` of its own.
        """
        raw_success = payload.get("success")
        success = True if raw_success is None else bool(raw_success)
        raw_data = payload.get("data")
        data: object = raw_data
        if success and raw_data is not None and decode is not None:
            data = decode(raw_data)
        message = payload.get("message")
        body_status = payload.get("status_code")
        metadata = payload.get("metadata")
        return ApiResponse(
            success=success,
            data=cast("T | None", data),
            message=message if isinstance(message, str) else None,
            status_code=body_status if isinstance(body_status, int) else status_code,
            metadata=metadata if isinstance(metadata, Mapping) else None,
        )

    @property
    def has_data(self) -> bool:
        return self.success and self.data is not None

    @property
    def has_error(self) -> bool:
        return not self.success

    @property
    def pagination(self) -> Pagination | None:
        if self.metadata is None:
            return None
        raw = self.metadata.get("pagination")
        if isinstance(raw, Mapping):
            return Pagination.from_json(raw)
        return None

    def error_message(self, default: str = "Unknown error occurred") -> str:
        return self.message or default

    def data_or(self, default: T) -> T:
        if self.has_data and self.data is not None:
            return self.data
        return default


def _int_or(value: object, default: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return default
