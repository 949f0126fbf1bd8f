"""Debug logging of requests, responses and failures.

Usage example:
    from starter_network.network.http_logging import LoggingInterceptor

    logging_stage = LoggingInterceptor(enabled=config.debug)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import override

from ..exceptions import TransportError
from ..observability import get_logger
from ..protocols import Interceptor
from ..types import MultipartBody, RawResponse, RequestDescriptor

_MASKED = "***"
_SENSITIVE_HEADERS = frozenset({"authorization", "proxy-authorization", "cookie"})


def mask_headers(headers: Mapping[str, str]) -> dict[str, str]:
    return {
        key: (_MASKED if key.lower() in _SENSITIVE_HEADERS else value)
        for key, value in headers.items()
    }


def format_body(body: object) -> str:
    """Render a body for the log: pretty JSON where possible."""
    if body is None:
        return "<empty>"
    if isinstance(body, MultipartBody):
        return f"<multipart: {len(body.fields)} fields, {len(body.files)} files>"
    if isinstance(body, (bytes, bytearray)):
        return f"<{len(body)} bytes>"
    if isinstance(body, str):
        return body
    try:
        return json.dumps(body, indent=2, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return repr(body)


class LoggingInterceptor(Interceptor):
    """Log each exchange when enabled; a no-op otherwise."""

    def __init__(self, *, enabled: bool, logger: logging.Logger | None = None) -> None:
        self.enabled = enabled
        self._logger = logger or get_logger("starter_network.network.http")

    @override
    async def on_request(self, request: RequestDescriptor) -> RequestDescriptor | RawResponse:
        if self.enabled:
            self._logger.info(
                "REQUEST %s %s\nHeaders: %s\nQuery: %s\nBody: %s",
                request.method,
                request.url,
                format_body(mask_headers({**request.options.headers, **request.headers})),
                format_body(dict(request.query)),
                format_body(request.body),
            )
        return request

    @override
    async def on_response(self, request: RequestDescriptor, response: RawResponse) -> RawResponse:
        if self.enabled:
            self._logger.info(
                "RESPONSE %s %s [%s]\nHeaders: %s\nBody: %s",
                request.method,
                response.url or request.url,
                response.status_code,
                format_body(dict(response.headers)),
                format_body(response.body),
            )
        return response

    @override
    async def on_error(
        self, request: RequestDescriptor, failure: TransportError
    ) -> RawResponse | None:
        if self.enabled:
            body = failure.response.body if failure.response is not None else None
            self._logger.warning(
                "ERROR %s %s [%s] %s\nBody: %s",
                request.method,
                request.url,
                failure.status_code if failure.status_code is not None else failure.kind,
                failure.message or failure.kind,
                format_body(body),
            )
        return None
