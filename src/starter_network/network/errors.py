"""Conversion of raw transport failures into typed errors.

Usage example:
    from starter_network.network.errors import ErrorInterceptor

    errors = ErrorInterceptor()
    raise errors.convert(failure) from failure
"""

from __future__ import annotations

from collections.abc import Mapping

from ..exceptions import (
    AppError,
    ErrorCode,
    NetworkError,
    TransportError,
    UnknownError,
    ValidationError,
)
from ..types import TIMEOUT_KINDS, FailureKind, RawResponse

_MESSAGE_KEYS = ("message", "error", "detail", "msg", "error_description")


def extract_error_message(body: object) -> str | None:
    """Pull a human-readable message out of an error response body.

    Checks the common single-message keys first, then an `errors` map or
    list, and finally accepts a plain string body as-is.
    """
    if isinstance(body, str):
        return body or None
    if not isinstance(body, Mapping):
        return None
    for key in _MESSAGE_KEYS:
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    errors = body.get("errors")
    if isinstance(errors, Mapping) and errors:
        first = next(iter(errors.values()))
        if isinstance(first, list):
            return str(first[0]) if first else None
        if isinstance(first, str):
            return first
        return None
    if isinstance(errors, list) and errors:
        first = errors[0]
        if isinstance(first, Mapping):
            message = first.get("message")
            return message if isinstance(message, str) else None
        return str(first)
    return None


class ErrorInterceptor:
    """Error boundary of the pipeline: every failure leaves as one `AppError`."""

    def convert(self, failure: TransportError) -> AppError:
        kind = failure.kind
        if kind in TIMEOUT_KINDS:
            return NetworkError.timeout()
        if kind is FailureKind.CANCEL:
            return NetworkError.cancelled()
        if kind is FailureKind.CONNECTION_ERROR:
            return NetworkError.no_connection()
        if kind is FailureKind.BAD_CERTIFICATE:
            return NetworkError.bad_certificate()
        if kind is FailureKind.BAD_RESPONSE and failure.response is not None:
            return self.from_response(failure.response)
        return UnknownError(failure.message or "An unknown error occurred")

    def from_response(self, response: RawResponse) -> AppError:
        status = response.status_code
        message = extract_error_message(response.body)
        if status == 400:
            return ValidationError(message or "Invalid request data", status_code=400)
        if status == 401:
            return NetworkError.unauthorized()
        if status == 403:
            return NetworkError.forbidden()
        if status == 404:
            return NetworkError.not_found()
        if 400 <= status < 500:
            return NetworkError(
                message or "Client error occurred",
                code=ErrorCode.CLIENT_ERROR,
                status_code=status,
            )
        if status >= 500:
            return NetworkError.server_error(status)
        return NetworkError(
            message or "Network error occurred",
            code=ErrorCode.NETWORK_ERROR,
            status_code=status,
        )
