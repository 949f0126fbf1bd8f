"""Custom exceptions for starter_network.

Callers only ever see `AppError` subclasses from a client call: `NetworkError`,
`ValidationError` or `UnknownError`. `TransportError` is the raw failure a
transport raises and never leaves the request pipeline.
"""

from __future__ import annotations

from enum import StrEnum

from .types import FailureKind, RawResponse


class ErrorCode(StrEnum):
    """Machine-readable codes carried by typed errors."""

    TIMEOUT = "TIMEOUT"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    SERVER_ERROR = "SERVER_ERROR"
    CLIENT_ERROR = "CLIENT_ERROR"
    NO_CONNECTION = "NO_CONNECTION"
    BAD_CERTIFICATE = "BAD_CERTIFICATE"
    REQUEST_CANCELLED = "REQUEST_CANCELLED"
    NETWORK_ERROR = "NETWORK_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"
    UNKNOWN = "UNKNOWN"


class AppError(Exception):
    """Base class for typed errors surfaced to callers.

    Attributes are read-only once the error is constructed.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message)
        self._message = message
        self._code = code
        self._status_code = status_code
        self._details = details

    @property
    def message(self) -> str:
        return self._message

    @property
    def code(self) -> str | None:
        return self._code

    @property
    def status_code(self) -> int | None:
        return self._status_code

    @property
    def details(self) -> str | None:
        return self._details

    @property
    def user_message(self) -> str:
        """Message suitable for showing to an end user."""
        return self._message

    @property
    def is_retryable(self) -> bool:
        return False

    @property
    def requires_auth(self) -> bool:
        return False

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self._message!r}, code={self._code!r}, "
            f"status_code={self._status_code!r})"
        )


_NETWORK_USER_MESSAGES: dict[str, str] = {
    ErrorCode.NO_CONNECTION: "Please check your internet connection and try again.",
    ErrorCode.TIMEOUT: "The request took too long. Please try again.",
    ErrorCode.UNAUTHORIZED: "Please log in to continue.",
    ErrorCode.FORBIDDEN: "You don't have permission to access this resource.",
    ErrorCode.NOT_FOUND: "The requested resource was not found.",
    ErrorCode.SERVER_ERROR: "Server error. Please try again later.",
    ErrorCode.BAD_CERTIFICATE: "Security certificate error. Please contact support.",
    ErrorCode.REQUEST_CANCELLED: "The request was cancelled.",
}

_RETRYABLE_NETWORK_CODES = frozenset(
    {ErrorCode.NO_CONNECTION, ErrorCode.TIMEOUT, ErrorCode.SERVER_ERROR}
)


class NetworkError(AppError):
    """Transport or HTTP-status failure."""

    @classmethod
    def timeout(cls) -> NetworkError:
        return cls("Request timed out", code=ErrorCode.TIMEOUT)

    @classmethod
    def unauthorized(cls) -> NetworkError:
        return cls("Unauthorized access", code=ErrorCode.UNAUTHORIZED, status_code=401)

    @classmethod
    def forbidden(cls) -> NetworkError:
        return cls("Access forbidden", code=ErrorCode.FORBIDDEN, status_code=403)

    @classmethod
    def not_found(cls) -> NetworkError:
        return cls("Resource not found", code=ErrorCode.NOT_FOUND, status_code=404)

    @classmethod
    def server_error(cls, status_code: int | None = None) -> NetworkError:
        return cls("Server error occurred", code=ErrorCode.SERVER_ERROR, status_code=status_code)

    @classmethod
    def no_connection(cls) -> NetworkError:
        return cls("No internet connection available", code=ErrorCode.NO_CONNECTION)

    @classmethod
    def bad_certificate(cls) -> NetworkError:
        return cls(
            "Certificate error. Please check your connection security.",
            code=ErrorCode.BAD_CERTIFICATE,
        )

    @classmethod
    def cancelled(cls) -> NetworkError:
        return cls("Request was cancelled", code=ErrorCode.REQUEST_CANCELLED)

    @property
    def user_message(self) -> str:
        if self.code is not None and self.code in _NETWORK_USER_MESSAGES:
            return _NETWORK_USER_MESSAGES[self.code]
        if self.status_code == 429:
            return "Too many requests. Please wait a moment and try again."
        if self.status_code is not None and 400 <= self.status_code < 500:
            return "Request error. Please check your input and try again."
        return "Network error occurred. Please try again."

    @property
    def is_retryable(self) -> bool:
        if self.code in _RETRYABLE_NETWORK_CODES:
            return True
        return self.status_code in (408, 429)

    @property
    def requires_auth(self) -> bool:
        return self.code == ErrorCode.UNAUTHORIZED


class ValidationError(AppError):
    """Client-supplied data was rejected."""

    def __init__(
        self,
        message: str = "Invalid request data",
        *,
        field: str | None = None,
        status_code: int | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(
            message,
            code=ErrorCode.VALIDATION_ERROR,
            status_code=status_code,
            details=details,
        )
        self._field = field

    @property
    def field(self) -> str | None:
        return self._field


class UnknownError(AppError):
    """Catch-all for failures that fit no other category."""

    def __init__(
        self,
        message: str = "An unknown error occurred",
        *,
        code: str | None = ErrorCode.UNKNOWN,
        details: str | None = None,
    ) -> None:
        super().__init__(message, code=code, details=details)

    @property
    def user_message(self) -> str:
        return "An unexpected error occurred. Please try again."


class TokenStorageError(UnknownError):
    """Raised when the token store cannot be read or written."""

    def __init__(self, action: str, details: str | None = None) -> None:
        super().__init__(
            f"Failed to {action} token storage",
            code=ErrorCode.STORAGE_ERROR,
            details=details,
        )


class TransportError(Exception):
    """Raw failure raised by a transport for one attempt."""

    def __init__(
        self,
        kind: FailureKind,
        message: str | None = None,
        *,
        response: RawResponse | None = None,
    ) -> None:
        self.kind = kind
        self.message = message
        self.response = response
        super().__init__(message or str(kind))

    @property
    def status_code(self) -> int | None:
        if self.response is None:
            return None
        return self.response.status_code

    @classmethod
    def bad_response(cls, response: RawResponse) -> TransportError:
        return cls(
            FailureKind.BAD_RESPONSE,
            f"Request failed with status code {response.status_code}",
            response=response,
        )


class ConfigError(Exception):
    """Base exception for configuration problems."""


class ConfigFileNotFoundError(ConfigError):
    """Raised when a config file path does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Config file not found: {path}")


class ConfigFileParseError(ConfigError):
    """Raised when a config file is not valid TOML."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Config file {path} could not be parsed: {reason}")


class ConfigFileValidationError(ConfigError):
    """Raised when a config file fails schema validation."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Config file {path} is invalid: {reason}")
