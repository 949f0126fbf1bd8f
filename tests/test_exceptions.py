"""Tests for the typed error hierarchy."""

import pytest

from starter_network.exceptions import (
    AppError,
    ConfigFileNotFoundError,
    ConfigFileParseError,
    ConfigFileValidationError,
    ErrorCode,
    NetworkError,
    TokenStorageError,
    TransportError,
    UnknownError,
    ValidationError,
)
from starter_network.types import FailureKind, RawResponse


def test_attributes_are_read_only() -> None:
    error = NetworkError.not_found()
    with pytest.raises(AttributeError):
        setattr(error, "message", "changed")


@pytest.mark.parametrize(
    ("error", "code", "status", "message"),
    [
        (NetworkError.timeout(), ErrorCode.TIMEOUT, None, "Request timed out"),
        (NetworkError.unauthorized(), ErrorCode.UNAUTHORIZED, 401, "Unauthorized access"),
        (NetworkError.forbidden(), ErrorCode.FORBIDDEN, 403, "Access forbidden"),
        (NetworkError.not_found(), ErrorCode.NOT_FOUND, 404, "Resource not found"),
        (NetworkError.server_error(502), ErrorCode.SERVER_ERROR, 502, "Server error occurred"),
        (
            NetworkError.no_connection(),
            ErrorCode.NO_CONNECTION,
            None,
            "No internet connection available",
        ),
        (NetworkError.cancelled(), ErrorCode.REQUEST_CANCELLED, None, "Request was cancelled"),
    ],
)
def test_network_error_constructors(
    error: NetworkError, code: str, status: int | None, message: str
) -> None:
    assert error.code == code
    assert error.status_code == status
    assert error.message == message
    assert str(error) == message


@pytest.mark.parametrize(
    ("error", "retryable"),
    [
        (NetworkError.timeout(), True),
        (NetworkError.no_connection(), True),
        (NetworkError.server_error(500), True),
        (NetworkError("Too many", code=ErrorCode.CLIENT_ERROR, status_code=429), True),
        (NetworkError.forbidden(), False),
        (NetworkError.cancelled(), False),
        (ValidationError(), False),
        (UnknownError(), False),
    ],
)
def test_is_retryable(error: AppError, retryable: bool) -> None:
    assert error.is_retryable is retryable


def test_requires_auth_only_for_unauthorized() -> None:
    assert NetworkError.unauthorized().requires_auth is True
    assert NetworkError.forbidden().requires_auth is False
    assert ValidationError().requires_auth is False


def test_user_messages() -> None:
    assert NetworkError.unauthorized().user_message == "Please log in to continue."
    too_many = NetworkError("x", code=ErrorCode.CLIENT_ERROR, status_code=429)
    assert too_many.user_message.startswith("Too many requests")
    conflict = NetworkError("x", code=ErrorCode.CLIENT_ERROR, status_code=409)
    assert conflict.user_message.startswith("Request error")
    assert UnknownError("boom").user_message == "An unexpected error occurred. Please try again."
    assert ValidationError("Email is required").user_message == "Email is required"


def test_validation_error_defaults() -> None:
    error = ValidationError(field="email")
    assert error.message == "Invalid request data"
    assert error.code == ErrorCode.VALIDATION_ERROR
    assert error.field == "email"


def test_token_storage_error_is_unknown_error() -> None:
    error = TokenStorageError("write", "disk full")
    assert isinstance(error, UnknownError)
    assert error.code == ErrorCode.STORAGE_ERROR
    assert error.message == "Failed to write token storage"
    assert error.details == "disk full"


def test_repr_names_class_and_status() -> None:
    text = repr(NetworkError.forbidden())
    assert text.startswith("NetworkError(message='Access forbidden'")
    assert "status_code=403" in text


def test_transport_error_carries_response_status() -> None:
    response = RawResponse(status_code=503)
    failure = TransportError.bad_response(response)
    assert failure.kind is FailureKind.BAD_RESPONSE
    assert failure.status_code == 503
    assert failure.response is response
    assert "503" in str(failure)
    assert TransportError(FailureKind.CANCEL).status_code is None


def test_config_errors_name_the_path() -> None:
    assert "cfg.toml" in str(ConfigFileNotFoundError("cfg.toml"))
    assert "bad syntax" in str(ConfigFileParseError("cfg.toml", "bad syntax"))
    assert "network.x" in str(ConfigFileValidationError("cfg.toml", "network.x: extra"))
