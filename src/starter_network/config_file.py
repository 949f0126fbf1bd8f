"""Typed parsing and validation for network config files."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .exceptions import ConfigFileNotFoundError, ConfigFileParseError, ConfigFileValidationError

_SCHEMA_VERSION = 1
_ENVIRONMENTS = frozenset({"dev", "staging", "prod"})


@dataclass(frozen=True)
class NetworkConfigFile:
    """Validated network config values loaded from a TOML file."""

    environment: str | None = None
    base_url: str | None = None
    connect_timeout_seconds: float | None = None
    send_timeout_seconds: float | None = None
    receive_timeout_seconds: float | None = None
    max_attempts: int | None = None
    base_delay_seconds: float | None = None
    max_delay_seconds: float | None = None
    respect_retry_after: bool | None = None
    debug: bool | None = None
    token_path: str | None = None


class _NetworkSectionModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    environment: str | None = None
    base_url: str | None = None
    connect_timeout_seconds: float | None = None
    send_timeout_seconds: float | None = None
    receive_timeout_seconds: float | None = None
    max_attempts: int | None = None
    base_delay_seconds: float | None = None
    max_delay_seconds: float | None = None
    respect_retry_after: bool | None = None
    debug: bool | None = None
    token_path: str | None = None

    @field_validator("environment")
    @classmethod
    def _validate_environment(cls, value: str | None) -> str | None:
        if value is None:
            return None
        name = value.strip().lower()
        if name not in _ENVIRONMENTS:
            raise ValueError
        return name

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        url = value.strip()
        if not url.startswith(("http://", "https://")):
            raise ValueError
        return url

    @field_validator("token_path")
    @classmethod
    def _validate_non_empty_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = value.strip()
        if not text:
            raise ValueError
        return text

    @field_validator(
        "connect_timeout_seconds",
        "send_timeout_seconds",
        "receive_timeout_seconds",
        "max_delay_seconds",
    )
    @classmethod
    def _validate_positive_seconds(cls, value: float | None) -> float | None:
        if value is None:
            return None
        if value <= 0:
            raise ValueError
        return value

    @field_validator("base_delay_seconds")
    @classmethod
    def _validate_non_negative_seconds(cls, value: float | None) -> float | None:
        if value is None:
            return None
        if value < 0:
            raise ValueError
        return value

    @field_validator("max_attempts")
    @classmethod
    def _validate_max_attempts(cls, value: int | None) -> int | None:
        if value is None:
            return None
        if value < 0:
            raise ValueError
        return value


class _ConfigFileModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: int
    network: _NetworkSectionModel

    @field_validator("schema_version")
    @classmethod
    def _validate_schema_version(cls, value: int) -> int:
        if value != _SCHEMA_VERSION:
            raise ValueError
        return value


def _format_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ("<root>",)))
    message = str(first.get("msg", "invalid value"))
    return f"{location}: {message}"


def load_network_config_file(path: Path) -> NetworkConfigFile:
    """Load and validate a network TOML config file."""
    if not path.exists():
        raise ConfigFileNotFoundError(str(path))

    raw_payload = path.read_text(encoding="utf-8")
    try:
        payload: object = tomllib.loads(raw_payload)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigFileParseError(str(path), str(exc)) from exc

    try:
        model = _ConfigFileModel.model_validate(payload)
    except ValidationError as exc:
        raise ConfigFileValidationError(str(path), _format_validation_error(exc)) from exc

    section = model.network
    return NetworkConfigFile(
        environment=section.environment,
        base_url=section.base_url,
        connect_timeout_seconds=section.connect_timeout_seconds,
        send_timeout_seconds=section.send_timeout_seconds,
        receive_timeout_seconds=section.receive_timeout_seconds,
        max_attempts=section.max_attempts,
        base_delay_seconds=section.base_delay_seconds,
        max_delay_seconds=section.max_delay_seconds,
        respect_retry_after=section.respect_retry_after,
        debug=section.debug,
        token_path=section.token_path,
    )
