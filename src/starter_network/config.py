"""Centralised, injectable configuration for the network layer."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Self

from dotenv import load_dotenv

from .config_file import NetworkConfigFile

ENVIRONMENT_BASE_URLS: dict[str, str] = {
    "dev": "https://api-dev.example.com",
    "staging": "https://api-staging.example.com",
    "prod": "https://api.example.com",
}
DEFAULT_TOKEN_PATH = "~/.config/starter-network/tokens.json"


class PositiveNumberEnvVarError(ValueError):
    """Raised when an environment variable must be a positive number."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a positive number.")


class NonNegativeIntegerEnvVarError(ValueError):
    """Raised when an environment variable must be a non-negative integer."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a non-negative integer.")


class BooleanEnvVarError(ValueError):
    """Raised when an environment variable must be a supported boolean."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a boolean value (true/false, 1/0, yes/no, on/off).")


class EnvironmentNameError(ValueError):
    """Raised when API_ENVIRONMENT names an unknown environment."""

    def __init__(self, value: str) -> None:
        choices = ", ".join(sorted(ENVIRONMENT_BASE_URLS))
        super().__init__(f"API_ENVIRONMENT must be one of {choices} (got {value!r}).")


@dataclass(frozen=True)
class NetworkConfig:
    """Immutable configuration for the API client.

    Load from environment with `NetworkConfig.from_env()` or construct directly for testing.
    """

    environment: str = "dev"
    base_url: str = ""  # overrides the environment's URL when set

    # Transport
    connect_timeout_seconds: float = 30.0
    send_timeout_seconds: float = 30.0
    receive_timeout_seconds: float = 30.0

    # Retry
    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0
    respect_retry_after: bool = True

    debug: bool = False
    token_path: str = DEFAULT_TOKEN_PATH

    @property
    def api_base_url(self) -> str:
        """Base URL requests are sent to."""
        if self.base_url:
            return self.base_url
        return ENVIRONMENT_BASE_URLS[self.environment]

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> Self:
        """Load configuration from environment variables.

        Args:
            dotenv_path: Optional path to .env file. If None, uses default .env discovery.

        Returns:
            NetworkConfig instance populated from environment.
        """
        load_dotenv(dotenv_path)

        return cls(
            environment=_parse_environment(os.getenv("API_ENVIRONMENT", "dev")),
            base_url=os.getenv("API_BASE_URL", "").strip(),
            connect_timeout_seconds=_parse_positive_float(
                os.getenv("API_CONNECT_TIMEOUT_SECONDS", "30"),
                env_name="API_CONNECT_TIMEOUT_SECONDS",
            ),
            send_timeout_seconds=_parse_positive_float(
                os.getenv("API_SEND_TIMEOUT_SECONDS", "30"),
                env_name="API_SEND_TIMEOUT_SECONDS",
            ),
            receive_timeout_seconds=_parse_positive_float(
                os.getenv("API_RECEIVE_TIMEOUT_SECONDS", "30"),
                env_name="API_RECEIVE_TIMEOUT_SECONDS",
            ),
            max_attempts=_parse_non_negative_int(
                os.getenv("API_MAX_ATTEMPTS", "3"), env_name="API_MAX_ATTEMPTS"
            ),
            base_delay_seconds=_parse_positive_float(
                os.getenv("API_BASE_DELAY_SECONDS", "1"), env_name="API_BASE_DELAY_SECONDS"
            ),
            max_delay_seconds=_parse_positive_float(
                os.getenv("API_MAX_DELAY_SECONDS", "30"), env_name="API_MAX_DELAY_SECONDS"
            ),
            respect_retry_after=_parse_bool(
                os.getenv("API_RESPECT_RETRY_AFTER", ""),
                env_name="API_RESPECT_RETRY_AFTER",
                default=True,
            ),
            debug=_parse_bool(os.getenv("API_DEBUG", ""), env_name="API_DEBUG", default=False),
            token_path=os.getenv("API_TOKEN_PATH", DEFAULT_TOKEN_PATH).strip(),
        )

    def with_overrides(
        self,
        *,
        environment: str | None = None,
        base_url: str | None = None,
        debug: bool | None = None,
        token_path: str | None = None,
        max_attempts: int | None = None,
    ) -> Self:
        """Return a new config with specified overrides (for CLI options)."""
        return replace(
            self,
            environment=self.environment
            if environment is None
            else _parse_environment(environment),
            base_url=self.base_url if base_url is None else base_url.strip(),
            debug=self.debug if debug is None else debug,
            token_path=self.token_path if token_path is None else token_path.strip(),
            max_attempts=self.max_attempts if max_attempts is None else max_attempts,
        )

    def with_file_overrides(self, file_config: NetworkConfigFile) -> Self:
        """Return a new config with config-file values overriding env/default values."""
        return replace(
            self,
            environment=self.environment
            if file_config.environment is None
            else file_config.environment,
            base_url=self.base_url if file_config.base_url is None else file_config.base_url,
            connect_timeout_seconds=self.connect_timeout_seconds
            if file_config.connect_timeout_seconds is None
            else file_config.connect_timeout_seconds,
            send_timeout_seconds=self.send_timeout_seconds
            if file_config.send_timeout_seconds is None
            else file_config.send_timeout_seconds,
            receive_timeout_seconds=self.receive_timeout_seconds
            if file_config.receive_timeout_seconds is None
            else file_config.receive_timeout_seconds,
            max_attempts=self.max_attempts
            if file_config.max_attempts is None
            else file_config.max_attempts,
            base_delay_seconds=self.base_delay_seconds
            if file_config.base_delay_seconds is None
            else file_config.base_delay_seconds,
            max_delay_seconds=self.max_delay_seconds
            if file_config.max_delay_seconds is None
            else file_config.max_delay_seconds,
            respect_retry_after=self.respect_retry_after
            if file_config.respect_retry_after is None
            else file_config.respect_retry_after,
            debug=self.debug if file_config.debug is None else file_config.debug,
            token_path=self.token_path
            if file_config.token_path is None
            else file_config.token_path,
        )


def _parse_environment(value: str) -> str:
    name = value.strip().lower() or "dev"
    if name not in ENVIRONMENT_BASE_URLS:
        raise EnvironmentNameError(value)
    return name


def _parse_positive_float(value: str, *, env_name: str) -> float:
    """Parse a positive number from an environment variable."""
    try:
        parsed = float(value.strip())
    except ValueError as exc:
        raise PositiveNumberEnvVarError(env_name) from exc
    if parsed <= 0:
        raise PositiveNumberEnvVarError(env_name)
    return parsed


def _parse_non_negative_int(value: str, *, env_name: str) -> int:
    try:
        parsed = int(value.strip())
    except ValueError as exc:
        raise NonNegativeIntegerEnvVarError(env_name) from exc
    if parsed < 0:
        raise NonNegativeIntegerEnvVarError(env_name)
    return parsed


def _parse_bool(value: str, *, env_name: str, default: bool) -> bool:
    """Parse an optional boolean from an environment variable."""
    text = value.strip().lower()
    if not text:
        return default
    if text in {"1", "true", "yes", "y", "on"}:
        return True
    if text in {"0", "false", "no", "n", "off"}:
        return False
    raise BooleanEnvVarError(env_name)
