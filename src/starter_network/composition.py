"""Composition root for wiring the API client and CLI dependencies."""

from __future__ import annotations

from pathlib import Path

import requests

from .cli import CliDependencies, create_app
from .cli_progress import CliProgressReporter
from .config import NetworkConfig
from .infrastructure import FileTokenStore, InMemoryTokenStore, RequestsTransport, RetryPolicy
from .network import (
    ApiClient,
    AuthInterceptor,
    ErrorInterceptor,
    LoggingInterceptor,
    RequestPipeline,
    RetryInterceptor,
)
from .observability import set_debug
from .protocols import Sleeper, TokenStore, Transport


def build_token_store(config: NetworkConfig) -> TokenStore:
    """Return a file-backed store when a token path is configured, else an in-memory one."""
    if not config.token_path:
        return InMemoryTokenStore()
    return FileTokenStore(Path(config.token_path).expanduser())


def build_api_client(
    config: NetworkConfig,
    *,
    token_store: TokenStore | None = None,
    transport: Transport | None = None,
    sleep: Sleeper | None = None,
) -> ApiClient:
    """Wire transport, interceptor stages, retry and error boundary into a client.

    Args:
        config: Network configuration.
        token_store: Token store shared with the caller; built from config when omitted.
        transport: Transport override (tests pass a scripted fake).
        sleep: Backoff sleep override; `asyncio.sleep` when omitted.
    """
    set_debug(config.debug)
    store = token_store or build_token_store(config)
    if transport is None:
        transport = RequestsTransport(
            session=requests.Session(),
            connect_timeout_seconds=config.connect_timeout_seconds,
            send_timeout_seconds=config.send_timeout_seconds,
            receive_timeout_seconds=config.receive_timeout_seconds,
        )
    policy = RetryPolicy(
        max_attempts=config.max_attempts,
        base_delay_seconds=config.base_delay_seconds,
        max_delay_seconds=config.max_delay_seconds,
        respect_retry_after=config.respect_retry_after,
    )
    retry = RetryInterceptor(policy) if sleep is None else RetryInterceptor(policy, sleep=sleep)
    pipeline = RequestPipeline(
        transport,
        interceptors=[AuthInterceptor(store), LoggingInterceptor(enabled=config.debug)],
        retry=retry,
        errors=ErrorInterceptor(),
    )
    return ApiClient(pipeline, base_url=config.api_base_url)


def build_cli_dependencies(*, config: NetworkConfig) -> CliDependencies:
    """Build concrete dependencies for CLI commands."""
    token_store = build_token_store(config)
    return CliDependencies(
        client=build_api_client(config, token_store=token_store),
        token_store=token_store,
        progress=CliProgressReporter(),
    )


app = create_app(build_cli_dependencies)
