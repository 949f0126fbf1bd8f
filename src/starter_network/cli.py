"""CLI for starter-network.

Commands:
- request: Send one API request and print the response envelope
- download: Stream a file to disk with a progress bar
- token set/show/clear: Manage the stored bearer token
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Protocol

import typer
from rich import print as rprint
from rich import print_json

from . import __version__
from .cli_progress import progress_callback
from .config import NetworkConfig
from .config_file import load_network_config_file
from .exceptions import AppError, ConfigError
from .network.client import ApiClient
from .protocols import ProgressReporter, TokenStore
from .types import ApiResponse, HttpMethod, RequestOptions


class DependenciesBuilder(Protocol):
    """Protocol for constructing CLI dependencies."""

    def __call__(self, *, config: NetworkConfig) -> CliDependencies:
        """Build dependencies for CLI commands."""
        ...


@dataclass(frozen=True)
class CliDependencies:
    """Concrete dependencies required by the CLI."""

    client: ApiClient
    token_store: TokenStore
    progress: ProgressReporter


@dataclass(frozen=True)
class CliContext:
    """Runtime CLI context for a single command invocation."""

    config: NetworkConfig
    deps_builder: DependenciesBuilder

    def build_dependencies(self) -> CliDependencies:
        """Return dependencies using the configured builder."""
        return self.deps_builder(config=self.config)


class CliContextNotInitialisedError(typer.BadParameter):
    """Raised when CLI context is missing."""

    def __init__(self) -> None:
        super().__init__("CLI context is not initialised. Use the starter-network entry point.")


class KeyValueOptionError(typer.BadParameter):
    """Raised when a key/value option is malformed."""

    def __init__(self, option: str, value: str) -> None:
        super().__init__(f"{option} expects KEY=VALUE (got {value!r}).")


class JsonBodyError(typer.BadParameter):
    """Raised when --json is not valid JSON."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"--json is not valid JSON: {reason}")


def _get_context(ctx: typer.Context) -> CliContext:
    if not isinstance(ctx.obj, CliContext):
        raise CliContextNotInitialisedError()
    return ctx.obj


def _parse_pairs(values: list[str] | None, *, option: str) -> dict[str, str]:
    pairs: dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise KeyValueOptionError(option, item)
        pairs[key.strip()] = value.strip()
    return pairs


def _parse_json_body(raw: str | None) -> object:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise JsonBodyError(str(exc)) from exc


def _envelope_to_json(response: ApiResponse[object]) -> dict[str, object]:
    payload: dict[str, object] = {
        "success": response.success,
        "data": response.data,
        "message": response.message,
        "status_code": response.status_code,
    }
    if response.metadata is not None:
        payload["metadata"] = dict(response.metadata)
    return payload


def _run[T](work: Callable[[], Coroutine[object, object, T]]) -> T:
    """Run a client coroutine, turning typed errors into a CLI exit."""
    try:
        return asyncio.run(work())
    except AppError as exc:
        rprint(f"[red]✗ {exc.message}[/red] ({exc.code or 'UNKNOWN'})")
        if exc.status_code is not None:
            rprint(f"  Status: {exc.status_code}")
        rprint(f"  {exc.user_message}")
        raise typer.Exit(code=1) from exc


def _version_callback(value: bool) -> None:
    if value:
        rprint(f"starter-network {__version__}")
        raise typer.Exit()


def create_app(deps_builder: DependenciesBuilder) -> typer.Typer:
    """Create a Typer app wired with the provided dependencies builder."""
    app = typer.Typer(
        add_completion=False,
        help="HTTP client for the starter API: requests, downloads and token management",
    )
    token_app = typer.Typer(help="Manage the stored bearer token")
    app.add_typer(token_app, name="token")

    @app.callback()
    def main(
        ctx: typer.Context,
        config_path: Annotated[
            Path | None,
            typer.Option("--config", help="TOML config file overriding environment values"),
        ] = None,
        environment: Annotated[
            str | None,
            typer.Option("--env", "-e", help="API environment: dev, staging or prod"),
        ] = None,
        base_url: Annotated[
            str | None,
            typer.Option("--base-url", help="Override the API base URL"),
        ] = None,
        debug: Annotated[
            bool | None,
            typer.Option("--debug/--no-debug", help="Log every request and response"),
        ] = None,
        _version: Annotated[
            bool,
            typer.Option(
                "--version",
                callback=_version_callback,
                is_eager=True,
                help="Show the version and exit",
            ),
        ] = False,
    ) -> None:
        """Initialise CLI context."""
        try:
            config = NetworkConfig.from_env()
            if config_path is not None:
                config = config.with_file_overrides(load_network_config_file(config_path))
            config = config.with_overrides(environment=environment, base_url=base_url, debug=debug)
        except (ConfigError, ValueError) as exc:
            raise typer.BadParameter(str(exc)) from exc
        ctx.obj = CliContext(config=config, deps_builder=deps_builder)

    @app.command()
    def request(
        ctx: typer.Context,
        method: Annotated[HttpMethod, typer.Argument(help="HTTP method", case_sensitive=False)],
        path: Annotated[str, typer.Argument(help="Path relative to the base URL, or a full URL")],
        query: Annotated[
            list[str] | None,
            typer.Option("--query", "-q", help="Query parameter as KEY=VALUE (repeatable)"),
        ] = None,
        header: Annotated[
            list[str] | None,
            typer.Option("--header", "-H", help="Header as KEY=VALUE (repeatable)"),
        ] = None,
        json_body: Annotated[
            str | None,
            typer.Option("--json", help="JSON request body"),
        ] = None,
        no_auth: Annotated[
            bool,
            typer.Option("--no-auth", help="Do not attach the stored bearer token"),
        ] = False,
    ) -> None:
        """Send one request and print the response envelope."""
        state = _get_context(ctx)
        params = _parse_pairs(query, option="--query")
        headers = _parse_pairs(header, option="--header")
        body = _parse_json_body(json_body)
        deps = state.build_dependencies()

        async def _send() -> ApiResponse[object]:
            async with deps.client as client:
                return await client.request(
                    method,
                    path,
                    body=body,
                    query=params,
                    headers=headers,
                    options=RequestOptions(skip_auth=no_auth),
                )

        response = _run(_send)
        print_json(data=_envelope_to_json(response), default=str)

    @app.command()
    def download(
        ctx: typer.Context,
        url: Annotated[str, typer.Argument(help="Path or full URL of the file")],
        dest: Annotated[Path, typer.Argument(help="Where to save the file")],
    ) -> None:
        """Download a file with a progress bar."""
        state = _get_context(ctx)
        deps = state.build_dependencies()

        async def _download() -> int:
            async with deps.client as client:
                try:
                    on_progress = progress_callback(deps.progress, f"Downloading {dest.name}")
                    response = await client.download(url, dest, on_receive_progress=on_progress)
                finally:
                    deps.progress.finish()
                return response.status_code

        status = _run(_download)
        rprint(f"[green]✓ Downloaded:[/green] {dest} (HTTP {status})")

    @token_app.command("set")
    def token_set(
        ctx: typer.Context,
        token: Annotated[str, typer.Argument(help="Bearer access token")],
        refresh: Annotated[
            str | None,
            typer.Option("--refresh", help="Refresh token to store alongside"),
        ] = None,
    ) -> None:
        """Store an access token (and optional refresh token)."""
        deps = _get_context(ctx).build_dependencies()
        try:
            deps.token_store.set_token(token)
            if refresh is not None:
                deps.token_store.set_refresh_token(refresh)
        except AppError as exc:
            rprint(f"[red]✗ {exc.message}[/red]")
            raise typer.Exit(code=1) from exc
        rprint("[green]✓ Token stored[/green]")

    @token_app.command("show")
    def token_show(ctx: typer.Context) -> None:
        """Show a masked preview of the stored tokens."""
        deps = _get_context(ctx).build_dependencies()
        try:
            access = deps.token_store.get_token()
            refresh = deps.token_store.get_refresh_token()
        except AppError as exc:
            rprint(f"[red]✗ {exc.message}[/red]")
            raise typer.Exit(code=1) from exc
        rprint(f"Access token: {_preview(access)}")
        rprint(f"Refresh token: {_preview(refresh)}")

    @token_app.command("clear")
    def token_clear(ctx: typer.Context) -> None:
        """Remove every stored token."""
        deps = _get_context(ctx).build_dependencies()
        try:
            deps.token_store.clear_all()
        except AppError as exc:
            rprint(f"[red]✗ {exc.message}[/red]")
            raise typer.Exit(code=1) from exc
        rprint("[green]✓ Tokens cleared[/green]")

    return app


def _preview(token: str | None) -> str:
    if not token:
        return "[yellow]not set[/yellow]"
    if len(token) <= 8:
        return "*" * len(token)
    return f"{token[:4]}…{token[-4:]}"
