"""Token store implementations.

Usage example:
    from pathlib import Path

    from starter_network.infrastructure.token_store import FileTokenStore

    store = FileTokenStore(Path("~/.config/starter-network/tokens.json").expanduser())
    store.set_token("abc123")
    token = store.get_token()
"""

from __future__ import annotations

import contextlib
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TypedDict, override

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import TokenStorageError
from ..protocols import TokenStore

_ACCESS_TOKEN_KEY = "access_token"
_REFRESH_TOKEN_KEY = "refresh_token"
_FILE_MODE = 0o600


class _TokenFileIO(TypedDict, total=False):
    access_token: str | None
    refresh_token: str | None


_TOKEN_FILE_ADAPTER = TypeAdapter(_TokenFileIO)


@dataclass
class InMemoryTokenStore(TokenStore):
    """Token store that lives for the lifetime of the process."""

    access_token: str | None = None
    refresh_token: str | None = None

    @override
    def get_token(self) -> str | None:
        return self.access_token

    @override
    def set_token(self, token: str) -> None:
        self.access_token = token

    @override
    def clear_token(self) -> None:
        self.access_token = None

    @override
    def get_refresh_token(self) -> str | None:
        return self.refresh_token

    @override
    def set_refresh_token(self, token: str) -> None:
        self.refresh_token = token

    @override
    def clear_refresh_token(self) -> None:
        self.refresh_token = None

    @override
    def clear_all(self) -> None:
        self.access_token = None
        self.refresh_token = None


@dataclass
class FileTokenStore(TokenStore):
    """JSON-file token store readable only by the owning user."""

    path: Path

    def __post_init__(self) -> None:
        self.path = Path(self.path)

    def _read(self) -> dict[str, str | None]:
        if not self.path.exists():
            return {}
        try:
            payload = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise TokenStorageError("read", str(exc)) from exc
        if not payload.strip():
            return {}
        try:
            return dict(_TOKEN_FILE_ADAPTER.validate_json(payload))
        except PydanticValidationError as exc:
            raise TokenStorageError("read", f"{self.path} is not a token file") from exc

    def _write(self, data: dict[str, str | None]) -> None:
        """Write via an owner-only temp file that replaces the store in one step."""
        staging = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            staging.unlink(missing_ok=True)
            fd = os.open(staging, os.O_WRONLY | os.O_CREAT | os.O_EXCL, _FILE_MODE)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2)
            os.replace(staging, self.path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                staging.unlink(missing_ok=True)
            raise TokenStorageError("write", str(exc)) from exc

    def _update(self, key: str, value: str | None) -> None:
        data = self._read()
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value
        self._write(data)

    @override
    def get_token(self) -> str | None:
        return self._read().get(_ACCESS_TOKEN_KEY)

    @override
    def set_token(self, token: str) -> None:
        self._update(_ACCESS_TOKEN_KEY, token)

    @override
    def clear_token(self) -> None:
        self._update(_ACCESS_TOKEN_KEY, None)

    @override
    def get_refresh_token(self) -> str | None:
        return self._read().get(_REFRESH_TOKEN_KEY)

    @override
    def set_refresh_token(self, token: str) -> None:
        self._update(_REFRESH_TOKEN_KEY, token)

    @override
    def clear_refresh_token(self) -> None:
        self._update(_REFRESH_TOKEN_KEY, None)

    @override
    def clear_all(self) -> None:
        if not self.path.exists():
            return
        try:
            self.path.unlink()
        except OSError as exc:
            raise TokenStorageError("clear", str(exc)) from exc
