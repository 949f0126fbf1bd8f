"""Test-only exceptions for enforcing constraints."""

from __future__ import annotations


class NetworkIsolationError(RuntimeError):
    """Raised when a test attempts a real network connection."""

    def __init__(self, attempted: str) -> None:
        super().__init__(
            "Tests must not make network connections! "
            "Use ScriptedTransport or a mocked session instead. "
            f"Attempted connection to: {attempted}"
        )


class ScriptExhaustedError(AssertionError):
    """Raised when a scripted transport is asked for more responses than it holds."""

    def __init__(self, url: str, sent: int) -> None:
        super().__init__(f"No scripted outcome left for {url} (send #{sent})")
