"""Exports for test fakes."""

from .progress import FakeProgressReporter
from .timing import RecordingSleeper, StubRandom
from .transport import ScriptedTransport

__all__ = [
    "FakeProgressReporter",
    "RecordingSleeper",
    "ScriptedTransport",
    "StubRandom",
]
