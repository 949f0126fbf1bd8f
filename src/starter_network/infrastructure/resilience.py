"""Resilience utilities for the request pipeline.

Usage example:
    from starter_network.infrastructure.resilience import RetryPolicy

    policy = RetryPolicy(max_attempts=3, base_delay_seconds=1.0)
    delay = policy.compute_backoff(attempt=1)
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import override

from ..exceptions import TransportError
from ..protocols import RetryPolicy as RetryPolicyProtocol
from ..types import FailureKind

DEFAULT_RETRY_STATUSES: frozenset[int] = frozenset({408, 429, 500, 502, 503, 504})
DEFAULT_RETRY_KINDS: frozenset[FailureKind] = frozenset(
    {
        FailureKind.CONNECT_TIMEOUT,
        FailureKind.SEND_TIMEOUT,
        FailureKind.RECEIVE_TIMEOUT,
        FailureKind.CONNECTION_ERROR,
    }
)


@dataclass
class RetryPolicy(RetryPolicyProtocol):
    """Retry policy for transient failures.

    `max_attempts` counts resubmissions after the initial send, so the default
    of 3 allows up to 4 sends in total.
    """

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0
    jitter_min: float = 0.5
    jitter_max: float = 1.5
    respect_retry_after: bool = True
    retry_statuses: frozenset[int] = DEFAULT_RETRY_STATUSES
    retry_kinds: frozenset[FailureKind] = DEFAULT_RETRY_KINDS
    rng: random.Random = field(default_factory=random.Random, repr=False)

    @override
    def is_retryable(self, failure: TransportError) -> bool:
        """Check status codes first, then transport kinds; never retry a cancel."""
        if failure.kind is FailureKind.CANCEL:
            return False
        status = failure.status_code
        if status is not None:
            return status in self.retry_statuses
        return failure.kind in self.retry_kinds

    @override
    def compute_backoff(self, attempt: int, retry_after: float | None = None) -> float:
        """Compute backoff delay with jitter and an optional Retry-After floor."""
        exponent = max(attempt - 1, 0)
        delay = self.base_delay_seconds * (2**exponent)
        delay *= self.rng.uniform(self.jitter_min, self.jitter_max)
        if retry_after is not None and self.respect_retry_after:
            delay = max(delay, float(retry_after))
        return float(min(delay, self.max_delay_seconds))


def parse_retry_after(value: str | None) -> int | None:
    """Parse a Retry-After header value into seconds, if available."""
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return int(value)
    try:
        dt = parsedate_to_datetime(value)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        delta = (dt - datetime.now(UTC)).total_seconds()
        return max(0, int(delta))
    except (AttributeError, OverflowError, TypeError, ValueError):
        return None
