"""Retry planning for transient failures.

Usage example:
    from starter_network.infrastructure.resilience import RetryPolicy
    from starter_network.network.retry import RetryInterceptor

    retry = RetryInterceptor(RetryPolicy(max_attempts=3))
    plan = retry.plan_retry(request, failure)
    if plan is not None:
        next_request, delay = plan
        await retry.sleep(delay)
"""

from __future__ import annotations

import asyncio

from ..exceptions import TransportError
from ..infrastructure.resilience import parse_retry_after
from ..observability import get_logger
from ..protocols import RetryPolicy, Sleeper
from ..types import RequestDescriptor

logger = get_logger("starter_network.network.retry")


class RetryInterceptor:
    """Decide whether a failed attempt is resubmitted and how long to wait first.

    The attempt counter lives on the request descriptor, so the decision is a
    pure function of the descriptor, the failure and the policy.
    """

    def __init__(self, policy: RetryPolicy, *, sleep: Sleeper = asyncio.sleep) -> None:
        self.policy = policy
        self._sleep = sleep

    def max_attempts_for(self, request: RequestDescriptor) -> int:
        override = request.options.max_attempts
        return self.policy.max_attempts if override is None else override

    def plan_retry(
        self, request: RequestDescriptor, failure: TransportError
    ) -> tuple[RequestDescriptor, float] | None:
        """Return the next descriptor and backoff delay, or None to give up."""
        if request.is_cancelled or not self.policy.is_retryable(failure):
            return None
        max_attempts = self.max_attempts_for(request)
        if request.attempt >= max_attempts:
            logger.debug(
                "Giving up on %s %s after %s retries", request.method, request.url, request.attempt
            )
            return None
        next_request = request.next_attempt()
        retry_after = None
        if failure.response is not None:
            retry_after = parse_retry_after(failure.response.header("Retry-After"))
        delay = self.policy.compute_backoff(next_request.attempt, retry_after)
        logger.debug(
            "Retrying %s %s (%s/%s) in %.2fs after %s",
            request.method,
            request.url,
            next_request.attempt,
            max_attempts,
            delay,
            failure.status_code or failure.kind,
        )
        return next_request, delay

    async def sleep(self, delay: float) -> None:
        await self._sleep(delay)
