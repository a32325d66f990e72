"""Bounded retry for optimistic-concurrency conflicts.

Mirrors the standard cluster-client conflict policy: five steps, 10ms base
delay, factor 1.0, 10% jitter.  Only errors matching the conflict predicate
are retried; anything else propagates immediately.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)
from tenacity.wait import wait_base

_log = structlog.get_logger(component="reconcile.retry")

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff parameters.

    ``steps`` is the total number of attempts.  The n-th wait is
    ``duration * factor**n``, capped at ``cap`` when one is set, plus up
    to ``jitter * duration`` of random spread.
    """

    steps: int = 5
    duration: float = 0.01
    factor: float = 1.0
    jitter: float = 0.1
    cap: float | None = None

    def wait(self) -> wait_base:
        """The tenacity wait strategy for this policy."""
        backoff: wait_base = wait_exponential(multiplier=self.duration, exp_base=self.factor)
        if self.cap is not None:
            backoff = wait_exponential(multiplier=self.duration, exp_base=self.factor, max=self.cap)
        if self.jitter <= 0:
            return backoff
        return backoff + wait_random(0, self.jitter * self.duration)


DEFAULT_RETRY = RetryPolicy()


class RetryExhaustedError(Exception):
    """Raised when every attempt hit a conflict."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"still conflicting after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    _log.debug("update_conflict_retrying", attempt=retry_state.attempt_number, error=str(error))


async def retry_on_conflict(
    fn: Callable[[int], Awaitable[T]],
    is_conflict: Callable[[BaseException], bool],
    policy: RetryPolicy = DEFAULT_RETRY,
) -> T:
    """Call ``fn(attempt)`` until it succeeds or the policy runs out.

    *attempt* starts at 0 so the callee can re-read state before every
    retry.  Non-conflict errors propagate unchanged; exhausting the policy
    raises RetryExhaustedError chained to the last conflict.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(policy.steps, 1)),
        wait=policy.wait(),
        retry=retry_if_exception(is_conflict),
        before_sleep=_log_retry,
    )
    try:
        async for attempt in retrying:
            with attempt:
                result = await fn(attempt.retry_state.attempt_number - 1)
    except RetryError as exc:
        last_error = exc.last_attempt.exception()
        assert last_error is not None
        raise RetryExhaustedError(exc.last_attempt.attempt_number, last_error) from last_error
    return result
