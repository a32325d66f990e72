"""Tests for the retry_on_conflict combinator."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from transync.reconcile.retry import DEFAULT_RETRY, RetryExhaustedError, RetryPolicy, retry_on_conflict

_FAST = RetryPolicy(steps=3, duration=0.0, jitter=0.0)


class _Conflict(Exception):
    pass


def _is_conflict(exc: BaseException) -> bool:
    return isinstance(exc, _Conflict)


class TestRetryOnConflict:
    async def test_success_on_first_attempt(self) -> None:
        attempts: list[int] = []

        async def fn(attempt: int) -> str:
            attempts.append(attempt)
            return "ok"

        assert await retry_on_conflict(fn, _is_conflict, _FAST) == "ok"
        assert attempts == [0]

    async def test_single_conflict_then_success(self) -> None:
        attempts: list[int] = []

        async def fn(attempt: int) -> str:
            attempts.append(attempt)
            if attempt == 0:
                raise _Conflict("stale resourceVersion")
            return "ok"

        assert await retry_on_conflict(fn, _is_conflict, _FAST) == "ok"
        assert attempts == [0, 1]

    async def test_exhaustion_raises_with_last_error(self) -> None:
        async def fn(attempt: int) -> None:
            raise _Conflict(f"conflict {attempt}")

        with pytest.raises(RetryExhaustedError) as exc_info:
            await retry_on_conflict(fn, _is_conflict, _FAST)

        assert exc_info.value.attempts == 3
        assert str(exc_info.value.last_error) == "conflict 2"

    async def test_non_conflict_error_propagates_immediately(self) -> None:
        attempts: list[int] = []

        async def fn(attempt: int) -> None:
            attempts.append(attempt)
            raise RuntimeError("forbidden")

        with pytest.raises(RuntimeError, match="forbidden"):
            await retry_on_conflict(fn, _is_conflict, _FAST)
        assert attempts == [0]


def _wait_for(policy: RetryPolicy, attempt_number: int) -> float:
    return policy.wait()(SimpleNamespace(attempt_number=attempt_number))


class TestRetryPolicy:
    def test_default_matches_standard_conflict_policy(self) -> None:
        policy = RetryPolicy()
        assert (policy.steps, policy.duration, policy.factor, policy.jitter) == (5, 0.01, 1.0, 0.1)

    def test_default_waits_stay_near_ten_milliseconds(self) -> None:
        for attempt_number in range(1, 5):
            assert 0.01 <= _wait_for(DEFAULT_RETRY, attempt_number) <= 0.011

    def test_waits_grow_by_factor_within_jitter(self) -> None:
        policy = RetryPolicy(steps=4, duration=1.0, factor=2.0, jitter=0.1)
        for attempt_number, base in [(1, 1.0), (2, 2.0), (3, 4.0)]:
            assert base <= _wait_for(policy, attempt_number) <= base + 0.1

    def test_cap_limits_each_wait(self) -> None:
        policy = RetryPolicy(steps=4, duration=1.0, factor=10.0, jitter=0.0, cap=5.0)
        assert [_wait_for(policy, n) for n in (1, 2, 3)] == [1.0, 5.0, 5.0]
