"""Unit tests for nfl_pickem.utils.retry."""

from __future__ import annotations

import pytest

from nfl_pickem.utils.retry import backoff_delay, retry_with_backoff


class _Flaky:
    """Fails the first *failures* calls, then returns *value*."""

    def __init__(self, failures: int, value: str = "payload", exc: type[Exception] = ConnectionError) -> None:
        self.failures = failures
        self.value = value
        self.exc = exc
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            msg = f"failure {self.calls}"
            raise self.exc(msg)
        return self.value


@pytest.mark.smoke
def test_first_attempt_success_does_not_sleep() -> None:
    sleeps: list[float] = []
    outcome = retry_with_backoff(_Flaky(0), sleep=sleeps.append)
    assert outcome.ok
    assert outcome.value == "payload"
    assert outcome.attempts == 1
    assert sleeps == []


def test_fails_twice_then_succeeds() -> None:
    sleeps: list[float] = []
    func = _Flaky(2)
    outcome = retry_with_backoff(func, max_attempts=3, base_delay=1.0, sleep=sleeps.append)
    assert outcome.unwrap() == "payload"
    assert outcome.attempts == 3
    assert func.calls == 3
    assert sleeps == [1.0, 2.0]


def test_exhausted_attempts_return_last_error() -> None:
    sleeps: list[float] = []
    outcome = retry_with_backoff(_Flaky(5), max_attempts=3, base_delay=0.5, sleep=sleeps.append)
    assert not outcome.ok
    assert outcome.value is None
    assert outcome.attempts == 3
    assert str(outcome.error) == "failure 3"
    # No pause after the final attempt.
    assert sleeps == [0.5, 1.0]


def test_unwrap_reraises_terminal_error() -> None:
    outcome = retry_with_backoff(_Flaky(1), max_attempts=1, sleep=lambda _: None)
    with pytest.raises(ConnectionError, match="failure 1"):
        outcome.unwrap()


def test_non_retryable_error_propagates_immediately() -> None:
    func = _Flaky(1, exc=KeyError)
    with pytest.raises(KeyError):
        retry_with_backoff(func, retry_on=(ConnectionError,), sleep=lambda _: None)
    assert func.calls == 1


def test_on_failure_hook_sees_each_attempt() -> None:
    seen: list[tuple[int, str]] = []
    retry_with_backoff(
        _Flaky(2),
        on_failure=lambda attempt, exc: seen.append((attempt, str(exc))),
        sleep=lambda _: None,
    )
    assert seen == [(1, "failure 1"), (2, "failure 2")]


def test_max_attempts_must_be_positive() -> None:
    with pytest.raises(ValueError, match="max_attempts must be >= 1"):
        retry_with_backoff(_Flaky(0), max_attempts=0)


@pytest.mark.parametrize(("attempt", "expected"), [(1, 1.0), (2, 2.0), (3, 4.0), (4, 8.0)])
def test_backoff_delay_doubles(attempt: int, expected: float) -> None:
    assert backoff_delay(attempt, 1.0) == expected
