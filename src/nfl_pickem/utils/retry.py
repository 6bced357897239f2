"""Retry-with-backoff helper shared by every outbound HTTP call.

`retry_with_backoff` never raises from inside its loop.  It returns a
`RetryOutcome` that either carries the successful value or the last error,
and callers decide whether to `unwrap` it or inspect it.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


@dataclasses.dataclass(frozen=True)
class RetryOutcome(Generic[_T]):
    """Result of a retried call: a value on success, the last error otherwise."""

    value: _T | None
    error: Exception | None
    attempts: int

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> _T:
        """Return the value, re-raising the terminal error if every attempt failed."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Delay before the retry that follows *attempt* (1-based): ``base * 2**(attempt-1)``."""
    return base_delay * (2 ** (attempt - 1))


def retry_with_backoff(
    func: Callable[[], _T],
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    retry_on: tuple[type[Exception], ...] = (Exception,),
    on_failure: Callable[[int, Exception], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RetryOutcome[_T]:
    """Call *func* up to *max_attempts* times with exponential backoff.

    Args:
        func: Zero-argument callable to invoke.
        max_attempts: Total number of attempts (>= 1).
        base_delay: Seconds to wait after the first failure; doubled after each
            subsequent failure.
        retry_on: Exception types that count as retryable.  Anything else
            propagates immediately.
        on_failure: Optional hook called with ``(attempt, error)`` after every
            failed attempt.
        sleep: Injected for tests.

    Returns:
        RetryOutcome holding either the value or the last error.
    """
    if max_attempts < 1:
        msg = f"max_attempts must be >= 1, got {max_attempts}"
        raise ValueError(msg)

    last_error: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            value = func()
        except retry_on as exc:
            last_error = exc
            if on_failure is not None:
                on_failure(attempt, exc)
            if attempt < max_attempts:
                delay = backoff_delay(attempt, base_delay)
                logger.debug(
                    "attempt %d/%d failed (%s); retrying in %.2fs",
                    attempt,
                    max_attempts,
                    exc,
                    delay,
                )
                sleep(delay)
            continue
        return RetryOutcome(value=value, error=None, attempts=attempt)

    return RetryOutcome(value=None, error=last_error, attempts=max_attempts)
