"""Caller-side retry for tracker conflicts.

The tracker core never retries: a lost compare-and-swap surfaces as
ConflictError. retry_on_conflict() is the loop callers compose around an
operation when they need it to eventually succeed under contention.
Every attempt re-runs the whole operation (resolve, read, write) from
scratch; nothing from a failed attempt is reused.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

import tenacity

from reftracker.exceptions import ConflictError, RetryExhaustedError

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryResult(Generic[T]):
    """Result of a retry-guarded operation.

    Attributes:
        value: The successful result value.
        attempts: Total attempts (1 = first try succeeded).
        history: Conflict messages from failed attempts (None if the first
            try succeeded).
    """

    value: T
    attempts: int
    history: list[str] | None = None


def retry_on_conflict(
    operation: Callable[[], T],
    *,
    max_attempts: int = 5,
    min_wait: float = 0.01,
    max_wait: float = 1.0,
    jitter: float | None = None,
) -> RetryResult[T]:
    """Run *operation* until it stops raising ConflictError.

    Uses tenacity.Retrying programmatically so limits are per-call.
    Waits grow exponentially from *min_wait* up to *max_wait*, plus random
    jitter so competing writers spread out. Only ConflictError is retried;
    any other exception propagates from the attempt that raised it.

    Args:
        operation: Zero-argument callable, e.g.
            ``lambda: rt_add(store, "pool", "rt", ["a"])``.
        max_attempts: Maximum total attempts (default 5).
        min_wait: Minimum wait between attempts in seconds.
        max_wait: Maximum exponential wait in seconds.
        jitter: Upper bound of the random extra wait. Defaults to *min_wait*.

    Returns:
        RetryResult with the successful value, attempt count, and history.

    Raises:
        RetryExhaustedError: If every attempt hit a conflict. Chained to the
            last ConflictError.
    """
    history: list[str] = []

    def _attempt() -> T:
        try:
            return operation()
        except ConflictError as exc:
            history.append(str(exc))
            raise

    retryer = tenacity.Retrying(
        retry=tenacity.retry_if_exception_type(ConflictError),
        wait=(
            tenacity.wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait)
            + tenacity.wait_random(0, min_wait if jitter is None else jitter)
        ),
        stop=tenacity.stop_after_attempt(max_attempts),
        before_sleep=tenacity.before_sleep_log(logger, logging.DEBUG),
        reraise=False,
    )
    try:
        value = retryer(_attempt)
    except tenacity.RetryError as exc:
        last = exc.last_attempt.exception()
        raise RetryExhaustedError(
            attempts=max_attempts,
            last_diagnosis=history[-1] if history else "conflict",
        ) from last

    return RetryResult(
        value=value,
        attempts=len(history) + 1,
        history=history if history else None,
    )
