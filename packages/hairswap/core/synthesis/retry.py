"""Bounded immediate retry combinator.

Independent of the pipeline: any zero-argument coroutine factory can be
retried. Attempts are counted, not timed, and there is no delay between them.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from hairswap.core.synthesis.errors import RetryExhausted

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_retryable(error: BaseException) -> bool:
    """Default retry predicate.

    Errors without a ``retryable`` flag are treated as retryable.
    """
    return bool(getattr(error, "retryable", True))


async def retry(
    operation: Callable[[int], Awaitable[T]],
    max_attempts: int,
    *,
    should_retry: Callable[[BaseException], bool] = is_retryable,
) -> T:
    """Run ``operation`` until it succeeds or ``max_attempts`` are used.

    Args:
        operation: Coroutine factory receiving the 1-based attempt number.
            Called once per attempt so no state leaks between attempts.
        max_attempts: Maximum number of attempts (>= 1)
        should_retry: Predicate deciding whether an error may be retried

    Returns:
        The first successful result

    Raises:
        ValueError: If max_attempts < 1
        RetryExhausted: If every attempt failed, wrapping the last error
        Exception: A non-retryable error, re-raised unchanged
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    last_error: Exception | None = None

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation(attempt)
        except Exception as e:
            if not should_retry(e):
                raise
            last_error = e
            logger.warning("Attempt %d/%d failed: %s", attempt, max_attempts, e)

    assert last_error is not None
    raise RetryExhausted(max_attempts, last_error) from last_error
