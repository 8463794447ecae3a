"""
Bounded retry for backend calls.

with_retry() calls a function up to max_attempts times, waiting a fixed delay
between attempts. Only the exception types listed in retry_on trigger another
attempt; anything else propagates immediately. When attempts run out, the
last exception is re-raised.

Usage:
    facts = with_retry(
        lambda: extract(chunk),
        max_attempts=config.max_retries + 1,
        delay=config.retry_delay,
        retry_on=(BackendError, FactParseError),
    )
"""

import time
from typing import Callable, TypeVar

from lessonscribe.logging_config import debug_log

R = TypeVar('R')


def with_retry(
    fn: Callable[[], R],
    max_attempts: int,
    delay: float = 0.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    label: str = "call",
    sleep: Callable[[float], None] = time.sleep,
) -> R:
    """
    Call fn until it succeeds or max_attempts is reached.

    Args:
        fn: Zero-argument callable to attempt.
        max_attempts: Total attempts including the first (>= 1).
        delay: Seconds to wait between attempts.
        retry_on: Exception types that count as retryable.
        label: Name used in log messages.
        sleep: Sleep function (injected by tests).

    Returns:
        The first successful return value of fn.

    Raises:
        ValueError: If max_attempts < 1.
        Exception: The last retryable exception once attempts are exhausted,
                   or any non-retryable exception as soon as it occurs.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    for attempt in range(1, max_attempts + 1):
        try:
            return fn()
        except retry_on as e:
            if attempt == max_attempts:
                debug_log(f"[Retry] {label}: giving up after {attempt} attempt(s): {e}")
                raise
            debug_log(f"[Retry] {label}: attempt {attempt}/{max_attempts} failed: {e}")
            if delay > 0:
                sleep(delay)
