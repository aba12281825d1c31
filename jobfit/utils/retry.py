"""Retry policy with error classification and exponential backoff."""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from jobfit.utils.errors import (
    DailyQuotaExhaustedError,
    RateLimitError,
    is_daily_quota_error,
    is_rate_limit_error,
    retry_message,
    to_user_error,
)

logger = logging.getLogger(__name__)
T = TypeVar("T")


class ErrorClass(str, Enum):
    """How the retry policy treats a failure."""

    DAILY_QUOTA = "daily_quota"
    TRANSIENT_QUOTA = "transient_quota"
    PERMANENT = "permanent"


@dataclass
class RetryAttempt:
    """One scheduled retry. Not persisted."""

    attempt_number: int
    max_attempts: int
    next_delay_ms: int
    error_class: ErrorClass


RetryCallback = Callable[[str, RetryAttempt], None]


def classify_error(error: BaseException) -> ErrorClass:
    """Classify an error for retry purposes. Daily quota wins over rate limit."""
    if is_daily_quota_error(error):
        return ErrorClass.DAILY_QUOTA
    if is_rate_limit_error(error):
        return ErrorClass.TRANSIENT_QUOTA
    return ErrorClass.PERMANENT


def backoff_delay_ms(base_delay_ms: int, attempt: int) -> int:
    """Delay before retrying after ``attempt`` (1-based): base * 2^(attempt-1)."""
    return base_delay_ms * (2 ** (attempt - 1))


def max_total_delay_ms(base_delay_ms: int, max_attempts: int) -> int:
    """Upper bound on time spent waiting across all attempts."""
    return base_delay_ms * (2**max_attempts - 1)


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay_ms: int = 2000,
    on_retry: Optional[RetryCallback] = None,
) -> T:
    """
    Run ``operation`` under the retry policy.

    Args:
        operation: Zero-argument coroutine factory, re-invoked on each attempt
        max_attempts: Maximum number of attempts (>= 1)
        base_delay_ms: Delay before the first retry, doubled for each one after
        on_retry: Called with a status message and the attempt before each wait

    Returns:
        The operation's result

    Raises:
        DailyQuotaExhaustedError: Provider daily ceiling hit, never retried
        RateLimitError: Rate limited on every attempt
        JobFitError: Any other failure, translated for the user
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    if base_delay_ms <= 0:
        raise ValueError("base_delay_ms must be > 0")

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            error_class = classify_error(e)

            if error_class is ErrorClass.DAILY_QUOTA:
                logger.error(f"Daily quota exhausted on attempt {attempt}: {e}")
                raise DailyQuotaExhaustedError() from e

            if error_class is ErrorClass.PERMANENT:
                logger.error(f"Attempt {attempt}/{max_attempts} failed permanently: {e}")
                raise to_user_error(e) from e

            if attempt == max_attempts:
                logger.error(f"All {max_attempts} attempts were rate limited: {e}")
                raise RateLimitError() from e

            delay_ms = backoff_delay_ms(base_delay_ms, attempt)
            message = retry_message(attempt, max_attempts, delay_ms / 1000)
            logger.warning(f"Attempt {attempt}/{max_attempts} rate limited: {e}. {message}")
            if on_retry is not None:
                on_retry(
                    message,
                    RetryAttempt(
                        attempt_number=attempt,
                        max_attempts=max_attempts,
                        next_delay_ms=delay_ms,
                        error_class=error_class,
                    ),
                )
            await asyncio.sleep(delay_ms / 1000)

    # Unreachable: the final attempt either returns or raises.
    raise RateLimitError()
