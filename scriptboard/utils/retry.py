"""Retry helper with exponential backoff for external-service calls."""

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

from scriptboard.core.errors import InputValidationError, RetryExhausted

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff schedule.

    The delay after attempt n (1-based) is
    min(initial_delay * multiplier ** (n - 1), max_delay).
    """

    max_attempts: int = 3
    initial_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: Optional[float] = None

    def delay_for(self, attempt: int) -> float:
        delay = self.initial_delay * (self.multiplier ** (attempt - 1))
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay


def call_with_retry(
    func: Callable[[], T],
    policy: RetryPolicy,
    logger: Any,
    operation: str,
    sleep: Callable[[float], None] = time.sleep,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> T:
    """
    Call `func` until it succeeds or the policy's attempts run out.

    Validation errors are never retried. No delay follows the last attempt.

    Args:
        func: Zero-argument callable performing one attempt
        policy: Backoff schedule
        logger: Logger instance
        operation: Label used in log lines
        sleep: Sleep function (injectable for tests)
        retry_on: Exception types that trigger another attempt

    Returns:
        The first successful result

    Raises:
        RetryExhausted: With the last underlying error attached
    """
    last_error: Optional[BaseException] = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return func()
        except InputValidationError:
            raise
        except retry_on as e:
            last_error = e
            logger.warning(f"{operation}: attempt {attempt}/{policy.max_attempts} failed: {e}")
            if attempt < policy.max_attempts:
                sleep(policy.delay_for(attempt))

    raise RetryExhausted(
        f"{operation} failed after {policy.max_attempts} attempts: {last_error}",
        last_error=last_error,
        attempts=policy.max_attempts,
    )
