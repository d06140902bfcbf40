"""
Retry with exponential backoff for record-store writes.
"""

import logging
import time
from collections.abc import Callable
from functools import wraps
from typing import TypeVar

from memoir_intake.exceptions import RecordStoreError, RetryableError

T = TypeVar("T")

logger = logging.getLogger(__name__)


def retry_with_backoff(
    max_attempts: int = 3,
    initial_delay: float = 0.5,
    backoff_factor: float = 2.0,
    max_delay: float = 10.0,
    retryable_exceptions: tuple[type[Exception], ...] = (RecordStoreError,),
    on_retry: Callable[[Exception, int, int], None] | None = None,
):
    """
    Decorator to retry a function with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (default: 3)
        initial_delay: Initial delay in seconds (default: 0.5)
        backoff_factor: Multiplier for delay after each failure (default: 2.0)
        max_delay: Maximum delay between retries (default: 10.0)
        retryable_exceptions: Exception types to retry (default: RecordStoreError)
        on_retry: Optional callback called on each retry: (error, attempt, max_attempts)

    Returns:
        Decorated function with retry logic

    Example:
        @retry_with_backoff(max_attempts=3, initial_delay=0.1)
        def save(aggregate):
            store.upsert_profile(aggregate)
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            delay = initial_delay
            last_exception = None

            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except retryable_exceptions as e:
                    last_exception = e

                    if attempt == max_attempts:
                        break

                    if on_retry is not None:
                        on_retry(e, attempt, max_attempts)

                    if delay > 0:
                        time.sleep(min(delay, max_delay))
                    delay *= backoff_factor

            assert last_exception is not None  # Always set in the except block
            raise RetryableError(last_exception, max_attempts, max_attempts)

        return wrapper

    return decorator


def call_with_retry(
    func: Callable[..., T],
    *args,
    max_attempts: int = 3,
    initial_delay: float = 0.5,
    **kwargs,
) -> T:
    """
    Call ``func`` once with the retry policy applied.

    Used where the attempt count comes from workspace configuration, so the
    decorator cannot be applied at import time.
    """

    def log_retry(error: Exception, attempt: int, attempts: int) -> None:
        name = getattr(func, "__name__", repr(func))
        logger.warning(f"Attempt {attempt}/{attempts} of {name} failed: {error}")

    wrapped = retry_with_backoff(
        max_attempts=max_attempts,
        initial_delay=initial_delay,
        on_retry=log_retry,
    )(func)
    return wrapped(*args, **kwargs)
