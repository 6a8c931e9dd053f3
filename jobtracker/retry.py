"""
Retry with exponential backoff for flaky network calls.

Only the posting-page fetch uses this. Backend calls made by the record
store are never retried.
"""

import functools
import time
from typing import Callable, Optional, Tuple, Type


class RetryError(Exception):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


def exponential_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable] = None,
):
    """
    Decorator that retries ``exceptions`` with growing sleeps in between.

    Args:
        max_retries: Retries after the first attempt (0 = call once)
        base_delay: Sleep before the first retry, in seconds
        max_delay: Upper bound for any single sleep
        exponential_base: Factor applied to the sleep after each retry
        exceptions: Exception types worth retrying; anything else propagates
        on_retry: Optional callback(attempt, exception, delay)

    Raises:
        RetryError: chained to the last exception once retries run out
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            delay = base_delay
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_retries:
                        raise RetryError(
                            f"Failed after {max_retries + 1} attempts: {e}",
                            attempts=max_retries + 1,
                        ) from e
                    current_delay = min(delay, max_delay)
                    if on_retry:
                        on_retry(attempt + 1, e, current_delay)
                    time.sleep(current_delay)
                    delay *= exponential_base

        return wrapper
    return decorator
