"""Retry utilities with exponential backoff and server throttling hints."""

import time
from functools import wraps
from typing import Callable, NamedTuple, Tuple, Type

import structlog

log = structlog.stdlib.get_logger()


class RetryPolicy(NamedTuple):
    """How often and how long to wait between attempts of one call."""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0

    def delay_for(self, attempt: int, error: BaseException | None = None) -> float:
        """
        Seconds to wait before retry number ``attempt + 1``.

        The delay doubles per attempt up to ``max_delay``. A ``retry_after``
        hint on the error (set from a 429 response) raises it, within the
        same bound.
        """
        delay = min(self.base_delay * (2**attempt), self.max_delay)
        retry_after = getattr(error, "retry_after", None)
        if retry_after:
            delay = min(max(delay, float(retry_after)), self.max_delay)
        return delay

    def wrap(self, func: Callable, exceptions: Tuple[Type[Exception], ...]) -> Callable:
        return exponential_backoff_retry(
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            exceptions=exceptions,
        )(func)


def exponential_backoff_retry(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
) -> Callable:
    """
    Decorator that retries a function with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds
        max_delay: Upper bound for any single delay, throttling hints included
        exceptions: Exception types that trigger a retry; others propagate at once

    Returns:
        Decorated function with retry logic
    """
    policy = RetryPolicy(max_retries, base_delay, max_delay)

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= policy.max_retries:
                        log.error(
                            "retries_exhausted",
                            function=func.__name__,
                            attempts=attempt + 1,
                            error_type=type(e).__name__,
                            error=str(e),
                        )
                        raise

                    delay = policy.delay_for(attempt, e)
                    log.warning(
                        "retry_scheduled",
                        function=func.__name__,
                        attempt=attempt + 1,
                        max_retries=policy.max_retries,
                        delay_seconds=delay,
                        error_type=type(e).__name__,
                    )
                    time.sleep(delay)
                    attempt += 1

        return wrapper

    return decorator
