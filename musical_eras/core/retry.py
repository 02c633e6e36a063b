# musical_eras/core/retry.py
"""
Exponential backoff for rate-limited Spotify calls.

Honours the server's Retry-After when it sends one; otherwise the delay
doubles per attempt up to `max_delay`.
"""
import logging
import time
from functools import wraps
from typing import Callable, Tuple, Type

from musical_eras.core.errors import RateLimited, UpstreamFetchFailure

logger = logging.getLogger(__name__)


def retry_with_backoff(
    max_attempts: int = 5,
    initial_delay: float = 1.0,
    backoff_multiplier: float = 2.0,
    max_delay: float = 30.0,
    retry_on: Tuple[Type[Exception], ...] = (RateLimited,),
):
    """
    Decorator that retries a call on transient errors.

    Args:
        max_attempts: Total attempts, including the first one
        initial_delay: Delay before the second attempt when the server gives no hint
        backoff_multiplier: Growth of the delay between attempts
        max_delay: Upper bound for any single delay
        retry_on: Exception types that trigger a retry

    Raises:
        UpstreamFetchFailure: after the last attempt fails, chained from the last error
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            delay = initial_delay
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except retry_on as e:
                    if attempt == max_attempts:
                        logger.error("%s still failing after %d attempts: %s", func.__name__, attempt, e)
                        raise UpstreamFetchFailure(
                            f"{func.__name__} failed after {max_attempts} attempts: {e}"
                        ) from e

                    hinted = getattr(e, "retry_after", None)
                    wait = min(hinted if hinted is not None else delay, max_delay)
                    logger.warning(
                        "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                        func.__name__, attempt, max_attempts, wait, e,
                    )
                    time.sleep(wait)
                    delay = min(delay * backoff_multiplier, max_delay)

        return wrapper
    return decorator
