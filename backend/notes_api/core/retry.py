"""Bounded retry for callers of the billing services (scripts, background jobs).

The services themselves never retry; a failed query surfaces as
StorageUnavailable and the caller decides. This helper is the explicit loop
callers use instead of re-invoking themselves on failure.
"""

import functools
import logging
import time
from typing import Callable, TypeVar

from .errors import StorageUnavailable

log = logging.getLogger(__name__)

T = TypeVar('T')


def retry_on_storage_unavailable(max_attempts: int = 3, initial_delay: float = 0.5, max_delay: float = 5.0):
    """Retry on StorageUnavailable with exponential backoff.

    Args:
        max_attempts: Total attempts including the first (>= 1)
        initial_delay: Seconds to wait after the first failure
        max_delay: Upper bound for a single wait
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            delay = initial_delay
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except StorageUnavailable as e:
                    if attempt >= max_attempts:
                        log.error(
                            f"[retry] {func.__name__} failed after {max_attempts} attempts: {e.detail}"
                        )
                        raise
                    log.warning(
                        f"[retry] Storage unavailable in {func.__name__}, attempt {attempt}/{max_attempts}: "
                        f"{e.detail}; retrying in {delay:.1f}s"
                    )
                    time.sleep(delay)
                    delay = min(delay * 2 if delay > 0 else 0.5, max_delay)
            raise AssertionError("unreachable")  # pragma: no cover

        return wrapper
    return decorator


__all__ = ["retry_on_storage_unavailable"]
