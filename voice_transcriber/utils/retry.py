"""Async retry decorator with exponential backoff.

Used around collaborator calls (profile store reads) where a transient
transport failure is worth one more try but a definitive HTTP answer is not.
"""

import asyncio
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any

logger = logging.getLogger(__name__)


def retry_with_backoff(
    max_retries: int = 2,
    base_delay: float = 0.25,
    max_delay: float = 2.0,
    retryable_exceptions: tuple[type[Exception], ...] | None = None,
) -> Callable:
    """Decorator for retrying async functions with exponential backoff.

    Delay before retry N (0-based) is min(max_delay, base_delay * 2^N).

    Args:
        max_retries: Retry attempts after the first call (default 2).
        base_delay: Delay in seconds before the first retry.
        max_delay: Upper bound on any single delay.
        retryable_exceptions: Exception types eligible for retry. None
            retries everything. Anything else is re-raised at once with
            ``retry_count`` attached.

    Returns:
        Decorator that wraps an async function with retry logic.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            last_error: Exception | None = None
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except Exception as exc:
                    last_error = exc
                    if retryable_exceptions is not None and not isinstance(
                        exc, retryable_exceptions
                    ):
                        exc.retry_count = attempt  # type: ignore[attr-defined]
                        raise
                    if attempt < max_retries:
                        delay = min(max_delay, base_delay * (2**attempt))
                        logger.warning(
                            "Retry %d/%d for %s after %.2fs: %s",
                            attempt + 1,
                            max_retries,
                            func.__name__,
                            delay,
                            exc,
                        )
                        await asyncio.sleep(delay)
            last_error.retry_count = max_retries  # type: ignore[union-attr]
            raise last_error  # type: ignore[misc]

        return wrapper

    return decorator
