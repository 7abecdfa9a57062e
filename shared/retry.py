"""
Retry logic with exponential backoff.

Decorator for automatic retry with exponential backoff on retryable errors.
"""

import asyncio
import functools
from typing import Any, Awaitable, Callable, Tuple, Type, TypeVar

from shared.errors import RetryableError
from shared.logging import get_logger

T = TypeVar("T")
logger = get_logger("retry")


def retry_with_backoff(
    max_attempts: int = 3,
    base_delay: float = 2,
    retryable_exceptions: Tuple[Type[Exception], ...] = (RetryableError,)
):
    """
    Decorator for retrying coroutine functions with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (default: 3)
        base_delay: Base delay in seconds for exponential backoff (default: 2)
        retryable_exceptions: Exception types to retry on (default: RetryableError)

    Returns:
        Decorated function

    Example:
        @retry_with_backoff(max_attempts=3, base_delay=2)
        async def fetch_artifact():
            # Will retry on RetryableError
            return await client.get(url)
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        if not asyncio.iscoroutinefunction(func):
            raise TypeError(f"retry_with_backoff requires a coroutine function, got {func.__name__}")

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> T:
            attempts = max_attempts
            last_exception = None

            for attempt in range(attempts):
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as e:
                    last_exception = e
                    if attempt < attempts - 1:
                        # Exponential backoff: 2s, 4s, 8s, etc.
                        delay = base_delay * (2 ** attempt)
                        logger.warning(
                            f"Retry attempt {attempt + 1}/{attempts} for {func.__name__} "
                            f"after {delay}s delay",
                            extra={"error": str(e), "attempt": attempt + 1}
                        )
                        await asyncio.sleep(delay)
                    else:
                        logger.error(
                            f"All {attempts} retry attempts failed for {func.__name__}",
                            extra={"error": str(e)}
                        )
                except Exception as e:
                    # Don't retry on non-retryable exceptions
                    logger.error(
                        f"Non-retryable error in {func.__name__}: {str(e)}",
                        extra={"error": str(e)}
                    )
                    raise

            if last_exception:
                raise last_exception
            raise RuntimeError(f"Function {func.__name__} failed after {attempts} attempts")

        return async_wrapper

    return decorator
