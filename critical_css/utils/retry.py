"""Retry functionality for handling transient failures."""

import asyncio
import random
import logging
from typing import Awaitable, Callable, Any, Type, Tuple, Union

logger = logging.getLogger(__name__)

async def retry_async(
    func: Callable[..., Awaitable[Any]],
    *args,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retry_on_exceptions: Union[Type[Exception], Tuple[Type[Exception], ...]] = Exception,
    **kwargs
) -> Any:
    """Retry a coroutine function with exponential backoff.

    The function is called at most ``max_retries + 1`` times.

    Args:
        func: Coroutine function to retry
        *args: Positional arguments for the function
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries in seconds
        exponential_base: Base for exponential backoff
        jitter: Whether to add random jitter to delays
        retry_on_exceptions: Exception type(s) to retry on
        **kwargs: Keyword arguments for the function

    Returns:
        Result of the function call

    Raises:
        Exception: Last exception if all retries fail
    """
    attempt = 0

    while True:
        try:
            return await func(*args, **kwargs)

        except retry_on_exceptions as e:
            if attempt >= max_retries:
                logger.error(f"All {max_retries} retry attempts failed")
                raise

            # Calculate delay with exponential backoff
            delay = min(base_delay * (exponential_base ** attempt), max_delay)

            # Add jitter if enabled
            if jitter:
                delay = delay * (0.5 + random.random())

            attempt += 1
            logger.warning(
                f"Attempt {attempt}/{max_retries} failed: {str(e)}. "
                f"Retrying in {delay:.2f} seconds..."
            )

            await asyncio.sleep(delay)

# Exported functions
__all__ = ['retry_async']
