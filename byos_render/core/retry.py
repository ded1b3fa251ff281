"""
Retry Utilities
===============

Async retry with exponential backoff for transient render failures.
"""

from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar
import asyncio

from byos_render.config.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


async def retry_async(
    coro_func: Callable[[], Awaitable[T]],
    retry_on: Tuple[Type[BaseException], ...],
    max_retries: int = 1,
    backoff: float = 0.0,
    backoff_multiplier: float = 2.0,
    max_backoff: float = 60.0,
    operation: Optional[str] = None,
) -> T:
    """
    Retry an async function with exponential backoff.

    Args:
        coro_func: Function that returns a coroutine
        retry_on: Exception types that trigger a retry; anything else propagates
        max_retries: Maximum number of retry attempts
        backoff: Initial backoff delay in seconds
        backoff_multiplier: Multiplier for exponential backoff
        max_backoff: Maximum backoff delay in seconds
        operation: Name used in log events

    Returns:
        Function result

    Raises:
        The last exception once retries are exhausted
    """
    log: Any = logger.bind(operation=operation or getattr(coro_func, "__name__", "operation"))
    current_backoff = backoff

    for attempt in range(max_retries + 1):
        try:
            result = await coro_func()
        except retry_on as e:
            if attempt >= max_retries:
                log.error("Retries exhausted", attempts=attempt + 1, error=str(e))
                raise

            log.warning(
                "Attempt failed, retrying",
                attempt=attempt + 1,
                max_attempts=max_retries + 1,
                error=str(e),
                delay=current_backoff,
            )
            if current_backoff > 0:
                await asyncio.sleep(current_backoff)
            current_backoff = min(current_backoff * backoff_multiplier, max_backoff)
        else:
            if attempt > 0:
                log.info("Operation succeeded after retry", attempt=attempt + 1)
            return result

    raise AssertionError("unreachable")
