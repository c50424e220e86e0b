"""
Retry mechanism for resilient operations.

Attempts are strictly sequential and separated by a fixed delay. The loop
re-raises the last exception unchanged once the retry budget is spent.
"""

import asyncio
import functools
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from shared.errors import SemanticError
from shared.logging import get_logger


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(self,
                 max_retries: int = 2,
                 delay_ms: int = 1000,
                 retry_on: Tuple[Type[BaseException], ...] = (SemanticError,),
                 give_up_on: Tuple[Type[BaseException], ...] = ()):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        self.max_retries = max_retries
        self.delay_ms = delay_ms
        self.retry_on = retry_on
        # Empty by default: every SemanticError variant is retried alike.
        self.give_up_on = give_up_on

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000.0


async def retry_async(func: Callable[[], Awaitable[Any]],
                      config: RetryConfig,
                      *,
                      operation: str = "operation",
                      sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
                      on_retry: Optional[Callable[[int, BaseException], None]] = None) -> Any:
    """Run ``func`` until it succeeds or ``config.max_retries`` retries are spent."""
    logger = get_logger(f"retry.{operation}")
    retries_remaining = config.max_retries
    attempt = 0

    while True:
        attempt += 1
        try:
            result = await func()
        except config.retry_on as exc:
            if retries_remaining <= 0 or isinstance(exc, config.give_up_on):
                if attempt > 1:
                    logger.error(
                        "All retry attempts exhausted",
                        attempt=attempt,
                        max_attempts=config.max_attempts,
                        error=str(exc)
                    )
                raise

            logger.warning(
                "Retry attempt failed, waiting before next attempt",
                attempt=attempt,
                retries_remaining=retries_remaining,
                delay_ms=config.delay_ms,
                error=str(exc)
            )
            await sleep(config.delay_seconds)
            retries_remaining -= 1
            if on_retry is not None:
                on_retry(retries_remaining, exc)
            continue

        if attempt > 1:
            logger.info("Retry succeeded", attempt=attempt)
        return result


def retry_on_exception(config: Optional[RetryConfig] = None) -> Callable:
    """Decorator for retrying async functions with a fixed delay."""

    if config is None:
        config = RetryConfig()

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            return await retry_async(
                lambda: func(*args, **kwargs),
                config,
                operation=func.__name__
            )

        return wrapper

    return decorator
