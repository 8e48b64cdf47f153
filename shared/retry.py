"""
Retry helpers for outbound calls to the release source.
"""

import asyncio
import functools
import random
from typing import Any, Awaitable, Callable, Optional

from shared.logging import get_logger


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(self,
                 max_attempts: int = 3,
                 base_delay: float = 0.5,
                 max_delay: float = 5.0,
                 exponential_base: float = 2.0,
                 jitter: bool = True):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter


class RetryError(Exception):
    """Raised when every attempt failed with a retryable exception."""

    def __init__(self, message: str, last_exception: Exception, attempts: int):
        super().__init__(message)
        self.last_exception = last_exception
        self.attempts = attempts


def retry_on_exception(exceptions: tuple = (Exception,),
                       config: Optional[RetryConfig] = None,
                       retry_if: Optional[Callable[[Any], bool]] = None) -> Callable:
    """Retry an async callable on the given exceptions.

    ``retry_if`` additionally marks a returned value as transient (e.g. a 503
    response). When attempts run out on such a value it is returned as is;
    when they run out on an exception, RetryError is raised.
    """

    if config is None:
        config = RetryConfig()

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            logger = get_logger(f"gitgate.retry.{func.__name__}")

            for attempt in range(1, config.max_attempts + 1):
                last_attempt = attempt == config.max_attempts
                try:
                    result = await func(*args, **kwargs)
                except exceptions as e:
                    if last_attempt:
                        logger.error(
                            "All retry attempts exhausted",
                            attempt=attempt,
                            function=func.__name__,
                            error=str(e)
                        )
                        raise RetryError(
                            f"Function {func.__name__} failed after {config.max_attempts} attempts",
                            last_exception=e,
                            attempts=config.max_attempts
                        ) from e
                    reason = str(e)
                else:
                    if retry_if is None or last_attempt or not retry_if(result):
                        if attempt > 1:
                            logger.info("Retry finished", attempt=attempt, function=func.__name__)
                        return result
                    reason = f"transient result: {result!r}"

                delay = _calculate_delay(attempt, config)
                logger.warning(
                    "Attempt failed, waiting before next attempt",
                    attempt=attempt,
                    delay=delay,
                    function=func.__name__,
                    error=reason
                )
                await asyncio.sleep(delay)

        return wrapper

    return decorator


def _calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Exponential backoff with optional 10% jitter."""
    delay = config.base_delay * (config.exponential_base ** (attempt - 1))
    delay = min(delay, config.max_delay)

    if config.jitter:
        jitter_amount = delay * 0.1
        delay += random.uniform(-jitter_amount, jitter_amount)

    return max(0.0, delay)
