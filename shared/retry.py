"""
Retry helper for transient upstream failures.
"""

import asyncio
import functools
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Tuple, Type

from shared.logging import get_logger


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently to retry a failing call.

    Delays grow as ``base_delay * multiplier ** (attempt - 1)``, are capped at
    ``max_delay`` and, with ``jitter``, spread by up to 10% either way.
    """

    max_attempts: int = 3
    base_delay: float = 0.25
    max_delay: float = 5.0
    multiplier: float = 2.0
    jitter: bool = True

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        delay = min(self.base_delay * (self.multiplier ** (attempt - 1)), self.max_delay)
        if self.jitter:
            delay += random.uniform(-0.1, 0.1) * delay
        return max(0.0, delay)


class RetryError(Exception):
    """Every attempt failed; ``last_exception`` holds the final cause."""

    def __init__(self, message: str, last_exception: BaseException, attempts: int):
        super().__init__(message)
        self.last_exception = last_exception
        self.attempts = attempts


def retry_on_exception(
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    policy: RetryPolicy = RetryPolicy(),
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Callable:
    """Retry an async callable while it raises one of ``exceptions``.

    Other exceptions propagate at once. When the last attempt fails a
    ``RetryError`` is raised from the final exception.
    """
    if policy.max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        logger = get_logger(f"retry.{func.__name__}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            attempt = 1
            while True:
                try:
                    result = await func(*args, **kwargs)
                except exceptions as exc:
                    if attempt >= policy.max_attempts:
                        logger.error("Giving up after retries", attempts=attempt, error=str(exc))
                        raise RetryError(
                            f"{func.__name__} failed after {attempt} attempts: {exc}",
                            last_exception=exc,
                            attempts=attempt,
                        ) from exc

                    delay = policy.delay_for(attempt)
                    logger.warning("Transient failure, retrying", attempt=attempt, delay=round(delay, 3), error=str(exc))
                    await sleep(delay)
                    attempt += 1
                else:
                    if attempt > 1:
                        logger.info("Succeeded after retry", attempts=attempt)
                    return result

        return wrapper

    return decorator
