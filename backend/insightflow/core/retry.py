"""
Exponential backoff for calls to external services.

``retry_with_backoff`` wraps the HTTP calls to Tavily; the language model
client uses ``compute_backoff_delay`` directly because its retry rules
depend on the error type.
"""

import asyncio
import functools
import logging
import random
from typing import Any, Awaitable, Callable, Tuple, Type

logger = logging.getLogger(__name__)


JITTER_RATIO = 0.2


def compute_backoff_delay(
    attempt: int,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> float:
    """
    Seconds to wait before retry ``attempt`` (0 for the first retry).

    ``base_delay * exponential_base ** attempt`` capped at ``max_delay``.
    With jitter the result moves by up to 20% either way.
    """
    delay = min(base_delay * exponential_base ** attempt, max_delay)
    if not jitter:
        return delay
    spread = delay * JITTER_RATIO
    return max(0.0, random.uniform(delay - spread, delay + spread))


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
) -> Callable[[Callable[..., Awaitable[Any]]], Callable[..., Awaitable[Any]]]:
    """
    Retry an async function when it raises one of ``exceptions``.

    The function runs at most ``max_retries + 1`` times. Other exceptions
    propagate on the first failure; the last retryable failure is logged
    and re-raised.

    Example:
        @retry_with_backoff(max_retries=2, exceptions=(httpx.HTTPError,))
        async def _post_search(self, payload):
            ...
    """
    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= max_retries:
                        logger.error(
                            f"{func.__qualname__} gave up after {attempt + 1} attempts: {e}",
                            extra={"error_type": type(e).__name__}
                        )
                        raise

                    delay = compute_backoff_delay(attempt, base_delay, max_delay, exponential_base, jitter)
                    logger.info(
                        f"Retrying {func.__qualname__} in {delay:.2f}s",
                        extra={"attempt": attempt + 1, "error_type": type(e).__name__, "error": str(e)}
                    )
                    await asyncio.sleep(delay)
                    attempt += 1

        return wrapper
    return decorator
