"""
Retry mechanism for admin API calls.
"""

import asyncio
import random
from typing import Any, Optional, Callable, Awaitable

from rgw_shared.logging import get_logger


class RetryConfig:
    """Configuration for retry behavior.

    Delays double per attempt from ``base_delay`` up to ``max_delay``, with
    up to 10% jitter either way when ``jitter`` is set.
    """

    def __init__(self,
                 max_attempts: int = 2,
                 base_delay: float = 0.5,
                 max_delay: float = 10.0,
                 jitter: bool = True):
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter


async def call_with_retry(func: Callable[..., Awaitable[Any]],
                          *args,
                          exceptions: tuple = (Exception,),
                          config: Optional[RetryConfig] = None,
                          **kwargs) -> Any:
    """Await ``func`` until it succeeds or attempts are exhausted.

    Only exceptions listed in ``exceptions`` are retried. When the last
    attempt fails its exception propagates unchanged so callers keep the
    original error type.
    """
    if config is None:
        config = RetryConfig()

    name = getattr(func, "__name__", "call")
    logger = get_logger(f"rgw_exporter.retry.{name}")

    for attempt in range(1, config.max_attempts + 1):
        try:
            result = await func(*args, **kwargs)

            if attempt > 1:
                logger.info("Retry succeeded", attempt=attempt, function=name)

            return result

        except exceptions as e:
            if attempt == config.max_attempts:
                if config.max_attempts > 1:
                    logger.warning(
                        "All retry attempts exhausted",
                        attempt=attempt,
                        max_attempts=config.max_attempts,
                        function=name,
                        error=str(e)
                    )
                raise

            delay = _calculate_delay(attempt, config)

            logger.debug(
                "Retry attempt failed, waiting before next attempt",
                attempt=attempt,
                delay=delay,
                function=name,
                error=str(e)
            )

            await asyncio.sleep(delay)


def _calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Calculate delay before the attempt after ``attempt``."""
    delay = min(config.base_delay * (2 ** (attempt - 1)), config.max_delay)

    if config.jitter:
        jitter_amount = delay * 0.1
        delay += random.uniform(-jitter_amount, jitter_amount)

    return max(0.0, delay)
