"""
Retry handling with exponential backoff for backend calls.

Provides:
- Exponential backoff with jitter
- Configurable retry limits
- Retry only on exception types known to be transient
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from .exceptions import BackendUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 2
    base_delay_seconds: float = 0.2
    max_delay_seconds: float = 5.0
    exponential_base: float = 2.0
    jitter: bool = True
    jitter_factor: float = 0.1

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay before next retry attempt.

        Args:
            attempt: Current attempt number (0-indexed)

        Returns:
            Delay in seconds
        """
        delay = min(
            self.base_delay_seconds * (self.exponential_base**attempt),
            self.max_delay_seconds,
        )

        if self.jitter:
            jitter_range = delay * self.jitter_factor
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0, delay)


class RetryManager:
    """
    Runs coroutine functions with retry on transient errors.

    Example:
        manager = RetryManager(RetryConfig(max_retries=3))
        response = await manager.execute(backend_call, "PutLogEvents", **kwargs)
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        retry_on: tuple[type[BaseException], ...] = (BackendUnavailableError,),
    ):
        """
        Initialize retry manager.

        Args:
            config: Retry configuration
            retry_on: Exception types that trigger a retry
        """
        self.config = config or RetryConfig()
        self.retry_on = retry_on

    async def execute(
        self,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """
        Await func(*args, **kwargs), retrying transient failures.

        Returns:
            The function's result

        Raises:
            The last exception once retries are exhausted, or any
            non-retryable exception immediately
        """
        attempt = 0
        while True:
            try:
                return await func(*args, **kwargs)
            except self.retry_on as e:
                if attempt >= self.config.max_retries:
                    logger.error(
                        f"Max retries ({self.config.max_retries}) exhausted: {e}"
                    )
                    raise

                delay = self.config.calculate_delay(attempt)
                attempt += 1
                logger.warning(
                    f"Attempt {attempt} failed: {e}. Retrying in {delay:.2f} seconds..."
                )
                await asyncio.sleep(delay)
