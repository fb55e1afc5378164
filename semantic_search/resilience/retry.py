"""
Retry Module

This module provides bounded retry with jittered exponential backoff for
transient failures of upstream calls, built on tenacity.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_random_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class RetryConfig:
    """
    Retry policy for a single upstream call.

    max_attempts counts the first call, so 2 means one retry.
    """
    max_attempts: int = 2
    initial_delay: float = 0.2
    max_delay: float = 2.0
    retriable_exceptions: Tuple[Type[BaseException], ...] = field(
        default_factory=lambda: (asyncio.TimeoutError, ConnectionError)
    )
    is_retriable: Optional[Callable[[BaseException], bool]] = None

    def __post_init__(self):
        """Validate the policy after initialization"""
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.initial_delay <= 0 or self.max_delay <= 0:
            raise ValueError("Backoff delays must be positive")

    def should_retry(self, error: BaseException) -> bool:
        if self.is_retriable is not None:
            return self.is_retriable(error)
        return isinstance(error, self.retriable_exceptions)


def build_retrying(config: RetryConfig) -> AsyncRetrying:
    """
    Build the tenacity controller for a retry policy.

    The wait is full-jitter exponential backoff capped at max_delay, and the
    last exception is re-raised unchanged once attempts are exhausted.
    """
    return AsyncRetrying(
        stop=stop_after_attempt(config.max_attempts),
        wait=wait_random_exponential(multiplier=config.initial_delay, max=config.max_delay),
        retry=retry_if_exception(config.should_retry),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


async def execute_with_retry(
    func: Callable[..., Awaitable[T]],
    config: RetryConfig,
    *args: Any,
    **kwargs: Any
) -> T:
    """
    Execute an async callable under a retry policy.

    Only errors accepted by the policy trigger another attempt; anything else
    propagates immediately.

    Args:
        func: Async function to execute
        config: Retry configuration
        *args: Positional arguments for function
        **kwargs: Keyword arguments for function

    Returns:
        Result of the first successful attempt

    Raises:
        Exception: The last exception if all attempts fail
    """
    return await build_retrying(config)(func, *args, **kwargs)
