"""
Attempt-level retry for a whole download+parse cycle.

Transient failures (timeouts, resets, I/O errors mid-parse) are retried with
linear backoff; fatal failures surface on the first occurrence.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TypeVar

from iptvcatalog.fetch.errors import PlaylistError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry attempts."""

    max_attempts: int = 3
    backoff_seconds: float = 3.0


@dataclass
class RetryAttempt:
    """Represents a single failed attempt."""

    attempt_number: int
    error: PlaylistError
    retryable: bool
    timestamp: datetime = field(default_factory=datetime.utcnow)


class RefreshRetryManager:
    """Runs an operation up to ``max_attempts`` times."""

    def __init__(self, config: RetryConfig | None = None):
        self.config = config or RetryConfig()
        self.attempt_history: list[RetryAttempt] = []

    def calculate_backoff(self, attempt_number: int) -> float:
        """Delay before ``attempt_number`` (2, 3, ...): base × attempt number."""
        return self.config.backoff_seconds * attempt_number

    async def execute_with_retry(
        self,
        operation: Callable[[int], Awaitable[T]],
        before_retry: Callable[[int], Awaitable[None]] | None = None,
        operation_name: str = "operation",
    ) -> T:
        """
        Execute ``operation(attempt_number)`` with retries.

        Args:
            operation: Async callable receiving the 1-based attempt number
            before_retry: Called before each retry, before the backoff wait,
                to discard partial results of the failed attempt
            operation_name: Name of the operation for logging

        Returns:
            Result of the first successful attempt

        Raises:
            PlaylistError: The first non-retryable error, or the last error
                once attempts are exhausted
        """
        max_attempts = self.config.max_attempts
        last_error: PlaylistError | None = None

        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                logger.warning(f"=== {operation_name}: retry attempt {attempt} of {max_attempts} ===")
                if before_retry is not None:
                    await before_retry(attempt)
                delay = self.calculate_backoff(attempt)
                logger.info(f"Waiting {delay:.1f}s before retry...")
                await asyncio.sleep(delay)

            try:
                result = await operation(attempt)
            except PlaylistError as e:
                self.attempt_history.append(RetryAttempt(attempt, e, e.retryable))
                if e.retryable and attempt < max_attempts:
                    logger.warning(f"Retryable error on attempt {attempt}: {e.message}")
                    last_error = e
                    continue
                logger.error(
                    f"{operation_name} failed on attempt {attempt}/{max_attempts}: {e.message}"
                )
                raise

            if attempt > 1:
                logger.info(f"{operation_name} succeeded after {attempt - 1} retry attempt(s)")
            return result

        if last_error is not None:
            raise last_error
        raise PlaylistError(f"{operation_name} failed after {max_attempts} attempts")
