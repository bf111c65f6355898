"""
Bounded retry with exponential backoff for SyncClient calls.

The SyncClient only classifies failures; whether to try again is decided
here, keyed off SyncResult.retryable. With max_retries=0 every operation runs
exactly once.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from asset_sync.models.sync import SyncResult

logger = logging.getLogger(__name__)


class RetryPolicy:
    def __init__(
        self,
        max_retries: int = 0,
        backoff_seconds: float = 0.5,
        max_backoff_seconds: float = 30.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_retries = max(0, max_retries)
        self.backoff_seconds = backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds
        self._sleep = sleep

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number `attempt` (0-based)."""
        return min(self.backoff_seconds * (2 ** attempt), self.max_backoff_seconds)

    async def run(self, operation: Callable[[], Awaitable[SyncResult]]) -> SyncResult:
        result = await operation()
        attempt = 0
        while not result.success and result.retryable and attempt < self.max_retries:
            delay = self.delay_for(attempt)
            attempt += 1
            logger.warning(
                "Retryable MLE failure, retrying in %.2fs (attempt %d of %d)",
                delay, attempt, self.max_retries,
            )
            await self._sleep(delay)
            result = await operation()
        return result
