"""Bounded retry with backoff for a single provider call."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from translator.config import STATUS_MAX_RETRIES, STATUS_RETRY_BACKOFF, STATUS_RETRY_DELAY, STATUS_RETRY_MAX_DELAY
from translator.errors import TransientProviderError

logger = logging.getLogger("translator.retry")

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]

BACKOFF_LINEAR = "linear"
BACKOFF_MULTIPLICATIVE = "multiplicative"


@dataclass(frozen=True)
class RetryPolicy:
    """
    max_retries is the total number of attempts.
    linear: wait retry_delay * attempt after the attempt-th failure.
    multiplicative: retry_delay, then x multiplier per failure, capped at max_delay.
    """

    max_retries: int = STATUS_MAX_RETRIES
    retry_delay: float = STATUS_RETRY_DELAY
    backoff: str = STATUS_RETRY_BACKOFF
    multiplier: float = 1.5
    max_delay: float = STATUS_RETRY_MAX_DELAY
    retry_on: Tuple[Type[BaseException], ...] = (TransientProviderError,)

    def delay_for(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based)."""
        if self.backoff == BACKOFF_MULTIPLICATIVE:
            return min(self.retry_delay * self.multiplier ** (attempt - 1), self.max_delay)
        return self.retry_delay * attempt

    async def run(self, operation: Callable[[], Awaitable[T]], sleep: Sleep = asyncio.sleep) -> T:
        """Return the first successful result; re-raise the last error once attempts are exhausted."""
        attempts = max(1, self.max_retries)
        for attempt in range(1, attempts):
            try:
                return await operation()
            except self.retry_on as e:
                delay = self.delay_for(attempt)
                logger.warning("Attempt %s/%s failed (%s), retrying in %.1fs", attempt, attempts, e, delay)
                await sleep(delay)
        try:
            return await operation()
        except self.retry_on as e:
            logger.error("All %s attempts failed: %s", attempts, e)
            raise
