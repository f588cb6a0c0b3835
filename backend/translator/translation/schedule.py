"""Polling interval schedule, global wait bound and progress estimation."""
import math
from dataclasses import dataclass
from typing import Optional

from translator.config import (
    POLL_INITIAL_INTERVAL,
    POLL_MAX_WAIT_SECONDS,
    POLL_SLOW_AFTER,
    POLL_SLOW_INTERVAL,
    POLL_STANDARD_AFTER,
    POLL_STANDARD_INTERVAL,
)


@dataclass(frozen=True)
class PollSchedule:
    initial_interval: float = POLL_INITIAL_INTERVAL
    standard_interval: float = POLL_STANDARD_INTERVAL
    slow_interval: float = POLL_SLOW_INTERVAL
    standard_after: int = POLL_STANDARD_AFTER
    slow_after: int = POLL_SLOW_AFTER
    max_wait: float = POLL_MAX_WAIT_SECONDS

    @property
    def max_checks(self) -> int:
        """Check-count cap: the wait budget expressed in standard intervals."""
        return math.ceil(self.max_wait / self.standard_interval)

    def interval_for(self, check_number: int) -> float:
        """Delay preceding the check_number-th status check (1-based)."""
        if check_number <= self.standard_after:
            return self.initial_interval
        if check_number <= self.slow_after:
            return self.standard_interval
        return self.slow_interval

    def is_exhausted(self, check_count: int, elapsed: float) -> bool:
        return check_count >= self.max_checks or elapsed >= self.max_wait

    def next_wake(self, check_count: int, started_at: float, now: float) -> Optional[float]:
        """
        Absolute time of the next status check, clamped to the wait deadline.
        None once the budget is spent and the task should time out.
        """
        if self.is_exhausted(check_count, now - started_at):
            return None
        deadline = started_at + self.max_wait
        return min(now + self.interval_for(check_count + 1), deadline)


def estimate_progress(check_count: int) -> int:
    """Saturating estimate used when the provider omits progress. Never exceeds 95."""
    if check_count < 5:
        return max(0, min(20, check_count * 4))
    if check_count < 15:
        return min(70, 20 + (check_count - 5) * 5)
    return min(95, 70 + (check_count - 15))
