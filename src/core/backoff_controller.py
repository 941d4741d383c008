"""
Backoff Controller

Global pause plus a tick interval that only ever widens. One HTTP 429 from
any collection pauses every task, since the marketplace rate limit is per
client, not per collection.
"""

import time
from typing import Callable

from config.constants import (
    DEFAULT_TICK_MS,
    DEFAULT_BACKOFF_MS,
    BACKOFF_STEP_MS,
    BACKOFF_MAX_TICK_MS,
)
from utils.logger import get_logger


logger = get_logger(__name__)


class BackoffController:

    def __init__(
        self,
        tick_interval_ms: int = DEFAULT_TICK_MS,
        backoff_ms: int = DEFAULT_BACKOFF_MS,
        step_ms: int = BACKOFF_STEP_MS,
        max_tick_ms: int = BACKOFF_MAX_TICK_MS,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            tick_interval_ms: Starting tick interval
            backoff_ms: Pause length after a rate-limit signal
            step_ms: Tick widening per signal
            max_tick_ms: Cap for the widened tick
            clock: Seconds-based monotonic clock (injected in tests)
        """
        self._clock = clock
        self.backoff_ms = backoff_ms
        self.step_ms = step_ms
        self.max_tick_ms = max(max_tick_ms, tick_interval_ms)
        self.tick_interval_ms = tick_interval_ms
        self.paused_until = 0.0
        self.rate_limit_count = 0

    def is_paused(self) -> bool:
        return self._clock() < self.paused_until

    def remaining_pause_sec(self) -> float:
        return max(0.0, self.paused_until - self._clock())

    def on_rate_limited(self) -> None:
        """Pause all polling and widen the tick, never past the cap."""
        self.rate_limit_count += 1
        self.paused_until = max(self.paused_until, self._clock() + self.backoff_ms / 1000.0)
        self.tick_interval_ms = min(self.tick_interval_ms + self.step_ms, self.max_tick_ms)
        logger.warning(
            f"Rate limited, pausing {self.backoff_ms} ms; tick now {self.tick_interval_ms} ms",
            extra={
                'backoff_ms': self.backoff_ms,
                'tick_interval_ms': self.tick_interval_ms,
                'rate_limit_count': self.rate_limit_count,
            }
        )

    @property
    def interval_seconds(self) -> float:
        return self.tick_interval_ms / 1000.0
