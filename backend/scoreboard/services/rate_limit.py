import logging
import time
from typing import Optional

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

logger = logging.getLogger(__name__)


class SlidingWindowLimiter:
    """In-memory per-key limiter for sign-in attempts (single process only)."""

    def __init__(self, limit: int, window_seconds: int):
        self.limit = limit
        self.window_seconds = window_seconds
        self._item = RateLimitItemPerSecond(limit, window_seconds)
        self._storage = MemoryStorage()
        self._strategy = MovingWindowRateLimiter(self._storage)

    def retry_after(self, key: str) -> int:
        """Seconds until ``key`` may try again, 0 when allowed."""
        if self._strategy.test(self._item, key):
            return 0
        reset_time, _remaining = self._strategy.get_window_stats(self._item, key)
        return max(int(reset_time - time.time()), 0) + 1

    def hit(self, key: str) -> None:
        if not self._strategy.hit(self._item, key) or not self._strategy.test(self._item, key):
            logger.warning("Rate limit reached for %s", key)

    def reset(self, key: Optional[str] = None) -> None:
        if key is None:
            self._storage.reset()
        else:
            self._strategy.clear(self._item, key)
