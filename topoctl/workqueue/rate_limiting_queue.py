"""
The RateLimitingQueue re-adds failed items after a backoff chosen by a
RateLimiter
"""

# Standard
from typing import Hashable, Optional

# First Party
import alog

# Local
from .delaying_queue import DelayingQueue
from .rate_limiter import RateLimiterBase, default_controller_rate_limiter

log = alog.use_channel("RTLMQ")


class RateLimitingQueue(DelayingQueue):
    """DelayingQueue whose retries are paced by a rate limiter. Backoff for a
    key grows with every add_rate_limited() and only resets on forget().
    """

    def __init__(
        self,
        rate_limiter: Optional[RateLimiterBase] = None,
        name: Optional[str] = None,
    ):
        super().__init__(name)
        self.rate_limiter = rate_limiter or default_controller_rate_limiter()

    def add_rate_limited(self, item: Hashable):
        """Add the item once the rate limiter says it may be retried"""
        delay = self.rate_limiter.when(item)
        log.debug("Requeueing %s after %s", item, delay, extra={"key": item})
        self.add_after(item, delay)

    def forget(self, item: Hashable):
        """Clear any backoff state for the item"""
        self.rate_limiter.forget(item)

    def num_requeues(self, item: Hashable) -> int:
        """Number of consecutive failures recorded for the item"""
        return self.rate_limiter.num_requeues(item)
