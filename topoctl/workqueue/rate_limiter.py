"""
Rate limiters decide how long a failed work item waits before it is retried
"""

# Standard
from datetime import timedelta
from typing import Dict, Hashable
import abc
import threading
import time

# First Party
import alog

# Local
from .. import config
from ..exceptions import assert_config
from ..utils import parse_time_delta

log = alog.use_channel("RTLMT")


class RateLimiterBase(abc.ABC):
    """Interface shared by all rate limiters"""

    @abc.abstractmethod
    def when(self, item: Hashable) -> timedelta:
        """Record a retry of the item and get how long it should wait

        Args:
            item:  Hashable
                The item being retried

        Returns:
            delay:  timedelta
                How long to wait before the item is added again
        """

    @abc.abstractmethod
    def forget(self, item: Hashable):
        """Stop tracking the item. The next failure starts from scratch."""

    @abc.abstractmethod
    def num_requeues(self, item: Hashable) -> int:
        """Number of consecutive failures recorded for the item"""


class ItemExponentialFailureRateLimiter(RateLimiterBase):
    """Per-item exponential backoff: base_delay * 2^failures, capped at
    max_delay
    """

    def __init__(self, base_delay: timedelta, max_delay: timedelta):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._failures: Dict[Hashable, int] = {}
        self._lock = threading.Lock()

    def when(self, item: Hashable) -> timedelta:
        with self._lock:
            exp = self._failures.get(item, 0)
            self._failures[item] = exp + 1

        # Avoid building a float that overflows before the cap is applied
        if exp > 62:
            return self.max_delay
        backoff = self.base_delay.total_seconds() * (2**exp)
        return min(timedelta(seconds=backoff), self.max_delay)

    def forget(self, item: Hashable):
        with self._lock:
            self._failures.pop(item, None)

    def num_requeues(self, item: Hashable) -> int:
        with self._lock:
            return self._failures.get(item, 0)


class BucketRateLimiter(RateLimiterBase):
    """Overall token bucket shared by every item. Refills at qps tokens per
    second up to burst tokens. A qps of 0 disables the limiter.
    """

    def __init__(self, qps: float, burst: int):
        self.qps = qps
        self.burst = burst
        self._tokens = float(burst)
        self._last = time.monotonic()
        self._lock = threading.Lock()

    def when(self, item: Hashable) -> timedelta:
        if self.qps <= 0:
            return timedelta(0)
        with self._lock:
            now = time.monotonic()
            self._tokens = min(
                float(self.burst), self._tokens + (now - self._last) * self.qps
            )
            self._last = now
            self._tokens -= 1
            if self._tokens >= 0:
                return timedelta(0)
            return timedelta(seconds=-self._tokens / self.qps)

    def forget(self, item: Hashable):
        pass

    def num_requeues(self, item: Hashable) -> int:
        return 0


class MaxOfRateLimiter(RateLimiterBase):
    """Combine several limiters, waiting for the longest of them"""

    def __init__(self, *limiters: RateLimiterBase):
        if not limiters:
            raise ValueError("MaxOfRateLimiter needs at least one limiter")
        self.limiters = limiters

    def when(self, item: Hashable) -> timedelta:
        return max(limiter.when(item) for limiter in self.limiters)

    def forget(self, item: Hashable):
        for limiter in self.limiters:
            limiter.forget(item)

    def num_requeues(self, item: Hashable) -> int:
        return max(limiter.num_requeues(item) for limiter in self.limiters)


def default_controller_rate_limiter() -> RateLimiterBase:
    """Build the controller's rate limiter from the library config: per-item
    exponential backoff combined with an overall token bucket
    """
    limiter_config = config.rate_limiter
    base_delay = parse_time_delta(limiter_config.base_delay)
    max_delay = parse_time_delta(limiter_config.max_delay)
    assert_config(
        base_delay is not None and max_delay is not None,
        f"Invalid rate_limiter delays: {limiter_config}",
    )
    assert_config(base_delay <= max_delay, "rate_limiter.base_delay > max_delay")
    log.debug2(
        "Using rate limiter base_delay=%s max_delay=%s qps=%s burst=%s",
        base_delay,
        max_delay,
        limiter_config.qps,
        limiter_config.burst,
    )
    return MaxOfRateLimiter(
        ItemExponentialFailureRateLimiter(base_delay, max_delay),
        BucketRateLimiter(limiter_config.qps, limiter_config.burst),
    )
