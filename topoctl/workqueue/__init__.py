"""
Deduplicating, delay-capable and rate-limited work queues of reconcile keys
"""

# Local
from .delaying_queue import DelayingQueue
from .queue import WorkQueue
from .rate_limiter import (
    BucketRateLimiter,
    ItemExponentialFailureRateLimiter,
    MaxOfRateLimiter,
    RateLimiterBase,
    default_controller_rate_limiter,
)
from .rate_limiting_queue import RateLimitingQueue
