"""
Tests for the rate limiters
"""
# Standard
from datetime import timedelta

# Third Party
import pytest

# Local
from topoctl.test_helpers.helpers import library_config
from topoctl.workqueue import (
    BucketRateLimiter,
    ItemExponentialFailureRateLimiter,
    MaxOfRateLimiter,
    default_controller_rate_limiter,
)


def test_exponential_backoff_grows_and_resets():
    """The delay doubles with each failure and resets after forget"""
    limiter = ItemExponentialFailureRateLimiter(
        timedelta(milliseconds=5), timedelta(seconds=1000)
    )
    delays = [limiter.when("ns1/demo") for _ in range(5)]
    assert delays == [timedelta(milliseconds=5 * 2**i) for i in range(5)]
    assert all(later > earlier for earlier, later in zip(delays, delays[1:]))
    assert limiter.num_requeues("ns1/demo") == 5

    limiter.forget("ns1/demo")
    assert limiter.num_requeues("ns1/demo") == 0
    assert limiter.when("ns1/demo") == timedelta(milliseconds=5)


def test_exponential_backoff_is_per_item():
    limiter = ItemExponentialFailureRateLimiter(
        timedelta(milliseconds=5), timedelta(seconds=1000)
    )
    limiter.when("ns1/a")
    limiter.when("ns1/a")
    assert limiter.when("ns1/b") == timedelta(milliseconds=5)


def test_exponential_backoff_capped():
    limiter = ItemExponentialFailureRateLimiter(
        timedelta(seconds=1), timedelta(seconds=10)
    )
    for _ in range(100):
        delay = limiter.when("ns1/demo")
    assert delay == timedelta(seconds=10)


def test_bucket_rate_limiter_burst_then_wait():
    limiter = BucketRateLimiter(qps=1, burst=2)
    assert limiter.when("a") == timedelta(0)
    assert limiter.when("b") == timedelta(0)
    assert limiter.when("c") > timedelta(0)
    assert limiter.num_requeues("c") == 0


def test_bucket_rate_limiter_disabled():
    limiter = BucketRateLimiter(qps=0, burst=1)
    for _ in range(10):
        assert limiter.when("a") == timedelta(0)


def test_max_of_rate_limiter():
    limiter = MaxOfRateLimiter(
        ItemExponentialFailureRateLimiter(
            timedelta(milliseconds=5), timedelta(seconds=1)
        ),
        ItemExponentialFailureRateLimiter(
            timedelta(milliseconds=50), timedelta(seconds=1)
        ),
    )
    assert limiter.when("a") == timedelta(milliseconds=50)
    assert limiter.num_requeues("a") == 1
    limiter.forget("a")
    assert limiter.num_requeues("a") == 0


def test_max_of_rate_limiter_needs_limiters():
    with pytest.raises(ValueError):
        MaxOfRateLimiter()


def test_default_controller_rate_limiter_from_config():
    with library_config(
        rate_limiter={
            "base_delay": "0.01s",
            "max_delay": "1s",
            "qps": 0,
            "burst": 1,
        }
    ):
        limiter = default_controller_rate_limiter()
    assert limiter.when("a") == timedelta(seconds=0.01)
    assert limiter.when("a") == timedelta(seconds=0.02)
