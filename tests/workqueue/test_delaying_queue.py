"""
Tests for the DelayingQueue
"""
# Standard
from datetime import timedelta
import time

# Third Party
import pytest

# Local
from topoctl.workqueue import DelayingQueue


@pytest.mark.timeout(5)
def test_add_after_delays_the_item():
    queue = DelayingQueue()
    try:
        queue.add_after("ns1/demo", timedelta(seconds=0.2))
        assert len(queue) == 0
        time.sleep(0.5)
        assert len(queue) == 1
        assert queue.get() == ("ns1/demo", False)
    finally:
        queue.shut_down()


@pytest.mark.timeout(5)
def test_add_after_non_positive_delay_adds_now():
    queue = DelayingQueue()
    try:
        queue.add_after("ns1/demo", 0)
        assert len(queue) == 1
    finally:
        queue.shut_down()


@pytest.mark.timeout(5)
def test_add_after_keeps_earliest_ready_time():
    """A waiting item is added once, at the earlier of its two ready times"""
    queue = DelayingQueue()
    try:
        queue.add_after("ns1/demo", 5)
        queue.add_after("ns1/demo", 0.1)
        time.sleep(0.4)
        assert len(queue) == 1
        item, _ = queue.get()
        queue.done(item)

        # The cancelled 5s wait never fires a second add
        queue.add_after("ns1/other", 0.1)
        queue.add_after("ns1/other", 5)
        time.sleep(0.4)
        assert queue.get() == ("ns1/other", False)
    finally:
        queue.shut_down()


@pytest.mark.timeout(5)
def test_add_after_on_shut_down_queue_is_dropped():
    queue = DelayingQueue()
    queue.shut_down()
    queue.add_after("ns1/demo", 0.01)
    time.sleep(0.1)
    assert len(queue) == 0
