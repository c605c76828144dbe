"""
The DelayingQueue adds the ability to add an item after a delay
"""

# Standard
from datetime import datetime, timedelta
from typing import Dict, Hashable, Optional, Union

# First Party
import alog

# Local
from ..threads.timer import TimerEvent, TimerThread
from .queue import WorkQueue

log = alog.use_channel("DLYQ")


class DelayingQueue(WorkQueue):
    """WorkQueue with delayed adds. Waiting items are scheduled on a shared
    TimerThread. Each item waits at most once: re-adding a waiting item keeps
    whichever of the two ready times is earlier.
    """

    def __init__(self, name: Optional[str] = None):
        super().__init__(name)
        self._timer = TimerThread(name=f"{self.name}_delay")
        self._waiting: Dict[Hashable, TimerEvent] = {}
        self._timer.start_thread()

    def add_after(self, item: Hashable, delay: Union[timedelta, float]):
        """Add an item once the given delay has passed

        Args:
            item:  Hashable
                The item to add
            delay:  Union[timedelta, float]
                The delay, as a timedelta or a number of seconds
        """
        if self.shutting_down:
            return

        if not isinstance(delay, timedelta):
            delay = timedelta(seconds=delay)
        if delay <= timedelta(0):
            self.add(item)
            return

        ready_time = datetime.now() + delay
        with self._condition:
            existing = self._waiting.get(item)
            if existing and not existing.stale and existing.time <= ready_time:
                log.debug3("%s is already waiting with an earlier ready time", item)
                return
            if existing:
                existing.cancel()
            log.debug2("Adding %s to %s after %s", item, self.name, delay)
            event = self._timer.put_event(ready_time, self._add_waiting, item)
            if event:
                self._waiting[item] = event

    def shut_down(self):
        """Stop the delay timer along with the queue"""
        super().shut_down()
        self._timer.stop_thread()

    ## Implementation ##########################################################

    def _add_waiting(self, item: Hashable):
        """Timer callback once an item's delay has elapsed"""
        with self._condition:
            self._waiting.pop(item, None)
        self.add(item)
