"""
The WorkQueue is a deduplicating queue of work item keys that guarantees a key
is never handed to two consumers at the same time
"""

# Standard
from collections import deque
from typing import Any, Hashable, Optional, Tuple
import threading

# First Party
import alog

log = alog.use_channel("WRKQ")


class WorkQueue:
    """A FIFO of hashable items with two properties on top of a plain queue:

    * An item added while it is already pending is coalesced into the pending
      entry.
    * An item added while it is being processed is held back ("dirty") and
      requeued once the consumer calls done(), so the same item is never
      processed concurrently.
    """

    def __init__(self, name: Optional[str] = None):
        self.name = name or "workqueue"
        self._queue = deque()

        # Items that need processing. Everything in the queue is dirty, and
        # items being processed are dirty when re-added during processing.
        self._dirty = set()

        # Items currently handed out by get() and not yet marked done()
        self._processing = set()

        self._condition = threading.Condition()
        self._shutting_down = False

    def add(self, item: Hashable):
        """Mark an item as needing processing"""
        with self._condition:
            if self._shutting_down:
                log.debug2("Dropping %s added to shut down queue %s", item, self.name)
                return
            if item in self._dirty:
                log.debug3("Coalescing %s into pending entry", item)
                return
            self._dirty.add(item)
            if item in self._processing:
                log.debug3("Holding %s until in-flight processing is done", item)
                return
            self._queue.append(item)
            self._condition.notify()

    def get(self) -> Tuple[Any, bool]:
        """Block until an item can be processed. Every item returned must be
        released with done().

        Returns:
            item:  Any
                The next item or None when the queue has shut down
            shutdown:  bool
                True when the queue is shut down and drained
        """
        with self._condition:
            while not self._queue and not self._shutting_down:
                self._condition.wait()
            if not self._queue:
                return None, True

            item = self._queue.popleft()
            self._processing.add(item)
            self._dirty.discard(item)
            return item, False

    def done(self, item: Hashable):
        """Release the processing lock on an item. If the item was re-added
        while it was being processed it goes back onto the queue.
        """
        with self._condition:
            self._processing.discard(item)
            if item in self._dirty:
                self._queue.append(item)
                self._condition.notify()

    def shut_down(self):
        """Stop accepting new items and wake every blocked get() once the
        queue is drained
        """
        with self._condition:
            log.debug("Shutting down %s", self.name)
            self._shutting_down = True
            self._condition.notify_all()

    @property
    def shutting_down(self) -> bool:
        with self._condition:
            return self._shutting_down

    def __len__(self) -> int:
        with self._condition:
            return len(self._queue)

    def __str__(self):
        return f"{self.__class__.__name__}[{self.name}]"
