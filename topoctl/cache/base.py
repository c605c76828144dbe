"""
This defines the read-only interface the reconcile core uses to look at the
cluster, plus the startup sync barrier
"""

# Standard
from dataclasses import dataclass
from typing import Callable, List, Optional
import abc
import threading
import time

# First Party
import alog

log = alog.use_channel("CACHE")

# How often the sync barrier re-checks its predicates
SYNC_POLL_PERIOD = 0.1


@dataclass
class DeletedFinalStateUnknown:
    """Delete event payload for an object whose deletion was missed while the
    watch was disconnected. Only the last known state of the object is
    available.
    """

    key: str
    obj: dict


class WatchCacheBase(abc.ABC):
    """An eventually-consistent, indexed, read-only snapshot of cluster
    objects. Writes never go through the cache; the cache is refreshed by an
    external watch.
    """

    @abc.abstractmethod
    def get(self, kind: str, namespace: Optional[str], name: str) -> Optional[dict]:
        """Look up a single object by namespace and name

        Args:
            kind:  str
                The kind of the object
            namespace:  Optional[str]
                The namespace of the object or None for cluster-scoped kinds
            name:  str
                The name of the object

        Returns:
            obj:  Optional[dict]
                The shared cached object or None if it is not present. Callers
                must copy before mutating.
        """

    @abc.abstractmethod
    def list(self, kind: str, namespace: Optional[str] = None) -> List[dict]:
        """List the cached objects of a kind, optionally in one namespace"""

    @abc.abstractmethod
    def has_synced(self, kind: str) -> bool:
        """Whether the initial list for a kind has been loaded"""

    def synced_fn(self, kind: str) -> Callable[[], bool]:
        """Get a predicate reporting whether the given kind has synced"""
        return lambda: self.has_synced(kind)


def wait_for_cache_sync(
    stop_event: threading.Event,
    *synced_fns: Callable[[], bool],
    timeout: Optional[float] = None,
) -> bool:
    """Block until every predicate reports synced

    Args:
        stop_event:  threading.Event
            Interrupts the wait when set
        *synced_fns:  Callable[[], bool]
            The predicates to wait on
        timeout:  Optional[float]
            Maximum number of seconds to wait. None waits indefinitely.

    Returns:
        synced:  bool
            True if everything synced, False if the wait was interrupted or
            timed out
    """
    deadline = None if timeout is None else time.monotonic() + timeout
    while True:
        if all(synced() for synced in synced_fns):
            return True
        if stop_event.is_set():
            log.warning("Cache sync interrupted by shutdown")
            return False
        if deadline is not None and time.monotonic() >= deadline:
            log.warning("Cache sync timed out after %ss", timeout)
            return False
        stop_event.wait(SYNC_POLL_PERIOD)
