"""
The WatchCache holds the latest known state of every watched object in memory
and dispatches add/update/delete notifications to registered handlers. It is
fed by InformerThreads in a live deployment and by the DryRunStoreClient when
running without a cluster.
"""

# Standard
from dataclasses import dataclass
from threading import RLock
from typing import Callable, Dict, List, Optional, Set, Tuple

# First Party
import alog

# Local
from ..utils import meta_namespace_key
from .base import DeletedFinalStateUnknown, WatchCacheBase

log = alog.use_channel("WCACHE")


@dataclass
class ResourceEventHandler:
    """The set of callbacks registered for one kind. Any of them may be None."""

    on_add: Optional[Callable[[dict], None]] = None
    on_update: Optional[Callable[[dict, dict], None]] = None
    on_delete: Optional[Callable[[object], None]] = None


class WatchCache(WatchCacheBase):
    """Thread-safe per-kind index of objects keyed by <namespace>/<name>"""

    def __init__(self):
        self._store: Dict[str, Dict[str, dict]] = {}
        self._synced: Set[str] = set()
        self._handlers: Dict[str, List[ResourceEventHandler]] = {}
        self._lock = RLock()

    ## Read Interface ##########################################################

    def get(self, kind: str, namespace: Optional[str], name: str) -> Optional[dict]:
        key = f"{namespace}/{name}" if namespace else name
        with self._lock:
            return self._store.get(kind, {}).get(key)

    def list(self, kind: str, namespace: Optional[str] = None) -> List[dict]:
        with self._lock:
            objects = list(self._store.get(kind, {}).values())
        if namespace is None:
            return objects
        return [
            obj
            for obj in objects
            if (obj.get("metadata") or {}).get("namespace") == namespace
        ]

    def has_synced(self, kind: str) -> bool:
        with self._lock:
            return kind in self._synced

    ## Handler Registration ####################################################

    def add_event_handler(
        self,
        kind: str,
        on_add: Optional[Callable[[dict], None]] = None,
        on_update: Optional[Callable[[dict, dict], None]] = None,
        on_delete: Optional[Callable[[object], None]] = None,
    ) -> ResourceEventHandler:
        """Register callbacks for changes to a kind

        Args:
            kind:  str
                The kind to listen to
            on_add:  Optional[Callable[[dict], None]]
                Called with the new object
            on_update:  Optional[Callable[[dict, dict], None]]
                Called with the old and new object
            on_delete:  Optional[Callable[[object], None]]
                Called with the last known object or a DeletedFinalStateUnknown

        Returns:
            handler:  ResourceEventHandler
                The registered handler
        """
        handler = ResourceEventHandler(
            on_add=on_add, on_update=on_update, on_delete=on_delete
        )
        with self._lock:
            self._handlers.setdefault(kind, []).append(handler)
        log.debug2("Registered event handler for %s", kind)
        return handler

    ## Mutation Interface ######################################################
    #
    # These are only used by the components that keep the cache current. The
    # reconcile core never calls them.
    ##

    def add(self, obj: dict):
        """Insert or replace an object, notifying add or update handlers"""
        kind, key = self._identify(obj)
        with self._lock:
            old = self._store.setdefault(kind, {}).get(key)
            self._store[kind][key] = obj
        if old is None:
            self._dispatch(kind, "on_add", obj)
        else:
            self._dispatch(kind, "on_update", old, obj)

    def update(self, obj: dict):
        """Alias of add() for symmetry with watch event types"""
        self.add(obj)

    def delete(self, obj: dict):
        """Remove an object, notifying delete handlers with its last state"""
        kind, key = self._identify(obj)
        with self._lock:
            old = self._store.get(kind, {}).pop(key, None)
        self._dispatch(kind, "on_delete", old if old is not None else obj)

    def replace(self, kind: str, objects: List[dict]):
        """Replace the full content for a kind after a (re)list. Objects that
        disappeared are reported as tombstones since their final state is
        unknown. The kind is marked synced afterwards.
        """
        new_content = {}
        for obj in objects:
            _, key = self._identify(obj)
            new_content[key] = obj

        with self._lock:
            old_content = self._store.get(kind, {})
            self._store[kind] = new_content
            self._synced.add(kind)

        for key, old in old_content.items():
            if key not in new_content:
                log.debug2("Object %s/%s vanished during relist", kind, key)
                self._dispatch(kind, "on_delete", DeletedFinalStateUnknown(key, old))
        for key, obj in new_content.items():
            if key in old_content:
                self._dispatch(kind, "on_update", old_content[key], obj)
            else:
                self._dispatch(kind, "on_add", obj)

    def mark_synced(self, kind: str):
        """Mark a kind synced without replacing its content"""
        with self._lock:
            self._synced.add(kind)

    ## Implementation ##########################################################

    @staticmethod
    def _identify(obj: dict) -> Tuple[str, str]:
        return obj.get("kind"), meta_namespace_key(obj)

    def _dispatch(self, kind: str, callback_name: str, *args):
        with self._lock:
            handlers = list(self._handlers.get(kind, []))
        for handler in handlers:
            callback = getattr(handler, callback_name)
            if callback is None:
                continue
            try:
                callback(*args)
            except Exception as err:  # pylint: disable=broad-exception-caught
                log.error(
                    "Event handler %s for %s failed: %s",
                    callback_name,
                    kind,
                    err,
                    exc_info=True,
                )
