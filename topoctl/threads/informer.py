"""The InformerThread keeps the WatchCache current for one kind by listing it
and then watching for changes
"""
# Standard
from typing import Optional

# Third Party
from kubernetes import watch

# First Party
import alog

# Local
from .. import config
from ..cache import WatchCache
from ..exceptions import TransientStoreError
from ..store import KubeEventType, StoreClientBase
from ..utils import parse_time_delta
from .base import ThreadBase

log = alog.use_channel("INFMTHRD")

# Status code for an expired resourceVersion
HTTP_GONE = 410


class InformerThread(ThreadBase):  # pylint: disable=too-many-instance-attributes
    """The InformerThread runs list-then-watch for a single kind. The initial
    list replaces the cache content for the kind and marks it synced. Watch
    events are applied to the cache, which notifies its event handlers. When
    the watch position expires the kind is listed again and objects that
    vanished in between are reported as tombstones.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        store: StoreClientBase,
        cache: WatchCache,
        kind: str,
        api_version: str,
        namespace: Optional[str] = None,
        shutdown=None,
    ):
        """Initialize an InformerThread

        Args:
            store: StoreClientBase
                The store to list and watch
            cache: WatchCache
                The cache to keep current
            kind: str
                The kind to watch
            api_version: str
                The api_version to watch
            namespace: Optional[str] = None
                The namespace to watch. If none then cluster-wide
            shutdown: threading.Event = None
                Optional shared shutdown event
        """
        self.store = store
        self.cache = cache
        self.kind = kind
        self.api_version = api_version
        self.namespace = namespace or None

        name = f"informer_thread_{self.api_version}_{self.kind}"
        if self.namespace:
            name = name + f"_{self.namespace}"
        super().__init__(name=name, daemon=True, shutdown=shutdown)

        # Setup kubernetes watch resource
        self.kubernetes_watch = watch.Watch()

        # Variables for tracking retries
        self.attempts_left = config.watch_retry_count
        self.retry_delay = parse_time_delta(config.watch_retry_delay or "")

        # The failure that made the informer give up, if any
        self.error: Optional[Exception] = None

    def run(self):
        """List the kind, then watch from the list's version. A watch that ends
        normally resumes from the last version seen. An expired version
        triggers a relist. Any other failure waits watch_retry_delay and
        relists, giving up after watch_retry_count consecutive failures.
        Giving up sets the shared shutdown event so that everything running
        on the same cache stops too.
        """
        resource_version = None
        while True:
            if not self.check_preconditions():
                log.debug("Checking preconditions failed. Shutting down")
                return
            try:
                if resource_version is None:
                    resource_version = self._relist()
                resource_version = self._watch(resource_version)
                self.attempts_left = config.watch_retry_count
            except TransientStoreError as exc:
                resource_version = None
                if exc.status == HTTP_GONE:
                    log.debug("Watch position for %s expired. Relisting", self.kind)
                    continue
                if not self._wait_for_retry(exc):
                    return
            except Exception as exc:  # pylint: disable=broad-exception-caught
                resource_version = None
                if not self._wait_for_retry(exc):
                    return

    ## Class Interface ###################################################

    def stop_thread(self):
        """Override stop_thread to stop the kubernetes client's Watch as well"""
        super().stop_thread()
        self.kubernetes_watch.stop()

    ## Implementation Details ############################################

    def _relist(self) -> Optional[str]:
        """Replace the cache content for the kind with a fresh list"""
        objects, resource_version = self.store.list_objects(
            self.kind, api_version=self.api_version, namespace=self.namespace
        )
        log.debug2(
            "Listed %d %s objects at version %s",
            len(objects),
            self.kind,
            resource_version,
        )
        self.cache.replace(self.kind, objects)
        return resource_version

    def _watch(self, resource_version: Optional[str]) -> Optional[str]:
        """Apply watch events to the cache until the stream ends

        Returns:
            resource_version:  Optional[str]
                The last version seen, to resume from
        """
        for event in self.store.watch_objects(
            self.kind,
            api_version=self.api_version,
            namespace=self.namespace,
            resource_version=resource_version,
            watch_manager=self.kubernetes_watch,
        ):
            if not self.check_preconditions():
                return resource_version

            log.debug3("Applying %s", event)
            if event.type == KubeEventType.DELETED:
                self.cache.delete(event.resource)
            else:
                self.cache.add(event.resource)
            resource_version = event.resource_version or resource_version
        return resource_version

    def _wait_for_retry(self, exc: Exception) -> bool:
        """Log a failure and wait before retrying. Returns False when the
        thread should stop.
        """
        log.info(
            "Exception raised when attempting to watch %s: %s",
            self.kind,
            repr(exc),
            exc_info=exc,
        )
        if self.attempts_left <= 0:
            log.error(
                "Unable to watch %s within %d attempts. Stopping",
                self.kind,
                config.watch_retry_count,
            )
            self.error = exc
            self.shutdown.set()
            return False

        if not self.wait_on_precondition(self.retry_delay.total_seconds()):
            log.debug("Checking preconditions failed during retry. Shutting down")
            return False
        self.attempts_left = self.attempts_left - 1
        log.info("Restarting watch with %d attempts left", self.attempts_left)
        return True
