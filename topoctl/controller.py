"""
The Controller wires the work queue, the event router, the reconcile engine
and the worker pool together and runs them until asked to stop
"""

# Standard
from typing import List, Optional
import threading

# First Party
import alog

# Local
from . import config
from .cache import DeletedFinalStateUnknown, WatchCache, WatchCacheBase, wait_for_cache_sync
from .exceptions import CacheSyncTimeoutError, TopoError
from .inventory import InventoryTracker
from .manifests import DependentKind, ManifestGeneratorBase
from .reconcile import ReconcileEngine
from .router import EventRouter
from .status import StatusUpdater
from .store import StoreClientBase
from .threads import WorkerThread
from .utils import parse_time_delta
from .workqueue import RateLimitingQueue

log = alog.use_channel("CTRLR")


class Controller:  # pylint: disable=too-many-instance-attributes
    """Reconciles one custom resource kind. Events from the watch cache become
    keys on a rate-limited queue. Worker threads pull keys and run the
    reconcile engine on them.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        cache: WatchCacheBase,
        store: StoreClientBase,
        generator: ManifestGeneratorBase,
        inventory: Optional[InventoryTracker] = None,
        queue: Optional[RateLimitingQueue] = None,
        resource_kind: Optional[str] = None,
    ):
        """
        Args:
            cache:  WatchCacheBase
                Read-only view of the custom resources and their dependents
            store:  StoreClientBase
                Client for every write
            generator:  ManifestGeneratorBase
                Produces the dependents of a custom resource
            inventory:  Optional[InventoryTracker]
                Tracker updated during verification
            queue:  Optional[RateLimitingQueue]
                Work queue. Defaults to one using the configured rate limiter.
            resource_kind:  Optional[str]
                Kind of the custom resource (default controller.kind)
        """
        self.cache = cache
        self.store = store
        self.resource_kind = resource_kind or config.controller.kind
        self.inventory = inventory or InventoryTracker()
        self.queue = queue or RateLimitingQueue(name=self.resource_kind)
        self.router = EventRouter(self.queue, self.cache, self.resource_kind)
        self.engine = ReconcileEngine(
            cache=self.cache,
            store=self.store,
            generator=generator,
            inventory=self.inventory,
            resource_kind=self.resource_kind,
            status_updater=StatusUpdater(self.store),
        )
        self.workers: List[WorkerThread] = []

    ## Wiring ##################################################################

    def register_handlers(self, cache: Optional[WatchCache] = None):
        """Connect the router to the cache's event handlers for the custom
        resource kind and each dependent kind
        """
        cache = cache or self.cache
        cache.add_event_handler(
            self.resource_kind,
            on_add=self.router.on_resource_add,
            on_update=self.router.on_resource_update,
            on_delete=self._on_resource_delete,
        )
        for dependent_kind in DependentKind:
            cache.add_event_handler(
                dependent_kind.kind,
                on_add=self.router.on_dependent_add,
                on_update=self.router.on_dependent_update,
                on_delete=self.router.on_dependent_delete,
            )

    @property
    def watched_kinds(self) -> List[str]:
        """Every kind the reconcile engine reads from the cache"""
        return [self.resource_kind] + [kind.kind for kind in DependentKind]

    ## Run #####################################################################

    def run(
        self,
        stop_event: threading.Event,
        workers: Optional[int] = None,
        cache_sync_timeout: Optional[float] = None,
    ):
        """Wait for the cache, start the workers and block until stop_event is
        set. The queue is shut down on exit and the workers are joined.

        Args:
            stop_event:  threading.Event
                Set to stop the controller
            workers:  Optional[int]
                Number of worker threads (default config.workers)
            cache_sync_timeout:  Optional[float]
                Seconds to wait for the cache (default config.cache_sync_timeout)

        Raises:
            CacheSyncTimeoutError: The cache did not sync. No worker started.
        """
        workers = workers or config.workers
        if cache_sync_timeout is None:
            cache_sync_timeout = parse_time_delta(
                config.cache_sync_timeout
            ).total_seconds()

        try:
            log.info("Waiting for caches to sync for %s", self.resource_kind)
            if not wait_for_cache_sync(
                stop_event,
                *[self.cache.synced_fn(kind) for kind in self.watched_kinds],
                timeout=cache_sync_timeout,
            ):
                raise CacheSyncTimeoutError(
                    f"Unable to sync caches for {self.resource_kind}"
                )
            log.info("Caches are synced for %s", self.resource_kind)

            log.info("Starting %d workers", workers)
            self.workers = [
                WorkerThread(self.process_next_work_item, index=i)
                for i in range(workers)
            ]
            for worker in self.workers:
                worker.start_thread()

            stop_event.wait()
        finally:
            log.info("Shutting down workers for %s", self.resource_kind)
            self.queue.shut_down()
            for worker in self.workers:
                worker.join()

    ## Dispatch ################################################################

    def process_next_work_item(self) -> bool:
        """Process a single work item. Errors never escape: the key is
        forgotten on success and on terminal errors, and retried with backoff
        on retryable and unexpected errors.

        Returns:
            keep_going:  bool
                False once the queue has shut down
        """
        key, shutdown = self.queue.get()
        if shutdown:
            return False

        try:
            self.engine.sync(key)
        except TopoError as err:
            if err.is_retryable:
                log.warning(
                    "Unable to sync %s: %s", key, err, extra={"key": key}
                )
                self.queue.add_rate_limited(key)
            else:
                log.error(
                    "Dropping %s after terminal error: %s", key, err, extra={"key": key}
                )
                self.queue.forget(key)
        except Exception as err:  # pylint: disable=broad-exception-caught
            log.error(
                "Unexpected error syncing %s: %s",
                key,
                err,
                exc_info=True,
                extra={"key": key},
            )
            self.queue.add_rate_limited(key)
        else:
            self.queue.forget(key)
        finally:
            self.queue.done(key)
        return True

    ## Implementation Details ##################################################

    def _on_resource_delete(self, obj):
        """Drop the inventory records of a deleted custom resource"""
        if isinstance(obj, DeletedFinalStateUnknown):
            obj = obj.obj
        name = ((obj or {}).get("metadata") or {}).get("name")
        if name:
            log.debug("Removing inventory for deleted %s %s", self.resource_kind, name)
            self.inventory.remove_controlled_state(name)
