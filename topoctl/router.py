"""
The EventRouter turns watch cache notifications into work item keys. Custom
resource events map straight to their own key. Dependent events are resolved
to the key of the custom resource that controls them.
"""

# Standard
from typing import Any, Optional

# First Party
import alog

# Local
from .cache import DeletedFinalStateUnknown, WatchCacheBase
from .exceptions import MalformedKeyError, UnrecognizedEventPayloadError
from .managed_object import ManagedObject
from .utils import meta_namespace_key
from .workqueue import WorkQueue

log = alog.use_channel("ROUTR")


class EventRouter:
    """Holds the queue and cache that event handlers need and exposes one
    named method per handler
    """

    def __init__(self, queue: WorkQueue, cache: WatchCacheBase, controller_kind: str):
        """
        Args:
            queue:  WorkQueue
                Queue receiving the work item keys
            cache:  WatchCacheBase
                Cache used to resolve owners of dependents
            controller_kind:  str
                Kind of the custom resource. Dependents controlled by any
                other kind are ignored.
        """
        self.queue = queue
        self.cache = cache
        self.controller_kind = controller_kind

    ## Custom Resource Handlers ################################################

    def on_resource_add(self, obj: Any):
        self.enqueue_resource(obj)

    def on_resource_update(self, _old: Any, new: Any):
        # Unchanged versions are still enqueued so that periodic resyncs
        # re-verify every custom resource
        self.enqueue_resource(new)

    ## Dependent Handlers ######################################################

    def on_dependent_add(self, obj: Any):
        self.handle_dependent(obj)

    def on_dependent_update(self, old: Any, new: Any):
        old_version = self._resource_version(old)
        new_version = self._resource_version(new)
        if old_version is not None and old_version == new_version:
            log.debug4("Skipping dependent update with unchanged version %s", new_version)
            return
        self.handle_dependent(new)

    def on_dependent_delete(self, obj: Any):
        self.handle_dependent(obj)

    ## Routing #################################################################

    def enqueue_resource(self, obj: Any):
        """Add the work item key for a custom resource"""
        try:
            key = meta_namespace_key(obj)
        except (MalformedKeyError, AttributeError) as err:
            log.error("Unable to make a key for %s: %s", obj, err)
            return
        log.debug2("Enqueueing %s", key, extra={"key": key})
        self.queue.add(key)

    def handle_dependent(self, obj: Any):
        """Enqueue the custom resource controlling a dependent object. Unowned
        dependents, dependents controlled by another kind and dependents whose
        owner is not in the cache are ignored.
        """
        try:
            dependent = self._decode(obj)
        except UnrecognizedEventPayloadError as err:
            log.error("Dropping event: %s", err)
            return

        owner_ref = dependent.get_controller_of()
        if owner_ref is None:
            log.debug4("Ignoring unowned %s", dependent)
            return
        if owner_ref.get("kind") != self.controller_kind:
            log.debug4(
                "Ignoring %s controlled by %s", dependent, owner_ref.get("kind")
            )
            return

        log.debug2("Processing dependent %s", dependent, extra={"resource": obj})
        owner = self.cache.get(
            self.controller_kind, dependent.namespace, owner_ref.get("name")
        )
        if owner is None:
            log.debug(
                "Ignoring orphaned %s of %s %s",
                dependent,
                self.controller_kind,
                owner_ref.get("name"),
            )
            return
        self.enqueue_resource(owner)

    ## Implementation Details ##################################################

    @staticmethod
    def _decode(obj: Any) -> ManagedObject:
        """Unwrap tombstones and check the payload looks like an object"""
        if isinstance(obj, DeletedFinalStateUnknown):
            log.debug3("Unwrapping tombstone for %s", obj.key)
            obj = obj.obj
        if isinstance(obj, ManagedObject):
            return obj
        if (
            not isinstance(obj, dict)
            or not obj.get("kind")
            or not isinstance(obj.get("metadata"), dict)
            or not obj["metadata"].get("name")
        ):
            raise UnrecognizedEventPayloadError(
                f"Unable to decode event payload of type {type(obj).__name__}"
            )
        return ManagedObject(obj)

    @staticmethod
    def _resource_version(obj: Any) -> Optional[str]:
        if isinstance(obj, dict):
            return (obj.get("metadata") or {}).get("resourceVersion")
        return None
