"""
The DryRunStoreClient implements the StoreClient interface but does not
actually interact with the cluster and instead holds the state of the cluster in
a local map.
"""

# Standard
from datetime import datetime, timezone
from threading import Condition
from typing import Callable, Dict, Iterator, List, Optional, Tuple
import copy
import uuid

# First Party
import alog

# Local
from ..exceptions import AlreadyExistsError, NotFoundError, TransientStoreError
from ..utils import meta_namespace_key
from .base import StoreClientBase
from .kube_event import KubeEventType, KubeWatchEvent

log = alog.use_channel("DRY-RUN")

# How long a dry run watch waits for new events before ending the stream
DEFAULT_WATCH_TIMEOUT = 1.0

# Number of events kept for watches to resume from
DEFAULT_HISTORY_LIMIT = 1000


class DryRunStoreClient(StoreClientBase):
    """
    Store client which doesn't actually talk to a cluster!

    Every write bumps a global resource version and is appended to an event
    history so that watches can resume from any version they have seen.
    """

    def __init__(
        self,
        resources: Optional[List[dict]] = None,
        strict_resource_version: bool = False,
        history_limit: Optional[int] = DEFAULT_HISTORY_LIMIT,
    ):
        """
        Args:
            resources:  Optional[List[dict]]
                Objects that exist in the cluster from the start
            strict_resource_version:  bool
                If true, updates carrying a stale resourceVersion fail with a
                409 conflict like a real API server
            history_limit:  Optional[int]
                Number of events kept in the history. Older events are
                compacted away and watches from before them get a 410. None
                keeps every event.
        """
        self.strict_resource_version = strict_resource_version
        self.history_limit = history_limit
        self._cluster_content: Dict[str, Dict[str, dict]] = {}
        self._history: List[Tuple[int, KubeWatchEvent]] = []
        self._resource_version = 0
        self._compacted_version = 0
        self._condition = Condition()

        # Per-operation failure injection used to emulate API outages
        self._failures: Dict[str, Callable[[dict], Optional[Exception]]] = {}

        for resource in resources or []:
            self.create(resource)

    ## Interface ###############################################################

    def get(self, kind, namespace, name, api_version=None):
        log.debug2("DRY RUN get of [%s/%s] in [%s]", kind, name, namespace)
        self._maybe_fail("get", {"kind": kind, "metadata": {"name": name}})
        key = f"{namespace}/{name}" if namespace else name
        with self._condition:
            obj = self._cluster_content.get(kind, {}).get(key)
            if obj is None or not self._api_version_matches(obj, api_version):
                raise NotFoundError(f"{kind} {key} not found")
            return copy.deepcopy(obj)

    def create(self, resource):
        kind, key = resource.get("kind"), meta_namespace_key(resource)
        log.info("DRY RUN create of [%s/%s]", kind, key)
        self._maybe_fail("create", resource)
        with self._condition:
            if key in self._cluster_content.get(kind, {}):
                raise AlreadyExistsError(f"{kind} {key} already exists")
            obj = copy.deepcopy(resource)
            metadata = obj.setdefault("metadata", {})
            metadata.setdefault("uid", str(uuid.uuid4()))
            metadata["creationTimestamp"] = datetime.now(timezone.utc).strftime(
                "%Y-%m-%dT%H:%M:%SZ"
            )
            metadata["resourceVersion"] = self._next_resource_version()
            self._cluster_content.setdefault(kind, {})[key] = obj
            self._record(KubeEventType.ADDED, obj)
            return copy.deepcopy(obj)

    def update(self, resource):
        log.info(
            "DRY RUN update of [%s/%s]", resource.get("kind"), meta_namespace_key(resource)
        )
        self._maybe_fail("update", resource)
        return self._replace(resource, status_only=False)

    def update_status(self, resource):
        log.info(
            "DRY RUN update_status of [%s/%s]: %s",
            resource.get("kind"),
            meta_namespace_key(resource),
            resource.get("status"),
        )
        self._maybe_fail("update_status", resource)
        return self._replace(resource, status_only=True)

    def list_objects(self, kind, api_version=None, namespace=None):
        log.debug2("DRY RUN list of [%s] in [%s]", kind, namespace)
        self._maybe_fail("list", {"kind": kind})
        with self._condition:
            objects = [
                copy.deepcopy(obj)
                for obj in self._cluster_content.get(kind, {}).values()
                if self._api_version_matches(obj, api_version)
                and self._namespace_matches(obj, namespace)
            ]
            return objects, str(self._resource_version)

    def watch_objects(  # pylint: disable=too-many-arguments
        self,
        kind,
        api_version=None,
        namespace=None,
        resource_version=None,
        timeout: Optional[float] = DEFAULT_WATCH_TIMEOUT,
        **_,
    ) -> Iterator[KubeWatchEvent]:
        """Replay every recorded event newer than resource_version, then wait
        for new ones until no event arrives for `timeout` seconds
        """
        last_seen = int(resource_version or 0)
        if resource_version is None:
            last_seen = max(last_seen, self._compacted_version)
        while True:
            with self._condition:
                if last_seen < self._compacted_version:
                    raise TransientStoreError(
                        f"resourceVersion {last_seen} is too old", status=410
                    )
                pending = [
                    event for version, event in self._history if version > last_seen
                ]
                if not pending:
                    self._condition.wait(timeout)
                    pending = [
                        event
                        for version, event in self._history
                        if version > last_seen
                    ]
                    if not pending:
                        return

            for event in pending:
                last_seen = int(event.resource_version)
                if (
                    event.kind == kind
                    and self._api_version_matches(event.resource, api_version)
                    and self._namespace_matches(event.resource, namespace)
                ):
                    log.debug3("Yielding event %s", event)
                    yield event

    ## Dry Run Methods #########################################################

    def delete(self, kind: str, namespace: Optional[str], name: str):
        """Remove an object, emitting a DELETED event. The reconcile core never
        deletes; this exists to drive watches in tests and dry runs.
        """
        key = f"{namespace}/{name}" if namespace else name
        with self._condition:
            obj = self._cluster_content.get(kind, {}).pop(key, None)
            if obj is None:
                raise NotFoundError(f"{kind} {key} not found")
            obj = copy.deepcopy(obj)
            obj["metadata"]["resourceVersion"] = self._next_resource_version()
            self._record(KubeEventType.DELETED, obj)

    def set_failure(
        self,
        operation: str,
        failure: Optional[Callable[[dict], Optional[Exception]]] = None,
    ):
        """Inject a failure for one operation (get, create, update,
        update_status, list). The callable receives the request object and
        returns the exception to raise or None to let the call through. Passing
        no callable clears the failure.
        """
        if failure is None:
            self._failures.pop(operation, None)
        else:
            self._failures[operation] = failure

    def compact_history(self):
        """Drop the event history so that watches from old versions expire"""
        with self._condition:
            self._history.clear()
            self._compacted_version = self._resource_version

    ## Implementation Details ##################################################

    def _replace(self, resource: dict, status_only: bool) -> dict:
        kind, key = resource.get("kind"), meta_namespace_key(resource)
        with self._condition:
            current = self._cluster_content.get(kind, {}).get(key)
            if current is None:
                raise TransientStoreError(f"{kind} {key} not found", status=404)

            requested_version = (resource.get("metadata") or {}).get(
                "resourceVersion"
            )
            if (
                self.strict_resource_version
                and requested_version
                and requested_version != current["metadata"]["resourceVersion"]
            ):
                raise TransientStoreError(
                    f"Conflict updating {kind} {key}: stale resourceVersion",
                    status=409,
                )

            if status_only:
                obj = copy.deepcopy(current)
                obj["status"] = copy.deepcopy(resource.get("status"))
            else:
                obj = copy.deepcopy(resource)
                obj["status"] = copy.deepcopy(current.get("status"))
                obj["metadata"]["uid"] = current["metadata"]["uid"]

            # An update that changes nothing keeps its version and emits no event
            obj["metadata"]["resourceVersion"] = current["metadata"]["resourceVersion"]
            if obj == current:
                log.debug2("DRY RUN no-op update of [%s/%s]", kind, key)
                return copy.deepcopy(current)

            obj["metadata"]["resourceVersion"] = self._next_resource_version()
            self._cluster_content[kind][key] = obj
            self._record(KubeEventType.MODIFIED, obj)
            return copy.deepcopy(obj)

    def _next_resource_version(self) -> str:
        self._resource_version += 1
        return str(self._resource_version)

    def _record(self, event_type: KubeEventType, obj: dict):
        """Append an event to the history and wake watchers. Must be called
        with the condition held.
        """
        version = int(obj["metadata"]["resourceVersion"])
        self._history.append(
            (version, KubeWatchEvent(type=event_type, resource=copy.deepcopy(obj)))
        )
        if (
            self.history_limit is not None
            and len(self._history) > self.history_limit
        ):
            dropped = len(self._history) - self.history_limit
            self._compacted_version = self._history[dropped - 1][0]
            del self._history[:dropped]
        self._condition.notify_all()

    def _maybe_fail(self, operation: str, resource: dict):
        failure = self._failures.get(operation)
        if failure is None:
            return
        exception = failure(resource)
        if exception is not None:
            log.debug("DRY RUN injected failure for %s: %s", operation, exception)
            raise exception

    @staticmethod
    def _api_version_matches(obj: dict, api_version: Optional[str]) -> bool:
        return api_version is None or obj.get("apiVersion") == api_version

    @staticmethod
    def _namespace_matches(obj: dict, namespace: Optional[str]) -> bool:
        return not namespace or (obj.get("metadata") or {}).get(
            "namespace"
        ) == namespace
