"""
This store client is responsible for delegating cluster operations to the
openshift library. It is the one that will be used when the controller is
running in the cluster or outside the cluster making live changes.
"""
# Standard
from typing import Iterator, Optional

# Third Party
from kubernetes import client
from kubernetes.watch import Watch
from openshift.dynamic import DynamicClient
from openshift.dynamic.exceptions import (
    ConflictError,
    DynamicApiError,
    NotFoundError as DynamicNotFoundError,
    ResourceNotFoundError,
    ResourceNotUniqueError,
)
from openshift.dynamic.resource import Resource
import kubernetes
import urllib3

# First Party
import alog

# Local
from ..exceptions import (
    AlreadyExistsError,
    NotFoundError,
    TransientStoreError,
    assert_store,
)
from ..utils import meta_namespace_key
from .base import StoreClientBase
from .kube_event import KubeEventType, KubeWatchEvent

log = alog.use_channel("OSFTS")

# See this document for value reasonings
# https://github.com/kubernetes-client/python/blob/master/examples/watch/timeout-settings.md
SERVER_WATCH_TIMEOUT = 3600
CLIENT_WATCH_TIMEOUT = 30

# Status code for an expired resourceVersion
HTTP_GONE = 410


class OpenshiftStoreClient(StoreClientBase):
    """This store client uses the openshift DynamicClient to interact with the
    cluster
    """

    def __init__(self, dynamic_client: Optional[DynamicClient] = None):
        """
        Args:
            dynamic_client:  Optional[DynamicClient]
                A preconfigured client. If not given one is created lazily from
                the in-cluster config or the local kubeconfig.
        """
        self._client = dynamic_client

    @property
    def client(self) -> DynamicClient:
        """Lazy property access to the client"""
        if self._client is None:
            self._client = self._setup_client()
        return self._client

    ## Interface ###############################################################

    def get(self, kind, namespace, name, api_version=None):
        resource_handle = self._get_resource_handle(kind, api_version)
        try:
            return resource_handle.get(name=name, namespace=namespace).to_dict()
        except DynamicNotFoundError as err:
            log.debug2("No object named [%s/%s] in [%s]", kind, name, namespace)
            raise NotFoundError(f"{kind} {namespace}/{name} not found") from err
        except DynamicApiError as err:
            raise TransientStoreError(
                f"Failed to get {kind} {namespace}/{name}: {err.summary()}",
                status=err.status,
            ) from err

    @alog.logged_function(log.debug2)
    def create(self, resource):
        kind, key = resource.get("kind"), meta_namespace_key(resource)
        resource_handle = self._get_resource_handle(kind, resource.get("apiVersion"))
        try:
            return resource_handle.create(
                body=resource,
                namespace=resource["metadata"].get("namespace"),
            ).to_dict()
        except ConflictError as err:
            log.debug("%s %s already exists", kind, key)
            raise AlreadyExistsError(f"{kind} {key} already exists") from err
        except DynamicApiError as err:
            raise TransientStoreError(
                f"Failed to create {kind} {key}: {err.summary()}", status=err.status
            ) from err

    @alog.logged_function(log.debug2)
    def update(self, resource):
        return self._replace(resource, status_only=False)

    @alog.logged_function(log.debug2)
    def update_status(self, resource):
        return self._replace(resource, status_only=True)

    def list_objects(self, kind, api_version=None, namespace=None):
        resource_handle = self._get_resource_handle(kind, api_version)
        try:
            list_obj = resource_handle.get(namespace=namespace or None).to_dict()
        except DynamicApiError as err:
            raise TransientStoreError(
                f"Failed to list {kind} in [{namespace}]: {err.summary()}",
                status=err.status,
            ) from err

        objects = list_obj.get("items") or []
        # List items omit kind and apiVersion, but the cache keys on them
        for obj in objects:
            obj.setdefault("kind", kind)
            obj.setdefault("apiVersion", resource_handle.group_version)
        resource_version = (list_obj.get("metadata") or {}).get("resourceVersion")
        return objects, resource_version

    def watch_objects(  # pylint: disable=too-many-arguments
        self,
        kind,
        api_version=None,
        namespace=None,
        resource_version=None,
        watch_manager: Optional[Watch] = None,
        **_,
    ) -> Iterator[KubeWatchEvent]:
        """Stream events until the server or client timeout closes the
        connection. An expired resource_version raises a TransientStoreError
        with a 410 status so the caller can list again.
        """
        watch_manager = watch_manager if watch_manager else Watch()
        resource_handle = self._get_resource_handle(kind, api_version)
        try:
            for event_obj in watch_manager.stream(
                resource_handle.get,
                resource_version=resource_version,
                namespace=namespace or None,
                serialize=False,
                timeout_seconds=SERVER_WATCH_TIMEOUT,
                _request_timeout=CLIENT_WATCH_TIMEOUT,
            ):
                event_type = event_obj["type"]
                event_resource = event_obj["object"]
                if event_type == "ERROR":
                    status = event_resource.get("code")
                    raise TransientStoreError(
                        f"Watch of {kind} failed: {event_resource.get('message')}",
                        status=status,
                    )
                if event_type == "BOOKMARK":
                    continue
                yield KubeWatchEvent(KubeEventType(event_type), event_resource)
        except client.exceptions.ApiException as err:
            if err.status == HTTP_GONE:
                log.debug2("Resource version expired for %s/%s", api_version, kind)
            raise TransientStoreError(
                f"Watch of {kind} failed: {err.reason}", status=err.status
            ) from err
        except urllib3.exceptions.ReadTimeoutError:
            log.debug4("Watch Socket closed for %s/%s", api_version, kind)
        except urllib3.exceptions.ProtocolError:
            log.debug2("Invalid Chunk from server for %s/%s", api_version, kind)

    ## Implementation Details ##################################################

    def _replace(self, resource: dict, status_only: bool) -> dict:
        kind, key = resource.get("kind"), meta_namespace_key(resource)
        resource_handle = self._get_resource_handle(kind, resource.get("apiVersion"))
        if status_only:
            resource_handle = resource_handle.status
        try:
            return resource_handle.replace(
                body=resource,
                namespace=resource["metadata"].get("namespace"),
            ).to_dict()
        except DynamicApiError as err:
            raise TransientStoreError(
                f"Failed to update {kind} {key}: {err.summary()}", status=err.status
            ) from err

    @staticmethod
    def _setup_client() -> DynamicClient:
        """Create a DynamicClient that will work based on where the controller
        is running
        """
        # Try in-cluster config
        try:
            log.debug2("Running with in-cluster config")

            # Create Empty Config and load in-cluster information
            kube_config = kubernetes.client.Configuration()
            kubernetes.config.load_incluster_config(client_configuration=kube_config)

            # Generate ApiClient and return Openshift DynamicClient
            api_client = kubernetes.client.ApiClient(kube_config)
            return DynamicClient(api_client)

        # Fall back to out-of-cluster config
        except kubernetes.config.ConfigException:
            log.debug2("Running with out-of-cluster config")
            return DynamicClient(kubernetes.config.new_client_from_config())

    def _get_resource_handle(self, kind: str, api_version: Optional[str]) -> Resource:
        """Get the openshift resource handle for a specified kind and api_version"""
        resource_handle = None
        try:
            resource_handle = self.client.resources.get(
                kind=kind, api_version=api_version
            )
        except (ResourceNotFoundError, ResourceNotUniqueError):
            log.debug(
                "No resource of kind [%s] found or multiple resources matching request found",
                kind,
            )
        assert_store(
            resource_handle is not None,
            f"Failed to fetch resource handle for {api_version}/{kind}",
        )
        return resource_handle
