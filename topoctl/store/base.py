"""
This defines the base class for all store clients. A store client is the only
path through which the controller writes to the cluster.
"""

# Standard
from typing import Iterator, List, Optional, Tuple
import abc

# Local
from .kube_event import KubeWatchEvent


class StoreClientBase(abc.ABC):
    """
    Base class for store clients. Every call is synchronous and may block on
    network I/O. Failures are reported with the exceptions in
    topoctl.exceptions.
    """

    @abc.abstractmethod
    def get(
        self,
        kind: str,
        namespace: Optional[str],
        name: str,
        api_version: Optional[str] = None,
    ) -> dict:
        """Fetch the current state of a single object

        Args:
            kind:  str
                The kind of the object to fetch
            namespace:  Optional[str]
                The namespace of the object or None for cluster-scoped kinds
            name:  str
                The name of the object
            api_version:  Optional[str]
                The api_version of the kind

        Returns:
            current_state:  dict
                The object's current content

        Raises:
            NotFoundError: The object does not exist
            TransientStoreError: The lookup failed
        """

    @abc.abstractmethod
    def create(self, resource: dict) -> dict:
        """Create a new object

        Args:
            resource:  dict
                The full manifest to create

        Returns:
            created:  dict
                The object as stored

        Raises:
            AlreadyExistsError: An object with the same name already exists
            TransientStoreError: The create failed for any other reason
        """

    @abc.abstractmethod
    def update(self, resource: dict) -> dict:
        """Replace an existing object

        Raises:
            TransientStoreError: The update failed
        """

    @abc.abstractmethod
    def update_status(self, resource: dict) -> dict:
        """Replace the status of an existing object

        Raises:
            TransientStoreError: The update failed
        """

    @abc.abstractmethod
    def list_objects(
        self,
        kind: str,
        api_version: Optional[str] = None,
        namespace: Optional[str] = None,
    ) -> Tuple[List[dict], str]:
        """List every object of a kind

        Returns:
            objects:  List[dict]
                The current objects
            resource_version:  str
                The collection version to start a watch from
        """

    @abc.abstractmethod
    def watch_objects(
        self,
        kind: str,
        api_version: Optional[str] = None,
        namespace: Optional[str] = None,
        resource_version: Optional[str] = None,
        **kwargs,
    ) -> Iterator[KubeWatchEvent]:
        """Stream changes to a kind that happened after resource_version. The
        stream may end at any time; callers resume from the last version seen.

        Raises:
            TransientStoreError: The watch failed. A status of 410 means the
                resource_version expired and the caller must list again.
        """
