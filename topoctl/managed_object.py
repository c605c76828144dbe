"""
Helper object to represent a kubernetes object seen by the controller
"""
# Standard
from typing import Optional

KUBE_LIST_IDENTIFIER = "List"


class ManagedObject:  # pylint: disable=too-many-instance-attributes
    """Basic struct to represent a kubernetes object from a watch event or a
    cache lookup
    """

    def __init__(self, definition: dict):
        self.kind = definition.get("kind")
        self.metadata = definition.get("metadata") or {}
        self.name = self.metadata.get("name")
        self.namespace = self.metadata.get("namespace")
        self.uid = self.metadata.get("uid")
        self.resource_version = self.metadata.get("resourceVersion")
        self.api_version = definition.get("apiVersion")
        self.definition = definition

        # If resource is not list then check name
        assert self.kind is not None, "No kind found"
        if KUBE_LIST_IDENTIFIER not in self.kind:
            assert self.name is not None, "No name found"

    @property
    def owner_references(self) -> list:
        """All ownerReferences attached to this object"""
        return self.metadata.get("ownerReferences") or []

    def get_controller_of(self) -> Optional[dict]:
        """Get the ownerReference flagged as the managing controller, if any

        Returns:
            owner_ref:  Optional[dict]
                The controlling ownerReference or None if the object has no
                controller
        """
        for owner_ref in self.owner_references:
            if owner_ref.get("controller"):
                return owner_ref
        return None

    def get(self, *args, **kwargs):
        """Pass get calls to the objects definition"""
        return self.definition.get(*args, **kwargs)

    def __str__(self):
        return f"{self.api_version}/{self.kind}/{self.namespace}/{self.name}"

    def __repr__(self):
        return str(self)

    def __hash__(self):
        """Hash on the cluster identity of the object instead of the content. If
        the object carries no uid use the kind, namespace and name
        """
        return hash(self.uid or str(self))

    def __eq__(self, other):
        return hash(self) == hash(other)
