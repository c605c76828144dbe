"""
Types shared by every store client's watch stream
"""

# Standard
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

# Local
from ..utils import meta_namespace_key


class KubeEventType(Enum):
    """The watch event types that change an object. Server-side BOOKMARK and
    ERROR events never reach consumers as KubeWatchEvents.
    """

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"


@dataclass
class KubeWatchEvent:
    """One change to one object, stamped with the time it was received"""

    type: KubeEventType
    resource: dict
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def kind(self) -> Optional[str]:
        return self.resource.get("kind")

    @property
    def resource_version(self) -> Optional[str]:
        return (self.resource.get("metadata") or {}).get("resourceVersion")

    @property
    def key(self) -> str:
        """The "<namespace>/<name>" key of the changed object"""
        return meta_namespace_key(self.resource)

    def __str__(self):
        metadata = self.resource.get("metadata") or {}
        name = "/".join(
            part for part in (metadata.get("namespace"), metadata.get("name")) if part
        )
        return f"{self.type.value} {self.kind} {name}@{self.resource_version}"
