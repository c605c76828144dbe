"""
Shared types for generated dependent objects and the naming functions that tie
a dependent back to its object prefix
"""

# Standard
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

# Local
from .. import constants


class DependentKind(Enum):
    """The finite set of kinds generated on behalf of a custom resource. The
    value is the (apiVersion, kind) pair used when talking to the store.
    """

    CONFIG_MAP = ("v1", constants.CONFIG_MAP_KIND)
    SERVICE = ("v1", constants.SERVICE_KIND)
    STATEFUL_SET = ("apps/v1", constants.STATEFUL_SET_KIND)

    @property
    def api_version(self) -> str:
        return self.value[0]

    @property
    def kind(self) -> str:
        return self.value[1]

    @classmethod
    def from_kind(cls, kind: str) -> Optional["DependentKind"]:
        """Look up the member for a kind string, if there is one"""
        for member in cls:
            if member.kind == kind:
                return member
        return None


@dataclass
class DependentObject:
    """A single generated manifest tagged with its kind"""

    kind: DependentKind
    manifest: dict

    @property
    def name(self) -> str:
        return self.manifest["metadata"]["name"]

    @property
    def namespace(self) -> Optional[str]:
        return self.manifest["metadata"].get("namespace")


@dataclass
class DependentGroup:
    """Every dependent generated for one object prefix"""

    prefix: str
    objects: List[DependentObject] = field(default_factory=list)


## Naming ######################################################################


def stateful_set_name(prefix: str) -> str:
    """Name of the StatefulSet for a prefix"""
    return prefix


def service_name(prefix: str) -> str:
    """Name of the headless Service for a prefix"""
    return f"{prefix}-svc"


def config_map_name(prefix: str) -> str:
    """Name of the ConfigMap for a prefix"""
    return f"{prefix}-config"


def dependent_name(kind: DependentKind, prefix: str) -> str:
    """Name of the dependent of the given kind for a prefix"""
    return {
        DependentKind.CONFIG_MAP: config_map_name,
        DependentKind.SERVICE: service_name,
        DependentKind.STATEFUL_SET: stateful_set_name,
    }[kind](prefix)


def pod_hostname(namespace: str, prefix: str, cluster_domain: str) -> str:
    """Stable network identity of the single pod in a prefix's StatefulSet

    Args:
        namespace:  str
            The namespace of the custom resource
        prefix:  str
            The object prefix
        cluster_domain:  str
            The cluster DNS suffix, e.g. svc.cluster.local

    Returns:
        hostname:  str
            <statefulset>-0.<service>.<namespace>.<cluster_domain>
    """
    return ".".join(
        [
            f"{stateful_set_name(prefix)}-0",
            service_name(prefix),
            namespace,
            cluster_domain,
        ]
    )
