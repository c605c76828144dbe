"""
Manifest generators turn a custom resource into the ordered set of dependent
objects that should exist for it
"""

# Standard
from typing import List, Tuple
import abc
import copy

# First Party
import alog

# Local
from .. import config, constants
from ..exceptions import assert_config
from .owner_references import set_owner_reference
from .types import (
    DependentGroup,
    DependentKind,
    DependentObject,
    config_map_name,
    service_name,
    stateful_set_name,
)

log = alog.use_channel("MNFST")

# Config file name inside the generated ConfigMap
CONFIG_FILE_NAME = "config.xml"

# Where the ConfigMap is mounted in the server container
CONFIG_MOUNT_PATH = "/etc/clickhouse-server/config.d"


class ManifestGeneratorBase(abc.ABC):
    """Interface for manifest generators. Implementations must be pure: the
    same input always yields the same output and nothing outside the
    returned values is touched.
    """

    @abc.abstractmethod
    def generate(self, cr_copy: dict) -> Tuple[List[DependentGroup], List[str]]:
        """Generate the dependents for a custom resource

        Args:
            cr_copy:  dict
                A private copy of the custom resource. Implementations may
                read but should not rely on mutating it.

        Returns:
            groups:  List[DependentGroup]
                One group of dependents per prefix, in prefix order
            prefixes:  List[str]
                The ordered object prefixes
        """


class ReplicaManifestGenerator(ManifestGeneratorBase):
    """Generates one ConfigMap, one headless Service and one single-pod
    StatefulSet per replica. Prefixes are "<name>-<index>".

    Recognized spec fields:
        replicas:  int (default manifests.default_replicas)
        image:  str (default manifests.image)
        port:  int (default manifests.port)
        configuration:  str, the server config written into the ConfigMap
    """

    def generate(self, cr_copy):
        cr_copy = copy.deepcopy(cr_copy)
        metadata = cr_copy.get("metadata") or {}
        name = metadata.get("name")
        namespace = metadata.get("namespace")
        spec = cr_copy.get("spec") or {}

        replicas = spec.get("replicas", config.manifests.default_replicas)
        assert_config(
            isinstance(replicas, int) and not isinstance(replicas, bool),
            f"spec.replicas must be an int, got {replicas!r}",
        )
        log.debug2("Generating %d replica groups for %s/%s", replicas, namespace, name)

        groups = []
        prefixes = []
        for index in range(max(replicas, 0)):
            prefix = f"{name}-{index}"
            prefixes.append(prefix)
            group = DependentGroup(prefix=prefix)
            for kind, manifest in (
                (DependentKind.CONFIG_MAP, self._config_map(prefix, namespace, spec)),
                (DependentKind.SERVICE, self._service(prefix, namespace, spec)),
                (
                    DependentKind.STATEFUL_SET,
                    self._stateful_set(prefix, namespace, spec),
                ),
            ):
                manifest["metadata"]["labels"] = self._labels(name, prefix)
                set_owner_reference(cr_copy, manifest)
                group.objects.append(DependentObject(kind=kind, manifest=manifest))
            groups.append(group)

        return groups, prefixes

    ## Implementation Details ##################################################

    @staticmethod
    def _labels(owner_name: str, prefix: str) -> dict:
        return {
            constants.OWNER_NAME_LABEL: owner_name,
            constants.OBJECT_PREFIX_LABEL: prefix,
        }

    @staticmethod
    def _config_map(prefix: str, namespace: str, spec: dict) -> dict:
        return {
            "apiVersion": DependentKind.CONFIG_MAP.api_version,
            "kind": DependentKind.CONFIG_MAP.kind,
            "metadata": {"name": config_map_name(prefix), "namespace": namespace},
            "data": {CONFIG_FILE_NAME: spec.get("configuration", "")},
        }

    @staticmethod
    def _service(prefix: str, namespace: str, spec: dict) -> dict:
        port = spec.get("port", config.manifests.port)
        return {
            "apiVersion": DependentKind.SERVICE.api_version,
            "kind": DependentKind.SERVICE.kind,
            "metadata": {"name": service_name(prefix), "namespace": namespace},
            "spec": {
                "clusterIP": "None",
                "selector": {constants.OBJECT_PREFIX_LABEL: prefix},
                "ports": [{"name": "native", "port": port}],
            },
        }

    @staticmethod
    def _stateful_set(prefix: str, namespace: str, spec: dict) -> dict:
        port = spec.get("port", config.manifests.port)
        image = spec.get("image", config.manifests.image)
        return {
            "apiVersion": DependentKind.STATEFUL_SET.api_version,
            "kind": DependentKind.STATEFUL_SET.kind,
            "metadata": {"name": stateful_set_name(prefix), "namespace": namespace},
            "spec": {
                "replicas": 1,
                "serviceName": service_name(prefix),
                "selector": {
                    "matchLabels": {constants.OBJECT_PREFIX_LABEL: prefix},
                },
                "template": {
                    "metadata": {
                        "labels": {constants.OBJECT_PREFIX_LABEL: prefix},
                    },
                    "spec": {
                        "containers": [
                            {
                                "name": "server",
                                "image": image,
                                "ports": [{"name": "native", "containerPort": port}],
                                "volumeMounts": [
                                    {
                                        "name": "config",
                                        "mountPath": CONFIG_MOUNT_PATH,
                                    }
                                ],
                            }
                        ],
                        "volumes": [
                            {
                                "name": "config",
                                "configMap": {"name": config_map_name(prefix)},
                            }
                        ],
                    },
                },
            },
        }
