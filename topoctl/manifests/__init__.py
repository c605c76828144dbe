"""
Generation of the dependent objects owned by a custom resource
"""

# Local
from .generator import ManifestGeneratorBase, ReplicaManifestGenerator
from .owner_references import make_owner_reference, set_owner_reference
from .types import (
    DependentGroup,
    DependentKind,
    DependentObject,
    config_map_name,
    dependent_name,
    pod_hostname,
    service_name,
    stateful_set_name,
)
