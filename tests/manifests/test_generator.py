"""
Tests for the ReplicaManifestGenerator
"""
# Standard
import copy

# Third Party
import pytest

# Local
from topoctl import constants
from topoctl.exceptions import ConfigError
from topoctl.manifests import DependentKind, ReplicaManifestGenerator
from topoctl.test_helpers.helpers import (
    TEST_INSTANCE_UID,
    TEST_NAMESPACE,
    library_config,
    setup_cr,
)


def test_generate_one_group_per_replica():
    cr = setup_cr(spec={"replicas": 2})
    groups, prefixes = ReplicaManifestGenerator().generate(cr)

    assert prefixes == ["demo-0", "demo-1"]
    assert [group.prefix for group in groups] == prefixes
    for group in groups:
        assert [obj.kind for obj in group.objects] == [
            DependentKind.CONFIG_MAP,
            DependentKind.SERVICE,
            DependentKind.STATEFUL_SET,
        ]
    assert [obj.name for obj in groups[1].objects] == [
        "demo-1-config",
        "demo-1-svc",
        "demo-1",
    ]


def test_generate_sets_controller_owner_reference_and_labels():
    groups, _ = ReplicaManifestGenerator().generate(setup_cr())
    for obj in groups[0].objects:
        metadata = obj.manifest["metadata"]
        assert metadata["namespace"] == TEST_NAMESPACE
        assert metadata["labels"] == {
            constants.OWNER_NAME_LABEL: "demo",
            constants.OBJECT_PREFIX_LABEL: "demo-0",
        }
        (owner_ref,) = metadata["ownerReferences"]
        assert owner_ref["controller"] is True
        assert owner_ref["kind"] == "ClickHouseInstallation"
        assert owner_ref["uid"] == TEST_INSTANCE_UID


def test_generate_uses_spec_values():
    cr = setup_cr(
        spec={"image": "custom:1", "port": 9440, "configuration": "<yandex/>"}
    )
    groups, _ = ReplicaManifestGenerator().generate(cr)
    config_map, service, stateful_set = [obj.manifest for obj in groups[0].objects]

    assert config_map["data"] == {"config.xml": "<yandex/>"}
    assert service["spec"]["clusterIP"] == "None"
    assert service["spec"]["ports"][0]["port"] == 9440
    container = stateful_set["spec"]["template"]["spec"]["containers"][0]
    assert container["image"] == "custom:1"
    assert stateful_set["spec"]["serviceName"] == "demo-0-svc"
    assert stateful_set["spec"]["template"]["spec"]["volumes"][0]["configMap"] == {
        "name": "demo-0-config"
    }


def test_generate_defaults_from_config():
    with library_config(
        manifests={
            "default_replicas": 3,
            "image": "default:2",
            "port": 9000,
            "cluster_domain": "svc.cluster.local",
        }
    ):
        groups, prefixes = ReplicaManifestGenerator().generate(setup_cr())
    assert len(prefixes) == 3
    stateful_set = groups[0].objects[2].manifest
    assert stateful_set["spec"]["template"]["spec"]["containers"][0]["image"] == (
        "default:2"
    )


def test_generate_is_pure():
    cr = setup_cr(spec={"replicas": 2})
    original = copy.deepcopy(cr)
    generator = ReplicaManifestGenerator()
    first = generator.generate(cr)
    second = generator.generate(cr)
    assert cr == original
    assert first == second


def test_generate_invalid_replicas():
    with pytest.raises(ConfigError):
        ReplicaManifestGenerator().generate(setup_cr(spec={"replicas": "two"}))
