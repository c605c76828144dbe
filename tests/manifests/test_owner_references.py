"""
Tests for the owner reference helpers
"""
# Third Party
import pytest

# Local
from topoctl.manifests import make_owner_reference, set_owner_reference
from topoctl.test_helpers.helpers import TEST_INSTANCE_UID, setup_cr


def test_make_owner_reference():
    assert make_owner_reference(setup_cr()) == {
        "apiVersion": "clickhouse.altinity.com/v1",
        "kind": "ClickHouseInstallation",
        "name": "demo",
        "uid": TEST_INSTANCE_UID,
        "controller": True,
        "blockOwnerDeletion": True,
    }


def test_set_owner_reference_replaces_controller():
    child = {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {
            "name": "demo-0-config",
            "ownerReferences": [
                {"kind": "Other", "name": "old", "controller": True},
                {"kind": "Other", "name": "keep"},
            ],
        },
    }
    set_owner_reference(setup_cr(), child)
    refs = child["metadata"]["ownerReferences"]
    assert [ref["name"] for ref in refs] == ["keep", "demo"]
    assert [ref for ref in refs if ref.get("controller")][0]["name"] == "demo"


def test_set_owner_reference_validates_child():
    with pytest.raises(AssertionError):
        set_owner_reference(setup_cr(), {"kind": "ConfigMap", "metadata": {}})
