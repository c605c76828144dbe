"""
Tests for the common utilities
"""
# Standard
from datetime import timedelta

# Third Party
import pytest

# Local
from topoctl.exceptions import MalformedKeyError
from topoctl.managed_object import ManagedObject
from topoctl.utils import (
    meta_namespace_key,
    nested_get,
    parse_time_delta,
    split_meta_namespace_key,
)

################
## nested_get ##
################


def test_nested_get_found():
    assert nested_get({"a": {"b": {"c": 1}}}, "a.b.c") == 1


def test_nested_get_missing_intermediate():
    assert nested_get({"a": {}}, "a.b.c", "dflt") == "dflt"


def test_nested_get_non_dict_intermediate():
    with pytest.raises(TypeError):
        nested_get({"a": {"b": 1}}, "a.b.c")


##########
## Keys ##
##########


def test_meta_namespace_key_namespaced():
    assert meta_namespace_key({"metadata": {"name": "demo", "namespace": "ns1"}}) == (
        "ns1/demo"
    )


def test_meta_namespace_key_cluster_scoped():
    assert meta_namespace_key({"metadata": {"name": "demo"}}) == "demo"


def test_meta_namespace_key_managed_object():
    obj = ManagedObject(
        {"kind": "Foo", "metadata": {"name": "demo", "namespace": "ns1"}}
    )
    assert meta_namespace_key(obj) == "ns1/demo"


def test_meta_namespace_key_no_name():
    with pytest.raises(MalformedKeyError):
        meta_namespace_key({"metadata": {"namespace": "ns1"}})


@pytest.mark.parametrize(
    ["key", "expected"],
    [
        ("ns1/demo", ("ns1", "demo")),
        ("demo", ("", "demo")),
    ],
)
def test_split_meta_namespace_key_valid(key, expected):
    assert split_meta_namespace_key(key) == expected


@pytest.mark.parametrize(
    "key",
    [None, 42, ("ns1", "demo"), "", "ns1/", "/demo", "a/b/c"],
)
def test_split_meta_namespace_key_invalid(key):
    with pytest.raises(MalformedKeyError):
        split_meta_namespace_key(key)


##########
## Time ##
##########


@pytest.mark.parametrize(
    ["time_str", "expected"],
    [
        ("1hr", timedelta(hours=1)),
        ("5m", timedelta(minutes=5)),
        ("30s", timedelta(seconds=30)),
        ("0.005s", timedelta(seconds=0.005)),
        ("1hr5m10s", timedelta(hours=1, minutes=5, seconds=10)),
        (2, timedelta(seconds=2)),
        (0.5, timedelta(seconds=0.5)),
    ],
)
def test_parse_time_delta_valid(time_str, expected):
    assert parse_time_delta(time_str) == expected


@pytest.mark.parametrize("time_str", ["", "soon", "10", "5x"])
def test_parse_time_delta_invalid(time_str):
    assert parse_time_delta(time_str) is None


####################
## ManagedObject ##
####################


def test_managed_object_controller_ref():
    """The controller reference is the one flagged controller"""
    obj = ManagedObject(
        {
            "kind": "StatefulSet",
            "metadata": {
                "name": "demo-0",
                "namespace": "ns1",
                "resourceVersion": "7",
                "ownerReferences": [
                    {"kind": "Other", "name": "x"},
                    {"kind": "ClickHouseInstallation", "name": "demo", "controller": True},
                ],
            },
        }
    )
    assert obj.resource_version == "7"
    assert obj.get_controller_of()["name"] == "demo"
    assert len(obj.owner_references) == 2


def test_managed_object_no_controller_ref():
    obj = ManagedObject(
        {
            "kind": "StatefulSet",
            "metadata": {
                "name": "demo-0",
                "ownerReferences": [{"kind": "Other", "name": "x"}],
            },
        }
    )
    assert obj.get_controller_of() is None
