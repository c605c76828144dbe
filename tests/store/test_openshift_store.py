"""
Tests for the OpenshiftStoreClient using a mocked DynamicClient
"""
# Standard
from unittest import mock

# Third Party
from kubernetes.client.exceptions import ApiException
from openshift.dynamic.exceptions import (
    ConflictError,
    InternalServerError,
    NotFoundError as DynamicNotFoundError,
    ResourceNotFoundError,
)
import kubernetes
import pytest
import urllib3

# Local
from topoctl.exceptions import AlreadyExistsError, NotFoundError, TransientStoreError
from topoctl.store import KubeEventType, OpenshiftStoreClient
from topoctl.test_helpers.helpers import TEST_NAMESPACE, setup_cr

KIND = "ClickHouseInstallation"
API_VERSION = "clickhouse.altinity.com/v1"

## Helpers #####################################################################


def api_error(error_type, status, reason="failed"):
    return error_type(ApiException(status=status, reason=reason))


class Response:
    """Stand in for a ResourceInstance"""

    def __init__(self, content):
        self.content = content

    def to_dict(self):
        return self.content


def setup_store():
    """Make a store whose DynamicClient always hands back the same resource
    handle
    """
    dynamic_client = mock.MagicMock()
    handle = mock.MagicMock()
    handle.group_version = API_VERSION
    dynamic_client.resources.get.return_value = handle
    return OpenshiftStoreClient(dynamic_client), handle


## get #########################################################################


def test_get_found():
    store, handle = setup_store()
    handle.get.return_value = Response(setup_cr())
    assert store.get(KIND, TEST_NAMESPACE, "demo", API_VERSION) == setup_cr()
    handle.get.assert_called_once_with(name="demo", namespace=TEST_NAMESPACE)


def test_get_not_found():
    store, handle = setup_store()
    handle.get.side_effect = api_error(DynamicNotFoundError, 404)
    with pytest.raises(NotFoundError):
        store.get(KIND, TEST_NAMESPACE, "demo")


def test_get_server_error_is_transient():
    store, handle = setup_store()
    handle.get.side_effect = api_error(InternalServerError, 500)
    with pytest.raises(TransientStoreError) as exc_info:
        store.get(KIND, TEST_NAMESPACE, "demo")
    assert exc_info.value.status == 500


def test_missing_resource_handle_is_transient():
    store, _ = setup_store()
    store.client.resources.get.side_effect = ResourceNotFoundError("nope")
    with pytest.raises(TransientStoreError):
        store.get(KIND, TEST_NAMESPACE, "demo")


## create ######################################################################


def test_create_success():
    store, handle = setup_store()
    handle.create.return_value = Response(setup_cr())
    assert store.create(setup_cr()) == setup_cr()
    handle.create.assert_called_once_with(body=setup_cr(), namespace=TEST_NAMESPACE)


def test_create_conflict_is_already_exists():
    store, handle = setup_store()
    handle.create.side_effect = api_error(ConflictError, 409)
    with pytest.raises(AlreadyExistsError):
        store.create(setup_cr())


def test_create_other_failure_is_transient():
    store, handle = setup_store()
    handle.create.side_effect = api_error(InternalServerError, 500)
    with pytest.raises(TransientStoreError):
        store.create(setup_cr())


## update ######################################################################


def test_update_status_uses_status_subresource():
    store, handle = setup_store()
    cr = setup_cr(prefixes=["demo-0"])
    handle.status.replace.return_value = Response(cr)
    assert store.update_status(cr) == cr
    handle.status.replace.assert_called_once_with(body=cr, namespace=TEST_NAMESPACE)
    handle.replace.assert_not_called()


def test_update_conflict_is_transient():
    store, handle = setup_store()
    handle.replace.side_effect = api_error(ConflictError, 409)
    with pytest.raises(TransientStoreError) as exc_info:
        store.update(setup_cr())
    assert exc_info.value.status == 409


## list / watch ################################################################


def test_list_objects_fills_kind_and_version():
    store, handle = setup_store()
    handle.get.return_value = Response(
        {
            "metadata": {"resourceVersion": "42"},
            "items": [{"metadata": {"name": "demo", "namespace": TEST_NAMESPACE}}],
        }
    )
    objects, resource_version = store.list_objects(KIND, API_VERSION)
    assert resource_version == "42"
    assert objects[0]["kind"] == KIND
    assert objects[0]["apiVersion"] == API_VERSION


def test_watch_objects_yields_events():
    store, _ = setup_store()
    watch_manager = mock.MagicMock()
    watch_manager.stream.return_value = iter(
        [
            {"type": "ADDED", "object": setup_cr()},
            {"type": "BOOKMARK", "object": {}},
            {"type": "DELETED", "object": setup_cr()},
        ]
    )
    events = list(store.watch_objects(KIND, API_VERSION, watch_manager=watch_manager))
    assert [event.type for event in events] == [
        KubeEventType.ADDED,
        KubeEventType.DELETED,
    ]


def test_watch_objects_error_event_is_transient():
    store, _ = setup_store()
    watch_manager = mock.MagicMock()
    watch_manager.stream.return_value = iter(
        [{"type": "ERROR", "object": {"code": 410, "message": "too old"}}]
    )
    with pytest.raises(TransientStoreError) as exc_info:
        list(store.watch_objects(KIND, API_VERSION, watch_manager=watch_manager))
    assert exc_info.value.status == 410


def test_watch_objects_api_exception_is_transient():
    store, _ = setup_store()
    watch_manager = mock.MagicMock()
    watch_manager.stream.side_effect = ApiException(status=410, reason="Gone")
    with pytest.raises(TransientStoreError) as exc_info:
        list(store.watch_objects(KIND, API_VERSION, watch_manager=watch_manager))
    assert exc_info.value.status == 410


def test_watch_objects_read_timeout_ends_stream():
    store, _ = setup_store()
    watch_manager = mock.MagicMock()
    watch_manager.stream.side_effect = urllib3.exceptions.ReadTimeoutError(
        None, None, "timed out"
    )
    assert not list(store.watch_objects(KIND, API_VERSION, watch_manager=watch_manager))


## client setup ################################################################


def test_setup_client_falls_back_to_kubeconfig():
    """Outside the cluster the kubeconfig is used (patched to raise in the
    tests)
    """
    store = OpenshiftStoreClient()
    with mock.patch(
        "kubernetes.config.load_incluster_config",
        side_effect=kubernetes.config.ConfigException,
    ):
        with pytest.raises(RuntimeError):
            store.client  # pylint: disable=pointless-statement
