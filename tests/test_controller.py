"""
Tests for the Controller dispatch loop and startup
"""
# Standard
from datetime import timedelta
from unittest import mock
import threading
import time

# Third Party
import pytest

# Local
from topoctl.cache import WatchCache
from topoctl.controller import Controller
from topoctl.exceptions import CacheSyncTimeoutError, TransientStoreError
from topoctl.manifests import DependentKind, ReplicaManifestGenerator
from topoctl.test_helpers.helpers import (
    TEST_KIND,
    TEST_NAMESPACE,
    MockStoreClient,
    StaticManifestGenerator,
    setup_cr,
    sync_cache,
)
from topoctl.threads import InformerThread
from topoctl.workqueue import ItemExponentialFailureRateLimiter, RateLimitingQueue

PREFIXES = ["demo-0", "demo-1"]
ALL_KINDS = [TEST_KIND] + [kind.kind for kind in DependentKind]
KEY = f"{TEST_NAMESPACE}/demo"

## Helpers #####################################################################


class RecordingRateLimiter(ItemExponentialFailureRateLimiter):
    """Exponential limiter that remembers every delay it handed out"""

    def __init__(self):
        super().__init__(timedelta(seconds=0.01), timedelta(seconds=1))
        self.delays = []

    def when(self, item):
        delay = super().when(item)
        self.delays.append(delay)
        return delay


def setup_controller(store=None, register=True):
    store = store or MockStoreClient(resources=[setup_cr()])
    cache = WatchCache()
    limiter = RecordingRateLimiter()
    controller = Controller(
        cache=cache,
        store=store,
        generator=StaticManifestGenerator(PREFIXES),
        queue=RateLimitingQueue(rate_limiter=limiter),
        resource_kind=TEST_KIND,
    )
    if register:
        controller.register_handlers()
    return controller, store, cache, limiter


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


@pytest.fixture
def controller_parts():
    controller, store, cache, limiter = setup_controller()
    yield controller, store, cache, limiter
    controller.queue.shut_down()


## Dispatch ####################################################################


@pytest.mark.timeout(5)
def test_duplicate_keys_sync_once(controller_parts):
    controller, _, _, _ = controller_parts
    for _ in range(3):
        controller.queue.add(KEY)
    with mock.patch.object(controller.engine, "sync") as sync_mock:
        assert controller.process_next_work_item()
    sync_mock.assert_called_once_with(KEY)
    assert len(controller.queue) == 0


@pytest.mark.timeout(5)
def test_success_forgets_key(controller_parts):
    controller, _, _, _ = controller_parts
    controller.queue.add(KEY)
    with mock.patch.object(controller.engine, "sync"), mock.patch.object(
        controller.queue, "forget", wraps=controller.queue.forget
    ) as forget_spy:
        controller.process_next_work_item()
    forget_spy.assert_called_once_with(KEY)


@pytest.mark.timeout(10)
def test_transient_errors_back_off_then_reset():
    """Delays grow with consecutive failures and restart from the base delay
    after a success
    """
    failures = {"remaining": 3}

    def flaky_sync(_):
        if failures["remaining"]:
            failures["remaining"] -= 1
            raise TransientStoreError("boom", status=500)

    controller, _, _, limiter = setup_controller(register=False)
    try:
        with mock.patch.object(controller.engine, "sync", side_effect=flaky_sync):
            controller.queue.add(KEY)
            for _ in range(4):
                assert controller.process_next_work_item()
            assert controller.queue.num_requeues(KEY) == 0

            failures["remaining"] = 1
            controller.queue.add(KEY)
            controller.process_next_work_item()
    finally:
        controller.queue.shut_down()

    first_run = limiter.delays[:3]
    assert all(later > earlier for earlier, later in zip(first_run, first_run[1:]))
    assert limiter.delays[3] == limiter.base_delay


@pytest.mark.timeout(5)
def test_terminal_error_is_dropped(controller_parts):
    controller, _, _, limiter = controller_parts
    controller.queue.add("a/b/c")
    assert controller.process_next_work_item()
    assert not limiter.delays
    assert len(controller.queue) == 0


@pytest.mark.timeout(5)
def test_non_string_item_is_dropped(controller_parts):
    controller, _, _, limiter = controller_parts
    controller.queue.add(("ns1", "demo"))
    assert controller.process_next_work_item()
    assert not limiter.delays


@pytest.mark.timeout(5)
def test_unexpected_error_is_retried(controller_parts):
    controller, _, _, limiter = controller_parts
    controller.queue.add(KEY)
    with mock.patch.object(
        controller.engine, "sync", side_effect=RuntimeError("surprise")
    ):
        assert controller.process_next_work_item()
    assert controller.queue.num_requeues(KEY) == 1
    assert len(limiter.delays) == 1


@pytest.mark.timeout(5)
def test_process_returns_false_after_shutdown(controller_parts):
    controller, _, _, _ = controller_parts
    controller.queue.shut_down()
    assert not controller.process_next_work_item()


## Startup #####################################################################


@pytest.mark.timeout(5)
def test_run_cache_sync_timeout_starts_no_workers():
    controller, _, cache, _ = setup_controller()
    cache.mark_synced(TEST_KIND)
    with pytest.raises(CacheSyncTimeoutError):
        controller.run(threading.Event(), workers=2, cache_sync_timeout=0.2)
    assert controller.workers == []
    assert controller.queue.shutting_down


@pytest.mark.timeout(5)
def test_run_interrupted_before_sync():
    controller, _, _, _ = setup_controller()
    stop_event = threading.Event()
    stop_event.set()
    with pytest.raises(CacheSyncTimeoutError):
        controller.run(stop_event, workers=1, cache_sync_timeout=1)
    assert controller.workers == []


@pytest.mark.timeout(10)
def test_run_starts_workers_and_stops():
    controller, store, cache, _ = setup_controller()
    sync_cache(store, cache, ALL_KINDS)
    stop_event = threading.Event()
    runner = threading.Thread(
        target=controller.run, args=(stop_event,), kwargs={"workers": 2}
    )
    runner.start()
    assert wait_for(lambda: len(controller.workers) == 2)
    assert wait_for(lambda: store.update_status.call_count == 1)
    stop_event.set()
    runner.join()
    assert all(not worker.is_alive() for worker in controller.workers)


## End To End ##################################################################


@pytest.mark.timeout(10)
def test_demo_scenario(controller_parts):
    """demo in ns1 with two prefixes: the first sync creates six objects and
    records the status. The second sync only verifies and records two
    identities.
    """
    controller, store, cache, _ = controller_parts

    # Initial list delivers the custom resource
    sync_cache(store, cache, ALL_KINDS)
    assert len(controller.queue) == 1
    assert controller.process_next_work_item()

    assert store.create.call_count == 6
    for kind in DependentKind:
        objects, _ = store.list_objects(kind.kind, namespace=TEST_NAMESPACE)
        assert len(objects) == 2
    cr = store.get(TEST_KIND, TEST_NAMESPACE, "demo")
    assert cr["status"]["objectPrefixes"] == PREFIXES

    # The watch catches up. Every event routes back to the single key.
    sync_cache(store, cache, ALL_KINDS)
    assert len(controller.queue) == 1
    store.create.reset_mock()
    with mock.patch.object(
        controller.inventory,
        "update_controlled_state",
        wraps=controller.inventory.update_controlled_state,
    ) as update_spy:
        assert controller.process_next_work_item()
        store.create.assert_not_called()
        assert update_spy.call_count == 1
        assert len(controller.inventory.get_controlled_state("demo")) == 2

        # Another verification pass leaves the tracker alone
        controller.queue.add(KEY)
        assert controller.process_next_work_item()
        assert update_spy.call_count == 1


@pytest.mark.timeout(10)
def test_resource_delete_clears_inventory(controller_parts):
    controller, store, cache, _ = controller_parts
    controller.inventory.update_controlled_state("demo", ["host"])
    sync_cache(store, cache, ALL_KINDS)
    store.delete(TEST_KIND, TEST_NAMESPACE, "demo")
    sync_cache(store, cache, ALL_KINDS)
    assert controller.inventory.get_controlled_state("demo") == []


@pytest.mark.timeout(20)
def test_informer_driven_convergence():
    """Full loop with informers: the controller converges and records the
    identities of both prefixes
    """
    controller, store, cache, _ = setup_controller()
    stop_event = threading.Event()
    informers = [
        InformerThread(store, cache, kind, api_version=None, shutdown=stop_event)
        for kind in ALL_KINDS
    ]
    for informer in informers:
        informer.start_thread()
    runner = threading.Thread(
        target=controller.run, args=(stop_event,), kwargs={"workers": 2}
    )
    runner.start()
    try:
        assert wait_for(
            lambda: len(controller.inventory.get_controlled_state("demo")) == 2,
            timeout=10,
        )
    finally:
        stop_event.set()
        runner.join()
        for informer in informers:
            informer.join()

    for kind in DependentKind:
        objects, _ = store.list_objects(kind.kind, namespace=TEST_NAMESPACE)
        assert len(objects) == 2
    cr = store.get(TEST_KIND, TEST_NAMESPACE, "demo")
    assert cr["status"]["objectPrefixes"] == PREFIXES


@pytest.mark.timeout(20)
def test_zero_replicas_settles():
    """A CR with no replicas records an empty prefix list once and the
    controller then goes quiet instead of re-syncing on its own status writes
    """
    store = MockStoreClient(resources=[setup_cr(spec={"replicas": 0})])
    cache = WatchCache()
    controller = Controller(
        cache=cache,
        store=store,
        generator=ReplicaManifestGenerator(),
        resource_kind=TEST_KIND,
    )
    controller.register_handlers()
    stop_event = threading.Event()
    informers = [
        InformerThread(store, cache, kind, api_version=None, shutdown=stop_event)
        for kind in ALL_KINDS
    ]
    for informer in informers:
        informer.start_thread()
    runner = threading.Thread(
        target=controller.run, args=(stop_event,), kwargs={"workers": 2}
    )
    runner.start()
    try:
        assert wait_for(lambda: store.update_status.call_count >= 1)
        time.sleep(1)
    finally:
        stop_event.set()
        runner.join()
        for informer in informers:
            informer.join()

    # The first write adds the status, the resync writes the same status back
    assert store.update_status.call_count <= 2
    cr = store.get(TEST_KIND, TEST_NAMESPACE, "demo")
    assert cr["status"] == {"objectPrefixes": []}
    assert store.create.call_count == 0
