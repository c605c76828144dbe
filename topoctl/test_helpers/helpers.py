"""
This module holds common helper functions for making testing easy
"""

# Standard
from contextlib import contextmanager
from typing import Iterable, List, Optional, Tuple
from unittest import mock
import copy
import inspect
import os

# First Party
import aconfig
import alog

# Local
from topoctl import constants
from topoctl.cache import WatchCache
from topoctl.config import library_config as config_detail_dict
from topoctl.manifests import (
    DependentGroup,
    DependentKind,
    DependentObject,
    ManifestGeneratorBase,
    dependent_name,
    set_owner_reference,
)
from topoctl.store import DryRunStoreClient

log = alog.use_channel("TEST")


def configure_logging():
    alog.configure(
        os.environ.get("LOG_LEVEL", "off"),
        os.environ.get("LOG_FILTERS", ""),
        formatter="json"
        if os.environ.get("LOG_JSON", "").lower() == "true"
        else "pretty",
        thread_id=os.environ.get("LOG_THREAD_ID", "").lower() == "true",
    )


configure_logging()

TEST_INSTANCE_NAME = "demo"
TEST_INSTANCE_UID = "12345678-1234-1234-1234-123456789012"
TEST_NAMESPACE = "ns1"
TEST_KIND = "ClickHouseInstallation"
TEST_API_VERSION = "clickhouse.altinity.com/v1"


def setup_cr(
    kind=TEST_KIND,
    api_version=TEST_API_VERSION,
    spec=None,
    prefixes=None,
    name=TEST_INSTANCE_NAME,
    namespace=TEST_NAMESPACE,
    **kwargs,
) -> dict:
    """Make a custom resource manifest. If prefixes is given, the status
    records them.
    """
    cr_dict = kwargs or {}
    cr_dict.setdefault("kind", kind)
    cr_dict.setdefault("apiVersion", api_version)
    cr_dict.setdefault("metadata", {}).setdefault("name", name)
    cr_dict.setdefault("metadata", {}).setdefault("namespace", namespace)
    cr_dict.setdefault("metadata", {}).setdefault("uid", TEST_INSTANCE_UID)
    cr_dict.setdefault("spec", {}).update(copy.deepcopy(spec or {}))
    if prefixes is not None:
        cr_dict.setdefault("status", {})[constants.STATUS_OBJECT_PREFIXES] = list(
            prefixes
        )
    return cr_dict


def make_dependent(
    kind: DependentKind,
    prefix: str,
    owner_cr: Optional[dict] = None,
    namespace: str = TEST_NAMESPACE,
    resource_version: Optional[str] = None,
) -> dict:
    """Make a minimal dependent manifest, optionally controlled by owner_cr"""
    manifest = {
        "apiVersion": kind.api_version,
        "kind": kind.kind,
        "metadata": {"name": dependent_name(kind, prefix), "namespace": namespace},
    }
    if resource_version is not None:
        manifest["metadata"]["resourceVersion"] = resource_version
    if owner_cr is not None:
        set_owner_reference(owner_cr, manifest)
    return manifest


@contextmanager
def library_config(**config_overrides):
    """This context manager sets library config values temporarily and reverts
    them on completion
    """
    # Override the configs and hang onto the old values
    old_vals = {}
    for key, val in config_overrides.items():
        if key in config_detail_dict:
            old_vals[key] = config_detail_dict[key]
        if isinstance(val, dict):
            val = aconfig.Config(val, override_env_vars=False)
        config_detail_dict[key] = val

    # Yield to the context
    try:
        yield
    finally:
        # Revert to the old values
        for key in config_overrides:
            if key in old_vals:
                config_detail_dict[key] = old_vals[key]
            else:
                del config_detail_dict[key]


def sync_cache(store: DryRunStoreClient, cache: WatchCache, kinds: Iterable[str]):
    """Load the cache from the store the way an informer's initial list does"""
    for kind in kinds:
        objects, _ = store.list_objects(kind)
        cache.replace(kind, objects)


def get_failable_method(fail_flag, method):
    log.debug4(
        "Setting up failable mock of [%s] with fail flag: %s", str(method), fail_flag
    )

    def failable_method(*args, **kwargs):
        if isinstance(fail_flag, Exception) or (
            inspect.isclass(fail_flag) and issubclass(fail_flag, Exception)
        ):
            log.debug4("Raising in failable mock")
            raise fail_flag
        if callable(fail_flag):
            log.debug4("Calling callable fail flag")
            fail_flag(*args, **kwargs)
        return method(*args, **kwargs)

    return failable_method


class FailOnce:
    """Helper callable that will raise once on the N'th call"""

    def __init__(self, fail_val, fail_number=1):
        self.call_count = 0
        self.fail_number = fail_number
        self.fail_val = fail_val

    def __call__(self, *_, **__):
        self.call_count += 1
        if self.call_count == self.fail_number:
            log.debug("Failing on call %d with %s", self.call_count, self.fail_val)
            if isinstance(self.fail_val, type) and issubclass(self.fail_val, Exception):
                raise self.fail_val("Raising!")
            raise self.fail_val
        log.debug("Not failing on call %d", self.call_count)


class MockStoreClient(DryRunStoreClient):
    """The MockStoreClient wraps a standard DryRunStoreClient so that every
    call is counted and each operation can be configured to fail. A fail
    flag is either an exception (type or instance) raised on every call or a
    callable run before every call, which may raise.
    """

    def __init__(
        self,
        get_fail=False,
        create_fail=False,
        update_fail=False,
        update_status_fail=False,
        resources=None,
        **kwargs,
    ):
        super().__init__(resources=resources, **kwargs)
        self.get = mock.Mock(side_effect=get_failable_method(get_fail, super().get))
        self.create = mock.Mock(
            side_effect=get_failable_method(create_fail, super().create)
        )
        self.update = mock.Mock(
            side_effect=get_failable_method(update_fail, super().update)
        )
        self.update_status = mock.Mock(
            side_effect=get_failable_method(update_status_fail, super().update_status)
        )

    def get_obj(self, kind, name, namespace=TEST_NAMESPACE) -> Optional[dict]:
        objects, _ = self.list_objects(kind, namespace=namespace)
        for obj in objects:
            if obj["metadata"]["name"] == name:
                return obj
        return None

    def has_obj(self, *args, **kwargs) -> bool:
        return self.get_obj(*args, **kwargs) is not None


class StaticManifestGenerator(ManifestGeneratorBase):
    """Generator that returns one bare dependent per kind per prefix for a
    fixed list of prefixes, and counts its calls
    """

    def __init__(self, prefixes: List[str], kinds: Optional[List[DependentKind]] = None):
        self.prefixes = list(prefixes)
        self.kinds = kinds or list(DependentKind)
        self.inputs = []

    def generate(self, cr_copy) -> Tuple[List[DependentGroup], List[str]]:
        self.inputs.append(cr_copy)
        namespace = cr_copy["metadata"].get("namespace")
        groups = [
            DependentGroup(
                prefix=prefix,
                objects=[
                    DependentObject(
                        kind=kind,
                        manifest=make_dependent(
                            kind, prefix, owner_cr=cr_copy, namespace=namespace
                        ),
                    )
                    for kind in self.kinds
                ],
            )
            for prefix in self.prefixes
        ]
        return groups, list(self.prefixes)
