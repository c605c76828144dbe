"""
Package exports
"""

# Local
from . import config, reconcile, status
from .cache import DeletedFinalStateUnknown, WatchCache, WatchCacheBase
from .controller import Controller
from .exceptions import (
    AlreadyExistsError,
    CacheSyncTimeoutError,
    InformerFailedError,
    MalformedKeyError,
    NotFoundError,
    ResourceGoneError,
    TopoError,
    TransientStoreError,
    UnrecognizedEventPayloadError,
    assert_config,
)
from .inventory import InventoryTracker
from .manifests import ManifestGeneratorBase, ReplicaManifestGenerator
from .reconcile import ReconcileEngine
from .router import EventRouter
from .status import StatusUpdater
from .store import DryRunStoreClient, OpenshiftStoreClient, StoreClientBase
from .workqueue import RateLimitingQueue
