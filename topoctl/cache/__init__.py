"""
The watch cache is the controller's read-only view of the cluster
"""

# Local
from .base import DeletedFinalStateUnknown, WatchCacheBase, wait_for_cache_sync
from .watch_cache import ResourceEventHandler, WatchCache
