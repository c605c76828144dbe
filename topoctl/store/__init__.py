"""
Store clients carry out every write the controller makes to the cluster, plus
the list and watch calls that keep the watch cache current.
"""

# Local
from .base import StoreClientBase
from .dry_run import DryRunStoreClient
from .kube_event import KubeEventType, KubeWatchEvent
from .openshift import OpenshiftStoreClient
