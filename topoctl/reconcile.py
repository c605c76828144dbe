"""
The ReconcileEngine holds the sync algorithm run for each work item key. A
sync either creates the dependents of a custom resource (creation phase) or,
once the status records what was created, checks on them (verification phase).
"""

# Standard
from typing import List, Optional
import copy

# First Party
import alog

# Local
from . import config
from .cache import WatchCacheBase
from .exceptions import AlreadyExistsError, ResourceGoneError
from .inventory import InventoryTracker
from .manifests import (
    DependentKind,
    DependentObject,
    ManifestGeneratorBase,
    dependent_name,
    pod_hostname,
)
from .status import StatusUpdater, get_object_prefixes
from .store import StoreClientBase
from .utils import split_meta_namespace_key

log = alog.use_channel("RECON")


class ReconcileEngine:
    """Runs one sync pass for a custom resource key. All reads go through the
    watch cache and all writes go to the store, so a pass never sees its own
    writes. Creation is idempotent to tolerate that.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        cache: WatchCacheBase,
        store: StoreClientBase,
        generator: ManifestGeneratorBase,
        inventory: InventoryTracker,
        resource_kind: str,
        status_updater: Optional[StatusUpdater] = None,
        cluster_domain: Optional[str] = None,
    ):
        """
        Args:
            cache:  WatchCacheBase
                Read-only view of the custom resources and their dependents
            store:  StoreClientBase
                Client used for every create and status update
            generator:  ManifestGeneratorBase
                Produces the dependents for a custom resource
            inventory:  InventoryTracker
                Receives the identities found during verification
            resource_kind:  str
                Kind of the custom resource
            status_updater:  Optional[StatusUpdater]
                Persists the prefixes after creation. Defaults to one using
                the given store.
            cluster_domain:  Optional[str]
                DNS suffix for pod identities (default manifests.cluster_domain)
        """
        self.cache = cache
        self.store = store
        self.generator = generator
        self.inventory = inventory
        self.resource_kind = resource_kind
        self.status_updater = status_updater or StatusUpdater(store)
        self.cluster_domain = cluster_domain or config.manifests.cluster_domain

    def sync(self, key: str):
        """Run one sync pass for a work item key

        Args:
            key:  str
                "<namespace>/<name>" of the custom resource

        Raises:
            MalformedKeyError: The key could not be split
            TransientStoreError: A store call failed and the key should be
                retried
        """
        namespace, name = split_meta_namespace_key(key)
        try:
            cr = self._get_resource(namespace, name)
        except ResourceGoneError as err:
            log.info("%s", err, extra={"key": key})
            return

        prefixes = get_object_prefixes(cr)
        if not prefixes:
            self.creation_phase(cr)
        else:
            self.verification_phase(cr, prefixes)

    ## Phases ##################################################################

    def creation_phase(self, cr: dict) -> List[str]:
        """Create every generated dependent that does not exist yet, then
        record the prefixes in the status. Any store error other than
        AlreadyExists aborts the phase; a retry skips what already exists.

        Returns:
            prefixes:  List[str]
                The prefixes written to the status
        """
        groups, prefixes = self.generator.generate(copy.deepcopy(cr))
        log.debug(
            "Creating dependents for %d prefixes", len(prefixes), extra={"resource": cr}
        )
        created = 0
        for group in groups:
            for dependent in group.objects:
                if self.ensure_dependent(dependent):
                    created += 1
        log.debug2("Created %d dependents", created, extra={"resource": cr})

        self.status_updater.update_object_prefixes(cr, prefixes)
        log.info(
            "Dependents are synced (created): %s", prefixes, extra={"resource": cr}
        )
        return prefixes

    def verification_phase(self, cr: dict, prefixes: List[str]) -> List[str]:
        """Check the recorded dependents and keep the inventory current.
        Missing dependents are only logged. Re-creation happens only while the
        status is empty.

        Returns:
            identities:  List[str]
                The pod identities of every prefix whose StatefulSet exists
        """
        metadata = cr.get("metadata") or {}
        namespace = metadata.get("namespace")
        name = metadata.get("name")

        identities = []
        for prefix in prefixes:
            present = {
                kind: self.cache.get(kind.kind, namespace, dependent_name(kind, prefix))
                is not None
                for kind in DependentKind
            }
            for kind, found in present.items():
                if not found:
                    log.warning(
                        "Missing %s %s for prefix %s",
                        kind.kind,
                        dependent_name(kind, prefix),
                        prefix,
                        extra={"resource": cr},
                    )
            if present[DependentKind.STATEFUL_SET]:
                log.debug3(
                    "Controls StatefulSet %s",
                    dependent_name(DependentKind.STATEFUL_SET, prefix),
                    extra={"resource": cr},
                )
                identities.append(pod_hostname(namespace, prefix, self.cluster_domain))

        if not self.inventory.controlled_values_exist(name, identities):
            log.debug("Recording identities %s", identities, extra={"resource": cr})
            self.inventory.update_controlled_state(name, identities)
        return identities

    ## Idempotent Create #######################################################

    def ensure_dependent(self, dependent: DependentObject) -> bool:
        """Make sure a dependent exists: skip it if the cache has it, create
        it otherwise, and treat a losing create race as success

        Returns:
            created:  bool
                True if this call created the object
        """
        kind = dependent.kind
        if self.cache.get(kind.kind, dependent.namespace, dependent.name) is not None:
            log.debug3("%s %s already exists", kind.kind, dependent.name)
            return False
        try:
            self.store.create(dependent.manifest)
        except AlreadyExistsError:
            log.debug("%s %s was created concurrently", kind.kind, dependent.name)
            return False
        log.debug2(
            "Created %s %s", kind.kind, dependent.name, extra={"resource": dependent.manifest}
        )
        return True

    ## Implementation Details ##################################################

    def _get_resource(self, namespace: str, name: str) -> dict:
        cr = self.cache.get(self.resource_kind, namespace or None, name)
        if cr is None:
            raise ResourceGoneError(
                f"{self.resource_kind} {namespace}/{name} no longer exists"
            )
        return cr
