"""
This module holds the status protocol for custom resources managed by topoctl.
The status records the ordered object prefixes of the dependents that were
created:

{
    "objectPrefixes": ["<name>-0", "<name>-1", ...]
}

An empty or missing list means nothing has been created yet.
"""

# Standard
from typing import List
import copy

# First Party
import alog

# Local
from . import constants
from .store import StoreClientBase
from .utils import meta_namespace_key

log = alog.use_channel("STTUS")


def get_object_prefixes(cr: dict) -> List[str]:
    """Get the recorded object prefixes from a custom resource

    Args:
        cr:  dict
            The custom resource manifest

    Returns:
        prefixes:  List[str]
            The recorded prefixes, empty if none were recorded
    """
    status = cr.get("status") or {}
    return list(status.get(constants.STATUS_OBJECT_PREFIXES) or [])


def make_prefix_status(cr: dict, prefixes: List[str]) -> dict:
    """Build a copy of the custom resource whose status is replaced by one
    holding only the given prefixes. The input is never modified.
    """
    cr_copy = copy.deepcopy(cr)
    cr_copy["status"] = {constants.STATUS_OBJECT_PREFIXES: list(prefixes)}
    return cr_copy


class StatusUpdater:
    """Persists the outcome of a creation phase onto the custom resource"""

    def __init__(self, store: StoreClientBase):
        self.store = store

    def update_object_prefixes(self, cr: dict, prefixes: List[str]) -> dict:
        """Write the prefixes to the custom resource's status. The given cr is
        treated as shared and is never mutated. Store failures propagate as
        TransientStoreError so that the whole sync is retried.

        Args:
            cr:  dict
                The custom resource as seen in the watch cache
            prefixes:  List[str]
                The ordered object prefixes

        Returns:
            updated:  dict
                The custom resource as returned by the store
        """
        updated = make_prefix_status(cr, prefixes)
        log.debug(
            "Updating status of %s with prefixes %s",
            meta_namespace_key(cr),
            prefixes,
            extra={"resource": cr},
        )
        return self.store.update_status(updated)
