"""
This module holds the helpers used to stamp and read the controller
ownerReference that ties a dependent back to its custom resource
"""

# First Party
import alog

log = alog.use_channel("OWNRF")


def make_owner_reference(owner_cr: dict) -> dict:
    """Make the controller owner reference for the given CR instance

    Error Semantics: This function makes a best-effort and does not validate the
    content of the owner_cr, so the resulting ownerReference may contain None
    entries.

    Args:
        owner_cr:  dict
            The full CR manifest for the owning resource

    Returns:
        owner_reference:  dict
            The dict entry for the `metadata.ownerReferences` entry of the owned
            object
    """
    metadata = owner_cr.get("metadata", {})
    return {
        "apiVersion": owner_cr.get("apiVersion"),
        "kind": owner_cr.get("kind"),
        "name": metadata.get("name"),
        "uid": metadata.get("uid"),
        # Dependents are routed back to the owner through this flag
        "controller": True,
        # The parent will not be deleted until this object completes its
        # deletion
        "blockOwnerDeletion": True,
    }


def set_owner_reference(owner_cr: dict, child_obj: dict):
    """Attach the owner reference for owner_cr to child_obj in place. Any
    existing controller reference is replaced since only one reference may
    carry the controller flag.
    """
    _validate_object_struct(owner_cr)
    _validate_object_struct(child_obj)

    owner_refs = [
        ref
        for ref in child_obj["metadata"].get("ownerReferences") or []
        if not ref.get("controller")
    ]
    owner_refs.append(make_owner_reference(owner_cr))
    log.debug4("Final owner refs: %s", owner_refs)
    child_obj["metadata"]["ownerReferences"] = owner_refs


## Implementation Details ######################################################


def _validate_object_struct(obj: dict):
    """Ensure that the required portions of an object are present (kind,
    apiVerison, metadata.name)
    """
    assert "kind" in obj, "Got object without 'kind'"
    assert "apiVersion" in obj, "Got object without 'apiVersion'"
    metadata = obj.get("metadata")
    assert isinstance(metadata, dict), "Got object with non-dict 'metadata'"
    assert "name" in metadata, "Got object without 'metadata.name'"
