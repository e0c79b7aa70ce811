"""
This module holds the functionality used to link a child resource to the
resource that controls it through metadata.ownerReferences
"""

# First Party
import alog

# Local
from ..exceptions import OwnerLinkError

log = alog.use_channel("OWNRF")


def set_controller_reference(owner: dict, child: dict):
    """Merge a controller reference to the owner into the child object. The
    child must live in the owner's namespace and may not already be controlled
    by a different owner.

    Args:
        owner:  dict
            The full manifest of the owning resource. It must have been
            persisted so that it carries a uid.
        child:  dict
            The child manifest which is updated in place

    Raises:
        OwnerLinkError:  If the reference cannot be established
    """
    owner_metadata = owner.get("metadata") or {}
    child_metadata = child.setdefault("metadata", {})
    owner_uid = owner_metadata.get("uid")
    if not owner_uid:
        raise OwnerLinkError(
            f"Owner {owner.get('kind')}/{owner_metadata.get('name')} has no uid"
        )

    owner_namespace = owner_metadata.get("namespace")
    child_namespace = child_metadata.get("namespace")
    if owner_namespace != child_namespace:
        raise OwnerLinkError(
            f"Cross-namespace owner references are not allowed: "
            f"{owner_namespace} != {child_namespace}"
        )

    owner_refs = [
        ref
        for ref in (child_metadata.get("ownerReferences") or [])
        if ref.get("uid") != owner_uid
    ]
    for ref in owner_refs:
        if ref.get("controller"):
            raise OwnerLinkError(
                f"Object {child.get('kind')}/{child_metadata.get('name')} is "
                f"already controlled by {ref.get('kind')}/{ref.get('name')}"
            )

    log.debug2(
        "Adding controller reference to %s/%s for %s/%s",
        owner.get("kind"),
        owner_metadata.get("name"),
        child.get("kind"),
        child_metadata.get("name"),
    )
    owner_refs.append(_make_owner_reference(owner))
    child_metadata["ownerReferences"] = owner_refs


def get_controller_reference(obj: dict):
    """Get the ownerReference marked as controller, if any"""
    for ref in (obj.get("metadata") or {}).get("ownerReferences") or []:
        if ref.get("controller"):
            return ref
    return None


## Implementation Details ######################################################


def _make_owner_reference(owner: dict) -> dict:
    """Make a controller owner reference for the given owner

    Args:
        owner:  dict
            The full manifest for the owning resource

    Returns:
        owner_reference:  dict
            The dict entry for the `metadata.ownerReferences` entry of the owned
            object
    """
    metadata = owner.get("metadata", {})
    return {
        "apiVersion": owner.get("apiVersion"),
        "kind": owner.get("kind"),
        "name": metadata.get("name"),
        "uid": metadata.get("uid"),
        "controller": True,
        # The parent will not be deleted until this object completes its
        # deletion
        "blockOwnerDeletion": True,
    }
