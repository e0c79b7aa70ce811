"""
Thin wrapper giving attribute access to the identity of a kubernetes object
"""
# Standard
from typing import Any, Optional
import uuid


class ManagedObject:
    """Wraps a manifest dict without copying it. Identity fields are read
    through to the manifest so that changes to the dict are always visible.
    Two wrappers are equal when they refer to the same cluster object (uid).
    """

    def __init__(self, definition: dict):
        self.definition = definition
        assert self.kind is not None, "No kind found"
        assert self.api_version is not None, "No apiVersion found"
        assert self.name is not None, "No name found"
        # Objects that were never persisted get a stand-in uid
        self._fallback_uid = str(uuid.uuid4())

    ## Identity ################################################################

    @property
    def metadata(self) -> dict:
        return self.definition.setdefault("metadata", {})

    @property
    def kind(self) -> Optional[str]:
        return self.definition.get("kind")

    @property
    def api_version(self) -> Optional[str]:
        return self.definition.get("apiVersion")

    @property
    def name(self) -> Optional[str]:
        return self.metadata.get("name")

    @property
    def namespace(self) -> Optional[str]:
        return self.metadata.get("namespace")

    @property
    def uid(self) -> str:
        return self.metadata.get("uid") or self._fallback_uid

    @property
    def resource_version(self) -> Optional[str]:
        return self.metadata.get("resourceVersion")

    @property
    def labels(self) -> dict:
        return self.metadata.get("labels") or {}

    @property
    def owner_references(self) -> list:
        return self.metadata.get("ownerReferences") or []

    def get(self, key: str, default: Any = None) -> Any:
        """dict.get on the wrapped manifest"""
        return self.definition.get(key, default)

    ## Comparison ##############################################################

    def __eq__(self, other):
        if not isinstance(other, ManagedObject):
            return NotImplemented
        return self.uid == other.uid

    def __hash__(self):
        return hash(self.uid)

    def __str__(self):
        return f"{self.api_version}/{self.kind}/{self.namespace}/{self.name}"

    __repr__ = __str__
