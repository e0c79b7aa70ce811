"""
Events produced by object store watches
"""

# Standard
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

# Local
from ..managed_object import ManagedObject


class KubeEventType(Enum):
    """The event types of a kubernetes watch stream"""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"


@dataclass
class KubeWatchEvent:
    """A single change seen by a watch. old_resource is only set by stores
    that know the previous version of a MODIFIED object; watchers otherwise
    fall back to the last version they saw themselves.
    """

    type: KubeEventType
    resource: ManagedObject
    old_resource: Optional[ManagedObject] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self):
        return f"{self.type.value} {self.resource}@{self.resource.resource_version}"
