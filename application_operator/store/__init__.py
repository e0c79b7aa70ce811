"""
The object stores the operator reads and writes resources through
"""

# Local
from .base import ObjectStoreBase
from .kube_event import KubeEventType, KubeWatchEvent
from .kube_store import KubeObjectStore
from .memory_store import InMemoryObjectStore
from .owner_references import get_controller_reference, set_controller_reference
