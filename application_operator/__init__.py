"""
Top-level application operator imports
"""

# Local
from . import config
from .api import Application
from .controller import ApplicationReconciler, ReconcileRequest, ReconciliationResult
from .exceptions import (
    AdmissionError,
    ConfigError,
    NotFoundError,
    OperatorError,
    StoreError,
)
from .managed_object import ManagedObject
from .store import InMemoryObjectStore, KubeObjectStore, ObjectStoreBase
from .watch_manager import ApplicationWatchManager
from .webhook import (
    AdmissionServer,
    ApplicationAdmission,
    ApplicationDefaulter,
    ApplicationValidator,
)
