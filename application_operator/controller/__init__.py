"""
The reconcile loop and the child synchronizers it drives
"""

# Local
from .deployment import DeploymentSynchronizer
from .reconciler import ApplicationReconciler, ReconcileCounter
from .request import ReconcileRequest
from .result import ReconciliationResult, RequeueParams
from .service import ServiceSynchronizer
from .synchronizer import ChildSynchronizer
