"""
Watches, work queue and worker pool driving the reconciler
"""

# Local
from .filters import (
    ApplicationPredicate,
    DeploymentPredicate,
    EventPredicate,
    ServicePredicate,
)
from .work_queue import WorkQueue
from .watch_manager import ApplicationWatchManager, application_request, owner_request
