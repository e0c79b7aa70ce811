"""
The ReconcileThread is one worker of the pool draining the work queue
"""

# Standard
from typing import Optional

# First Party
import alog

# Local
from ...controller import ApplicationReconciler, ReconcileRequest, ReconciliationResult
from .base import ThreadBase

log = alog.use_channel("RCLTHRD")

# Forward declaration of WorkQueue
WORK_QUEUE_TYPE = "WorkQueue"

# Longest time a worker blocks on the queue before checking for shutdown
QUEUE_POLL_TIME = 1


class ReconcileThread(ThreadBase):
    """A ReconcileThread takes requests from the shared work queue, runs the
    reconciler and schedules the requeue the result asks for. The queue never
    hands the same request to two threads at once.
    """

    def __init__(
        self,
        reconciler: ApplicationReconciler,
        work_queue: WORK_QUEUE_TYPE,
        name: Optional[str] = None,
    ):
        """
        Args:
            reconciler: ApplicationReconciler
                The reconciler shared by all workers
            work_queue: WorkQueue
                The queue to take requests from
            name: Optional[str]
                The name of the thread
        """
        super().__init__(name=name or "reconcile_thread", daemon=True)
        self.reconciler = reconciler
        self.work_queue = work_queue

    def run(self):
        """Process requests until the thread is stopped or the queue shuts down"""
        while not self.should_stop():
            request = self.work_queue.get(timeout=QUEUE_POLL_TIME)
            if request is None:
                if self.work_queue.shutting_down:
                    log.debug("Work queue shut down. Stopping %s", self.name)
                    return
                continue
            self.process(request)

    def process(self, request: ReconcileRequest) -> ReconciliationResult:
        """Reconcile a single request and schedule its requeue"""
        try:
            result = self.reconciler.reconcile(request)
        except Exception as exc:  # pylint: disable=broad-except
            log.error(
                "Unexpected error reconciling %s: %s", request, exc, exc_info=True
            )
            result = ReconciliationResult.retry_after_error(exc)
        finally:
            self.work_queue.done(request)

        if result.requeue:
            log.debug(
                "Requeueing %s after %s", request, result.requeue_params.requeue_after
            )
            self.work_queue.add_after(request, result.requeue_params.requeue_after)
        return result
