"""
The ApplicationWatchManager wires the watches of the three watched types to
a pool of reconcile workers through one shared work queue
"""

# Standard
from typing import List, Optional
import threading

# First Party
import alog

# Local
from .. import config, constants
from ..controller import ApplicationReconciler, ReconcileCounter, ReconcileRequest
from ..managed_object import ManagedObject
from ..store import ObjectStoreBase, get_controller_reference
from .filters import ApplicationPredicate, DeploymentPredicate, ServicePredicate
from .threads import ReconcileThread, TimerThread, WatchThread
from .work_queue import WorkQueue

log = alog.use_channel("WATCH")


## Request mapping #############################################################


def application_request(resource: ManagedObject) -> ReconcileRequest:
    """Map an Application to its own request"""
    return ReconcileRequest(namespace=resource.namespace or "", name=resource.name)


def owner_request(resource: ManagedObject) -> Optional[ReconcileRequest]:
    """Map a child to the request of the Application that controls it. Children
    without an Application controller reference map to nothing.
    """
    owner_ref = get_controller_reference(resource.definition)
    if (
        owner_ref is None
        or owner_ref.get("apiVersion") != constants.APPLICATION_API_VERSION
        or owner_ref.get("kind") != constants.APPLICATION_KIND
    ):
        return None
    return ReconcileRequest(
        namespace=resource.namespace or "", name=owner_ref.get("name")
    )


## Watch Manager ###############################################################


class ApplicationWatchManager:  # pylint: disable=too-many-instance-attributes
    """The ApplicationWatchManager runs one WatchThread per watched type and a
    fixed size pool of ReconcileThreads.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        store: ObjectStoreBase,
        reconciler: Optional[ApplicationReconciler] = None,
        namespace: Optional[str] = None,
        max_concurrent_reconciles: Optional[int] = None,
        timer_thread: Optional[TimerThread] = None,
    ):
        """Construct the threads without starting them

        Args:
            store: ObjectStoreBase
                The store to watch and reconcile against
            reconciler: Optional[ApplicationReconciler]
                The reconciler run by the workers. Defaults to one built on
                the store with this manager's counter.
            namespace: Optional[str]
                The namespace to watch. Defaults to config.watch.namespace
            max_concurrent_reconciles: Optional[int]
                Number of workers. Defaults to config.max_concurrent_reconciles
            timer_thread: Optional[TimerThread]
                The timer for delayed requeues. Defaults to the shared timer
        """
        self.store = store
        self.namespace = namespace if namespace is not None else config.watch.namespace
        self.counter = ReconcileCounter()
        self.reconciler = reconciler or ApplicationReconciler(
            store, counter=self.counter
        )
        self.timer_thread = timer_thread or TimerThread()
        self.work_queue = WorkQueue(timer_thread=self.timer_thread)
        self.shutdown = threading.Event()

        self.watch_threads: List[WatchThread] = [
            self._watch_thread(
                constants.APPLICATION_KIND,
                constants.APPLICATION_API_VERSION,
                ApplicationPredicate(),
                application_request,
            ),
            self._watch_thread(
                constants.DEPLOYMENT_KIND,
                constants.DEPLOYMENT_API_VERSION,
                DeploymentPredicate(),
                owner_request,
            ),
            self._watch_thread(
                constants.SERVICE_KIND,
                constants.SERVICE_API_VERSION,
                ServicePredicate(),
                owner_request,
            ),
        ]

        worker_count = max_concurrent_reconciles or config.max_concurrent_reconciles
        self.reconcile_threads: List[ReconcileThread] = [
            ReconcileThread(
                self.reconciler, self.work_queue, name=f"reconcile_thread_{i}"
            )
            for i in range(worker_count)
        ]

    def __str__(self):
        return (
            f"ApplicationWatchManager<{constants.APPLICATION_API_VERSION}/"
            f"{constants.APPLICATION_KIND}/{self.namespace or '*'}>"
        )

    ## Interface ###############################################################

    def watch(self) -> bool:
        """Start all threads

        Returns:
            success:  bool
                True if all threads were started
        """
        log.info("Starting %s", self)

        # If watch has been shutdown then exit before starting threads
        if self.shutdown.is_set():
            return False

        self.timer_thread.start_thread()
        for reconcile_thread in self.reconcile_threads:
            reconcile_thread.start_thread()
        for watch_thread in self.watch_threads:
            log.debug("Starting watch_thread: %s", watch_thread.name)
            watch_thread.start_thread()
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for shutdown to be signaled or for a watch to fail

        Returns:
            stopped:  bool
                True if shutdown was signaled, False on timeout
        """
        while not self.shutdown.wait(timeout=1 if timeout is None else timeout):
            if self.failed:
                log.error("A watch of %s failed. Shutting down", self)
                self.stop()
                break
            if timeout is not None:
                return False
        return True

    def stop(self):
        """Stop all threads. In flight reconciles run to completion."""
        log.info("Stopping %s", self)
        self.shutdown.set()

        for watch_thread in self.watch_threads:
            watch_thread.stop_thread()
        self.work_queue.shut_down()
        for reconcile_thread in self.reconcile_threads:
            reconcile_thread.stop_thread()
        self.timer_thread.stop_thread()

        for reconcile_thread in self.reconcile_threads:
            if reconcile_thread.is_alive():
                reconcile_thread.join()

    @property
    def failed(self) -> bool:
        """True when any watch gave up after exhausting its retries"""
        return any(watch_thread.failed for watch_thread in self.watch_threads)

    ## Implementation Details ##################################################

    def _watch_thread(self, kind, api_version, predicate, request_mapper):
        return WatchThread(
            store=self.store,
            work_queue=self.work_queue,
            kind=kind,
            api_version=api_version,
            predicate=predicate,
            request_mapper=request_mapper,
            namespace=self.namespace,
        )
