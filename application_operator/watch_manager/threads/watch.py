"""
Thread that follows the store events of one kind and turns the relevant ones
into reconcile requests
"""
# Standard
from typing import Callable, Dict, Optional

# First Party
import alog

# Local
from ... import config
from ...controller import ReconcileRequest
from ...managed_object import ManagedObject
from ...store import KubeEventType, KubeWatchEvent, ObjectStoreBase
from ...utils import parse_time_delta
from ..filters import EventPredicate
from .base import ThreadBase

log = alog.use_channel("WTCHTHRD")

# Forward declaration of WorkQueue
WORK_QUEUE_TYPE = "WorkQueue"

# Maps a watched resource to the request of the Application it belongs to
RequestMapper = Callable[[ManagedObject], Optional[ReconcileRequest]]


class WatchThread(ThreadBase):  # pylint: disable=too-many-instance-attributes
    """Follows one kind, optionally limited to a namespace. Every event is
    tested against the predicate and the requests of passing events go to
    the work queue. The last seen version of each resource is cached so that
    updates can be compared with what came before.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        store: ObjectStoreBase,
        work_queue: WORK_QUEUE_TYPE,
        kind: str,
        api_version: str,
        predicate: EventPredicate,
        request_mapper: RequestMapper,
        namespace: Optional[str] = None,
    ):
        """
        Args:
            store: ObjectStoreBase
                Source of the events
            work_queue: WorkQueue
                Destination of the requests
            kind: str
                Kind of the watched resources
            api_version: str
                apiVersion of the watched resources
            predicate: EventPredicate
                Decides which events are relevant
            request_mapper: RequestMapper
                Finds the Application request for a resource
            namespace: Optional[str] = None
                Namespace to watch, all namespaces when unset
        """
        self.store = store
        self.work_queue = work_queue
        self.kind = kind
        self.api_version = api_version
        self.predicate = predicate
        self.request_mapper = request_mapper
        self.namespace = namespace

        name_parts = ["watch_thread", self.api_version, self.kind, self.namespace]
        super().__init__(name="_".join(filter(None, name_parts)), daemon=True)

        # uid -> last seen version
        self.watched_resources: Dict[str, ManagedObject] = {}

        self.attempts_left = config.watch.retry_count
        self.retry_delay = parse_time_delta(config.watch.retry_delay or "")
        self.failed = False

    def run(self):
        """Keep a watch open until stopped. A watch that times out is opened
        again right away. A watch that raises is retried after the retry delay
        while attempts are left, after which the thread is marked failed.
        """
        while not self.should_stop():
            try:
                self._follow_watch()
            except Exception as exc:  # pylint: disable=broad-except
                log.info("Watch of %s failed: %r", self.kind, exc, exc_info=exc)
                if not self._wait_for_retry():
                    return

    ## Public Interface ###################################################

    def handle_event(self, event: KubeWatchEvent) -> Optional[ReconcileRequest]:
        """Cache the resource of the event and queue the request it maps to
        when the predicate passes

        Returns:
            request: Optional[ReconcileRequest]
                The queued request, if any
        """
        resource = event.resource
        old_resource = event.old_resource or self.watched_resources.get(resource.uid)

        # A restarted watch reports known resources as ADDED again
        event_type = event.type
        if event_type == KubeEventType.ADDED and old_resource is not None:
            event_type = KubeEventType.MODIFIED

        if event_type == KubeEventType.DELETED:
            self.watched_resources.pop(resource.uid, None)
        else:
            self.watched_resources[resource.uid] = resource

        if not self.predicate.test(event_type, resource, old_resource):
            return None

        request = self.request_mapper(resource)
        if request is None:
            log.debug2("Skipping %s without an owning Application", resource)
            return None

        log.debug(
            "Requesting reconcile of %s for %s %s",
            request,
            event_type.value,
            resource,
            extra={"resource": resource},
        )
        self.work_queue.add(request)
        return request

    ## Implementation Details #############################################

    def _follow_watch(self):
        events = self.store.watch(
            self.kind,
            api_version=self.api_version,
            namespace=self.namespace,
            timeout=config.watch.timeout_seconds,
        )
        for event in events:
            if self.should_stop():
                log.debug("Stopping watch of %s", self.kind)
                return
            self.handle_event(event)

    def _wait_for_retry(self) -> bool:
        """Use up one attempt and sleep the retry delay. False means the
        thread should exit.
        """
        if self.attempts_left <= 0:
            log.error(
                "Giving up on the %s watch after %d retries",
                self.kind,
                config.watch.retry_count,
            )
            self.failed = True
            return False

        delay = self.retry_delay.total_seconds() if self.retry_delay else 0
        if not self.wait_on_precondition(delay):
            log.debug("Stopped while waiting to retry the %s watch", self.kind)
            return False
        self.attempts_left -= 1
        log.info("Retrying %s watch, %d attempts left", self.kind, self.attempts_left)
        return True
