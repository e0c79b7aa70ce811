"""
The ApplicationReconciler runs a single reconcile pass for an Application:
fetch the parent, then sync the Deployment and the Service children
"""

# Standard
from typing import List, Optional
import base64
import threading
import uuid

# First Party
import alog

# Local
from .. import constants
from ..api import Application
from ..exceptions import NotFoundError, StoreError
from ..store import ObjectStoreBase
from .deployment import DeploymentSynchronizer
from .request import ReconcileRequest
from .result import ReconciliationResult
from .service import ServiceSynchronizer
from .synchronizer import ChildSynchronizer

log = alog.use_channel("RCNCL")


class ReconcileCounter:
    """Thread safe count of the reconcile passes run by one manager"""

    def __init__(self):
        self._count = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        """Count a new pass and return its number"""
        with self._lock:
            self._count += 1
            return self._count

    @property
    def value(self) -> int:
        with self._lock:
            return self._count


class ApplicationReconciler:
    """This class runs reconcile passes for Applications against an object
    store. It holds no per-request state so a single instance is shared by
    all reconcile workers.
    """

    def __init__(
        self,
        store: ObjectStoreBase,
        counter: Optional[ReconcileCounter] = None,
        synchronizers: Optional[List[ChildSynchronizer]] = None,
    ):
        """
        Args:
            store:  ObjectStoreBase
                The store holding the parents and children
            counter:  Optional[ReconcileCounter]
                The counter incremented on every pass. A new one is made when
                not given.
            synchronizers:  Optional[List[ChildSynchronizer]]
                The child synchronizers run in order on every pass. Defaults
                to the Deployment then the Service synchronizer.
        """
        self.store = store
        self.counter = counter or ReconcileCounter()
        self.synchronizers = synchronizers or [
            DeploymentSynchronizer(store),
            ServiceSynchronizer(store),
        ]

    def reconcile(self, request: ReconcileRequest) -> ReconciliationResult:
        """Run one reconcile pass

        Args:
            request:  ReconcileRequest
                The namespace and name of the Application to reconcile

        Returns:
            result:  ReconciliationResult
                Done when the parent is gone or both children are in sync,
                otherwise a retry after the configured backoff
        """
        log_extra = {
            "reconciliationId": self.generate_id(),
            "reconcileNumber": self.counter.increment(),
        }
        log.info(
            "Reconcile #%d of %s",
            log_extra["reconcileNumber"],
            request,
            extra=log_extra,
        )

        try:
            definition = self.store.get(
                kind=constants.APPLICATION_KIND,
                name=request.name,
                namespace=request.namespace,
                api_version=constants.APPLICATION_API_VERSION,
            )
        except NotFoundError:
            log.debug(
                "Application %s not found. Nothing to do", request, extra=log_extra
            )
            return ReconciliationResult.done()
        except StoreError as err:
            log.warning("Failed to fetch %s: %s", request, err, extra=log_extra)
            return ReconciliationResult.retry_after_error(err)

        application = Application(definition)
        log_extra["resource"] = definition
        for synchronizer in self.synchronizers:
            try:
                synchronizer.sync(application)
            except StoreError as err:
                log.warning(
                    "Failed to sync %s of %s: %s",
                    synchronizer.kind,
                    request,
                    err,
                    extra=log_extra,
                )
                return ReconciliationResult.retry_after_error(err)

        log.debug("Reconcile of %s completed", request, extra=log_extra)
        return ReconciliationResult.done()

    @classmethod
    def generate_id(cls) -> str:
        """Generates a unique human readable id for a reconcile pass

        Returns:
            id: str
                A unique base32 encoded id
        """
        uuid4 = uuid.uuid4()
        base32_str = base64.b32encode(uuid4.bytes).decode("utf-8")
        reconcile_id = base32_str[:22]
        log.debug3("Generated reconcile id: %s", reconcile_id)
        return reconcile_id
