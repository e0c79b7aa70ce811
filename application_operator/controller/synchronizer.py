"""
Base class for the synchronizers that drive one child resource of an
Application toward the parent's declared state
"""

# Standard
import abc

# First Party
import alog

# Local
from ..api import Application, FieldComparator
from ..exceptions import NotFoundError
from ..store import ObjectStoreBase, set_controller_reference

log = alog.use_channel("CHSYN")


class ChildSynchronizer(abc.ABC):
    """A ChildSynchronizer makes sure a single child of the parent exists and
    copies the child's live status into the parent status when it differs
    from the recorded one.

    Children are created once and never updated afterwards. A missing child
    is recreated from the parent template on the next pass.
    """

    # Identifiers of the child type. Set by every child class.
    api_version: str = None
    kind: str = None

    # Comparator deciding whether the recorded status is stale
    status_comparator: FieldComparator = None

    def __init__(self, store: ObjectStoreBase):
        self.store = store

    ## Abstract Interface ######################################################

    @abc.abstractmethod
    def child_name(self, application: Application) -> str:
        """Derive the child name from the parent"""

    @abc.abstractmethod
    def build_child(self, application: Application) -> dict:
        """Build the desired child manifest from the parent template"""

    @abc.abstractmethod
    def recorded_status(self, application: Application) -> dict:
        """Get the child status currently recorded on the parent"""

    @abc.abstractmethod
    def record_status(self, application: Application, status: dict):
        """Set the child status on the in-memory parent"""

    ## Public ##################################################################

    def sync(self, application: Application):
        """Run the get-or-create-or-update-status algorithm for this child

        Args:
            application:  Application
                The parent being reconciled. Its resourceVersion is refreshed
                when its status is written.

        Raises:
            StoreError:  If any read or write against the store fails
        """
        name = self.child_name(application)
        try:
            current = self.store.get(
                kind=self.kind,
                name=name,
                namespace=application.namespace,
                api_version=self.api_version,
            )
        except NotFoundError:
            log.debug("%s %s not found. Creating it", self.kind, name)
            self._create(application)
            return

        live_status = current.get("status") or {}
        if self.status_comparator.equal(live_status, self.recorded_status(application)):
            log.debug2("Recorded %s status is up to date for %s", self.kind, name)
            return

        log.debug(
            "Recording new %s status on %s/%s",
            self.kind,
            application.namespace,
            application.name,
        )
        self.record_status(application, live_status)
        written = self.store.update_status(application.definition)
        application.refresh_version(written)

    ## Implementation Details ##################################################

    def _create(self, application: Application):
        child = self.build_child(application)
        set_controller_reference(application.definition, child)
        log.debug3("Creating child: %s", child)
        self.store.create(child)
        log.info(
            "Created %s %s/%s",
            self.kind,
            child["metadata"]["namespace"],
            child["metadata"]["name"],
        )

    def _child_metadata(self, application: Application) -> dict:
        """Metadata shared by every child: derived name, parent namespace and
        a copy of the parent labels
        """
        metadata = {
            "name": self.child_name(application),
            "namespace": application.namespace,
        }
        if application.labels:
            metadata["labels"] = dict(application.labels)
        return metadata
