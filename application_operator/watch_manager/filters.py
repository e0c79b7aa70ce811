"""
Predicates decide whether a watch event on one of the watched types produces
a reconcile request. They follow the kubernetes controller runtime's
"predicates":
https://pkg.go.dev/sigs.k8s.io/controller-runtime/pkg/predicate#Funcs
"""

# Standard
from abc import ABC, abstractmethod
from typing import Optional

# First Party
import alog

# Local
from ..api import APPLICATION_SPEC, DEPLOYMENT_SPEC, SERVICE_SPEC, FieldComparator
from ..managed_object import ManagedObject
from ..store import KubeEventType

log = alog.use_channel("PRDCT")


class EventPredicate(ABC):
    """Generic predicate interface with one pure method per event kind.
    Every method returns True when the event should be reconciled.
    """

    # Comparator used by the spec_changed helper
    spec_comparator: FieldComparator = None

    ## Abstract Interface ######################################################

    @abstractmethod
    def create(self, resource: ManagedObject) -> bool:
        """Test a creation event"""

    @abstractmethod
    def update(
        self, old_resource: Optional[ManagedObject], resource: ManagedObject
    ) -> bool:
        """Test an update event. The old resource is None when the previous
        version is not known to the watcher.
        """

    @abstractmethod
    def delete(self, resource: ManagedObject) -> bool:
        """Test a deletion event"""

    ## Public ##################################################################

    def test(
        self,
        event_type: KubeEventType,
        resource: ManagedObject,
        old_resource: Optional[ManagedObject] = None,
    ) -> bool:
        """Dispatch a watch event to the method for its type

        Args:
            event_type: KubeEventType
                The type of the watch event
            resource: ManagedObject
                The resource carried by the event
            old_resource: Optional[ManagedObject]
                The previous version of the resource for MODIFIED events

        Returns:
            result: bool
                Whether the event should be reconciled
        """
        if event_type == KubeEventType.ADDED:
            result = self.create(resource)
        elif event_type == KubeEventType.MODIFIED:
            result = self.update(old_resource, resource)
        else:
            result = self.delete(resource)
        if not result:
            log.debug3(
                "Event %s filtered by %s",
                event_type.value,
                self,
                extra={"resource": resource},
            )
        return result

    ## Helpers #################################################################

    @staticmethod
    def version_changed(
        old_resource: Optional[ManagedObject], resource: ManagedObject
    ) -> bool:
        """Check whether the resourceVersion moved. An unknown old resource
        counts as a change.
        """
        if old_resource is None:
            return True
        return old_resource.resource_version != resource.resource_version

    def spec_changed(
        self, old_resource: Optional[ManagedObject], resource: ManagedObject
    ) -> bool:
        """Check whether the spec differs under the spec comparator. An
        unknown old resource counts as a change.
        """
        if old_resource is None:
            return True
        return not self.spec_comparator.equal(
            old_resource.get("spec"), resource.get("spec")
        )

    def __str__(self):
        return self.__class__.__name__


class ApplicationPredicate(EventPredicate):
    """Reconcile parents on creation and on spec changes. Deletion needs no
    work since the children are garbage collected with their owner.
    """

    spec_comparator = APPLICATION_SPEC

    def create(self, resource):
        return True

    def update(self, old_resource, resource):
        return self.version_changed(old_resource, resource) and self.spec_changed(
            old_resource, resource
        )

    def delete(self, resource):
        return False


class ChildPredicate(EventPredicate):
    """Children are reconciled through their parent when their spec changes
    or when they are deleted. Creations are caused by the reconciler itself
    and status-only updates are ignored.
    """

    def create(self, resource):
        return False

    def update(self, old_resource, resource):
        return self.version_changed(old_resource, resource) and self.spec_changed(
            old_resource, resource
        )

    def delete(self, resource):
        return True


class DeploymentPredicate(ChildPredicate):
    """Predicate for Deployment children"""

    spec_comparator = DEPLOYMENT_SPEC


class ServicePredicate(ChildPredicate):
    """Predicate for Service children"""

    spec_comparator = SERVICE_SPEC
