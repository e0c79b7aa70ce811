"""
The apps.aloys.cn/v1 Application resource and the field comparators used to
decide whether two versions of a resource differ in a way that matters
"""

# Standard
from typing import Any, Iterable, Optional
import copy

# Third Party
from deepdiff import DeepDiff

# First Party
import alog

# Local
from .. import constants
from ..managed_object import ManagedObject
from ..utils import nested_get, prune_empty

log = alog.use_channel("APIV1")


## Application #################################################################


def is_application(obj: Any) -> bool:
    """Check whether the given object (raw dict or ManagedObject) is an
    apps.aloys.cn/v1 Application
    """
    definition = getattr(obj, "definition", obj)
    if not isinstance(definition, dict):
        return False
    return (
        definition.get("apiVersion") == constants.APPLICATION_API_VERSION
        and definition.get("kind") == constants.APPLICATION_KIND
    )


class Application(ManagedObject):
    """Typed view of an Application resource. All accessors read and write
    through to the wrapped definition so that the raw dict can be handed back
    to the store unchanged.
    """

    def __init__(self, definition: dict):
        super().__init__(definition)
        assert is_application(definition), f"Not an Application: {self}"

    ## Spec ####################################################################

    @property
    def spec(self) -> dict:
        return self.definition.setdefault("spec", {})

    @property
    def deployment_template(self) -> dict:
        """The DeploymentSpec declared under spec.deployment"""
        return self.spec.get(constants.SPEC_DEPLOYMENT_KEY) or {}

    @property
    def service_template(self) -> dict:
        """The ServiceSpec declared under spec.service"""
        return self.spec.get(constants.SPEC_SERVICE_KEY) or {}

    @property
    def selector_labels(self) -> dict:
        """The matchLabels of the declared deployment selector"""
        return nested_get(self.deployment_template, "selector.matchLabels") or {}

    @property
    def replicas(self) -> Optional[int]:
        return self.deployment_template.get("replicas")

    @replicas.setter
    def replicas(self, value: int):
        self.spec.setdefault(constants.SPEC_DEPLOYMENT_KEY, {})["replicas"] = value

    ## Status ##################################################################

    @property
    def status(self) -> dict:
        return self.definition.setdefault("status", {})

    @property
    def workflow_status(self) -> dict:
        """The recorded DeploymentStatus of the Deployment child"""
        return self.status.get(constants.STATUS_WORKFLOW_KEY) or {}

    @workflow_status.setter
    def workflow_status(self, value: dict):
        self.status[constants.STATUS_WORKFLOW_KEY] = copy.deepcopy(value)

    @property
    def network_status(self) -> dict:
        """The recorded ServiceStatus of the Service child"""
        return self.status.get(constants.STATUS_NETWORK_KEY) or {}

    @network_status.setter
    def network_status(self, value: dict):
        self.status[constants.STATUS_NETWORK_KEY] = copy.deepcopy(value)

    ## Versioning ##############################################################

    def refresh_version(self, written: dict):
        """Pick up the resourceVersion assigned by a write so that later
        writes in the same pass are not made against a stale version
        """
        version = nested_get(written, "metadata.resourceVersion")
        if version is not None:
            self.metadata["resourceVersion"] = version

    ## Child names #############################################################

    @property
    def deployment_name(self) -> str:
        return f"{self.name}{constants.DEPLOYMENT_NAME_SUFFIX}"

    @property
    def service_name(self) -> str:
        return f"{self.name}{constants.SERVICE_NAME_SUFFIX}"


## Comparators #################################################################


class FieldComparator:
    """Compare two objects over an explicit list of (possibly nested) fields.
    Empty values are pruned before the deep diff so that None, empty dicts
    and empty lists all count as unset.
    """

    def __init__(self, name: str, fields: Iterable[str]):
        self.name = name
        self.fields = tuple(fields)

    def project(self, obj: Optional[dict]) -> dict:
        """Reduce the object to the compared fields"""
        obj = obj or {}
        return {field: nested_get(obj, field) for field in self.fields}

    def equal(self, first: Optional[dict], second: Optional[dict]) -> bool:
        """Determine whether the two objects agree on every compared field"""
        diff = DeepDiff(
            prune_empty(self.project(first)), prune_empty(self.project(second))
        )
        if diff:
            log.debug4("%s differs: %s", self.name, diff)
        return not diff

    def __repr__(self):
        return f"FieldComparator({self.name})"


DEPLOYMENT_SPEC = FieldComparator(
    "DeploymentSpec",
    [
        "replicas",
        "selector",
        "template",
        "strategy",
        "minReadySeconds",
        "revisionHistoryLimit",
        "paused",
        "progressDeadlineSeconds",
    ],
)

DEPLOYMENT_STATUS = FieldComparator(
    "DeploymentStatus",
    [
        "observedGeneration",
        "replicas",
        "updatedReplicas",
        "readyReplicas",
        "availableReplicas",
        "unavailableReplicas",
        "terminatingReplicas",
        "conditions",
        "collisionCount",
    ],
)

SERVICE_SPEC = FieldComparator(
    "ServiceSpec",
    [
        "ports",
        "selector",
        "clusterIP",
        "clusterIPs",
        "type",
        "externalIPs",
        "sessionAffinity",
        "loadBalancerIP",
        "loadBalancerSourceRanges",
        "externalName",
        "externalTrafficPolicy",
        "healthCheckNodePort",
        "publishNotReadyAddresses",
        "sessionAffinityConfig",
        "ipFamilies",
        "ipFamilyPolicy",
        "allocateLoadBalancerNodePorts",
        "loadBalancerClass",
        "internalTrafficPolicy",
        "trafficDistribution",
    ],
)

SERVICE_STATUS = FieldComparator("ServiceStatus", ["loadBalancer", "conditions"])

APPLICATION_SPEC = FieldComparator(
    "ApplicationSpec",
    [constants.SPEC_DEPLOYMENT_KEY, constants.SPEC_SERVICE_KEY],
)
