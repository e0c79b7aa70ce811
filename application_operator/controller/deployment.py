"""
Synchronizer for the Deployment child of an Application
"""

# Standard
import copy

# Local
from .. import constants
from ..api import DEPLOYMENT_STATUS, Application
from .synchronizer import ChildSynchronizer


class DeploymentSynchronizer(ChildSynchronizer):
    """Keeps <name>-deployment in place and mirrors its status into
    status.workflow
    """

    api_version = constants.DEPLOYMENT_API_VERSION
    kind = constants.DEPLOYMENT_KIND
    status_comparator = DEPLOYMENT_STATUS

    def child_name(self, application: Application) -> str:
        return application.deployment_name

    def build_child(self, application: Application) -> dict:
        """The child spec is a copy of spec.deployment with the selector and
        pod template labels both forced to the declared selector matchLabels
        so that the Deployment always selects its own pods
        """
        spec = copy.deepcopy(application.deployment_template)
        match_labels = dict(application.selector_labels)

        selector = spec.get("selector") or {}
        selector["matchLabels"] = match_labels
        spec["selector"] = selector

        template = spec.get("template") or {}
        template_metadata = template.get("metadata") or {}
        template_metadata["labels"] = dict(match_labels)
        template["metadata"] = template_metadata
        spec["template"] = template

        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": self._child_metadata(application),
            "spec": spec,
        }

    def recorded_status(self, application: Application) -> dict:
        return application.workflow_status

    def record_status(self, application: Application, status: dict):
        application.workflow_status = status
