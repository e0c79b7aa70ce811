"""
Synchronizer for the Service child of an Application
"""

# Standard
import copy

# Local
from .. import constants
from ..api import SERVICE_STATUS, Application
from .synchronizer import ChildSynchronizer


class ServiceSynchronizer(ChildSynchronizer):
    """Keeps <name>-service in place and mirrors its status into
    status.network
    """

    api_version = constants.SERVICE_API_VERSION
    kind = constants.SERVICE_KIND
    status_comparator = SERVICE_STATUS

    def child_name(self, application: Application) -> str:
        return application.service_name

    def build_child(self, application: Application) -> dict:
        """The child spec is a copy of spec.service whose selector is replaced
        by the parent's own labels
        """
        spec = copy.deepcopy(application.service_template)
        spec["selector"] = dict(application.labels)
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": self._child_metadata(application),
            "spec": spec,
        }

    def recorded_status(self, application: Application) -> dict:
        return application.network_status

    def record_status(self, application: Application, status: dict):
        application.network_status = status
