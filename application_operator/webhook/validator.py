"""
The validating admission hook for Applications
"""

# Standard
from typing import List

# First Party
import alog

# Local
from ..api import is_application
from ..exceptions import AdmissionTypeError
from .defaulter import _describe_type

log = alog.use_channel("VLDTR")


class ApplicationValidator:
    """Validation entry points for the three write operations. Each checks
    the type of the object and returns the warnings to report back to the
    writer. No field level rules are enforced.
    """

    def validate_create(self, obj: dict) -> List[str]:
        """Validate an Application about to be created"""
        self._check_type(obj)
        log.debug2("validate create of %s", obj.get("metadata", {}).get("name"))
        return []

    def validate_update(self, old_obj: dict, obj: dict) -> List[str]:
        """Validate an update of an Application"""
        self._check_type(old_obj)
        self._check_type(obj)
        log.debug2("validate update of %s", obj.get("metadata", {}).get("name"))
        return []

    def validate_delete(self, obj: dict) -> List[str]:
        """Validate the deletion of an Application"""
        self._check_type(obj)
        log.debug2("validate delete of %s", obj.get("metadata", {}).get("name"))
        return []

    @staticmethod
    def _check_type(obj):
        if not is_application(obj):
            raise AdmissionTypeError(
                f"expected an Application object but got {_describe_type(obj)}"
            )
