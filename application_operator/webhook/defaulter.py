"""
The defaulting admission hook for Applications
"""

# Standard
from typing import Optional

# First Party
import alog

# Local
from .. import config, constants
from ..api import is_application
from ..exceptions import AdmissionTypeError
from ..utils import nested_set

log = alog.use_channel("DFLTR")

REPLICAS_PATH = f"spec.{constants.SPEC_DEPLOYMENT_KEY}.replicas"


def _describe_type(obj) -> str:
    if isinstance(obj, dict):
        return f"{obj.get('apiVersion')}/{obj.get('kind')}"
    return type(obj).__name__


class ApplicationDefaulter:
    """Normalizes the replica count of an Application before it is persisted.
    An unset count gets the default and any count above the clamp threshold
    is lowered to the maximum.
    """

    def __init__(self, default_replicas: Optional[int] = None):
        self.default_replicas = (
            default_replicas
            if default_replicas is not None
            else config.admission.default_replicas
        )

    def default(self, obj: dict) -> dict:
        """Apply the defaults to the object in place

        Args:
            obj:  dict
                The Application manifest

        Returns:
            obj:  dict
                The same manifest, for convenience

        Raises:
            AdmissionTypeError:  If the object is not an Application or its
                replica path holds a value of the wrong type
        """
        if not is_application(obj):
            raise AdmissionTypeError(
                f"expected an Application object but got {_describe_type(obj)}"
            )

        metadata = obj.get("metadata")
        name = metadata.get("name") if isinstance(metadata, dict) else None
        replicas = self._get_replicas(obj)
        if replicas is None:
            log.debug("Defaulting replicas of %s to %d", name, self.default_replicas)
            nested_set(obj, REPLICAS_PATH, self.default_replicas)
        elif replicas > constants.REPLICAS_CLAMP_THRESHOLD:
            log.debug(
                "Clamping replicas of %s from %d to %d",
                name,
                replicas,
                constants.MAX_REPLICAS,
            )
            nested_set(obj, REPLICAS_PATH, constants.MAX_REPLICAS)
        return obj

    @staticmethod
    def _get_replicas(obj: dict) -> Optional[int]:
        """Read the replica count, refusing mistyped values on its path"""
        section = obj
        path = REPLICAS_PATH.split(constants.NESTED_DICT_DELIM)
        for depth, key in enumerate(path[:-1]):
            section = section.get(key)
            if section is None:
                return None
            if not isinstance(section, dict):
                raise AdmissionTypeError(
                    f"expected {'.'.join(path[:depth + 1])} to be an object but "
                    f"got {type(section).__name__}"
                )
        replicas = section.get(path[-1])
        if replicas is not None and (
            isinstance(replicas, bool) or not isinstance(replicas, int)
        ):
            raise AdmissionTypeError(
                f"expected {REPLICAS_PATH} to be an integer but got "
                f"{type(replicas).__name__}"
            )
        return replicas
