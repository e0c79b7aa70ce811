"""
JSON log output carrying the identity of the reconciled resource and the
reconcile pass, plus the helper that applies the logging config
"""

# Standard
from typing import Any, Optional

# First Party
from alog import AlogJsonFormatter
import alog

log = alog.use_channel("LOGFT")

# Record attribute -> path of the value in the resource manifest
_RESOURCE_FIELDS = {
    "kind": ("kind",),
    "apiVersion": ("apiVersion",),
    "namespace": ("metadata", "namespace"),
    "resourceName": ("metadata", "name"),
    "resourceVersion": ("metadata", "resourceVersion"),
}


class OperatorJsonFormatter(AlogJsonFormatter):
    """AlogJsonFormatter with thread information and, for records logged
    with a "resource" extra, the resource identity. A formatter may be bound
    to a manifest and a reconciliation id used for records that carry none.
    """

    _FIELDS_TO_PRINT = (
        AlogJsonFormatter._FIELDS_TO_PRINT
        + ["process", "thread", "threadName"]
        + list(_RESOURCE_FIELDS)
        + ["reconciliationId", "reconcileNumber"]
    )

    def __init__(
        self, manifest: Optional[Any] = None, reconciliation_id: Optional[str] = None
    ):
        super().__init__()
        self.manifest = manifest
        self.reconciliation_id = reconciliation_id

    def format(self, record):
        if self.reconciliation_id and not hasattr(record, "reconciliationId"):
            record.reconciliationId = self.reconciliation_id

        resource = getattr(record, "resource", self.manifest)
        # ManagedObject and Application wrap the raw manifest
        resource = getattr(resource, "definition", resource)
        if isinstance(resource, dict):
            for attr, path in _RESOURCE_FIELDS.items():
                value = resource
                for key in path:
                    value = (value or {}).get(key)
                setattr(record, attr, value)

        return super().format(record)


def configure_logging(config):
    """Apply the log settings of a library config to alog"""
    alog.configure(
        default_level=config.log_level,
        filters=config.log_filters,
        formatter=OperatorJsonFormatter() if config.log_json else "pretty",
        thread_id=config.log_thread_id,
    )
