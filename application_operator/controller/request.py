"""
The unit of work handed from the watches to the reconcile workers
"""

# Standard
from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class ReconcileRequest:
    """A request to reconcile the Application with the given namespace and
    name. Requests are compared and hashed by value so that duplicates
    collapse in the work queue.
    """

    namespace: str
    name: str

    def __str__(self):
        return f"{self.namespace}/{self.name}"
