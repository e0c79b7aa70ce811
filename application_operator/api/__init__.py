"""
Typed views and comparators for the resources handled by the operator
"""

# Local
from .v1 import (
    APPLICATION_SPEC,
    DEPLOYMENT_SPEC,
    DEPLOYMENT_STATUS,
    SERVICE_SPEC,
    SERVICE_STATUS,
    Application,
    FieldComparator,
    is_application,
)
