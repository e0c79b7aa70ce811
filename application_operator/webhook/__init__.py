"""
Admission hooks for Applications and the server exposing them
"""

# Local
from .admission import (
    ApplicationAdmission,
    MissingDataError,
    WebhookError,
    build_response,
)
from .defaulter import ApplicationDefaulter
from .server import AdmissionServer
from .validator import ApplicationValidator
