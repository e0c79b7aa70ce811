"""
Admission handling for Applications: the synchronous hook used by the
in-memory store and the AdmissionReview request/response handling used by the
HTTP server
"""

# Standard
from typing import Collection, List, Optional
import base64
import copy
import json

# Third Party
import jsonpatch

# First Party
import alog

# Local
from .. import constants
from ..exceptions import AdmissionError
from .defaulter import ApplicationDefaulter
from .validator import ApplicationValidator

log = alog.use_channel("ADMSN")

CREATE = "CREATE"
UPDATE = "UPDATE"
DELETE = "DELETE"


class WebhookError(Exception):
    """
    Raised when a webhook request is bad, not an admitted resource.
    """


class MissingDataError(WebhookError):
    """The review is missing a section required to process it"""


class UnsupportedOperationError(WebhookError):
    """The review asks for an operation the hooks do not handle"""


class ApplicationAdmission:
    """Runs the defaulter and the validator for Application writes"""

    def __init__(
        self,
        defaulter: Optional[ApplicationDefaulter] = None,
        validator: Optional[ApplicationValidator] = None,
    ):
        self.defaulter = defaulter or ApplicationDefaulter()
        self.validator = validator or ApplicationValidator()

    ## Store hook ##############################################################

    def admit(
        self, operation: str, new: Optional[dict], old: Optional[dict]
    ) -> Optional[dict]:
        """Admit a write in the store. The new object is defaulted then
        validated. Rejections are raised as AdmissionError.

        Args:
            operation:  str
                CREATE, UPDATE or DELETE
            new:  Optional[dict]
                The object being written, None for deletes
            old:  Optional[dict]
                The stored object, None for creates

        Returns:
            new:  Optional[dict]
                The defaulted object
        """
        if operation in (CREATE, UPDATE):
            new = self.defaulter.default(new)
        warnings = self.validate(operation, new, old)
        for warning in warnings:
            log.warning("Admission warning for %s: %s", operation, warning)
        return new

    def validate(
        self, operation: str, new: Optional[dict], old: Optional[dict]
    ) -> List[str]:
        """Dispatch to the validator entry point for the operation"""
        if operation == CREATE:
            return self.validator.validate_create(new)
        if operation == UPDATE:
            return self.validator.validate_update(old, new)
        if operation == DELETE:
            return self.validator.validate_delete(old)
        raise UnsupportedOperationError(f"Unsupported operation: {operation}")

    ## AdmissionReview #########################################################

    def review_mutating(self, review: dict) -> dict:
        """Run the defaulter on the reviewed object and answer with a
        JSONPatch of the changes
        """
        request = _get_request(review)
        if request.get("operation") == DELETE:
            return build_response(review)
        obj = request.get("object")
        if obj is None:
            raise MissingDataError("Admission request has no object")

        defaulted = copy.deepcopy(obj)
        try:
            self.defaulter.default(defaulted)
        except AdmissionError as err:
            log.info("Rejecting defaulting of %s: %s", _describe(request), err)
            return build_response(review, error=err)

        patch = jsonpatch.make_patch(obj, defaulted).patch
        log.debug2("Mutating patch for %s: %s", _describe(request), patch)
        return build_response(review, patch=patch)

    def review_validating(self, review: dict) -> dict:
        """Run the validator entry point for the reviewed operation"""
        request = _get_request(review)
        operation = request.get("operation")
        new = request.get("object")
        old = request.get("oldObject")
        if operation in (CREATE, UPDATE) and new is None:
            raise MissingDataError("Admission request has no object")
        if operation in (UPDATE, DELETE) and old is None:
            raise MissingDataError("Admission request has no oldObject")

        try:
            warnings = self.validate(operation, new, old)
        except AdmissionError as err:
            log.info("Rejecting %s of %s: %s", operation, _describe(request), err)
            return build_response(review, error=err)
        return build_response(review, warnings=warnings)


def build_response(
    review: dict,
    *,
    warnings: Collection[str] = (),
    patch: Optional[list] = None,
    error: Optional[AdmissionError] = None,
) -> dict:
    """
    Construct the admission review response to a review request.
    """
    request = review.get("request") or {}
    response = {
        "apiVersion": review.get("apiVersion", constants.ADMISSION_REVIEW_API_VERSION),
        "kind": review.get("kind", "AdmissionReview"),
        "response": {
            "uid": request.get("uid", ""),
            "allowed": error is None,
        },
    }
    if warnings:
        response["response"]["warnings"] = [str(warning) for warning in warnings]
    if patch:
        encoded_patch = base64.b64encode(json.dumps(patch).encode("utf-8")).decode(
            "ascii"
        )
        response["response"]["patch"] = encoded_patch
        response["response"]["patchType"] = "JSONPatch"
    if error is not None:
        response["response"]["status"] = {
            "message": str(error) or repr(error),
            "code": error.code or 500,
        }
    return response


def _get_request(review) -> dict:
    if not isinstance(review, dict):
        raise MissingDataError("Admission review must be an object")
    request = review.get("request")
    if not isinstance(request, dict):
        raise MissingDataError("Admission review has no request")
    return request


def _describe(request: dict) -> str:
    return f"{request.get('namespace')}/{request.get('name')}"
