"""
This module implements custom exceptions
"""

## Base Error ##################################################################


class OperatorError(Exception):
    """Base class for all application operator exceptions"""

    def __init__(self, message: str, is_fatal_error: bool):
        """Construct with a flag indicating whether this is a fatal error. This
        will be a static property of all children.
        """
        super().__init__(message)
        self._is_fatal_error = is_fatal_error

    @property
    def is_fatal_error(self):
        """Property indicating whether or not this error should signal a fatal
        state rather than a retry
        """
        return self._is_fatal_error


## Fatal Errors ################################################################


class OperatorFatalError(OperatorError):
    """An OperatorFatalError is one that indicates an unexpected, and likely
    unrecoverable, failure of a single call
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=True)


class ConfigError(OperatorFatalError):
    """Exception caused during usage of user-provided configuration"""


class AdmissionError(OperatorFatalError):
    """Exception raised by an admission hook to reject a write. The code is
    reported back to the writer in the admission response
    """

    def __init__(self, message: str = "", code: int = 403):
        super().__init__(message)
        self.code = code


class AdmissionRejectedError(AdmissionError):
    """The admission hook refused the write"""


class AdmissionTypeError(AdmissionError):
    """The object handed to an admission hook is not of the expected type"""

    def __init__(self, message: str = ""):
        super().__init__(message, code=400)


## Expected Errors #############################################################


class OperatorExpectedError(OperatorError):
    """An OperatorExpectedError is one that indicates an expected failure
    condition that should cause a reconciliation to terminate, but is expected
    to resolve in a subsequent reconciliation.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=False)


class StoreError(OperatorExpectedError):
    """Exception caused when an operation against the object store fails. These
    are always retried after the configured backoff
    """


class NotFoundError(StoreError):
    """The requested object does not exist in the store"""


class AlreadyExistsError(StoreError):
    """An object with the same identity already exists in the store"""


class ConflictError(StoreError):
    """The write was made against a stale resourceVersion"""


class OwnerLinkError(StoreError):
    """The owner reference could not be established on a child object"""


## Assertions ##################################################################


def assert_config(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a ConfigError. This should be
    used when validating user-provided configuration
    """
    if not condition:
        raise ConfigError(message)


def assert_store(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a StoreError. This should be
    used when an operation in the store (such as fetching a resource handle)
    must succeed before continuing.
    """
    if not condition:
        raise StoreError(message)
