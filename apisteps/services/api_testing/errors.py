"""Exception types raised by the API test-step engine."""

from typing import Any


class ApiStepError(Exception):
    """Base class for every error raised by a test step."""


class UsageError(ApiStepError):
    """A step was invoked before its precondition holds."""


class BodyModeConflictError(UsageError):
    """A raw body and multipart parts or form parameters were mixed on one request."""

    def __init__(self, message: str, mode: str | None = None):
        super().__init__(message)
        self.mode = mode


class ValidationError(ApiStepError):
    """Malformed input to a step. Carries the offending value."""

    def __init__(self, message: str, value: Any = None):
        super().__init__(message)
        self.value = value


class FileNotFoundValidationError(ValidationError):
    def __init__(self, path: str):
        super().__init__(f'File does not exist: "{path}"', value=path)
        self.path = path


class FileNotReadableValidationError(ValidationError):
    def __init__(self, path: str):
        super().__init__(f'File is not readable: "{path}"', value=path)
        self.path = path


class AssertionFailure(ApiStepError):
    """
    An expectation did not hold.

    This is the only error type a negated check treats as
    "the positive check failed as expected".
    """

    def __init__(self, message: str, expected: Any = None, actual: Any = None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class MissingKeyError(AssertionFailure):
    """A key required by the needle is absent from the haystack."""

    def __init__(self, path: str):
        super().__init__(f"missing key: {path}", expected=path)
        self.path = path


class ValueMismatchError(AssertionFailure):
    """A key exists in the haystack but its value differs."""

    def __init__(self, path: str, expected: Any, actual: Any):
        super().__init__(
            f"value mismatch for key {path}: expected {expected!r}, got {actual!r}",
            expected=expected,
            actual=actual,
        )
        self.path = path


class TransportError(ApiStepError):
    """
    The transport failed to complete the exchange.

    When the failure still produced an HTTP response (for instance an error
    status raised by the client) it is carried in ``response``.
    """

    def __init__(self, message: str, response: Any = None):
        super().__init__(message)
        self.message = message
        self.response = response
