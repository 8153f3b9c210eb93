"""Exceptions raised along the generation and search paths."""

from enum import Enum


class ErrorKind(str, Enum):
    """Failure classification surfaced to the user interface."""

    MISSING_CREDENTIAL = "missing_credential"
    QUOTA_EXCEEDED = "quota_exceeded"
    INVALID_CREDENTIAL = "invalid_credential"
    MALFORMED_RESPONSE = "malformed_response"
    TRANSPORT_FAILURE = "transport_failure"
    REMOTE_ERROR = "remote_error"
    UNKNOWN = "unknown"


MISSING_CREDENTIAL_MESSAGE = "Please set your API key in Settings"
QUOTA_EXCEEDED_MESSAGE = "Quota exceeded. Get a key from aistudio.google.com"
INVALID_CREDENTIAL_MESSAGE = "Invalid API key"
GENERIC_FAILURE_MESSAGE = "Generation failed"


class GenerationError(Exception):
    """Base class for failures of a single generation request."""

    kind = ErrorKind.UNKNOWN

    def __init__(self, message: str = GENERIC_FAILURE_MESSAGE):
        super().__init__(message)
        self.message = message


class MissingCredentialError(GenerationError):
    kind = ErrorKind.MISSING_CREDENTIAL

    def __init__(self, message: str = MISSING_CREDENTIAL_MESSAGE):
        super().__init__(message)


class QuotaExceededError(GenerationError):
    kind = ErrorKind.QUOTA_EXCEEDED

    def __init__(self, message: str = QUOTA_EXCEEDED_MESSAGE):
        super().__init__(message)


class InvalidCredentialError(GenerationError):
    kind = ErrorKind.INVALID_CREDENTIAL

    def __init__(self, message: str = INVALID_CREDENTIAL_MESSAGE):
        super().__init__(message)


class MalformedResponseError(GenerationError):
    """The service answered 2xx but no image could be extracted."""

    kind = ErrorKind.MALFORMED_RESPONSE


class TransportFailureError(GenerationError):
    """Network, TLS or timeout failure before a response arrived."""

    kind = ErrorKind.TRANSPORT_FAILURE


class RemoteError(GenerationError):
    """Error envelope returned by the service, message passed through."""

    kind = ErrorKind.REMOTE_ERROR


class GenerationBusyError(RuntimeError):
    """A generation is already in flight."""

    def __init__(self, job_id: int):
        super().__init__(f"Generation {job_id} is already in progress")
        self.job_id = job_id


class GeocodingError(Exception):
    """Place search could not be completed."""
