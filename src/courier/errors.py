"""Exception hierarchy for courier operations."""

from typing import Optional

from courier.models.error import ErrorInfo


class PubSubError(Exception):
    """Base class for every error raised by courier."""


class ValidationError(PubSubError):
    """Caller-supplied data violates a contract. Raised before any I/O."""


class LabelTypeError(ValidationError):
    """A label value is neither a signed 64-bit integer nor a string."""


class AckScopeError(ValidationError):
    """An ack id was presented to a subscription that did not issue it."""


class ListenerBusyError(ValidationError):
    """The subscription already has an open listener."""


class UnsupportedOperationError(ValidationError):
    """The service adapter cannot honour the request."""


class TransportError(PubSubError):
    """Network or transport failure underneath an RPC."""


class ServiceError(TransportError):
    """The service answered with an error status."""

    def __init__(self, message: str, status_code: int, info: Optional[ErrorInfo] = None):
        super().__init__(message)
        self.status_code = status_code
        self.info = info


class NotFoundError(ServiceError):
    """The named topic or subscription does not exist."""


class DecodeError(PubSubError):
    """A message envelope or response body could not be decoded."""
