"""Error models for service error responses."""

from typing import Optional

from courier.models.base import CamelCaseModel


class ErrorDetails(CamelCaseModel):
    """One entry of the service's per-error detail list."""

    domain: Optional[str] = None
    reason: Optional[str] = None
    message: Optional[str] = None


class ErrorInfo(CamelCaseModel):
    """Structured error information returned by the service."""

    code: int
    message: str
    status: Optional[str] = None
    errors: list[ErrorDetails] = []


class ErrorResponse(CamelCaseModel):
    """Envelope of an error response body: ``{"error": {...}}``."""

    error: ErrorInfo
