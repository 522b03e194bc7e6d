"""
Shared error handling for the Ceph RGW exporter.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class ExporterException(Exception):
    """Base exception for exporter components."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class ConfigurationError(ExporterException):
    """Unrecoverable startup fault (missing endpoint, credentials...)."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class UpstreamError(ExporterException):
    """A call against the admin API failed.

    Raised as-is for non-success statuses that are not auth related; the
    subclasses narrow down transport, auth and payload failures.
    """

    def __init__(
        self,
        message: str = "Admin API error",
        details: Optional[Dict[str, Any]] = None,
        code: str = "UPSTREAM_ERROR"
    ):
        super().__init__(code, message, details)


class TransportError(UpstreamError):
    """Network, connection or timeout failure."""

    def __init__(self, message: str = "Admin API unreachable", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="TRANSPORT_ERROR")


class AuthError(UpstreamError):
    """Request signing or credentials rejected by the admin API."""

    def __init__(self, message: str = "Admin API rejected credentials", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="AUTH_ERROR")


class ParseError(UpstreamError):
    """Response body is not valid JSON or lacks a required field."""

    def __init__(self, message: str = "Malformed admin API response", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="PARSE_ERROR")


class EnumerationError(ExporterException):
    """Listing users or buckets failed; the refresh pass is aborted."""

    def __init__(self, resource: str, cause: UpstreamError):
        self.resource = resource
        self.cause = cause
        super().__init__(
            "ENUMERATION_ERROR",
            f"Failed to enumerate {resource}: {cause.message}",
            {**cause.details, "resource": resource, "cause": cause.code}
        )


class EntityFetchError(ExporterException):
    """Fetching one entity's stats or quota failed; the entity is skipped."""

    def __init__(self, kind: str, entity_id: str, cause: UpstreamError):
        self.kind = kind
        self.entity_id = entity_id
        self.cause = cause
        super().__init__(
            "ENTITY_FETCH_ERROR",
            f"Failed to fetch {kind} for {entity_id}: {cause.message}",
            {"kind": kind, "entity_id": entity_id, "cause": cause.code}
        )
