"""
Error taxonomy shared by services, the route guard and the API layer.

Each error carries a stable machine-readable code and the HTTP status the API
renders it with, so a caller can tell "not allowed" apart from "server error".
"""

from typing import Optional


class PortalError(Exception):
    """Base class for all expected portal failures."""

    code = "error"
    status_code = 400

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class AuthenticationError(PortalError):
    """No session, an expired session, or a deactivated account."""

    code = "not_authenticated"
    status_code = 401


class AuthorizationError(PortalError):
    """Valid session, but the access evaluator denied the operation."""

    code = "forbidden"
    status_code = 403


class NotFoundError(PortalError):
    """Record does not exist or is not visible to the caller."""

    code = "not_found"
    status_code = 404


class InvalidTransitionError(PortalError):
    """The publication state machine has no such transition from the current status."""

    code = "invalid_transition"
    status_code = 409

    def __init__(self, from_status: str, to_status: str, message: Optional[str] = None):
        super().__init__(message or f"Invalid transition: {from_status} -> {to_status}")
        self.from_status = from_status
        self.to_status = to_status


class ConflictError(PortalError):
    """Uniqueness violation (duplicate email, second role assignment, ...)."""

    code = "conflict"
    status_code = 409


class ValidationError(PortalError):
    """Input rejected by a domain rule, e.g. rejection without review notes."""

    code = "validation_error"
    status_code = 422


class UpstreamUnavailable(PortalError):
    """Data, identity or storage collaborator failed. Transient; safe to retry."""

    code = "upstream_unavailable"
    status_code = 503
    retry_after_seconds = 5
