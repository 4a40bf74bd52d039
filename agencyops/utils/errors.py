"""Error handling utilities."""

from typing import Optional


class AgencyOpsError(Exception):
    """Base exception for the agency ops backend."""
    status_code: int = 500

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class RequestValidationError(AgencyOpsError):
    """Request body or query is malformed."""
    status_code = 400


class AuthenticationError(AgencyOpsError):
    """No valid session."""
    status_code = 401


class PermissionDeniedError(AgencyOpsError):
    """Session is valid but lacks the required role or permission."""
    status_code = 403


class NotFoundError(AgencyOpsError):
    """Task, agent, user or session missing."""
    status_code = 404


class DatabaseError(AgencyOpsError):
    """Supabase operation error."""
    pass
