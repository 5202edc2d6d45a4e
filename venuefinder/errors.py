"""
Exception hierarchy for the venuefinder service.

Every anticipated failure is a VenueFinderError carrying its HTTP status
and a short machine-readable code. The API layer turns these into the one
error envelope clients see:

    {"success": false, "message": "...", "error": "<code>"}

Hierarchy:
    VenueFinderError (500)
    ├── AuthenticationError (401)
    │   ├── InvalidTokenError
    │   ├── TokenExpiredError
    │   ├── UserNotFoundError
    │   └── InvalidCredentialsError
    ├── ForbiddenError (403)
    │   ├── NotOwnerError
    │   ├── PermissionDeniedError
    │   ├── VenueAccessDeniedError
    │   └── StaffInactiveError
    ├── InvalidIdError (400)
    ├── ValidationError (400)
    ├── ResourceNotFoundError (404)
    └── ConflictError (409)

ConfigurationError is raised at startup only and never reaches a client.
"""

from __future__ import annotations

from typing import Any, Iterable


class VenueFinderError(Exception):
    """Base exception for all application errors."""
    
    status_code: int = 500
    code: str = "server_error"
    default_message: str = "Internal server error"
    
    def __init__(self, message: str | None = None, context: dict[str, Any] | None = None):
        self.message = message or self.default_message
        self.context = context or {}
        super().__init__(self.message)
    
    def to_envelope(self) -> dict[str, Any]:
        return {"success": False, "message": self.message, "error": self.code}


class ConfigurationError(Exception):
    """Required configuration is missing or invalid."""


# =============================================================================
# 401 - Authentication
# =============================================================================


class AuthenticationError(VenueFinderError):
    status_code = 401
    code = "not_authorized"
    default_message = "Not authorized to access this route"


class InvalidTokenError(AuthenticationError):
    """Token is malformed or its signature does not verify."""
    code = "invalid_token"


class TokenExpiredError(AuthenticationError):
    """Token signature is fine but it has expired."""
    code = "token_expired"


class UserNotFoundError(AuthenticationError):
    """Token verified but its subject no longer exists."""
    code = "user_not_found"
    default_message = "User not found"


class InvalidCredentialsError(AuthenticationError):
    code = "invalid_credentials"
    default_message = "Invalid credentials"


# =============================================================================
# 403 - Authorization
# =============================================================================


class ForbiddenError(VenueFinderError):
    status_code = 403
    code = "forbidden"
    default_message = "Forbidden access"


class NotOwnerError(ForbiddenError):
    """Resource exists but belongs to someone else."""
    code = "not_owner"
    
    def __init__(self, resource: str = "resource", context: dict[str, Any] | None = None):
        super().__init__(f"Not authorized to access this {resource.lower()}", context)


class PermissionDeniedError(ForbiddenError):
    """Staff role lacks the capability the route needs."""
    code = "permission_denied"
    default_message = "You do not have permission to perform this action"


class VenueAccessDeniedError(ForbiddenError):
    code = "venue_access_denied"
    default_message = "You do not have access to this venue"


class StaffInactiveError(ForbiddenError):
    code = "staff_inactive"
    default_message = "Staff account is inactive"


# =============================================================================
# 400 / 404 / 409
# =============================================================================


class InvalidIdError(VenueFinderError):
    status_code = 400
    code = "invalid_id"
    
    def __init__(self, resource: str = "resource", resource_id: str | None = None):
        super().__init__(f"Invalid {resource} ID", {"resource_id": resource_id})


class ValidationError(VenueFinderError):
    """Client input failed validation; field errors are joined into one message."""
    status_code = 400
    code = "validation_error"
    default_message = "Validation error"
    
    @classmethod
    def from_field_errors(cls, errors: Iterable[dict[str, Any]]) -> ValidationError:
        """
        Flatten pydantic/FastAPI error dicts into a single message.
        
        Each entry contributes "<field>: <msg>" (request-location prefixes
        such as "body" are dropped).
        """
        parts = []
        for err in errors:
            loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
            msg = err.get("msg", "invalid value")
            parts.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
        return cls(", ".join(parts) or cls.default_message)


class ResourceNotFoundError(VenueFinderError):
    status_code = 404
    code = "not_found"
    
    def __init__(self, resource: str = "Resource", resource_id: str | None = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} not found with id of {resource_id}"
        super().__init__(message, {"resource_id": resource_id})


class ConflictError(VenueFinderError):
    """Document changed between being read and being written back."""
    status_code = 409
    code = "conflict"
    default_message = "Resource was modified by another request, please retry"
