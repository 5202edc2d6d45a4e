"""
Policies - the interface routes use for authorization.

Every policy is a FastAPI dependency:

    principal: Principal = Depends(get_principal)                       # must be signed in
    principal: Principal = Depends(get_optional_principal)              # anonymous allowed
    principal: Principal = Depends(require_permission(Permission.MANAGE_MENU))
    principal: Principal = Depends(require_user_role("owner", "admin"))
    owned: OwnedResource = Depends(owned_resource(Collections.OFFERS, "Offer"))

Denials raise taxonomy errors (401/403) which the app turns into the
standard error envelope.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from venuefinder.auth.jwt import TokenClaims, decode_token
from venuefinder.auth.ownership import OwnedResource, load_owned
from venuefinder.auth.permissions import Permission, PrincipalKind
from venuefinder.auth.principal import Principal
from venuefinder.core.utils import utc_now
from venuefinder.errors import (
    AuthenticationError,
    ForbiddenError,
    InvalidTokenError,
    PermissionDeniedError,
    StaffInactiveError,
    UserNotFoundError,
)
from venuefinder.integrations.sentry import set_user
from venuefinder.storage import Collections, StorageProvider

logger = logging.getLogger(__name__)


# Optional JWT bearer (doesn't fail if no token)
optional_bearer = HTTPBearer(auto_error=False)


def get_storage(request: Request) -> StorageProvider:
    """Storage built at startup and kept on app state."""
    return request.app.state.storage


# =============================================================================
# Principal Resolution
# =============================================================================


async def resolve_principal(claims: TokenClaims, storage: StorageProvider) -> Principal:
    """
    Turn verified claims into a Principal.
    
    Staff records are re-read so deactivation takes effect immediately;
    their stored permission set is used rather than the token snapshot.
    """
    if claims.kind == PrincipalKind.STAFF:
        staff = await storage.metadata.get(Collections.STAFF, claims.id)
        if not staff:
            logger.info(f"Staff not found for token: {claims.id}")
            raise UserNotFoundError("Staff not found")
        if not staff.get("isActive", True):
            logger.info(f"Inactive staff rejected: {claims.id}")
            raise StaffInactiveError()
        return Principal.for_staff(staff)
    
    if claims.kind == PrincipalKind.OWNER:
        user = await storage.metadata.get(Collections.USERS, claims.id)
        if not user:
            logger.info(f"User not found for token: {claims.id}")
            raise UserNotFoundError()
        return Principal.for_user(user)
    
    raise InvalidTokenError()


async def get_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
    storage: StorageProvider = Depends(get_storage),
) -> Principal:
    """Require a valid bearer token."""
    if not credentials:
        logger.info("Authentication failed: no token provided")
        raise AuthenticationError()
    
    claims = decode_token(credentials.credentials)
    principal = await resolve_principal(claims, storage)
    set_user(principal.id, principal.kind.value)
    logger.debug(f"Authenticated {principal.kind.value} {principal.id}")
    return principal


async def get_optional_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
    storage: StorageProvider = Depends(get_storage),
) -> Principal:
    """Like get_principal, but any failure just means anonymous."""
    if not credentials:
        return Principal.anonymous()
    try:
        claims = decode_token(credentials.credentials)
        return await resolve_principal(claims, storage)
    except (AuthenticationError, ForbiddenError) as e:
        logger.debug(f"Optional auth ignored: {e.message}")
        return Principal.anonymous()


async def touch_last_login(storage: StorageProvider, principal: Principal) -> None:
    """Record a staff login. Verification itself never writes."""
    if principal.is_staff:
        await storage.metadata.update_where(
            Collections.STAFF, {"_id": principal.id}, {"lastLogin": utc_now()}
        )


# =============================================================================
# Capability Policies
# =============================================================================


def require_permission(permission: Permission) -> Callable:
    """
    Require a capability. Owners always pass; staff need the flag.
    
    Usage:
        @router.post("/")
        async def create(principal: Principal = Depends(require_permission(Permission.MANAGE_OFFERS))):
            ...
    """
    
    async def dependency(principal: Principal = Depends(get_principal)) -> Principal:
        if not principal.can(permission):
            logger.info(
                f"Permission {permission.value} denied to "
                f"{principal.kind.value} {principal.id} ({principal.role})"
            )
            raise PermissionDeniedError(context={"permission": permission.value})
        return principal
    
    return dependency


def require_user_role(*roles: str) -> Callable:
    """Require an owner-kind account whose role is one of `roles`."""
    
    async def dependency(principal: Principal = Depends(get_principal)) -> Principal:
        if not principal.is_owner or principal.role not in roles:
            raise ForbiddenError(
                f"User role {principal.role} is not authorized to access this route"
            )
        return principal
    
    return dependency


async def require_owner_account(principal: Principal = Depends(get_principal)) -> Principal:
    """Only owner-kind principals (not staff)."""
    if not principal.is_owner:
        raise ForbiddenError("This action requires an owner account")
    return principal


async def require_staff_account(principal: Principal = Depends(get_principal)) -> Principal:
    """Only staff principals."""
    if not principal.is_staff:
        raise ForbiddenError("This action requires a staff account")
    return principal


# =============================================================================
# Ownership Policies
# =============================================================================


def owned_resource(
    collection: str,
    label: str,
    *,
    param: str = "id",
    owner_field: str = "owner",
    via_venue: bool = False,
    permission: Permission | None = None,
) -> Callable:
    """
    Load the resource named in the path and check the caller may act on it.
    
    The fetched document is also attached to `request.state.resource`.
    """
    
    async def dependency(
        request: Request,
        principal: Principal = Depends(get_principal),
        storage: StorageProvider = Depends(get_storage),
    ) -> OwnedResource:
        if permission is not None:
            principal.require(permission)
        owned = await load_owned(
            storage,
            collection,
            request.path_params.get(param),
            principal,
            label=label,
            owner_field=owner_field,
            via_venue=via_venue,
        )
        request.state.resource = owned.data
        return owned
    
    return dependency


# =============================================================================
# Audit
# =============================================================================


audit_logger = logging.getLogger("venuefinder.audit")


@dataclass
class AuditEntry:
    """A pending audit line; routes call `record()` once the change is stored."""
    
    action: str
    principal: Principal
    path: str
    timestamp: str = field(default_factory=lambda: utc_now().isoformat())
    
    def record(self) -> None:
        who = self.principal.audit_identity()
        audit_logger.info(
            f"audit action={self.action} by={who['performed_by']} "
            f"type={who['performer_type']} path={self.path} at={self.timestamp}"
        )


def audited(action: str) -> Callable:
    """Prepare the audit entry for a staff-management action."""
    
    async def dependency(request: Request, principal: Principal = Depends(get_principal)) -> AuditEntry:
        entry = AuditEntry(action=action, principal=principal, path=request.url.path)
        request.state.audit = entry
        return entry
    
    return dependency
