"""
Principal - the "who can do what" for each request.

This is the lightweight object passed to route handlers. It is built once
per request from a verified token and discarded with the response.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from venuefinder.auth.permissions import (
    NO_PERMISSIONS,
    OWNER_PERMISSIONS,
    Permission,
    PermissionSet,
    PrincipalKind,
    resolve_permissions,
)
from venuefinder.errors import PermissionDeniedError


@dataclass
class Principal:
    """
    Authenticated (or anonymous) identity for a request.
    
    Usage in routes:
        async def update_menu(principal: Principal = Depends(require_permission(Permission.MANAGE_MENU))):
            if principal.is_staff:
                ...
    """
    
    kind: PrincipalKind = PrincipalKind.ANONYMOUS
    
    # Who
    id: str | None = None
    email: str | None = None
    role: str | None = None  # account role for owners, staff role for staff
    
    # Staff only: the owner they act for and the venues they may touch
    owner_id: str | None = None
    venue_ids: list[str] = field(default_factory=list)
    
    permissions: PermissionSet = NO_PERMISSIONS
    
    # The stored record behind this principal (user or staff document)
    record: dict[str, Any] = field(default_factory=dict, repr=False)
    
    @property
    def is_authenticated(self) -> bool:
        return self.kind != PrincipalKind.ANONYMOUS and self.id is not None
    
    @property
    def is_anonymous(self) -> bool:
        return not self.is_authenticated
    
    @property
    def is_owner(self) -> bool:
        return self.kind == PrincipalKind.OWNER
    
    @property
    def is_staff(self) -> bool:
        return self.kind == PrincipalKind.STAFF
    
    @property
    def is_admin(self) -> bool:
        """Platform admin: an owner-kind account with the admin role. Staff admins are not."""
        return self.is_owner and self.role == "admin"
    
    @property
    def acting_owner_id(self) -> str | None:
        """The owner whose resources this principal acts on."""
        if self.is_owner:
            return self.id
        if self.is_staff:
            return self.owner_id
        return None
    
    def can(self, permission: Permission | str) -> bool:
        """Owners bypass capability checks; staff need the flag."""
        if self.is_owner:
            return True
        return self.permissions.allows(permission)
    
    def require(self, permission: Permission | str) -> None:
        """Raise if the principal lacks a permission."""
        if not self.can(permission):
            raise PermissionDeniedError(context={"permission": str(permission)})
    
    def has_venue(self, venue_id: str | None) -> bool:
        """Owners reach all their venues; staff only their allowlist."""
        if self.is_owner or venue_id is None:
            return True
        return self.is_staff and venue_id in self.venue_ids
    
    def audit_identity(self) -> dict[str, Any]:
        return {"performed_by": self.id, "performer_type": self.kind.value}
    
    @classmethod
    def anonymous(cls) -> Principal:
        """Create an anonymous principal (no user)."""
        return cls()
    
    @classmethod
    def for_user(cls, user: dict[str, Any]) -> Principal:
        """Owner principal from a stored user document."""
        return cls(
            kind=PrincipalKind.OWNER,
            id=user["_id"],
            email=user.get("email"),
            role=user.get("role", "user"),
            permissions=OWNER_PERMISSIONS,
            record=user,
        )
    
    @classmethod
    def for_staff(cls, staff: dict[str, Any]) -> Principal:
        """Staff principal from a stored staff document."""
        return cls(
            kind=PrincipalKind.STAFF,
            id=staff["_id"],
            email=staff.get("email"),
            role=staff.get("role"),
            owner_id=staff.get("owner"),
            venue_ids=[str(v) for v in staff.get("venues") or []],
            permissions=resolve_permissions(PrincipalKind.STAFF, staff),
            record=staff,
        )
