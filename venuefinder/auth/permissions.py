"""
Permissions, staff roles, and principal kinds.

This defines WHAT a principal can do, not HOW we check it.
The actual checking happens in policies.py and ownership.py.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PrincipalKind(str, Enum):
    """Who is behind a request."""
    
    ANONYMOUS = "anonymous"
    OWNER = "owner"    # Account that owns venues and everything under them
    STAFF = "staff"    # Delegated account acting for an owner


class StaffRole(str, Enum):
    """Role a staff member holds under their owner."""
    
    ADMIN = "admin"
    MANAGER = "manager"
    HOST = "host"                    # Default, least privilege
    BOOKING_AGENT = "booking_agent"
    MENU_MANAGER = "menu_manager"


class Permission(str, Enum):
    """
    Fine-grained capabilities.
    
    Values are the PermissionSet field names.
    """
    
    MANAGE_VENUES = "can_manage_venues"
    MANAGE_STAFF = "can_manage_staff"
    MANAGE_BOOKINGS = "can_manage_bookings"
    MANAGE_MENU = "can_manage_menu"
    MANAGE_OFFERS = "can_manage_offers"
    MANAGE_PACKAGES = "can_manage_packages"
    VIEW_REPORTS = "can_view_reports"
    ACCEPT_RESERVATIONS = "can_accept_reservations"


class PermissionSet(BaseModel):
    """
    Fixed-shape record of capability flags.
    
    Serialized with camelCase keys (canManageVenues, ...) to match what
    staff records and tokens carry on the wire.
    """
    
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)
    
    can_manage_venues: bool = False
    can_manage_staff: bool = False
    can_manage_bookings: bool = False
    can_manage_menu: bool = False
    can_manage_offers: bool = False
    can_manage_packages: bool = False
    can_view_reports: bool = False
    can_accept_reservations: bool = False
    
    def allows(self, permission: Permission | str) -> bool:
        """Check a single flag; unknown names are never allowed."""
        try:
            permission = Permission(permission)
        except ValueError:
            return False
        return bool(getattr(self, permission.value))
    
    def granted(self) -> set[Permission]:
        return {p for p in Permission if self.allows(p)}
    
    @classmethod
    def all(cls) -> PermissionSet:
        return cls(**{p.value: True for p in Permission})
    
    @classmethod
    def only(cls, *permissions: Permission) -> PermissionSet:
        return cls(**{p.value: True for p in permissions})


# =============================================================================
# Role Mappings
# =============================================================================


OWNER_PERMISSIONS = PermissionSet.all()
NO_PERMISSIONS = PermissionSet()

# What each staff role is granted. Resolved when a staff record is created
# or its role changes, then stored on the record.
ROLE_PERMISSIONS: dict[StaffRole, PermissionSet] = {
    StaffRole.ADMIN: PermissionSet.all(),
    StaffRole.MANAGER: PermissionSet.only(
        Permission.MANAGE_VENUES,
        Permission.MANAGE_BOOKINGS,
        Permission.MANAGE_MENU,
        Permission.MANAGE_OFFERS,
        Permission.MANAGE_PACKAGES,
        Permission.VIEW_REPORTS,
        Permission.ACCEPT_RESERVATIONS,
    ),
    StaffRole.BOOKING_AGENT: PermissionSet.only(
        Permission.MANAGE_BOOKINGS,
        Permission.ACCEPT_RESERVATIONS,
    ),
    StaffRole.MENU_MANAGER: PermissionSet.only(
        Permission.MANAGE_MENU,
        Permission.MANAGE_OFFERS,
        Permission.MANAGE_PACKAGES,
    ),
    StaffRole.HOST: PermissionSet.only(
        Permission.ACCEPT_RESERVATIONS,
    ),
}


def permissions_for_role(role: StaffRole | str | None) -> PermissionSet:
    """Permission set for a staff role; unknown or missing roles get the host set."""
    try:
        return ROLE_PERMISSIONS[StaffRole(role)]
    except ValueError:
        return ROLE_PERMISSIONS[StaffRole.HOST]


def resolve_permissions(
    kind: PrincipalKind,
    record: dict[str, Any] | None = None,
) -> PermissionSet:
    """
    Effective permission set for a principal.
    
    Owners get everything unconditionally. Staff get the set cached on
    their record, falling back to the role table if the record predates it.
    Anonymous principals get nothing.
    """
    if kind == PrincipalKind.OWNER:
        return OWNER_PERMISSIONS
    
    if kind == PrincipalKind.STAFF:
        record = record or {}
        stored = record.get("permissions")
        if stored:
            return PermissionSet.model_validate(stored)
        return permissions_for_role(record.get("role"))
    
    return NO_PERMISSIONS


def refresh_staff_permissions(
    current: dict[str, Any] | None,
    updates: dict[str, Any],
) -> dict[str, Any]:
    """
    Recompute stored permissions when a staff record is created or its role changes.
    
    Returns `updates` with a "permissions" entry added when needed; any
    permissions the caller tried to set directly are discarded.
    """
    updates = {k: v for k, v in updates.items() if k != "permissions"}
    is_new = current is None
    role = updates.get("role", None if is_new else current.get("role"))
    
    if is_new or ("role" in updates and updates["role"] != current.get("role")):
        updates["permissions"] = permissions_for_role(role).model_dump(by_alias=True)
    
    return updates
