"""
Staff management routes.

Owners (and staff holding canManageStaff) manage the staff who act for
them. Every mutation is audited. Staff members can read and edit a
limited slice of their own profile.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends

from venuefinder.api.listing import envelope
from venuefinder.auth.jwt import hash_password
from venuefinder.auth.ownership import OwnedResource, load_owned
from venuefinder.auth.permissions import Permission, refresh_staff_permissions
from venuefinder.auth.policies import (
    AuditEntry,
    audited,
    get_storage,
    owned_resource,
    require_permission,
    require_staff_account,
)
from venuefinder.auth.principal import Principal
from venuefinder.core.models import (
    Staff,
    StaffCreate,
    StaffProfileUpdate,
    StaffUpdate,
    public_staff,
    update_fields,
)
from venuefinder.errors import NotOwnerError, ValidationError
from venuefinder.storage import Collections, StorageProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/staff", tags=["staff"])

owned_staff = owned_resource(
    Collections.STAFF, "Staff member", permission=Permission.MANAGE_STAFF
)


async def _ensure_email_free(storage: StorageProvider, email: str, staff_id: str | None = None) -> None:
    existing = await storage.metadata.find_one(Collections.STAFF, {"email": email})
    if existing and existing["_id"] != staff_id:
        raise ValidationError("A staff member with this email already exists")


async def _conditional_update(
    storage: StorageProvider, owned: OwnedResource, updates: dict[str, Any]
) -> dict[str, Any]:
    updated = await storage.metadata.update_where(Collections.STAFF, owned.ownership_filter, updates)
    if updated is None:
        raise NotOwnerError("staff member")
    return public_staff(updated)


# =============================================================================
# Own Profile (staff principals)
# =============================================================================


@router.get("/profile/me")
async def get_my_profile(principal: Principal = Depends(require_staff_account)):
    return envelope(public_staff(principal.record))


@router.put("/profile/me")
async def update_my_profile(
    data: StaffProfileUpdate,
    principal: Principal = Depends(require_staff_account),
    audit: AuditEntry = Depends(audited("staff_profile_update")),
    storage: StorageProvider = Depends(get_storage),
):
    updates = update_fields(data)
    if "email" in updates:
        updates["email"] = updates["email"].lower()
        await _ensure_email_free(storage, updates["email"], principal.id)

    updated = await storage.metadata.update_where(
        Collections.STAFF, {"_id": principal.id}, updates
    )
    if updated is None:
        raise NotOwnerError("staff member")
    audit.record()
    return envelope(public_staff(updated))


# =============================================================================
# Staff Management
# =============================================================================


@router.get("")
async def list_staff(
    principal: Principal = Depends(require_permission(Permission.MANAGE_STAFF)),
    storage: StorageProvider = Depends(get_storage),
):
    staff = await storage.metadata.find(
        Collections.STAFF,
        {"owner": principal.acting_owner_id},
        sort=[("lastName", 1), ("firstName", 1)],
    )
    return {"success": True, "count": len(staff), "data": [public_staff(s) for s in staff]}


@router.get("/{id}")
async def get_staff(owned: OwnedResource = Depends(owned_staff)):
    return envelope(public_staff(owned.data))


@router.post("", status_code=201)
async def create_staff(
    data: StaffCreate,
    principal: Principal = Depends(require_permission(Permission.MANAGE_STAFF)),
    audit: AuditEntry = Depends(audited("staff_create")),
    storage: StorageProvider = Depends(get_storage),
):
    email = data.email.lower()
    await _ensure_email_free(storage, email)

    for venue_id in data.venues:
        await load_owned(storage, Collections.VENUES, venue_id, principal, label="Venue")

    staff = Staff(
        **data.model_dump(exclude={"email", "password"}),
        email=email,
        password_hash=hash_password(data.password),
        owner=principal.acting_owner_id,
    )
    record = refresh_staff_permissions(None, staff.to_document())
    doc = await storage.metadata.save(Collections.STAFF, staff.id, record)

    audit.record()
    logger.info(f"Staff {staff.id} ({doc.get('role')}) created for owner {staff.owner}")
    return envelope(public_staff(doc))


@router.put("/{id}")
async def update_staff(
    data: StaffUpdate,
    owned: OwnedResource = Depends(owned_staff),
    audit: AuditEntry = Depends(audited("staff_update")),
    storage: StorageProvider = Depends(get_storage),
):
    """Update a staff member. Permissions are recomputed only when the role changes."""
    updates = update_fields(data)
    if "password" in updates:
        updates["passwordHash"] = hash_password(updates.pop("password"))
    if "email" in updates:
        updates["email"] = updates["email"].lower()
        await _ensure_email_free(storage, updates["email"], owned.id)

    updates = refresh_staff_permissions(owned.data, updates)
    updated = await _conditional_update(storage, owned, updates)
    audit.record()
    return envelope(updated)


@router.delete("/{id}")
async def delete_staff(
    owned: OwnedResource = Depends(owned_staff),
    audit: AuditEntry = Depends(audited("staff_delete")),
    storage: StorageProvider = Depends(get_storage),
):
    if not await storage.metadata.delete_where(Collections.STAFF, owned.ownership_filter):
        raise NotOwnerError("staff member")
    audit.record()
    return envelope({})


# =============================================================================
# Venue Assignment
# =============================================================================


@router.post("/{id}/venues/{venue_id}")
async def assign_venue(
    venue_id: str,
    principal: Principal = Depends(require_permission(Permission.MANAGE_STAFF)),
    owned: OwnedResource = Depends(owned_staff),
    audit: AuditEntry = Depends(audited("staff_assign_venue")),
    storage: StorageProvider = Depends(get_storage),
):
    await load_owned(storage, Collections.VENUES, venue_id, principal, label="Venue")

    if venue_id in owned.data.get("venues", []):
        raise ValidationError("Venue already assigned to this staff member")

    updated = await _conditional_update(storage, owned, {"$push": {"venues": venue_id}})
    audit.record()
    return envelope(updated)


@router.delete("/{id}/venues/{venue_id}")
async def revoke_venue(
    venue_id: str,
    owned: OwnedResource = Depends(owned_staff),
    audit: AuditEntry = Depends(audited("staff_revoke_venue")),
    storage: StorageProvider = Depends(get_storage),
):
    if venue_id not in owned.data.get("venues", []):
        raise ValidationError("Venue not assigned to this staff member")

    updated = await _conditional_update(storage, owned, {"$pull": {"venues": venue_id}})
    audit.record()
    return envelope(updated)
