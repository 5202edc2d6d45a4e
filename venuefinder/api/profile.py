"""
Account profile routes for owner-kind principals.

    GET    /api/profile                     - own account
    PUT    /api/profile                     - edit name, phone, bio
    PUT    /api/profile/change-password     - needs the current password
    GET    /api/profile/bookmarks           - bookmarked venues
    POST   /api/profile/bookmarks/{venue_id}
    DELETE /api/profile/bookmarks/{venue_id}
    GET    /api/profile/visits              - visit log with venues
    POST   /api/profile/visits/{venue_id}   - log a visit (optional notes)
    DELETE /api/profile/visits/{venue_id}

Email, role and password never change through PUT /api/profile.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from venuefinder.api.listing import envelope, populate
from venuefinder.auth.jwt import hash_password, verify_password
from venuefinder.auth.ownership import fetch_or_404
from venuefinder.auth.policies import get_storage, require_owner_account
from venuefinder.auth.principal import Principal
from venuefinder.core.models import PasswordChange, ProfileUpdate, Visit, VisitCreate, public_user, update_fields
from venuefinder.core.utils import is_valid_id
from venuefinder.errors import InvalidCredentialsError, InvalidIdError, ValidationError
from venuefinder.storage import Collections, StorageProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profile", tags=["profile"])

VENUE_SUMMARY = ["name", "address", "location", "category", "averageRating"]


async def _update_account(storage: StorageProvider, principal: Principal, updates: dict) -> dict:
    updated = await storage.metadata.update_where(Collections.USERS, {"_id": principal.id}, updates)
    if updated is None:
        raise ValidationError("Account no longer exists")
    return updated


# =============================================================================
# Account
# =============================================================================


@router.get("")
async def get_profile(principal: Principal = Depends(require_owner_account)):
    return envelope(public_user(principal.record))


@router.put("")
async def update_profile(
    data: ProfileUpdate,
    principal: Principal = Depends(require_owner_account),
    storage: StorageProvider = Depends(get_storage),
):
    updated = await _update_account(storage, principal, update_fields(data))
    return envelope(public_user(updated))


@router.put("/change-password")
async def change_password(
    data: PasswordChange,
    principal: Principal = Depends(require_owner_account),
    storage: StorageProvider = Depends(get_storage),
):
    if not data.current_password or not data.new_password:
        raise ValidationError("Please provide current and new password")

    if not verify_password(data.current_password, principal.record.get("passwordHash", "")):
        logger.info(f"Password change refused for {principal.id}")
        raise InvalidCredentialsError("Current password is incorrect")

    await _update_account(storage, principal, {"passwordHash": hash_password(data.new_password)})
    logger.info(f"Password changed for {principal.id}")
    return {"success": True, "message": "Password updated successfully"}


# =============================================================================
# Bookmarks
# =============================================================================


@router.get("/bookmarks")
async def get_bookmarks(
    principal: Principal = Depends(require_owner_account),
    storage: StorageProvider = Depends(get_storage),
):
    bookmarks = principal.record.get("bookmarks", [])
    found = await storage.metadata.find(Collections.VENUES, {"_id": {"$in": bookmarks}})
    by_id = {venue["_id"]: venue for venue in found}
    venues = [by_id[id] for id in bookmarks if id in by_id]
    return {"success": True, "count": len(venues), "data": venues}


@router.post("/bookmarks/{venue_id}")
async def add_bookmark(
    venue_id: str,
    principal: Principal = Depends(require_owner_account),
    storage: StorageProvider = Depends(get_storage),
):
    await fetch_or_404(storage, Collections.VENUES, venue_id, "Venue")

    if venue_id in principal.record.get("bookmarks", []):
        raise ValidationError("Venue already bookmarked")

    await _update_account(storage, principal, {"$addToSet": {"bookmarks": venue_id}})
    return {"success": True, "message": "Venue bookmarked"}


@router.delete("/bookmarks/{venue_id}")
async def remove_bookmark(
    venue_id: str,
    principal: Principal = Depends(require_owner_account),
    storage: StorageProvider = Depends(get_storage),
):
    await fetch_or_404(storage, Collections.VENUES, venue_id, "Venue")
    await _update_account(storage, principal, {"$pull": {"bookmarks": venue_id}})
    return {"success": True, "message": "Bookmark removed"}


# =============================================================================
# Visits
# =============================================================================


@router.get("/visits")
async def get_visits(
    principal: Principal = Depends(require_owner_account),
    storage: StorageProvider = Depends(get_storage),
):
    visits = await storage.metadata.find(
        Collections.VISITS, {"user": principal.id}, sort=[("visitDate", -1)]
    )
    visits = await populate(storage, visits, "venue", Collections.VENUES, VENUE_SUMMARY)
    return {"success": True, "count": len(visits), "data": visits}


@router.post("/visits/{venue_id}", status_code=201)
async def add_visit(
    venue_id: str,
    data: VisitCreate | None = None,
    principal: Principal = Depends(require_owner_account),
    storage: StorageProvider = Depends(get_storage),
):
    await fetch_or_404(storage, Collections.VENUES, venue_id, "Venue")

    visit = Visit(**(data.model_dump() if data else {}), user=principal.id, venue=venue_id)
    doc = await storage.metadata.save(Collections.VISITS, visit.id, visit.to_document())
    await _update_account(storage, principal, {"$addToSet": {"visited": venue_id}})
    return envelope(doc)


@router.delete("/visits/{venue_id}")
async def remove_visit(
    venue_id: str,
    principal: Principal = Depends(require_owner_account),
    storage: StorageProvider = Depends(get_storage),
):
    if not is_valid_id(venue_id):
        raise InvalidIdError("Venue", venue_id)

    await storage.metadata.delete_where(Collections.VISITS, {"user": principal.id, "venue": venue_id})
    await _update_account(storage, principal, {"$pull": {"visited": venue_id}})
    return {"success": True, "message": "Visit removed"}
