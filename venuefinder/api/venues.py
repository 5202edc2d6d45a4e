"""
Venue routes.

    GET    /api/venues                               - list (self-scoped when signed in)
    GET    /api/venues/radius/{lat}/{lng}/{distance} - radius search
    GET    /api/venues/{id}                          - single venue with its reviews
    POST   /api/venues                               - create
    PUT    /api/venues/{id}                          - update (owner or permitted staff)
    DELETE /api/venues/{id}                          - delete with its dependents (platform admin)
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from venuefinder.api.listing import envelope, list_documents, query_params
from venuefinder.auth.ownership import OwnedResource, fetch_or_404
from venuefinder.auth.permissions import Permission
from venuefinder.auth.policies import (
    get_optional_principal,
    get_storage,
    owned_resource,
    require_permission,
    require_user_role,
)
from venuefinder.auth.principal import Principal
from venuefinder.core.models import Venue, VenueCreate, VenueUpdate, update_fields
from venuefinder.errors import NotOwnerError
from venuefinder.query import radius_filter
from venuefinder.storage import Collections, StorageProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/venues", tags=["venues"])

# Documents that hang off a venue and go with it
CASCADE_COLLECTIONS = (
    Collections.REVIEWS,
    Collections.MENUS,
    Collections.PACKAGES,
    Collections.OFFERS,
    Collections.VISITS,
)

# Lists of venue ids on other documents
VENUE_REFERENCES = (
    (Collections.USERS, "bookmarks"),
    (Collections.USERS, "visited"),
    (Collections.STAFF, "venues"),
)


@router.get("")
async def list_venues(
    request: Request,
    principal: Principal = Depends(get_optional_principal),
    storage: StorageProvider = Depends(get_storage),
):
    return await list_documents(
        storage, Collections.VENUES, query_params(request), principal, scope_to_owner=True
    )


@router.get("/radius/{lat}/{lng}/{distance}")
async def venues_in_radius(
    lat: float,
    lng: float,
    distance: float,
    unit: str = "mi",
    storage: StorageProvider = Depends(get_storage),
):
    """Venues within `distance` (miles by default, or km) of a point."""
    venues = await storage.metadata.find(Collections.VENUES, radius_filter(lat, lng, distance, unit))
    return {"success": True, "count": len(venues), "data": venues}


@router.get("/{id}")
async def get_venue(id: str, storage: StorageProvider = Depends(get_storage)):
    venue = await fetch_or_404(storage, Collections.VENUES, id, "Venue")
    venue["reviews"] = await storage.metadata.find(
        Collections.REVIEWS, {"venue": id}, sort=[("createdAt", -1)]
    )
    return envelope(venue)


@router.post("", status_code=201)
async def create_venue(
    data: VenueCreate,
    principal: Principal = Depends(require_permission(Permission.MANAGE_VENUES)),
    storage: StorageProvider = Depends(get_storage),
):
    venue = Venue(**data.model_dump(), owner=principal.acting_owner_id)
    doc = await storage.metadata.save(Collections.VENUES, venue.id, venue.to_document())
    logger.info(f"Venue {venue.id} created by {principal.kind.value} {principal.id}")
    return envelope(doc)


@router.put("/{id}")
async def update_venue(
    data: VenueUpdate,
    owned: OwnedResource = Depends(
        owned_resource(Collections.VENUES, "Venue", permission=Permission.MANAGE_VENUES)
    ),
    storage: StorageProvider = Depends(get_storage),
):
    updated = await storage.metadata.update_where(
        Collections.VENUES, owned.ownership_filter, update_fields(data)
    )
    if updated is None:
        raise NotOwnerError("venue")
    return envelope(updated)


@router.delete("/{id}")
async def delete_venue(
    principal: Principal = Depends(require_user_role("admin")),
    owned: OwnedResource = Depends(owned_resource(Collections.VENUES, "Venue")),
    storage: StorageProvider = Depends(get_storage),
):
    if not await storage.metadata.delete_where(Collections.VENUES, owned.ownership_filter):
        raise NotOwnerError("venue")

    for collection in CASCADE_COLLECTIONS:
        await storage.metadata.delete_many(collection, {"venue": owned.id})
    for collection, field in VENUE_REFERENCES:
        await storage.metadata.update_many(collection, {field: owned.id}, {"$pull": {field: owned.id}})
    logger.info(f"Venue {owned.id} deleted by admin {principal.id}")
    return envelope({})
