"""
Offer routes.

    GET    /api/offers                    - list (owner=current, self-scoped when signed in)
    GET    /api/offers/{id}               - single offer
    POST   /api/offers                    - create for an owned venue
    PUT    /api/offers/{id}               - update
    DELETE /api/offers/{id}               - delete
    GET    /api/venues/{venue_id}/offers  - a venue's currently running offers
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from venuefinder.api.listing import envelope, list_documents, populate, query_params
from venuefinder.auth.ownership import OwnedResource, authorize, fetch_or_404, load_owned
from venuefinder.auth.permissions import Permission
from venuefinder.auth.policies import (
    get_optional_principal,
    get_storage,
    owned_resource,
    require_permission,
)
from venuefinder.auth.principal import Principal
from venuefinder.core.models import Offer, OfferCreate, OfferUpdate, update_fields
from venuefinder.core.utils import utc_now
from venuefinder.errors import NotOwnerError
from venuefinder.storage import Collections, StorageProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["offers"])

VENUE_SUMMARY = ["name", "address", "category"]


@router.get("/offers")
async def list_offers(
    request: Request,
    principal: Principal = Depends(get_optional_principal),
    storage: StorageProvider = Depends(get_storage),
):
    raw = query_params(request)

    # Filtering by venue only makes sense for a venue that exists
    if isinstance(raw.get("venue"), str):
        await fetch_or_404(storage, Collections.VENUES, raw["venue"], "Venue")

    result = await list_documents(storage, Collections.OFFERS, raw, principal, scope_to_owner=True)
    result["data"] = await populate(storage, result["data"], "venue", Collections.VENUES, VENUE_SUMMARY)
    return result


@router.get("/offers/{id}")
async def get_offer(
    id: str,
    principal: Principal = Depends(get_optional_principal),
    storage: StorageProvider = Depends(get_storage),
):
    """
    Anyone may read an offer anonymously. A signed-in caller must own the
    offer or its venue.
    """
    offer = await fetch_or_404(storage, Collections.OFFERS, id, "Offer")

    if principal.is_authenticated and not authorize(principal, offer):
        venue = await storage.metadata.get(Collections.VENUES, offer.get("venue"))
        if not venue or not authorize(principal, venue):
            raise NotOwnerError("offer")

    [offer] = await populate(storage, [offer], "venue", Collections.VENUES, VENUE_SUMMARY)
    return envelope(offer)


@router.post("/offers", status_code=201)
async def create_offer(
    data: OfferCreate,
    principal: Principal = Depends(require_permission(Permission.MANAGE_OFFERS)),
    storage: StorageProvider = Depends(get_storage),
):
    await load_owned(storage, Collections.VENUES, data.venue, principal, label="Venue")

    offer = Offer(**data.model_dump(), owner=principal.acting_owner_id)
    doc = await storage.metadata.save(Collections.OFFERS, offer.id, offer.to_document())
    logger.info(f"Offer {offer.id} created for venue {data.venue}")
    return envelope(doc)


@router.put("/offers/{id}")
async def update_offer(
    data: OfferUpdate,
    owned: OwnedResource = Depends(
        owned_resource(Collections.OFFERS, "Offer", permission=Permission.MANAGE_OFFERS)
    ),
    storage: StorageProvider = Depends(get_storage),
):
    updated = await storage.metadata.update_where(
        Collections.OFFERS, owned.ownership_filter, update_fields(data)
    )
    if updated is None:
        raise NotOwnerError("offer")
    return envelope(updated)


@router.delete("/offers/{id}")
async def delete_offer(
    owned: OwnedResource = Depends(
        owned_resource(Collections.OFFERS, "Offer", permission=Permission.MANAGE_OFFERS)
    ),
    storage: StorageProvider = Depends(get_storage),
):
    if not await storage.metadata.delete_where(Collections.OFFERS, owned.ownership_filter):
        raise NotOwnerError("offer")
    return envelope({})


@router.get("/venues/{venue_id}/offers")
async def venue_offers(venue_id: str, storage: StorageProvider = Depends(get_storage)):
    await fetch_or_404(storage, Collections.VENUES, venue_id, "Venue")

    now = utc_now()
    offers = await storage.metadata.find(
        Collections.OFFERS,
        {
            "venue": venue_id,
            "isActive": True,
            "startDate": {"$lte": now},
            "endDate": {"$gte": now},
        },
        sort=[("createdAt", -1)],
    )
    return {"success": True, "count": len(offers), "data": offers}
