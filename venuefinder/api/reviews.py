"""
Review routes.

Reviews are written by owner-kind accounts; the author (field "user") or
a platform admin may change them. One review per account per venue.
Every write recomputes the venue's averageRating and reviewCount.
"""

from __future__ import annotations

import logging
import math

from fastapi import APIRouter, Depends, Request

from venuefinder.api.listing import envelope, list_documents, query_params
from venuefinder.auth.ownership import OwnedResource, fetch_or_404
from venuefinder.auth.policies import (
    get_optional_principal,
    get_storage,
    owned_resource,
    require_owner_account,
)
from venuefinder.auth.principal import Principal
from venuefinder.config import get_settings
from venuefinder.core.models import Review, ReviewCreate, ReviewUpdate, update_fields
from venuefinder.errors import NotOwnerError, ValidationError
from venuefinder.storage import Collections, StorageProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["reviews"])

owned_review = owned_resource(Collections.REVIEWS, "Review", owner_field="user")


async def refresh_venue_rating(storage: StorageProvider, venue_id: str) -> None:
    """Recompute a venue's averageRating (one decimal) and reviewCount."""
    reviews = await storage.metadata.find(Collections.REVIEWS, {"venue": venue_id})
    ratings = [r["rating"] for r in reviews]
    average = None
    if ratings:
        # Half-up rounding to one decimal
        average = math.floor(sum(ratings) / len(ratings) * 10 + 0.5) / 10
    await storage.metadata.update_where(
        Collections.VENUES,
        {"_id": venue_id},
        {"averageRating": average, "reviewCount": len(ratings)},
    )


@router.get("/reviews")
async def list_reviews(
    request: Request,
    principal: Principal = Depends(get_optional_principal),
    storage: StorageProvider = Depends(get_storage),
):
    return await list_documents(
        storage,
        Collections.REVIEWS,
        query_params(request),
        principal,
        default_limit=get_settings().nested_page_limit,
    )


@router.get("/venues/{venue_id}/reviews")
async def venue_reviews(
    venue_id: str,
    request: Request,
    principal: Principal = Depends(get_optional_principal),
    storage: StorageProvider = Depends(get_storage),
):
    await fetch_or_404(storage, Collections.VENUES, venue_id, "Venue")
    return await list_documents(
        storage,
        Collections.REVIEWS,
        query_params(request),
        principal,
        default_limit=get_settings().nested_page_limit,
        base_filters={"venue": venue_id},
    )


@router.get("/reviews/{id}")
async def get_review(id: str, storage: StorageProvider = Depends(get_storage)):
    return envelope(await fetch_or_404(storage, Collections.REVIEWS, id, "Review"))


@router.post("/venues/{venue_id}/reviews", status_code=201)
async def create_review(
    venue_id: str,
    data: ReviewCreate,
    principal: Principal = Depends(require_owner_account),
    storage: StorageProvider = Depends(get_storage),
):
    await fetch_or_404(storage, Collections.VENUES, venue_id, "Venue")

    existing = await storage.metadata.find_one(
        Collections.REVIEWS, {"venue": venue_id, "user": principal.id}
    )
    if existing:
        raise ValidationError("You have already reviewed this venue")

    review = Review(
        **data.model_dump(),
        venue=venue_id,
        user=principal.id,
        user_name=principal.record.get("fullName", ""),
    )
    doc = await storage.metadata.save(Collections.REVIEWS, review.id, review.to_document())
    await refresh_venue_rating(storage, venue_id)
    logger.info(f"Review {review.id} added to venue {venue_id} by {principal.id}")
    return envelope(doc)


@router.put("/reviews/{id}")
async def update_review(
    data: ReviewUpdate,
    principal: Principal = Depends(require_owner_account),
    owned: OwnedResource = Depends(owned_review),
    storage: StorageProvider = Depends(get_storage),
):
    updated = await storage.metadata.update_where(
        Collections.REVIEWS, owned.ownership_filter, update_fields(data)
    )
    if updated is None:
        raise NotOwnerError("review")
    await refresh_venue_rating(storage, updated["venue"])
    return envelope(updated)


@router.delete("/reviews/{id}")
async def delete_review(
    principal: Principal = Depends(require_owner_account),
    owned: OwnedResource = Depends(owned_review),
    storage: StorageProvider = Depends(get_storage),
):
    if not await storage.metadata.delete_where(Collections.REVIEWS, owned.ownership_filter):
        raise NotOwnerError("review")
    await refresh_venue_rating(storage, owned.data["venue"])
    return envelope({})
