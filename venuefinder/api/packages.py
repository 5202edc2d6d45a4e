"""
Package routes.

Packages belong to a venue; whoever owns the venue owns its packages.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from venuefinder.api.listing import envelope, list_documents, populate, query_params
from venuefinder.auth.ownership import OwnedResource, fetch_or_404, load_owned
from venuefinder.auth.permissions import Permission
from venuefinder.auth.policies import (
    get_optional_principal,
    get_storage,
    owned_resource,
    require_permission,
)
from venuefinder.auth.principal import Principal
from venuefinder.config import get_settings
from venuefinder.core.models import Package, PackageCreate, PackageUpdate, update_fields
from venuefinder.errors import NotOwnerError
from venuefinder.storage import Collections, StorageProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["packages"])

VENUE_SUMMARY = ["name", "address"]

owned_package = owned_resource(
    Collections.PACKAGES, "Package", via_venue=True, permission=Permission.MANAGE_PACKAGES
)


@router.get("/packages")
async def list_packages(
    request: Request,
    principal: Principal = Depends(get_optional_principal),
    storage: StorageProvider = Depends(get_storage),
):
    result = await list_documents(
        storage,
        Collections.PACKAGES,
        query_params(request),
        principal,
        default_limit=get_settings().nested_page_limit,
    )
    result["data"] = await populate(storage, result["data"], "venue", Collections.VENUES, VENUE_SUMMARY)
    return result


@router.get("/packages/{id}")
async def get_package(id: str, storage: StorageProvider = Depends(get_storage)):
    package = await fetch_or_404(storage, Collections.PACKAGES, id, "Package")
    [package] = await populate(storage, [package], "venue", Collections.VENUES, VENUE_SUMMARY)
    return envelope(package)


@router.get("/venues/{venue_id}/packages")
async def venue_packages(venue_id: str, storage: StorageProvider = Depends(get_storage)):
    await fetch_or_404(storage, Collections.VENUES, venue_id, "Venue")
    packages = await storage.metadata.find(
        Collections.PACKAGES, {"venue": venue_id, "isActive": True}, sort=[("price.amount", 1)]
    )
    return {"success": True, "count": len(packages), "data": packages}


@router.post("/packages", status_code=201)
async def create_package(
    data: PackageCreate,
    principal: Principal = Depends(require_permission(Permission.MANAGE_PACKAGES)),
    storage: StorageProvider = Depends(get_storage),
):
    await load_owned(storage, Collections.VENUES, data.venue, principal, label="Venue")

    package = Package(**data.model_dump())
    doc = await storage.metadata.save(Collections.PACKAGES, package.id, package.to_document())
    logger.info(f"Package {package.id} created for venue {data.venue}")
    return envelope(doc)


@router.put("/packages/{id}")
async def update_package(
    data: PackageUpdate,
    owned: OwnedResource = Depends(owned_package),
    storage: StorageProvider = Depends(get_storage),
):
    updated = await storage.metadata.update_where(
        Collections.PACKAGES, owned.ownership_filter, update_fields(data)
    )
    if updated is None:
        raise NotOwnerError("package")
    return envelope(updated)


@router.delete("/packages/{id}")
async def delete_package(
    owned: OwnedResource = Depends(owned_package),
    storage: StorageProvider = Depends(get_storage),
):
    if not await storage.metadata.delete_where(Collections.PACKAGES, owned.ownership_filter):
        raise NotOwnerError("package")
    return envelope({})
