"""
Menu routes.

Menus belong to a venue; whoever owns the venue owns its menus.

    GET    /api/menus
    GET    /api/menus/{id}
    GET    /api/venues/{venue_id}/menus
    POST   /api/menus
    PUT    /api/menus/{id}
    DELETE /api/menus/{id}
    POST   /api/menus/{id}/categories/{category_id}/items
    PUT    /api/menus/{id}/categories/{category_id}/items/{item_id}
    DELETE /api/menus/{id}/categories/{category_id}/items/{item_id}
"""

from __future__ import annotations

import logging
from typing import Any

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
from venuefinder.core.models import (
    Menu,
    MenuCreate,
    MenuItem,
    MenuItemCreate,
    MenuItemUpdate,
    MenuUpdate,
    update_fields,
)
from venuefinder.core.utils import utc_now
from venuefinder.errors import ConflictError, NotOwnerError, ResourceNotFoundError
from venuefinder.storage import Collections, StorageProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["menus"])

VENUE_SUMMARY = ["name", "description", "location"]

owned_menu = owned_resource(
    Collections.MENUS, "Menu", via_venue=True, permission=Permission.MANAGE_MENU
)


async def _unset_other_defaults(storage: StorageProvider, venue_id: str, menu_id: str) -> None:
    # A venue has at most one default menu
    await storage.metadata.update_many(
        Collections.MENUS,
        {"venue": venue_id, "_id": {"$ne": menu_id}, "isDefault": True},
        {"isDefault": False},
    )


# =============================================================================
# Menus
# =============================================================================


@router.get("/menus")
async def list_menus(
    request: Request,
    principal: Principal = Depends(get_optional_principal),
    storage: StorageProvider = Depends(get_storage),
):
    result = await list_documents(
        storage,
        Collections.MENUS,
        query_params(request),
        principal,
        default_limit=get_settings().nested_page_limit,
    )
    result["data"] = await populate(storage, result["data"], "venue", Collections.VENUES, VENUE_SUMMARY)
    return result


@router.get("/menus/{id}")
async def get_menu(id: str, storage: StorageProvider = Depends(get_storage)):
    menu = await fetch_or_404(storage, Collections.MENUS, id, "Menu")
    [menu] = await populate(storage, [menu], "venue", Collections.VENUES, VENUE_SUMMARY)
    return envelope(menu)


@router.get("/venues/{venue_id}/menus")
async def venue_menus(venue_id: str, storage: StorageProvider = Depends(get_storage)):
    await fetch_or_404(storage, Collections.VENUES, venue_id, "Venue")
    menus = await storage.metadata.find(
        Collections.MENUS, {"venue": venue_id, "isActive": True}, sort=[("createdAt", -1)]
    )
    return {"success": True, "count": len(menus), "data": menus}


@router.post("/menus", status_code=201)
async def create_menu(
    data: MenuCreate,
    principal: Principal = Depends(require_permission(Permission.MANAGE_MENU)),
    storage: StorageProvider = Depends(get_storage),
):
    await load_owned(storage, Collections.VENUES, data.venue, principal, label="Venue")

    menu = Menu(**data.model_dump(), user=principal.id)
    doc = await storage.metadata.save(Collections.MENUS, menu.id, menu.to_document())
    if menu.is_default:
        await _unset_other_defaults(storage, data.venue, menu.id)
    logger.info(f"Menu {menu.id} created for venue {data.venue}")
    return envelope(doc)


@router.put("/menus/{id}")
async def update_menu(
    data: MenuUpdate,
    owned: OwnedResource = Depends(owned_menu),
    storage: StorageProvider = Depends(get_storage),
):
    updated = await storage.metadata.update_where(
        Collections.MENUS, owned.ownership_filter, update_fields(data)
    )
    if updated is None:
        raise NotOwnerError("menu")
    if updated.get("isDefault"):
        await _unset_other_defaults(storage, owned.venue_id, owned.id)
    return envelope(updated)


@router.delete("/menus/{id}")
async def delete_menu(
    owned: OwnedResource = Depends(owned_menu),
    storage: StorageProvider = Depends(get_storage),
):
    if not await storage.metadata.delete_where(Collections.MENUS, owned.ownership_filter):
        raise NotOwnerError("menu")
    return envelope({})


# =============================================================================
# Menu Items
# =============================================================================


def _find_category(menu: dict[str, Any], category_id: str) -> dict[str, Any]:
    for category in menu.get("categories", []):
        if category.get("_id") == category_id:
            return category
    raise ResourceNotFoundError("Category", category_id)


def _find_item(category: dict[str, Any], item_id: str) -> dict[str, Any]:
    for item in category.get("items", []):
        if item.get("_id") == item_id:
            return item
    raise ResourceNotFoundError("Menu item", item_id)


async def _save_categories(storage: StorageProvider, owned: OwnedResource) -> dict[str, Any]:
    """
    Write back a menu's edited categories.
    
    The write only applies if the menu is unchanged since it was read, so
    two concurrent item edits cannot overwrite each other.
    """
    unchanged = {**owned.ownership_filter, "updatedAt": owned.data.get("updatedAt")}
    updated = await storage.metadata.update_where(
        Collections.MENUS, unchanged, {"categories": owned.data["categories"]}
    )
    if updated is None:
        if await storage.metadata.find_one(Collections.MENUS, owned.ownership_filter):
            logger.info(f"Menu {owned.id} changed during an item edit")
            raise ConflictError()
        raise NotOwnerError("menu")
    return updated


@router.post("/menus/{id}/categories/{category_id}/items", status_code=201)
async def add_menu_item(
    category_id: str,
    data: MenuItemCreate,
    owned: OwnedResource = Depends(owned_menu),
    storage: StorageProvider = Depends(get_storage),
):
    category = _find_category(owned.data, category_id)
    category.setdefault("items", []).append(MenuItem(**data.model_dump()).to_document())
    return envelope(await _save_categories(storage, owned))


@router.put("/menus/{id}/categories/{category_id}/items/{item_id}")
async def update_menu_item(
    category_id: str,
    item_id: str,
    data: MenuItemUpdate,
    owned: OwnedResource = Depends(owned_menu),
    storage: StorageProvider = Depends(get_storage),
):
    item = _find_item(_find_category(owned.data, category_id), item_id)
    item.update(update_fields(data))
    item["updatedAt"] = utc_now()
    return envelope(await _save_categories(storage, owned))


@router.delete("/menus/{id}/categories/{category_id}/items/{item_id}")
async def delete_menu_item(
    category_id: str,
    item_id: str,
    owned: OwnedResource = Depends(owned_menu),
    storage: StorageProvider = Depends(get_storage),
):
    category = _find_category(owned.data, category_id)
    _find_item(category, item_id)
    category["items"] = [i for i in category["items"] if i.get("_id") != item_id]
    return envelope(await _save_categories(storage, owned))
