"""
Shared plumbing for list endpoints.

    query string → translate → count → paginate → find → envelope
"""

from __future__ import annotations

from typing import Any, Mapping

from fastapi import Request

from venuefinder.auth.principal import Principal
from venuefinder.config import get_settings
from venuefinder.query import TranslatedQuery, paginate, parse_page_params, parse_query_params, translate
from venuefinder.storage import StorageProvider


def query_params(request: Request) -> dict[str, Any]:
    """The request's query string as nested objects (price[gte]=10 → {"price": {"gte": "10"}})."""
    return parse_query_params(request.query_params.multi_items())


async def list_documents(
    storage: StorageProvider,
    collection: str,
    raw_query: Mapping[str, Any],
    principal: Principal,
    *,
    default_limit: int | None = None,
    scope_to_owner: bool = False,
    base_filters: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Run a filtered, sorted, paginated list query.
    
    Returns the list envelope:
        {"success": true, "count": n, "pagination": {"next"?, "prev"?}, "data": [...]}
    or the empty envelope when the query can match nothing.
    """
    settings = get_settings()
    translated = translate(raw_query, principal, scope_to_owner=scope_to_owner)
    if translated.empty:
        return TranslatedQuery.empty_response()
    
    filters = {**translated.filters, **(base_filters or {})}
    
    page_num, limit = parse_page_params(
        raw_query.get("page"),
        raw_query.get("limit"),
        default_limit or settings.default_page_limit,
        settings.max_page_limit,
    )
    total = await storage.metadata.count(collection, filters)
    page = paginate(page_num, limit, total)
    
    docs = await storage.metadata.find(
        collection,
        filters,
        sort=translated.sort,
        skip=page.skip,
        limit=page.limit,
        fields=translated.select,
    )
    
    return {
        "success": True,
        "count": len(docs),
        "pagination": page.to_dict(),
        "data": docs,
    }


async def populate(
    storage: StorageProvider,
    docs: list[dict[str, Any]],
    field: str,
    collection: str,
    fields: list[str],
) -> list[dict[str, Any]]:
    """Replace a reference ID with a slice of the referenced document."""
    ids = {d.get(field) for d in docs if isinstance(d.get(field), str)}
    if not ids:
        return docs
    
    found = await storage.metadata.find(collection, {"_id": {"$in": sorted(ids)}}, fields=fields)
    by_id = {doc["_id"]: doc for doc in found}
    
    return [
        {**d, field: by_id.get(d[field], d[field])} if isinstance(d.get(field), str) else d
        for d in docs
    ]


def envelope(data: Any, **extra: Any) -> dict[str, Any]:
    """Single-resource success envelope."""
    return {"success": True, **extra, "data": data}
