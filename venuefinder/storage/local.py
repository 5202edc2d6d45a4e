"""
Local storage implementations for development and tests.

An in-memory document store that evaluates the same filter dialect a
MongoDB deployment would receive. Query-string values arrive as strings,
so comparisons cast them to the type of the stored value the way a
schema-aware driver does.
"""

from __future__ import annotations

import copy
import math
from datetime import datetime, timezone
from typing import Any

from venuefinder.core.utils import utc_now
from venuefinder.errors import ValidationError
from venuefinder.storage.base import MetadataStorage, SortSpec, StorageProvider

_MISSING = object()


# =============================================================================
# Filter Evaluation
# =============================================================================


def _cast(value: Any, sample: Any) -> Any:
    """Cast a query value to the type of a stored sample value."""
    if not isinstance(value, str) or sample is None or isinstance(sample, str):
        return value
    
    if isinstance(sample, bool):
        lowered = value.lower()
        if lowered in ("true", "1"):
            return True
        if lowered in ("false", "0"):
            return False
        return value
    
    if isinstance(sample, (int, float)):
        try:
            number = float(value)
        except ValueError:
            return value
        return int(number) if number.is_integer() else number
    
    if isinstance(sample, datetime):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
        if parsed.tzinfo is None and sample.tzinfo is not None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    
    return value


def _resolve(doc: dict[str, Any], path: str) -> Any:
    """Follow a dotted path through nested documents."""
    current: Any = doc
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _candidates(stored: Any) -> list[Any]:
    # Arrays match if any element matches, as in MongoDB.
    return stored if isinstance(stored, list) else [stored]


def _equals(stored: Any, expected: Any) -> bool:
    if stored is _MISSING:
        return expected is None
    if isinstance(expected, list):
        return stored == expected
    return any(item == _cast(expected, item) for item in _candidates(stored))


def _compare(stored: Any, expected: Any, op: str) -> bool:
    if stored is _MISSING or stored is None:
        return False
    for item in _candidates(stored):
        other = _cast(expected, item)
        try:
            if op == "$gt" and item > other:
                return True
            if op == "$gte" and item >= other:
                return True
            if op == "$lt" and item < other:
                return True
            if op == "$lte" and item <= other:
                return True
        except TypeError:
            continue
    return False


def _angular_distance(lng1: float, lat1: float, lng2: float, lat2: float) -> float:
    """Great-circle distance in radians (haversine)."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = phi2 - phi1
    dlmb = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * math.asin(min(1.0, math.sqrt(a)))


def _within_sphere(stored: Any, spec: dict[str, Any]) -> bool:
    if "$centerSphere" not in spec:
        raise ValidationError("Only $centerSphere is supported in $geoWithin")
    (center_lng, center_lat), radius = spec["$centerSphere"]
    coords = stored.get("coordinates") if isinstance(stored, dict) else stored
    if not isinstance(coords, (list, tuple)) or len(coords) != 2:
        return False
    lng, lat = coords
    return _angular_distance(center_lng, center_lat, lng, lat) <= radius


def _match_operators(stored: Any, operators: dict[str, Any]) -> bool:
    for op, expected in operators.items():
        if op in ("$gt", "$gte", "$lt", "$lte"):
            if not _compare(stored, expected, op):
                return False
        elif op == "$in":
            options = expected if isinstance(expected, list) else [expected]
            if not any(_equals(stored, option) for option in options):
                return False
        elif op == "$ne":
            if _equals(stored, expected):
                return False
        elif op == "$geoWithin":
            if stored is _MISSING or not _within_sphere(stored, expected):
                return False
        else:
            raise ValidationError(f"Unsupported query operator {op}")
    return True


def matches(doc: dict[str, Any], filters: dict[str, Any] | None) -> bool:
    """Does a document satisfy a filter?"""
    for key, condition in (filters or {}).items():
        stored = _resolve(doc, key)
        
        if isinstance(condition, dict) and condition:
            if all(k.startswith("$") for k in condition):
                if not _match_operators(stored, condition):
                    return False
            elif not isinstance(stored, dict) or not matches(stored, condition):
                return False
        elif not _equals(stored, condition):
            return False
    return True


def _type_rank(value: Any) -> int:
    # BSON comparison order: numbers, strings, objects, arrays, booleans, dates
    if isinstance(value, bool):
        return 5
    if isinstance(value, (int, float)):
        return 1
    if isinstance(value, str):
        return 2
    if isinstance(value, dict):
        return 3
    if isinstance(value, list):
        return 4
    if isinstance(value, datetime):
        return 6
    return 7


def _sort_key(value: Any) -> tuple[int, Any]:
    """Total-order key, so mixed types and embedded documents still sort."""
    rank = _type_rank(value)
    if rank == 3:
        return rank, tuple((k, _sort_key(v)) for k, v in value.items())
    if rank == 4:
        return rank, tuple(_sort_key(v) for v in value)
    if rank == 7:
        return rank, repr(value)
    return rank, value


def _sort(docs: list[dict[str, Any]], sort: SortSpec) -> list[dict[str, Any]]:
    # Stable sorts applied from the least significant key.
    for field, direction in reversed(sort):
        def key(doc: dict[str, Any], field: str = field) -> tuple[bool, Any]:
            value = _resolve(doc, field)
            missing = value is _MISSING or value is None
            return (missing, None if missing else _sort_key(value))
        
        present = [d for d in docs if not key(d)[0]]
        absent = [d for d in docs if key(d)[0]]
        present.sort(key=lambda d: key(d)[1], reverse=direction < 0)
        docs = present + absent
    return docs


def _project(doc: dict[str, Any], fields: list[str]) -> dict[str, Any]:
    if all(f.startswith("-") for f in fields):
        excluded = {f[1:] for f in fields}
        return {k: v for k, v in doc.items() if k not in excluded}
    return {k: v for k, v in doc.items() if k == "_id" or k in fields}


# =============================================================================
# In-Memory Metadata Storage
# =============================================================================


class InMemoryMetadataStorage(MetadataStorage):
    """In-memory document storage for development."""
    
    def __init__(self):
        self._data: dict[str, dict[str, dict[str, Any]]] = {}
    
    async def save(self, collection: str, id: str, data: dict[str, Any]) -> dict[str, Any]:
        doc = {**copy.deepcopy(data), "_id": id}
        self._data.setdefault(collection, {})[id] = doc
        return copy.deepcopy(doc)
    
    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        doc = self._data.get(collection, {}).get(id)
        return copy.deepcopy(doc) if doc is not None else None
    
    async def find(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int | None = None,
        fields: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        results = [d for d in self._data.get(collection, {}).values() if matches(d, filters)]
        
        if sort:
            results = _sort(results, sort)
        
        end = None if limit is None else skip + limit
        results = results[skip:end]
        
        if fields:
            results = [_project(d, fields) for d in results]
        
        return copy.deepcopy(results)
    
    async def count(self, collection: str, filters: dict[str, Any] | None = None) -> int:
        return sum(1 for d in self._data.get(collection, {}).values() if matches(d, filters))
    
    async def update_where(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
    ) -> dict[str, Any] | None:
        # No await between match and write, so this is atomic on the event loop.
        for doc in self._data.get(collection, {}).values():
            if matches(doc, filters):
                _apply_updates(doc, updates)
                return copy.deepcopy(doc)
        return None
    
    async def update_many(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
    ) -> int:
        updated = 0
        for doc in self._data.get(collection, {}).values():
            if matches(doc, filters):
                _apply_updates(doc, updates)
                updated += 1
        return updated

    async def delete_where(self, collection: str, filters: dict[str, Any]) -> bool:
        docs = self._data.get(collection, {})
        for id, doc in docs.items():
            if matches(doc, filters):
                del docs[id]
                return True
        return False

    async def delete_many(self, collection: str, filters: dict[str, Any]) -> int:
        docs = self._data.get(collection, {})
        doomed = [id for id, doc in docs.items() if matches(doc, filters)]
        for id in doomed:
            del docs[id]
        return len(doomed)


def _apply_updates(doc: dict[str, Any], updates: dict[str, Any]) -> None:
    for key, value in updates.items():
        if key == "$set":
            doc.update(copy.deepcopy(value))
        elif key == "$push":
            for field, item in value.items():
                doc.setdefault(field, []).append(copy.deepcopy(item))
        elif key == "$addToSet":
            for field, item in value.items():
                existing = doc.setdefault(field, [])
                if item not in existing:
                    existing.append(copy.deepcopy(item))
        elif key == "$pull":
            for field, item in value.items():
                doc[field] = [x for x in doc.get(field, []) if x != item]
        else:
            doc[key] = copy.deepcopy(value)
    doc["updatedAt"] = utc_now()


# =============================================================================
# Factory
# =============================================================================


def create_local_storage() -> StorageProvider:
    """Create a StorageProvider with local implementations."""
    return StorageProvider(metadata=InMemoryMetadataStorage())
