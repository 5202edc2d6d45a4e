"""Radius search filters."""

from __future__ import annotations

from typing import Any

from venuefinder.errors import ValidationError

# Earth radius per distance unit
EARTH_RADIUS = {"mi": 3963.0, "km": 6378.0}


def radius_filter(lat: float, lng: float, distance: float, unit: str = "mi") -> dict[str, Any]:
    """
    Filter for venues whose location lies within `distance` of a point.
    
    The radius is expressed in radians (distance / Earth radius), as
    `$centerSphere` expects.
    """
    if unit not in EARTH_RADIUS:
        raise ValidationError(f"Unknown distance unit '{unit}'. Use one of: mi, km")
    if distance < 0:
        raise ValidationError("Distance cannot be negative")
    if not (-90 <= lat <= 90) or not (-180 <= lng <= 180):
        raise ValidationError("Coordinates out of range")
    
    radius = distance / EARTH_RADIUS[unit]
    return {"location": {"$geoWithin": {"$centerSphere": [[lng, lat], radius]}}}
