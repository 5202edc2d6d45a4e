"""
Ownership guard.

Decides whether a principal may act on an already-fetched resource by
comparing the resource's owner to the owner the principal acts for.
Platform admins bypass the comparison.

`load_owned` wraps the guard with the lookups around it, always in the
same order:

    malformed id      → InvalidIdError (400)
    missing resource  → ResourceNotFoundError (404)
    someone else's    → NotOwnerError (403)
    staff, venue not in allowlist → VenueAccessDeniedError (403)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from venuefinder.auth.principal import Principal
from venuefinder.core.utils import is_valid_id
from venuefinder.errors import (
    InvalidIdError,
    NotOwnerError,
    ResourceNotFoundError,
    VenueAccessDeniedError,
)
from venuefinder.storage import Collections, StorageProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Decision:
    """Outcome of an ownership check."""
    
    allowed: bool
    reason: str | None = None
    
    def __bool__(self) -> bool:
        return self.allowed
    
    @classmethod
    def allow(cls) -> Decision:
        return cls(True)
    
    @classmethod
    def deny(cls, reason: str = "not_owner") -> Decision:
        return cls(False, reason)


def resource_owner(resource: dict[str, Any], owner_field: str = "owner") -> str | None:
    """
    Owner of a resource: its own owner field, or its populated venue's owner.
    """
    owner = resource.get(owner_field)
    if owner is None and isinstance(resource.get("venue"), dict):
        owner = resource["venue"].get("owner")
    return str(owner) if owner is not None else None


def authorize(principal: Principal, resource: dict[str, Any], owner_field: str = "owner") -> Decision:
    """
    Allow iff the principal is an admin or acts for the resource's owner.
    """
    if principal.is_admin:
        return Decision.allow()
    
    owner = resource_owner(resource, owner_field)
    acting = principal.acting_owner_id
    if owner is not None and acting is not None and owner == acting:
        return Decision.allow()
    
    return Decision.deny()


def require_venue_access(principal: Principal, venue_id: str | None) -> None:
    """Owners reach every venue; staff only those assigned to them."""
    if not principal.has_venue(venue_id):
        logger.info(f"Staff {principal.id} has no access to venue {venue_id}")
        raise VenueAccessDeniedError()


# =============================================================================
# Fetch + Guard
# =============================================================================


@dataclass
class OwnedResource:
    """A fetched resource that passed the ownership guard."""
    
    data: dict[str, Any]
    owner_id: str | None
    venue_id: str | None
    owner_field: str = "owner"
    via_venue: bool = False
    
    @property
    def id(self) -> str:
        return self.data["_id"]
    
    @property
    def ownership_filter(self) -> dict[str, Any]:
        """Filter for a mutation that only applies if ownership is unchanged."""
        if self.via_venue:
            return {"_id": self.id, "venue": self.venue_id}
        return {"_id": self.id, self.owner_field: self.data.get(self.owner_field)}


async def fetch_or_404(
    storage: StorageProvider,
    collection: str,
    resource_id: str | None,
    label: str,
) -> dict[str, Any]:
    """Validate an ID and fetch the document, without any ownership check."""
    if not is_valid_id(resource_id):
        logger.info(f"Invalid {label} ID: {resource_id}")
        raise InvalidIdError(label, resource_id)
    
    resource = await storage.metadata.get(collection, resource_id)
    if resource is None:
        logger.info(f"{label} not found with id: {resource_id}")
        raise ResourceNotFoundError(label, resource_id)
    return resource


async def load_owned(
    storage: StorageProvider,
    collection: str,
    resource_id: str | None,
    principal: Principal,
    *,
    label: str,
    owner_field: str = "owner",
    via_venue: bool = False,
) -> OwnedResource:
    """
    Fetch a resource and check the principal may act on it.
    
    Args:
        collection: Where the resource lives
        resource_id: ID from the request path
        label: Human name for messages ("Venue", "Offer", ...)
        owner_field: Field naming the owner ("owner", or "user" for reviews)
        via_venue: Owner is found one hop away, on the referenced venue
    """
    resource = await fetch_or_404(storage, collection, resource_id, label)
    
    venue_id = resource["_id"] if collection == Collections.VENUES else resource.get("venue")
    
    subject = resource
    if via_venue:
        venue = await storage.metadata.get(Collections.VENUES, venue_id) if venue_id else None
        subject = {"venue": venue or {}}
    
    decision = authorize(principal, subject, owner_field)
    if not decision:
        logger.info(
            f"Unauthorized: {principal.kind.value} {principal.id} ({principal.role}) "
            f"does not own {label} {resource_id}"
        )
        raise NotOwnerError(label)
    
    require_venue_access(principal, venue_id)
    
    logger.debug(f"Access granted: {principal.id} authorized for {label} {resource_id}")
    return OwnedResource(
        data=resource,
        owner_id=resource_owner(subject, owner_field),
        venue_id=venue_id,
        owner_field=owner_field,
        via_venue=via_venue,
    )
