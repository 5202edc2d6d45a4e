"""
Storage abstraction layer.

All persistence goes through these interfaces so the document database
can be swapped (in-memory for development and tests, MongoDB in
deployment) without changing route or policy code.

Filters use the MongoDB query dialect the query translator emits:
plain equality, nested documents, and `$gt`/`$gte`/`$lt`/`$lte`/`$in`/`$ne`
and `$geoWithin` operators.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

# (field, direction) pairs; direction is 1 for ascending, -1 for descending
SortSpec = list[tuple[str, int]]


class MetadataStorage(ABC):
    """
    Storage for structured documents (venues, offers, staff, ...).
    
    Every document carries its ID under "_id".
    """
    
    @abstractmethod
    async def save(self, collection: str, id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Insert or replace a document, return the stored copy."""
        pass
    
    @abstractmethod
    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        """Get a document by ID."""
        pass
    
    @abstractmethod
    async def find(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int | None = None,
        fields: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Query documents with optional filters, ordering, paging and projection."""
        pass
    
    @abstractmethod
    async def count(self, collection: str, filters: dict[str, Any] | None = None) -> int:
        """Count documents matching filters."""
        pass
    
    @abstractmethod
    async def update_where(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
    ) -> dict[str, Any] | None:
        """
        Atomically update the first document matching filters.
        
        Returns the updated document, or None if nothing matched. Callers
        put the ownership condition in `filters` so the check and the
        write cannot be separated by a concurrent change.
        """
        pass
    
    @abstractmethod
    async def update_many(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
    ) -> int:
        """Update every document matching filters, return how many changed."""
        pass

    @abstractmethod
    async def delete_where(self, collection: str, filters: dict[str, Any]) -> bool:
        """Atomically delete the first document matching filters."""
        pass

    @abstractmethod
    async def delete_many(self, collection: str, filters: dict[str, Any]) -> int:
        """Delete every document matching filters, return how many went."""
        pass

    async def find_one(self, collection: str, filters: dict[str, Any]) -> dict[str, Any] | None:
        """Get the first document matching filters."""
        found = await self.find(collection, filters, limit=1)
        return found[0] if found else None


# =============================================================================
# Storage Provider (dependency injection container)
# =============================================================================


class StorageProvider(BaseModel):
    """
    Container for storage backends.
    
    Initialize once at app startup; routes receive it through a
    dependency and never construct storage themselves.
    """
    
    model_config = {"arbitrary_types_allowed": True}
    
    metadata: MetadataStorage


# =============================================================================
# Collection Names (for MetadataStorage)
# =============================================================================


class Collections:
    """Standard collection names."""
    
    USERS = "users"
    STAFF = "staff"
    VENUES = "venues"
    OFFERS = "offers"
    MENUS = "menus"
    PACKAGES = "packages"
    REVIEWS = "reviews"
    VISITS = "visits"
