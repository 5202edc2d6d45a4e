"""
Storage abstractions.

MetadataStorage → MongoDB in deployment, in-memory locally.
"""

from venuefinder.storage.base import (
    MetadataStorage,
    StorageProvider,
    Collections,
    SortSpec,
)
from venuefinder.storage.local import create_local_storage, InMemoryMetadataStorage

__all__ = [
    "MetadataStorage",
    "StorageProvider",
    "Collections",
    "SortSpec",
    "create_local_storage",
    "InMemoryMetadataStorage",
]
