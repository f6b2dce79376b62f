"""
Storage abstractions.

- MetadataStorage → hosted relational database (in-memory for development)
- PermissionStore → per-actor dynamic permission grants
"""

from crmguard.storage.base import MetadataStorage, Collections
from crmguard.storage.local import InMemoryMetadataStorage, create_local_storage
from crmguard.storage.permissions import PermissionStore, MetadataPermissionStore

__all__ = [
    "MetadataStorage",
    "Collections",
    "InMemoryMetadataStorage",
    "create_local_storage",
    "PermissionStore",
    "MetadataPermissionStore",
]
