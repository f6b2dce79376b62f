"""
Dynamic permission store.

Fine-grained grants kept in the database, scoped to one actor in one
tenant. They can only add to what the static role table gives.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from crmguard.storage.base import Collections, MetadataStorage


class PermissionStore(ABC):
    """Source of per-actor permission grants. May be slow, empty, or failing."""
    
    @abstractmethod
    async def fetch_permissions(self, actor_id: str, tenant_id: str | None) -> set[str]:
        """Return the raw permission strings granted to an actor."""
        pass


class MetadataPermissionStore(PermissionStore):
    """
    Reads grants from the `user_permissions` collection.
    
    Documents look like:
        {"actor_id": "user_1", "tenant_id": "tenant-1", "permissions": ["user:create"]}
    Every matching document contributes.
    """
    
    def __init__(self, metadata: MetadataStorage, page_size: int = 500):
        self.metadata = metadata
        self.page_size = page_size
    
    async def fetch_permissions(self, actor_id: str, tenant_id: str | None) -> set[str]:
        granted: set[str] = set()
        offset = 0
        while True:
            docs = await self.metadata.query(
                Collections.USER_PERMISSIONS,
                {"actor_id": actor_id, "tenant_id": tenant_id},
                limit=self.page_size,
                offset=offset,
            )
            for doc in docs:
                granted.update(str(p) for p in doc.get("permissions") or [])
            if len(docs) < self.page_size:
                return granted
            offset += self.page_size
    
    async def grant(self, actor_id: str, tenant_id: str | None, permissions: list[str]) -> str:
        """Store a grant document; returns its id."""
        grant_id = f"{tenant_id or 'platform'}:{actor_id}"
        existing = await self.metadata.get(Collections.USER_PERMISSIONS, grant_id)
        merged = sorted(set(existing.get("permissions", []) if existing else []) | set(permissions))
        await self.metadata.save(
            Collections.USER_PERMISSIONS,
            grant_id,
            {"actor_id": actor_id, "tenant_id": tenant_id, "permissions": merged},
        )
        return grant_id
