"""
In-memory storage for development and tests.
"""

from __future__ import annotations

from typing import Any

from crmguard.core.utils import utc_now
from crmguard.storage.base import MetadataStorage


class InMemoryMetadataStorage(MetadataStorage):
    """Dict-of-dicts document store; works without any external services."""
    
    def __init__(self):
        self._data: dict[str, dict[str, dict[str, Any]]] = {}
    
    async def save(self, collection: str, id: str, data: dict[str, Any]) -> None:
        self._data.setdefault(collection, {})[id] = {
            **data,
            "_id": id,
            "_updated_at": utc_now().isoformat(),
        }
    
    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        return self._data.get(collection, {}).get(id)
    
    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
        offset: int = 0,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        docs = list(self._data.get(collection, {}).values())
        if filters:
            docs = [d for d in docs if all(d.get(k) == v for k, v in filters.items())]
        if order_by:
            # Documents missing the field sort below any value; ties keep insertion order,
            # reversed when descending
            if descending:
                docs.reverse()
            docs.sort(key=lambda d: (d.get(order_by) is not None, d.get(order_by)), reverse=descending)
        return docs[offset:offset + limit]


def create_local_storage() -> InMemoryMetadataStorage:
    """Create the storage backend used for local development."""
    return InMemoryMetadataStorage()
