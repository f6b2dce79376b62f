"""
Storage abstraction.

The CRM keeps grants and audit entries in its hosted database; the
authorization core only needs document-style access to two collections.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Collections:
    """Collection (table) names used by the authorization core."""
    
    USER_PERMISSIONS = "user_permissions"
    AUDIT_LOGS = "audit_logs"


class MetadataStorage(ABC):
    """Async document storage. Production: the hosted database. Local: in-memory."""
    
    @abstractmethod
    async def save(self, collection: str, id: str, data: dict[str, Any]) -> None:
        """Insert or replace a document."""
        pass
    
    @abstractmethod
    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        pass
    
    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
        offset: int = 0,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        """
        Documents whose fields equal every filter value.
        
        Insertion order unless order_by names a field; ordering is applied
        before offset and limit. A None filter value matches documents
        where that field is None (platform-level rows have no tenant).
        """
        pass
