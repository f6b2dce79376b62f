"""
Audit Service.

Records authorization denials. The shape of an audit entry is the contract
with whatever reads the audit log; the authorization core only emits the
`permission.denied` event.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel

from crmguard.core.events import Event
from crmguard.core.utils import generate_id
from crmguard.services.base import Service
from crmguard.storage.base import Collections, MetadataStorage

logger = logging.getLogger(__name__)


class AuditEntry(BaseModel):
    """One denial, as written to the audit log."""
    
    id: str
    actor_id: str | None
    role: str
    tenant_id: str | None
    denied_permission: str
    timestamp: str
    
    # Present for action denials
    action: str | None = None
    target_role: str | None = None
    target_tenant_id: str | None = None


class AuditService(Service):
    """Writes every permission.denied event into the audit_logs collection."""
    
    @property
    def service_id(self) -> str:
        return "audit"
    
    @property
    def subscribes_to(self) -> list[str]:
        return ["permission.denied"]
    
    def __init__(self, metadata: MetadataStorage):
        self.metadata = metadata
    
    async def handle(self, event: Event) -> list[Event]:
        payload = event.payload
        entry = AuditEntry(
            id=generate_id("audit"),
            actor_id=payload.get("actor_id"),
            role=str(payload.get("role")),
            tenant_id=payload.get("tenant_id"),
            denied_permission=str(payload.get("denied_permission")),
            timestamp=payload.get("timestamp") or event.timestamp.isoformat(),
            action=payload.get("action"),
            target_role=payload.get("target_role"),
            target_tenant_id=payload.get("target_tenant_id"),
        )
        await self.metadata.save(Collections.AUDIT_LOGS, entry.id, entry.model_dump())
        logger.debug(f"Audit entry {entry.id}: {entry.denied_permission} denied to {entry.actor_id}")
        return []
    
    async def entries(
        self,
        tenant_id: str | None = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """The most recent stored entries, newest first, optionally for one tenant."""
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        filters = {"tenant_id": tenant_id} if tenant_id else None
        return await self.metadata.query(
            Collections.AUDIT_LOGS,
            filters,
            limit=limit,
            order_by="timestamp",
            descending=True,
        )
