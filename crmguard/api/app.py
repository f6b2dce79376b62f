"""
FastAPI application exposing the authorization core.

Remote guard surfaces (the CRM frontend, domain services) call this to
resolve the current actor and ask for decisions, instead of re-deriving
tenant or role rules locally.

Run with:
    uvicorn crmguard.api.app:app --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from crmguard.api.routes import router
from crmguard.auth.guards import Guard
from crmguard.auth.policies import AuthzRuntime
from crmguard.auth.resolver import PermissionCache
from crmguard.config import get_settings
from crmguard.config_loader import GrantLoader
from crmguard.core.events import EventBus
from crmguard.integrations.sentry import init_sentry
from crmguard.services.audit import AuditService
from crmguard.storage import MetadataPermissionStore, create_local_storage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup app resources."""
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    
    if init_sentry():
        logger.info("Sentry error tracking enabled")
    
    # Storage and the dynamic permission store
    storage = create_local_storage()
    store = MetadataPermissionStore(storage)
    if settings.grants_dir:
        count = await GrantLoader(store).load_dir(settings.grants_dir)
        logger.info(f"Seeded {count} permission grants from {settings.grants_dir}")
    
    # Audit sink
    bus = EventBus()
    audit = AuditService(storage)
    audit.attach(bus)
    
    app.state.audit = audit
    app.state.authz = AuthzRuntime(
        cache=PermissionCache(),
        guard=Guard(bus),
        store=store,
        timeout=settings.permission_fetch_timeout_seconds,
    )
    
    logger.info(f"crmguard API starting in {settings.environment} mode")
    
    yield
    
    logger.info("crmguard API shutting down")


app = FastAPI(
    title="crmguard",
    description="Role-based access control and tenant isolation for the CRM",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(router)


@app.get("/health")
async def health():
    return {"status": "ok"}
