# =============================================================================
# Authorization API Routes
# =============================================================================
#
# Endpoints:
#   GET  /authz/me                   - Resolved actor, guard flags, state
#   POST /authz/permissions/check    - Does the caller hold a permission?
#   POST /authz/actions/check        - May the caller act on a target user?
#   GET  /authz/modules/{name}       - May the caller open a module?
#   POST /authz/logout               - Drop the caller's cached permissions
#   POST /authz/invalidate/{actor}   - Drop another actor's cached permissions
#   GET  /authz/audit                - Recorded denials (reports module)
#
# =============================================================================

import logging

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel

from crmguard.auth.actor import Actor, Target
from crmguard.auth.authorizer import is_platform_actor
from crmguard.auth.catalog import Permission
from crmguard.auth.modules import can_access_module
from crmguard.auth.policies import (
    AuthzRuntime,
    get_actor,
    get_resolver,
    get_runtime,
    require,
    require_module,
)
from crmguard.auth.resolver import ActorContextResolver
from crmguard.core.events import permissions_invalidated

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/authz", tags=["authz"])


# =============================================================================
# Request/Response Models
# =============================================================================

class ActorResponse(BaseModel):
    actor_id: str
    role: str
    tenant_id: str | None
    is_super_admin: bool
    permissions: list[str]
    guard: dict[str, bool]
    state: str


class PermissionCheckRequest(BaseModel):
    permission: str


class ActionCheckRequest(BaseModel):
    target_role: str
    target_tenant_id: str | None = None
    action: str


class DecisionResponse(BaseModel):
    allowed: bool


class ModuleAccessResponse(BaseModel):
    module: str
    can_access: bool
    reason: str


class InvalidateResponse(BaseModel):
    actor_id: str
    invalidated: bool


# =============================================================================
# Actor
# =============================================================================

@router.get("/me", response_model=ActorResponse)
async def me(resolver: ActorContextResolver = Depends(get_resolver)):
    """
    Resolve the caller.

    `state` is `resolved_static_only` when the dynamic permission store
    could not be reached and only the role table applies.
    """
    actor = await resolver.resolve()
    return ActorResponse(
        actor_id=actor.actor_id,
        role=actor.role_name,
        tenant_id=actor.tenant_id,
        is_super_admin=actor.is_super_admin,
        permissions=sorted(p.value for p in actor.effective_permissions),
        guard=actor.guard.to_dict(),
        state=resolver.state.value,
    )


# =============================================================================
# Checks
# =============================================================================

@router.post("/permissions/check", response_model=DecisionResponse)
async def check_permission(data: PermissionCheckRequest, actor: Actor = Depends(get_actor)):
    return DecisionResponse(allowed=actor.can(data.permission))


@router.post("/actions/check", response_model=DecisionResponse)
async def check_action(
    data: ActionCheckRequest,
    actor: Actor = Depends(get_actor),
    runtime: AuthzRuntime = Depends(get_runtime),
):
    """Ask the authorizer; tenant isolation is decided there, not here."""
    target = Target(role=data.target_role, tenant_id=data.target_tenant_id)
    return DecisionResponse(allowed=runtime.guard.can_perform(actor, target, data.action))


@router.get("/modules/{module_name}", response_model=ModuleAccessResponse)
async def check_module(module_name: str, actor: Actor = Depends(get_actor)):
    access = can_access_module(actor, module_name)
    return ModuleAccessResponse(
        module=module_name,
        can_access=access.can_access,
        reason=access.reason,
    )


# =============================================================================
# Cache invalidation
# =============================================================================

@router.post("/logout", response_model=InvalidateResponse)
async def logout(
    resolver: ActorContextResolver = Depends(get_resolver),
    runtime: AuthzRuntime = Depends(get_runtime),
):
    """Forget the caller's cached grants. Token revocation is the auth layer's job."""
    session = resolver.session
    resolver.logout()
    await runtime.guard.bus.publish(
        permissions_invalidated(session.actor_id, "logout", tenant_id=session.tenant_id)
    )
    return InvalidateResponse(actor_id=session.actor_id, invalidated=True)


@router.post("/invalidate/{actor_id}", response_model=InvalidateResponse)
async def invalidate(
    actor_id: str,
    actor: Actor = Depends(require(Permission.ROLE_MANAGE)),
    runtime: AuthzRuntime = Depends(get_runtime),
):
    """
    Call after changing another actor's role or grants.

    Tenant admins only reach actors currently signed in to their own
    tenant; anyone else is reported as not invalidated.
    """
    current = runtime.cache.identity_of(actor_id)
    platform = is_platform_actor(actor.role, actor.tenant_id)
    if not platform and (current is None or current.tenant_id != actor.tenant_id):
        logger.info(f"{actor.actor_id} may not invalidate {actor_id} outside tenant {actor.tenant_id}")
        return InvalidateResponse(actor_id=actor_id, invalidated=False)

    runtime.cache.invalidate(actor_id)
    await runtime.guard.bus.publish(
        permissions_invalidated(
            actor_id,
            f"invalidated by {actor.actor_id}",
            tenant_id=current.tenant_id if current else None,
        )
    )
    return InvalidateResponse(actor_id=actor_id, invalidated=True)


# =============================================================================
# Audit
# =============================================================================

@router.get("/audit")
async def audit_log(
    request: Request,
    limit: int = Query(100, ge=1, le=1000),
    actor: Actor = Depends(require_module("reports")),
):
    """Denials recorded for the caller's tenant."""
    entries = await request.app.state.audit.entries(tenant_id=actor.tenant_id, limit=limit)
    return {"entries": entries, "count": len(entries)}
