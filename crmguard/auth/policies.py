"""
Policies - the route-level guard surface.

Just use: `actor: Actor = Depends(require("user:create"))`

Design:
- `require()` returns a FastAPI Depends that resolves to Actor
- It decodes the session from the bearer token, resolves the actor
  (static table + dynamic grants), and checks the policy
- If denied, the denial is reported to the audit sink and 403 is raised
- No token / bad token is 401
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from crmguard.auth.actor import Actor, SessionClaims
from crmguard.auth.catalog import Permission
from crmguard.auth.errors import ActorStateError, PermissionDenied
from crmguard.auth.guards import Guard
from crmguard.auth.modules import can_access_module
from crmguard.auth.resolver import ActorContextResolver, PermissionCache
from crmguard.auth.session import TokenError, TokenExpiredError, decode_session_token
from crmguard.integrations.sentry import set_tag, set_user
from crmguard.storage.permissions import PermissionStore


# =============================================================================
# Runtime wiring (lives on app.state.authz)
# =============================================================================


@dataclass
class AuthzRuntime:
    """Process-wide collaborators shared by every request."""

    cache: PermissionCache
    guard: Guard
    store: PermissionStore | None = None
    timeout: float | None = None

    def resolver(self) -> ActorContextResolver:
        return ActorContextResolver(store=self.store, cache=self.cache, timeout=self.timeout)


def get_runtime(request: Request) -> AuthzRuntime:
    return request.app.state.authz


# =============================================================================
# Session and actor dependencies
# =============================================================================


bearer = HTTPBearer(auto_error=False)


async def get_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> SessionClaims:
    """Decode the bearer token into session claims."""
    if not credentials:
        raise HTTPException(status_code=401, detail="Authentication required")

    try:
        return decode_session_token(credentials.credentials)
    except TokenExpiredError:
        raise HTTPException(status_code=401, detail="Token has expired")
    except TokenError as e:
        raise HTTPException(status_code=401, detail=str(e))


async def get_resolver(
    runtime: AuthzRuntime = Depends(get_runtime),
    session: SessionClaims = Depends(get_session),
) -> ActorContextResolver:
    resolver = runtime.resolver()
    try:
        resolver.set_session(session)
    except ActorStateError as e:
        raise HTTPException(status_code=401, detail=str(e))
    return resolver


async def get_actor(resolver: ActorContextResolver = Depends(get_resolver)) -> Actor:
    actor = await resolver.resolve()
    set_user(actor.actor_id, tenant_id=actor.tenant_id)
    set_tag("role", actor.role_name)
    return actor


# =============================================================================
# Policy - the core authorization type
# =============================================================================


class Policy:
    """
    A policy that can be checked against an actor.

    Policies are composable:
        require("user:list")                    # Single permission
        require_any("user:edit", "user:manage_roles")  # Any of these
        require("user:edit", "user:reset_password")    # All of these
        require_module("user-management")       # Module access rules
    """

    def __init__(
        self,
        permissions: list[Permission | str] | None = None,
        require_all: bool = True,
        module: str | None = None,
    ):
        self.permissions = permissions or []
        self.require_all_permissions = require_all
        self.module = module

    def check(self, actor: Actor) -> PermissionDenied | None:
        """Return the denial, or None if the actor satisfies the policy."""
        if self.module is not None:
            access = can_access_module(actor, self.module)
            if not access:
                return PermissionDenied(
                    actor.role,
                    f"module:{self.module}",
                    actor_id=actor.actor_id,
                    tenant_id=actor.tenant_id,
                )

        if not self.permissions:
            return None

        if self.require_all_permissions:
            for permission in self.permissions:
                try:
                    actor.assert_permission(permission)
                except PermissionDenied as denial:
                    return denial
            return None

        if actor.can_any(*self.permissions):
            return None
        return PermissionDenied(
            actor.role,
            " | ".join(getattr(p, "value", p) for p in self.permissions),
            actor_id=actor.actor_id,
            tenant_id=actor.tenant_id,
        )


# =============================================================================
# Main Interface
# =============================================================================


def require(*permissions: Permission | str) -> Callable:
    """
    Require permissions to access a route (all must be held).

    Usage:
        @router.delete("/users/{user_id}")
        async def delete_user(
            user_id: str,
            actor: Actor = Depends(require(Permission.USER_DELETE)),
        ):
            ...
    """
    return _create_dependency(Policy(permissions=list(permissions), require_all=True))


def require_any(*permissions: Permission | str) -> Callable:
    """Require ANY of the listed permissions."""
    return _create_dependency(Policy(permissions=list(permissions), require_all=False))


def require_module(module: str) -> Callable:
    """Require access to a module (see modules.py)."""
    return _create_dependency(Policy(module=module))


def _create_dependency(policy: Policy) -> Callable:
    """Create a FastAPI Depends from a policy."""

    async def dependency(
        actor: Actor = Depends(get_actor),
        runtime: AuthzRuntime = Depends(get_runtime),
    ) -> Actor:
        denial = policy.check(actor)
        if denial is not None:
            await runtime.guard.report(denial)
            raise HTTPException(status_code=403, detail=str(denial))
        return actor

    return dependency
