"""
Authorization errors.

Denial is normally a boolean. These are raised only where a caller has
asked to abort rather than branch.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from crmguard.core.utils import utc_now


class AuthorizationError(Exception):
    """Base exception for authorization errors."""
    pass


class PermissionDenied(AuthorizationError):
    """
    An actor lacks a permission it was required to hold.

    Recoverable: catch at a boundary (form submit, route handler) and show
    the user a message.
    """

    def __init__(
        self,
        role: Any,
        permission: Any,
        actor_id: str | None = None,
        tenant_id: str | None = None,
    ):
        self.role = getattr(role, "value", role)
        self.permission = getattr(permission, "value", permission)
        self.actor_id = actor_id
        self.tenant_id = tenant_id
        self.timestamp: datetime = utc_now()
        super().__init__(
            f"Permission denied: role '{self.role}' does not have '{self.permission}'"
        )


class ActionDenied(PermissionDenied):
    """An actor may not perform an action against a target."""

    def __init__(
        self,
        role: Any,
        action: Any,
        target_role: Any,
        target_tenant_id: str | None,
        actor_id: str | None = None,
        tenant_id: str | None = None,
    ):
        action_value = getattr(action, "value", action)
        self.action = action_value
        self.target_role = getattr(target_role, "value", target_role)
        self.target_tenant_id = target_tenant_id
        super().__init__(
            role,
            f"action:{action_value}",
            actor_id=actor_id,
            tenant_id=tenant_id,
        )


class ActorStateError(AuthorizationError, ValueError):
    """Actor fields disagree with each other (e.g. super-admin with a tenant)."""
    pass


class NotAuthenticated(AuthorizationError):
    """No session is available to resolve an actor from."""
    pass
