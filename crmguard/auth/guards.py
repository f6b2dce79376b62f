"""
Guard surfaces - where authorization decisions are applied.

Two shapes:
- GuardDecision: a tri-state answer for UI-style consumers that must tell
  "denied" apart from "not known yet".
- Guard: an async checker that reports denials to the audit sink before
  raising, for service code that must abort on denial.
"""

from __future__ import annotations

import logging
from enum import Enum

from crmguard.auth.actor import Actor, Target
from crmguard.auth.authorizer import Action, Authorizer
from crmguard.auth.catalog import Permission
from crmguard.auth.errors import ActionDenied, PermissionDenied
from crmguard.core.events import EventBus, get_event_bus, permission_denied

logger = logging.getLogger(__name__)


class GuardDecision(str, Enum):
    """
    Outcome of a guard check.

    PENDING is neither allowed nor denied: hide/disable the control, but
    don't show an "access denied" notice yet.
    """

    ALLOW = "allow"
    DENY = "deny"
    PENDING = "pending"

    @classmethod
    def of(cls, allowed: bool) -> GuardDecision:
        return cls.ALLOW if allowed else cls.DENY

    @property
    def allowed(self) -> bool:
        return self is GuardDecision.ALLOW

    @property
    def denied(self) -> bool:
        return self is GuardDecision.DENY


class Guard:
    """
    Checks an actor and, on denial, reports to the audit sink and raises.

    Usage:
        guard = Guard(bus)
        await guard.require(actor, Permission.USER_DELETE)
        await guard.require_action(actor, Target("user", "tenant-1"), Action.DELETE)
    """

    def __init__(self, bus: EventBus | None = None, authorizer: Authorizer | None = None):
        self.bus = bus or get_event_bus()
        self.authorizer = authorizer or Authorizer()

    def can(self, actor: Actor, permission: Permission | str) -> bool:
        return actor.can(permission)

    def can_perform(self, actor: Actor, target: Target, action: Action | str) -> bool:
        return self.authorizer.can_perform(actor, target, action)

    async def require(self, actor: Actor, permission: Permission | str) -> Actor:
        """Return the actor if allowed, otherwise report and raise PermissionDenied."""
        try:
            actor.assert_permission(permission)
        except PermissionDenied as denial:
            await self.report(denial)
            raise
        return actor

    async def require_action(self, actor: Actor, target: Target, action: Action | str) -> Actor:
        """Return the actor if allowed, otherwise report and raise ActionDenied."""
        if self.can_perform(actor, target, action):
            return actor

        denial = ActionDenied(
            actor.role,
            action,
            target.role,
            target.tenant_id,
            actor_id=actor.actor_id,
            tenant_id=actor.tenant_id,
        )
        await self.report(denial)
        raise denial

    async def report(self, denial: PermissionDenied) -> None:
        """Emit a permission.denied event. Sink failures never reach the caller."""
        logger.info(
            f"Denied '{denial.permission}' to actor {denial.actor_id} "
            f"(role={denial.role}, tenant={denial.tenant_id})"
        )

        extra = {}
        if isinstance(denial, ActionDenied):
            extra = {
                "action": denial.action,
                "target_role": denial.target_role,
                "target_tenant_id": denial.target_tenant_id,
            }

        await self.bus.publish(permission_denied(
            actor_id=denial.actor_id,
            role=denial.role,
            tenant_id=denial.tenant_id,
            denied_permission=denial.permission,
            timestamp=denial.timestamp,
            **extra,
        ))
