"""
Tenant-scoped action authorizer.

The one place that decides whether an actor may act on a target user.
Every call site goes through `can_perform_action` (or the `Authorizer`
wrapper); nothing else compares tenant ids.

Evaluation order is the tie-break policy:
1. Tenant isolation gate (skipped only for a platform-wide super-admin)
2. Super-admin fast path
3. Admin may not delete another admin
4. Capability-by-role table
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from crmguard.auth.catalog import Role

if TYPE_CHECKING:
    from crmguard.auth.actor import Actor, Target


class Action(str, Enum):
    """Actions an actor can take against a target user."""

    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    RESET_PASSWORD = "reset_password"
    VIEW = "view"

    @classmethod
    def parse(cls, value: Action | str) -> Action | None:
        if isinstance(value, Action):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


# What each role may do to a same-tenant target (after steps 1-3).
# Every role must have an entry; tests enforce it.
ROLE_ACTIONS: dict[Role, frozenset[Action]] = {
    Role.SUPER_ADMIN: frozenset(Action),
    Role.ADMIN: frozenset(Action),
    Role.MANAGER: frozenset({Action.EDIT, Action.RESET_PASSWORD}),
    Role.USER: frozenset({Action.EDIT}),
    Role.ENGINEER: frozenset({Action.EDIT}),
    Role.CUSTOMER: frozenset(),
    Role.GUEST: frozenset(),
}


def is_platform_actor(role: Role | str | None, tenant_id: str | None) -> bool:
    """A super-admin is platform-wide only if both signals agree."""
    return Role.parse(role) is Role.SUPER_ADMIN and tenant_id is None


def can_perform_action(
    actor_role: Role | str | None,
    actor_tenant_id: str | None,
    target_role: Role | str | None,
    target_tenant_id: str | None,
    action: Action | str,
) -> bool:
    """
    Decide whether an actor may perform an action against a target.

    Denial is a normal return value; this never raises.

    Args:
        actor_role: Role of the actor
        actor_tenant_id: Actor's tenant (None only for a super-admin)
        target_role: Role of the user being acted on
        target_tenant_id: Tenant that owns the target
        action: One of Action (unknown strings are denied)

    Returns:
        True if the action is allowed
    """
    role = Role.parse(actor_role)
    parsed_action = Action.parse(action)
    if role is None or parsed_action is None:
        return False

    platform = is_platform_actor(role, actor_tenant_id)

    # 1. Tenant isolation
    if not platform and actor_tenant_id != target_tenant_id:
        return False

    # 2. Super-admin has no elevation restriction, even against other super-admins
    if role is Role.SUPER_ADMIN:
        return True

    # 3. Admins can't delete other admins (tenant lockout)
    if (
        role is Role.ADMIN
        and parsed_action is Action.DELETE
        and Role.parse(target_role) is Role.ADMIN
    ):
        return False

    # 4. Capability table
    return parsed_action in ROLE_ACTIONS[role]


class Authorizer:
    """
    Injectable wrapper around `can_perform_action`.

    Services and guard surfaces depend on this rather than comparing
    tenants themselves, so there is exactly one isolation rule.
    """

    def can_perform_action(
        self,
        actor_role: Role | str | None,
        actor_tenant_id: str | None,
        target_role: Role | str | None,
        target_tenant_id: str | None,
        action: Action | str,
    ) -> bool:
        return can_perform_action(
            actor_role, actor_tenant_id, target_role, target_tenant_id, action
        )

    def can_perform(self, actor: Actor, target: Target, action: Action | str) -> bool:
        """Same decision, taking resolved Actor/Target values."""
        return self.can_perform_action(
            actor.role, actor.tenant_id, target.role, target.tenant_id, action
        )

    def allowed_actions(self, actor: Actor, target: Target) -> set[Action]:
        """All actions the actor may take against the target."""
        return {a for a in Action if self.can_perform(actor, target, a)}
