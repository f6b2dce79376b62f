"""
Actor and target - the "who" and the "on whom" of each check.

This is the lightweight object passed to guard surfaces.
It contains everything needed to make authorization decisions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from pydantic import BaseModel

from crmguard.auth.catalog import Permission, Role, permissions_for_role
from crmguard.auth.errors import ActorStateError, PermissionDenied
from crmguard.auth.queries import GuardResult, role_permission_guard


@dataclass(frozen=True)
class ActorIdentity:
    """What the permission cache is keyed on. A change in any field is a new identity."""

    actor_id: str
    role: str
    tenant_id: str | None


class SessionClaims(BaseModel):
    """
    What the auth layer hands us for the current session.

    Treated as ground truth; token signatures and expiry are checked
    before this is built (see session.py).
    """

    actor_id: str
    role: str
    tenant_id: str | None = None
    is_super_admin: bool = False

    @property
    def identity(self) -> ActorIdentity:
        return ActorIdentity(self.actor_id, self.role, self.tenant_id)


@dataclass(frozen=True)
class Actor:
    """
    The identity performing an action.

    Usage:
        if actor.can(Permission.USER_EDIT):
            ...
        actor.assert_permission("user:delete")  # raises PermissionDenied
    """

    actor_id: str
    role: Role | str
    tenant_id: str | None
    is_super_admin: bool = False

    # Dynamic overlay from the permission store (additive only)
    permissions: frozenset[Permission] = field(default_factory=frozenset)

    def __post_init__(self):
        parsed = Role.parse(self.role)
        # role, flag and tenant are three views of one fact
        if not ((parsed is Role.SUPER_ADMIN) == self.is_super_admin == (self.tenant_id is None)):
            raise ActorStateError(
                f"Actor {self.actor_id!r} is corrupt: role={getattr(self.role, 'value', self.role)!r}, "
                f"is_super_admin={self.is_super_admin}, tenant_id={self.tenant_id!r}"
            )
        if parsed is not None:
            object.__setattr__(self, "role", parsed)
        object.__setattr__(self, "permissions", frozenset(self.permissions))

    @classmethod
    def from_session(
        cls,
        session: SessionClaims,
        permissions: Iterable[Permission] = (),
    ) -> Actor:
        return cls(
            actor_id=session.actor_id,
            role=session.role,
            tenant_id=session.tenant_id,
            is_super_admin=session.is_super_admin,
            permissions=frozenset(permissions),
        )

    @property
    def role_name(self) -> str:
        return getattr(self.role, "value", self.role)

    @property
    def identity(self) -> ActorIdentity:
        return ActorIdentity(self.actor_id, self.role_name, self.tenant_id)

    @property
    def effective_permissions(self) -> frozenset[Permission]:
        """Static role permissions plus the dynamic overlay."""
        return permissions_for_role(self.role) | self.permissions

    @property
    def guard(self) -> GuardResult:
        """Role guard flags, switched on further by any dynamic grant."""
        return role_permission_guard(self.role).merged(self.permissions)

    def can(self, permission: Permission | str) -> bool:
        parsed = Permission.parse(permission)
        if parsed is None:
            return False
        return parsed in self.effective_permissions

    def can_any(self, *permissions: Permission | str) -> bool:
        return any(self.can(p) for p in permissions)

    def can_all(self, *permissions: Permission | str) -> bool:
        return all(self.can(p) for p in permissions)

    def assert_permission(self, permission: Permission | str) -> None:
        """Raise PermissionDenied (with actor and tenant attached) if not allowed."""
        if not self.can(permission):
            raise PermissionDenied(
                self.role,
                permission,
                actor_id=self.actor_id,
                tenant_id=self.tenant_id,
            )


@dataclass(frozen=True)
class Target:
    """The user record an action is performed against. Built fresh per check."""

    role: Role | str
    tenant_id: str | None

    def __post_init__(self):
        parsed = Role.parse(self.role)
        if parsed is not None:
            object.__setattr__(self, "role", parsed)

    @classmethod
    def of(cls, actor: Actor) -> Target:
        """Target an existing actor (e.g. editing a user who is also logged in)."""
        return cls(role=actor.role, tenant_id=actor.tenant_id)
