"""
Role-permission queries.

Pure functions over the static role table. No side effects, safe to call
from anywhere.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Iterable

from crmguard.auth.catalog import Permission, Role, permissions_for_role
from crmguard.auth.errors import PermissionDenied


def has_permission(role: Role | str | None, permission: Permission | str) -> bool:
    """
    Check if a role holds a permission.

    Permission strings outside the catalog are never held.
    """
    parsed = Permission.parse(permission)
    if parsed is None:
        return False
    return parsed in permissions_for_role(role)


def has_any_permission(role: Role | str | None, permissions: Iterable[Permission | str]) -> bool:
    """Check if a role holds ANY of the permissions."""
    return any(has_permission(role, p) for p in permissions)


def has_all_permissions(role: Role | str | None, permissions: Iterable[Permission | str]) -> bool:
    """Check if a role holds ALL of the permissions (True for an empty list)."""
    return all(has_permission(role, p) for p in permissions)


def assert_permission(role: Role | str | None, permission: Permission | str) -> None:
    """
    Raise if a role doesn't hold a permission.

    Usage:
        assert_permission(actor.role, Permission.USER_DELETE)  # raises PermissionDenied
    """
    if not has_permission(role, permission):
        raise PermissionDenied(role, permission)


# =============================================================================
# Guard projection
# =============================================================================


# Guard flag -> catalog entry it is derived from
GUARD_FLAGS: dict[str, Permission] = {
    "can_create": Permission.USER_CREATE,
    "can_edit": Permission.USER_EDIT,
    "can_delete": Permission.USER_DELETE,
    "can_manage_roles": Permission.USER_MANAGE_ROLES,
    "can_reset_password": Permission.USER_RESET_PASSWORD,
    "can_view_list": Permission.USER_LIST,
}


@dataclass(frozen=True)
class GuardResult:
    """
    Named capability flags for guard surfaces.

    Computed once per role (or per actor) so a render or request doesn't
    repeat catalog lookups for every control.
    """

    can_create: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_manage_roles: bool = False
    can_reset_password: bool = False
    can_view_list: bool = False

    @property
    def has_any_permission(self) -> bool:
        return any(getattr(self, f.name) for f in fields(self))

    def merged(self, granted: Iterable[Permission | str]) -> GuardResult:
        """Return a copy with flags switched on for any extra granted permission."""
        extra = {Permission.parse(p) for p in granted} - {None}
        return GuardResult(**{
            name: getattr(self, name) or permission in extra
            for name, permission in GUARD_FLAGS.items()
        })

    def to_dict(self) -> dict[str, bool]:
        result = {f.name: getattr(self, f.name) for f in fields(self)}
        result["has_any_permission"] = self.has_any_permission
        return result


def role_permission_guard(role: Role | str | None) -> GuardResult:
    """Materialize the guard flags for a role from the static table."""
    return GuardResult(**{
        name: has_permission(role, permission)
        for name, permission in GUARD_FLAGS.items()
    })
