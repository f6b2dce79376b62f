"""
Roles, permissions, and the static role table.

This defines WHAT each role may do, not HOW we check it.
The actual checking happens in queries.py and authorizer.py.
"""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Coarse-grained role assigned to an actor by the auth layer."""

    SUPER_ADMIN = "super-admin"  # Platform-wide, no owning tenant
    ADMIN = "admin"              # Full control inside one tenant
    MANAGER = "manager"          # Edits users and CRM records
    USER = "user"                # Day-to-day CRM work
    ENGINEER = "engineer"        # Field/support engineer
    CUSTOMER = "customer"        # Portal access for a tenant's customer
    GUEST = "guest"              # Nothing

    @classmethod
    def parse(cls, value: Role | str | None) -> Role | None:
        """Return the matching role, or None for anything unrecognized."""
        if isinstance(value, Role):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class Permission(str, Enum):
    """
    Fine-grained permissions in `resource:action` form.

    This enum is the single source of truth for which actions exist.
    """

    # User management
    USER_LIST = "user:list"
    USER_VIEW = "user:view"
    USER_CREATE = "user:create"
    USER_EDIT = "user:edit"
    USER_DELETE = "user:delete"
    USER_RESET_PASSWORD = "user:reset_password"
    USER_MANAGE_ROLES = "user:manage_roles"

    # Administration
    ROLE_MANAGE = "role:manage"
    PERMISSION_MANAGE = "permission:manage"  # Platform only
    TENANT_MANAGE = "tenant:manage"          # Platform only
    AUDIT_READ = "audit:read"

    # Customers
    CUSTOMER_READ = "customer:read"
    CUSTOMER_CREATE = "customer:create"
    CUSTOMER_UPDATE = "customer:update"
    CUSTOMER_DELETE = "customer:delete"

    # Sales
    SALE_READ = "sale:read"
    SALE_CREATE = "sale:create"
    SALE_UPDATE = "sale:update"
    SALE_DELETE = "sale:delete"

    # Tickets
    TICKET_READ = "ticket:read"
    TICKET_CREATE = "ticket:create"
    TICKET_UPDATE = "ticket:update"
    TICKET_DELETE = "ticket:delete"

    # Contracts
    CONTRACT_READ = "contract:read"
    CONTRACT_CREATE = "contract:create"
    CONTRACT_UPDATE = "contract:update"
    CONTRACT_DELETE = "contract:delete"

    # Products
    PRODUCT_READ = "product:read"
    PRODUCT_CREATE = "product:create"
    PRODUCT_UPDATE = "product:update"
    PRODUCT_DELETE = "product:delete"

    @property
    def resource(self) -> str:
        return self.value.split(":", 1)[0]

    @property
    def action(self) -> str:
        return self.value.split(":", 1)[1]

    @classmethod
    def parse(cls, value: Permission | str) -> Permission | None:
        """Return the matching permission, or None if it isn't in the catalog."""
        if isinstance(value, Permission):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


# =============================================================================
# Role Mappings
# =============================================================================


PLATFORM_PERMISSIONS: frozenset[Permission] = frozenset({
    Permission.PERMISSION_MANAGE,
    Permission.TENANT_MANAGE,
})

CRM_RESOURCES = ("customer", "sale", "ticket", "contract", "product")


def _crm(*actions: str) -> set[Permission]:
    return {Permission(f"{resource}:{action}") for resource in CRM_RESOURCES for action in actions}


# What permissions each role grants
ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.SUPER_ADMIN: frozenset(Permission),
    Role.ADMIN: frozenset(set(Permission) - PLATFORM_PERMISSIONS),
    Role.MANAGER: frozenset({
        Permission.USER_LIST,
        Permission.USER_VIEW,
        Permission.USER_EDIT,
        Permission.USER_RESET_PASSWORD,
        *_crm("read", "create", "update"),
    }),
    Role.USER: frozenset({
        *_crm("read"),
        Permission.TICKET_CREATE,
    }),
    Role.ENGINEER: frozenset({
        Permission.CUSTOMER_READ,
        Permission.PRODUCT_READ,
        Permission.TICKET_READ,
        Permission.TICKET_UPDATE,
    }),
    Role.CUSTOMER: frozenset({
        Permission.TICKET_READ,
        Permission.TICKET_CREATE,
        Permission.PRODUCT_READ,
    }),
    Role.GUEST: frozenset(),
}


def all_permissions() -> frozenset[Permission]:
    """The full catalog."""
    return frozenset(Permission)


def permissions_for_role(role: Role | str | None) -> frozenset[Permission]:
    """
    Static permissions for a role.

    Unknown roles get an empty set - "no access" is the default, not an error.
    """
    parsed = Role.parse(role)
    if parsed is None:
        return frozenset()
    return ROLE_PERMISSIONS.get(parsed, frozenset())


# =============================================================================
# Grant expansion
# =============================================================================


WILDCARD = "*"
UMBRELLA_ACTIONS = ("manage", "admin", WILDCARD)
SYNONYM_ACTIONS = {"read": "view", "view": "read"}


def expand_permission(value: Permission | str) -> frozenset[Permission] | None:
    """
    Catalog permissions a stored grant stands for.

    An exact catalog value is itself. "*" is every tenant permission, and
    "<resource>:manage" (also ":admin" and ":*") is every permission on that
    resource. Umbrellas never reach PLATFORM_PERMISSIONS. "read" and "view"
    stand in for each other when only one exists for the resource.

    Returns None when the grant names nothing in the catalog.
    """
    exact = Permission.parse(value)
    if exact is not None:
        return frozenset({exact})

    value = str(value)
    if value == WILDCARD:
        return all_permissions() - PLATFORM_PERMISSIONS

    resource, _, action = value.partition(":")
    if not resource or not action:
        return None

    if action in UMBRELLA_ACTIONS:
        family = frozenset(p for p in Permission if p.resource == resource) - PLATFORM_PERMISSIONS
        return family or None

    synonym = SYNONYM_ACTIONS.get(action)
    if synonym is not None:
        parsed = Permission.parse(f"{resource}:{synonym}")
        if parsed is not None:
            return frozenset({parsed})
    return None
