"""
Module and feature access.

Super-admins run the platform; they don't work inside tenant data. So:
- super-admins may open only the super-admin modules
- tenant actors may never open a super-admin module
- tenant actors open a tenant module iff they hold its read permission
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from crmguard.auth.actor import Actor
from crmguard.auth.authorizer import is_platform_actor
from crmguard.auth.catalog import Permission

logger = logging.getLogger(__name__)


SUPER_ADMIN_MODULES: frozenset[str] = frozenset({"super-admin", "system-admin", "admin-panel"})

# Tenant module -> permission needed to open it
MODULE_PERMISSIONS: dict[str, Permission] = {
    "customers": Permission.CUSTOMER_READ,
    "sales": Permission.SALE_READ,
    "contracts": Permission.CONTRACT_READ,
    "service-contracts": Permission.CONTRACT_READ,
    "products": Permission.PRODUCT_READ,
    "product-sales": Permission.SALE_READ,
    "tickets": Permission.TICKET_READ,
    "complaints": Permission.TICKET_READ,
    "job-works": Permission.PRODUCT_READ,
    "notifications": Permission.TICKET_READ,
    "reports": Permission.AUDIT_READ,
    "settings": Permission.ROLE_MANAGE,
    "dashboard": Permission.CUSTOMER_READ,
    "masters": Permission.PRODUCT_UPDATE,
    "user-management": Permission.USER_LIST,
}

TENANT_MODULES: frozenset[str] = frozenset(MODULE_PERMISSIONS)

# Feature -> permissions, any of which unlocks it
FEATURE_PERMISSIONS: dict[str, tuple[Permission, ...]] = {
    "customer_management": (Permission.CUSTOMER_READ,),
    "customer_creation": (Permission.CUSTOMER_CREATE,),
    "customer_editing": (Permission.CUSTOMER_UPDATE,),
    "customer_deletion": (Permission.CUSTOMER_DELETE,),
    "sales_pipeline": (Permission.SALE_READ,),
    "sales_creation": (Permission.SALE_CREATE,),
    "sales_editing": (Permission.SALE_UPDATE,),
    "sales_deletion": (Permission.SALE_DELETE,),
    "ticket_management": (Permission.TICKET_READ,),
    "ticket_creation": (Permission.TICKET_CREATE,),
    "ticket_assignment": (Permission.TICKET_UPDATE,),
    "ticket_escalation": (Permission.TICKET_UPDATE,),
    "product_catalog": (Permission.PRODUCT_READ,),
    "product_management": (Permission.PRODUCT_UPDATE,),
    "inventory_management": (Permission.PRODUCT_UPDATE,),
    "contract_management": (Permission.CONTRACT_READ,),
    "contract_creation": (Permission.CONTRACT_CREATE,),
    "contract_approval": (Permission.CONTRACT_UPDATE,),
    "user_management": (Permission.USER_LIST, Permission.USER_VIEW),
    "role_management": (Permission.ROLE_MANAGE, Permission.USER_MANAGE_ROLES),
    "audit_logs": (Permission.AUDIT_READ,),
    "tenant_management": (Permission.TENANT_MANAGE,),
}


@dataclass(frozen=True)
class ModuleAccess:
    """Whether a module may be opened, and why (for logs and denial notices)."""

    can_access: bool
    reason: str

    def __bool__(self) -> bool:
        return self.can_access


def can_access_module(actor: Actor, module_name: str) -> ModuleAccess:
    """Decide whether an actor may open a module. Names are case-insensitive."""
    name = module_name.strip().lower()

    if is_platform_actor(actor.role, actor.tenant_id):
        if name in SUPER_ADMIN_MODULES:
            return ModuleAccess(True, "Super admin accessing super-admin module")
        if name in TENANT_MODULES:
            logger.warning(f"Super admin {actor.actor_id} blocked from tenant module {name}")
            return ModuleAccess(False, "Super admins cannot access tenant modules")
        return ModuleAccess(False, "Super admins cannot access this module")

    if name in SUPER_ADMIN_MODULES:
        logger.warning(f"Actor {actor.actor_id} blocked from super-admin module {name}")
        return ModuleAccess(False, "Only super admins can access this module")

    permission = MODULE_PERMISSIONS.get(name)
    if permission is None:
        return ModuleAccess(False, f"Unknown module: {module_name}")

    if actor.can(permission):
        return ModuleAccess(True, f"Granted by {permission.value}")
    return ModuleAccess(False, f"Missing permission: {permission.value}")


def can_access_feature(actor: Actor, feature: str) -> bool:
    """Check a named feature; any of its permissions unlocks it."""
    permissions = FEATURE_PERMISSIONS.get(feature)
    if permissions is None:
        logger.warning(f"Unknown feature: {feature}")
        return False
    return actor.can_any(*permissions)
