"""
Authorization core - role-based access control with tenant isolation.

Design principles:
1. One static catalog of permissions and one role table
2. One authorizer that owns tenant isolation; nobody compares tenants locally
3. Dynamic per-actor grants only ever add to the static table
4. "Not known yet" is never confused with "denied"
"""

from crmguard.auth.catalog import (
    Role,
    Permission,
    ROLE_PERMISSIONS,
    all_permissions,
    expand_permission,
    permissions_for_role,
)
from crmguard.auth.errors import (
    AuthorizationError,
    PermissionDenied,
    ActionDenied,
    ActorStateError,
    NotAuthenticated,
)
from crmguard.auth.queries import (
    GuardResult,
    has_permission,
    has_any_permission,
    has_all_permissions,
    assert_permission,
    role_permission_guard,
)
from crmguard.auth.authorizer import (
    Action,
    Authorizer,
    can_perform_action,
)
from crmguard.auth.actor import (
    Actor,
    ActorIdentity,
    SessionClaims,
    Target,
)
from crmguard.auth.guards import Guard, GuardDecision
from crmguard.auth.modules import (
    ModuleAccess,
    can_access_module,
    can_access_feature,
)
from crmguard.auth.resolver import (
    ActorContextResolver,
    ActorSnapshot,
    PermissionCache,
    ResolutionState,
)
from crmguard.auth.session import (
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    create_session_token,
    decode_session_token,
)
from crmguard.auth.policies import (
    AuthzRuntime,
    Policy,
    require,
    require_any,
    require_module,
)

__all__ = [
    # Catalog
    "Role",
    "Permission",
    "ROLE_PERMISSIONS",
    "all_permissions",
    "expand_permission",
    "permissions_for_role",
    # Errors
    "AuthorizationError",
    "PermissionDenied",
    "ActionDenied",
    "ActorStateError",
    "NotAuthenticated",
    # Queries
    "GuardResult",
    "has_permission",
    "has_any_permission",
    "has_all_permissions",
    "assert_permission",
    "role_permission_guard",
    # Authorizer
    "Action",
    "Authorizer",
    "can_perform_action",
    # Actor
    "Actor",
    "ActorIdentity",
    "SessionClaims",
    "Target",
    # Guard surfaces
    "Guard",
    "GuardDecision",
    "ModuleAccess",
    "can_access_module",
    "can_access_feature",
    # Resolution
    "ActorContextResolver",
    "ActorSnapshot",
    "PermissionCache",
    "ResolutionState",
    # Sessions
    "TokenError",
    "TokenExpiredError",
    "TokenInvalidError",
    "create_session_token",
    "decode_session_token",
    # Routes
    "AuthzRuntime",
    "Policy",
    "require",
    "require_any",
    "require_module",
]
