"""
Tests for Actor construction and permission checks.
"""

import pytest

from crmguard.auth.actor import Actor, ActorIdentity, SessionClaims, Target
from crmguard.auth.catalog import Permission, Role
from crmguard.auth.errors import ActorStateError, PermissionDenied


# =============================================================================
# Invariant
# =============================================================================


class TestActorInvariant:
    def test_super_admin_without_tenant(self, super_admin):
        assert super_admin.role is Role.SUPER_ADMIN
        assert super_admin.tenant_id is None

    def test_super_admin_with_tenant_is_corrupt(self):
        with pytest.raises(ActorStateError):
            Actor(actor_id="x", role="super-admin", tenant_id="tenant-1", is_super_admin=True)

    def test_tenant_actor_without_tenant_is_corrupt(self):
        with pytest.raises(ActorStateError):
            Actor(actor_id="x", role="admin", tenant_id=None, is_super_admin=False)

    @pytest.mark.parametrize("role", ["admin", "customer", "janitor"])
    def test_platform_flag_without_super_admin_role_is_corrupt(self, role):
        with pytest.raises(ActorStateError):
            Actor(actor_id="x", role=role, tenant_id=None, is_super_admin=True)

    def test_super_admin_role_scoped_to_tenant_is_corrupt(self):
        with pytest.raises(ActorStateError):
            Actor(actor_id="x", role="super-admin", tenant_id="t1", is_super_admin=False)

    def test_mismatched_claims_rejected_by_resolver(self):
        from crmguard.auth.resolver import ActorContextResolver

        resolver = ActorContextResolver(timeout=1.0)
        with pytest.raises(ActorStateError):
            resolver.set_session(
                SessionClaims(actor_id="x", role="admin", tenant_id=None, is_super_admin=True)
            )

    def test_actor_state_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            Actor(actor_id="x", role="user", tenant_id=None)

    def test_from_session_enforces_invariant(self):
        claims = SessionClaims(actor_id="x", role="super-admin", tenant_id="t", is_super_admin=True)
        with pytest.raises(ActorStateError):
            Actor.from_session(claims)

    def test_unknown_role_is_kept_and_grants_nothing(self):
        actor = Actor(actor_id="x", role="janitor", tenant_id="t")
        assert actor.role == "janitor"
        assert actor.role_name == "janitor"
        assert actor.effective_permissions == frozenset()
        assert not actor.guard.has_any_permission


# =============================================================================
# Permission checks
# =============================================================================


class TestActorPermissions:
    def test_static_permissions(self, manager):
        assert manager.can(Permission.USER_EDIT)
        assert manager.can("user:reset_password")
        assert not manager.can("user:delete")
        assert not manager.can("user:teleport")

    def test_dynamic_permissions_add(self):
        actor = Actor(
            actor_id="g",
            role="guest",
            tenant_id="t",
            permissions=frozenset({Permission.USER_CREATE}),
        )
        assert actor.can("user:create")
        assert actor.guard.can_create
        assert not actor.guard.can_delete
        assert actor.effective_permissions == {Permission.USER_CREATE}

    def test_can_any_and_all(self, manager):
        assert manager.can_any("user:delete", "user:edit")
        assert not manager.can_all("user:delete", "user:edit")
        assert manager.can_all()

    def test_assert_permission_attaches_actor(self, manager):
        with pytest.raises(PermissionDenied) as exc:
            manager.assert_permission(Permission.USER_DELETE)
        
        assert exc.value.actor_id == "manager_1"
        assert exc.value.tenant_id == "tenant-1"
        assert exc.value.role == "manager"
        assert exc.value.permission == "user:delete"

    def test_identity(self, manager):
        assert manager.identity == ActorIdentity("manager_1", "manager", "tenant-1")

    def test_session_identity_changes_with_any_field(self):
        base = SessionClaims(actor_id="u", role="user", tenant_id="t1")
        assert base.identity != SessionClaims(actor_id="u", role="manager", tenant_id="t1").identity
        assert base.identity != SessionClaims(actor_id="u", role="user", tenant_id="t2").identity
        assert base.identity == SessionClaims(actor_id="u", role="user", tenant_id="t1").identity


class TestTarget:
    def test_known_role_is_parsed(self):
        assert Target("admin", "t").role is Role.ADMIN

    def test_of_actor(self, admin):
        assert Target.of(admin) == Target(Role.ADMIN, "tenant-1")
