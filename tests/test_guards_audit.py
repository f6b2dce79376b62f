"""
Tests for guard surfaces and the audit sink.

Every denial raised through a Guard must land in the audit log.
"""

from datetime import datetime, timedelta, timezone

import pytest

from crmguard.auth.actor import Target
from crmguard.auth.authorizer import Action
from crmguard.auth.catalog import Permission
from crmguard.auth.errors import ActionDenied, PermissionDenied
from crmguard.auth.guards import Guard
from crmguard.core.events import EventBus, get_event_bus, permission_denied
from crmguard.services.audit import AuditService
from crmguard.storage.base import Collections


@pytest.fixture
def audit(storage, bus):
    service = AuditService(storage)
    service.attach(bus)
    return service


@pytest.fixture
def guard(bus, audit):
    return Guard(bus)


# =============================================================================
# Guard
# =============================================================================


class TestGuard:
    @pytest.mark.asyncio
    async def test_require_allows(self, guard, manager, bus):
        assert await guard.require(manager, Permission.USER_EDIT) is manager
        assert bus.get_history() == []

    @pytest.mark.asyncio
    async def test_require_reports_then_raises(self, guard, manager, bus):
        with pytest.raises(PermissionDenied):
            await guard.require(manager, "user:delete")
        
        events = bus.get_history(event_type="permission.denied")
        assert len(events) == 1
        payload = events[0].payload
        assert payload["actor_id"] == "manager_1"
        assert payload["role"] == "manager"
        assert payload["tenant_id"] == "tenant-1"
        assert payload["denied_permission"] == "user:delete"
        assert payload["timestamp"]

    @pytest.mark.asyncio
    async def test_require_action(self, guard, admin):
        await guard.require_action(admin, Target("user", "tenant-1"), Action.DELETE)
        
        with pytest.raises(ActionDenied) as exc:
            await guard.require_action(admin, Target("admin", "tenant-1"), Action.DELETE)
        
        assert exc.value.permission == "action:delete"
        assert exc.value.target_role == "admin"

    @pytest.mark.asyncio
    async def test_cross_tenant_action_is_reported(self, guard, admin, bus):
        with pytest.raises(ActionDenied):
            await guard.require_action(admin, Target("user", "tenant-2"), "edit")
        
        payload = bus.get_history()[-1].payload
        assert payload["action"] == "edit"
        assert payload["target_tenant_id"] == "tenant-2"

    def test_defaults_to_process_bus(self):
        assert Guard().bus is get_event_bus()

    @pytest.mark.asyncio
    async def test_broken_sink_does_not_change_outcome(self, manager):
        bus = EventBus()
        
        async def broken(event):
            raise RuntimeError("audit db down")
        
        bus.subscribe("permission.*", broken)
        guard = Guard(bus)
        
        with pytest.raises(PermissionDenied):
            await guard.require(manager, "user:delete")


# =============================================================================
# Audit Service
# =============================================================================


class TestAuditService:
    @pytest.mark.asyncio
    async def test_denial_is_stored(self, guard, audit, manager, storage):
        with pytest.raises(PermissionDenied):
            await guard.require(manager, "user:delete")
        
        entries = await audit.entries()
        assert len(entries) == 1
        entry = entries[0]
        assert entry["actor_id"] == "manager_1"
        assert entry["role"] == "manager"
        assert entry["tenant_id"] == "tenant-1"
        assert entry["denied_permission"] == "user:delete"
        assert entry["action"] is None
        assert await storage.get(Collections.AUDIT_LOGS, entry["id"]) is not None

    @pytest.mark.asyncio
    async def test_action_denial_fields(self, guard, audit, admin):
        with pytest.raises(ActionDenied):
            await guard.require_action(admin, Target("admin", "tenant-1"), "delete")
        
        [entry] = await audit.entries()
        assert entry["denied_permission"] == "action:delete"
        assert entry["action"] == "delete"
        assert entry["target_role"] == "admin"
        assert entry["target_tenant_id"] == "tenant-1"

    @pytest.mark.asyncio
    async def test_entries_filtered_by_tenant(self, bus, audit):
        await bus.publish(permission_denied("a", "user", "tenant-1", "user:delete"))
        await bus.publish(permission_denied("b", "user", "tenant-2", "user:delete"))
        
        assert [e["actor_id"] for e in await audit.entries(tenant_id="tenant-2")] == ["b"]
        assert len(await audit.entries()) == 2

    @pytest.mark.asyncio
    async def test_entries_are_newest_first(self, bus, audit):
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for i in range(5):
            await bus.publish(
                permission_denied(f"u{i}", "user", "tenant-1", "user:delete", timestamp=start + timedelta(minutes=i))
            )
        
        latest = await audit.entries(tenant_id="tenant-1", limit=2)
        
        assert [e["actor_id"] for e in latest] == ["u4", "u3"]

    @pytest.mark.asyncio
    async def test_limit_must_be_positive(self, audit):
        with pytest.raises(ValueError):
            await audit.entries(limit=0)

    @pytest.mark.asyncio
    async def test_ignores_other_events(self, bus, audit):
        from crmguard.core.events import permissions_invalidated
        
        await bus.publish(permissions_invalidated("u1", "logout"))
        
        assert await audit.entries() == []

    @pytest.mark.asyncio
    async def test_invalidation_event_carries_tenant(self, bus):
        from crmguard.core.events import permissions_invalidated
        
        await bus.publish(permissions_invalidated("u1", "logout", tenant_id="tenant-1"))
        
        [event] = bus.get_history(tenant_id="tenant-1")
        assert event.payload["tenant_id"] == "tenant-1"


# =============================================================================
# Event Bus
# =============================================================================


class TestEventBus:
    @pytest.mark.asyncio
    async def test_wildcard_and_tenant_filter(self, bus):
        seen = []
        
        async def handler(event):
            seen.append(event.actor_id)
            return []
        
        bus.subscribe("permission*", handler, tenant_id="tenant-1")
        await bus.publish(permission_denied("a", "user", "tenant-1", "user:delete"))
        await bus.publish(permission_denied("b", "user", "tenant-2", "user:delete"))
        
        assert seen == ["a"]

    @pytest.mark.asyncio
    async def test_unsubscribe(self, bus):
        seen = []
        
        async def handler(event):
            seen.append(event)
            return []
        
        subscription = bus.subscribe("*", handler)
        bus.unsubscribe(subscription)
        await bus.publish(permission_denied("a", "user", "t", "user:delete"))
        
        assert seen == []

    @pytest.mark.asyncio
    async def test_history_is_bounded(self):
        bus = EventBus(max_history=3)
        for i in range(5):
            await bus.publish(permission_denied(f"a{i}", "user", "t", "user:delete"))
        
        assert [e.actor_id for e in bus.get_history()] == ["a2", "a3", "a4"]

    @pytest.mark.asyncio
    async def test_follow_up_events_are_published(self, bus):
        from crmguard.core.events import Event
        
        async def escalate(event):
            return [Event(event_type="security.alert", tenant_id=event.tenant_id)]
        
        bus.subscribe("permission.denied", escalate)
        produced = await bus.publish(permission_denied("a", "user", "t", "tenant:manage"))
        
        assert [e.event_type for e in produced] == ["security.alert"]
        assert bus.get_history(event_type="security.*")
