"""Shared fixtures."""

import pytest

from crmguard.auth.actor import Actor
from crmguard.core.events import EventBus, reset_event_bus
from crmguard.storage import MetadataPermissionStore, create_local_storage


@pytest.fixture(autouse=True)
def clean_event_bus():
    """Don't let the default bus leak between tests."""
    reset_event_bus()
    yield
    reset_event_bus()


@pytest.fixture
def storage():
    return create_local_storage()


@pytest.fixture
def store(storage):
    return MetadataPermissionStore(storage)


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def admin():
    return Actor(actor_id="admin_1", role="admin", tenant_id="tenant-1")


@pytest.fixture
def manager():
    return Actor(actor_id="manager_1", role="manager", tenant_id="tenant-1")


@pytest.fixture
def super_admin():
    return Actor(actor_id="root", role="super-admin", tenant_id=None, is_super_admin=True)
