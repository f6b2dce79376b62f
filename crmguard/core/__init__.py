"""
Core module - infrastructure shared by the authorization core.

This module contains:
- events: Event bus used to report authorization denials
- utils: Shared utility functions
"""

from crmguard.core.events import (
    Event,
    EventBus,
    Subscription,
    get_event_bus,
    reset_event_bus,
    permission_denied,
    permissions_invalidated,
)
from crmguard.core.utils import generate_id, utc_now

__all__ = [
    "Event",
    "EventBus",
    "Subscription",
    "get_event_bus",
    "reset_event_bus",
    "permission_denied",
    "permissions_invalidated",
    "generate_id",
    "utc_now",
]
