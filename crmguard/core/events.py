"""
Event system.

Guard surfaces emit events (e.g. an authorization denial) and sinks such as
the audit service subscribe to the ones they care about. The authorization
core only emits; it never waits on what a sink does with the event.
"""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable

from crmguard.core.utils import generate_id, utc_now

logger = logging.getLogger(__name__)

EventHandler = Callable[["Event"], Awaitable[list["Event"]]]


@dataclass
class Event:
    """Something that happened to an actor, scoped to a tenant (None = platform)."""

    event_type: str  # "permission.denied", "permissions.invalidated"
    tenant_id: str | None = None
    actor_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)

    id: str = field(default_factory=lambda: generate_id("evt"))
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class Subscription:
    """Handler for event types matching a glob, optionally for one tenant."""

    pattern: str
    handler: EventHandler
    tenant_id: str | None = None

    def matches(self, event: Event) -> bool:
        if not fnmatch.fnmatch(event.event_type, self.pattern):
            return False
        return self.tenant_id is None or event.tenant_id == self.tenant_id


class EventBus:
    """
    In-memory event bus.

    Suitable for a single process. An external audit pipeline can be
    attached as just another subscriber.
    """

    def __init__(self, max_history: int = 10000):
        self._subscriptions: list[Subscription] = []
        self._history: list[Event] = []
        self._max_history = max_history

    def subscribe(
        self,
        pattern: str,
        handler: EventHandler,
        tenant_id: str | None = None,
    ) -> Subscription:
        """
        Subscribe to events matching a pattern.

        Args:
            pattern: Event type pattern (wildcards like "permission.*" work)
            handler: Async function returning follow-up events
            tenant_id: Only deliver this tenant's events

        Returns:
            The subscription (pass it to unsubscribe)
        """
        subscription = Subscription(pattern, handler, tenant_id)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    async def publish(self, event: Event) -> list[Event]:
        """
        Deliver an event and return whatever the handlers produced.

        Follow-up events are published in turn. A failing handler is logged
        and does not stop the others, nor reach the publisher.
        """
        self._history.append(event)
        if len(self._history) > self._max_history:
            del self._history[:-self._max_history]

        produced: list[Event] = []
        for subscription in [s for s in self._subscriptions if s.matches(event)]:
            try:
                produced.extend(await subscription.handler(event))
            except Exception:
                logger.exception(f"Error in {event.event_type} handler")

        for follow_up in list(produced):
            produced.extend(await self.publish(follow_up))
        return produced

    def get_history(
        self,
        event_type: str | None = None,
        tenant_id: str | None = None,
        limit: int = 100,
    ) -> list[Event]:
        """Most recent events, optionally filtered."""
        results = self._history
        if event_type:
            results = [e for e in results if fnmatch.fnmatch(e.event_type, event_type)]
        if tenant_id:
            results = [e for e in results if e.tenant_id == tenant_id]
        return results[-limit:]


_default_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Process-wide bus used when none is injected."""
    global _default_bus
    if _default_bus is None:
        _default_bus = EventBus()
    return _default_bus


def reset_event_bus() -> None:
    """Drop the process-wide bus (tests)."""
    global _default_bus
    _default_bus = None


# =============================================================================
# Authorization events
# =============================================================================


def permission_denied(
    actor_id: str | None,
    role: str,
    tenant_id: str | None,
    denied_permission: str,
    timestamp: datetime | None = None,
    **extra_payload,
) -> Event:
    """Build a permission.denied event; the payload is the audit entry shape."""
    timestamp = timestamp or utc_now()
    return Event(
        event_type="permission.denied",
        tenant_id=tenant_id,
        actor_id=actor_id,
        payload={
            "actor_id": actor_id,
            "role": role,
            "tenant_id": tenant_id,
            "denied_permission": denied_permission,
            "timestamp": timestamp.isoformat(),
            **extra_payload,
        },
        timestamp=timestamp,
    )


def permissions_invalidated(
    actor_id: str | None,
    reason: str,
    tenant_id: str | None = None,
) -> Event:
    """Build a permissions.invalidated event (actor_id None means everyone)."""
    return Event(
        event_type="permissions.invalidated",
        tenant_id=tenant_id,
        actor_id=actor_id,
        payload={"actor_id": actor_id, "tenant_id": tenant_id, "reason": reason},
    )
