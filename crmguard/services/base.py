"""
Base class for event-driven services.

A service subscribes to event types on the bus and may emit follow-up
events. The audit log is one; alerting on repeated denials would be another.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from crmguard.core.events import Event, EventBus, Subscription


class Service(ABC):
    """
    Example:
        class DenialCounter(Service):
            service_id = "denial_counter"
            subscribes_to = ["permission.denied"]
            
            async def handle(self, event: Event) -> list[Event]:
                self.count += 1
                return []
    """
    
    @property
    @abstractmethod
    def service_id(self) -> str:
        pass
    
    @property
    @abstractmethod
    def subscribes_to(self) -> list[str]:
        """Event type patterns, wildcards allowed ("permission.*")."""
        pass
    
    @abstractmethod
    async def handle(self, event: Event) -> list[Event]:
        """Process one event; return follow-up events (usually none)."""
        pass
    
    def attach(self, bus: EventBus) -> list[Subscription]:
        """Subscribe the handler to every declared pattern."""
        return [bus.subscribe(pattern, self.handle) for pattern in self.subscribes_to]
    
    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.service_id})>"
