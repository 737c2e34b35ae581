"""
Event system for the TaskFlow lifecycle engine.

Allows decoupled communication between components via signals and listeners.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

import click


class EventType(str, Enum):
    """Types of events published by the engine."""
    STATUS_CHANGED = "status.changed"
    ITEM_COMPLETED = "item.completed"
    ITEM_CANCELLED = "item.cancelled"
    WORKERS_UNASSIGNED = "workers.unassigned"
    WORKER_TERMINATED = "worker.terminated"
    TICK_COMPLETED = "tick.completed"
    TICK_FAILED = "tick.failed"
    ORPHAN_SKIPPED = "orphan.skipped"


@dataclass
class Event:
    """Base event class."""
    type: EventType
    timestamp: datetime = field(default_factory=datetime.now)
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ItemEvent(Event):
    """Event for a status change of a single work item."""
    item_id: str = ""
    item_type: str = ""
    project_id: str = ""
    old_status: str = ""
    new_status: str = ""


@dataclass
class ProjectEvent(Event):
    """Event for project-wide outcomes (ticks, cascades, orphans)."""
    project_id: str = ""
    message: str = ""
    error: Optional[str] = None


class EventListener(ABC):
    """Base class for event listeners."""

    @abstractmethod
    def handle(self, event: Event) -> None:
        """Handle an event.

        Args:
            event: The event to handle.
        """
        pass

    @property
    @abstractmethod
    def subscribed_events(self) -> List[EventType]:
        """Return list of event types this listener subscribes to."""
        pass


class EventBus:
    """
    Central event bus for publishing and subscribing to events.

    Singleton pattern for global event access.
    """

    _instance: Optional['EventBus'] = None
    _listeners: Dict[EventType, List[EventListener]] = {}

    def __new__(cls) -> 'EventBus':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def subscribe(self, listener: EventListener) -> None:
        """Subscribe a listener to events.

        Args:
            listener: The listener to subscribe.
        """
        for event_type in listener.subscribed_events:
            if event_type not in self._listeners:
                self._listeners[event_type] = []
            if listener not in self._listeners[event_type]:
                self._listeners[event_type].append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        """Unsubscribe a listener from all events.

        Args:
            listener: The listener to unsubscribe.
        """
        for event_type in self._listeners:
            if listener in self._listeners[event_type]:
                self._listeners[event_type].remove(listener)

    def publish(self, event: Event) -> None:
        """Publish an event to all subscribed listeners.

        Args:
            event: The event to publish.
        """
        listeners = list(self._listeners.get(event.type, []))
        for listener in listeners:
            try:
                listener.handle(event)
            except Exception as e:
                # Report but don't stop other listeners
                click.echo(f"  ⚠ Listener {listener.__class__.__name__} failed: {e}", err=True)

    def clear(self) -> None:
        """Clear all listeners (useful for testing)."""
        self._listeners.clear()


# Convenience functions for global event bus access
def get_event_bus() -> EventBus:
    """Get the global event bus instance."""
    return EventBus()


def publish_event(event: Event) -> None:
    """Publish an event to the global event bus."""
    get_event_bus().publish(event)


def subscribe_listener(listener: EventListener) -> None:
    """Subscribe a listener to the global event bus."""
    get_event_bus().subscribe(listener)
