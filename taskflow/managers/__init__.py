"""
Managers for the TaskFlow lifecycle engine.

This package contains focused manager classes that handle specific aspects of the engine:
- StorageManager: Persistence to .taskflow/ folder structure
- HierarchyGraph: Read-only traversal of a project subtree
- next_status: Date-driven transition of a single item
- PropagationEngine: Rollup, cancellation cascade, user actions
- ProjectLockManager: Per-project serialization
- SchedulerDriver: Periodic ticks over all projects
- CompletionTracker: Status counts and percentages
- EventBus: Event-driven architecture for decoupled communication
- ActivityLogListener: Logs engine events
"""

from taskflow.managers.storage_manager import StorageManager
from taskflow.managers.hierarchy import HierarchyGraph
from taskflow.managers.transition_rules import is_rollup_complete, next_status
from taskflow.managers.lock_manager import ProjectLockManager
from taskflow.managers.propagation_engine import PropagationEngine, TickResult
from taskflow.managers.scheduler import SchedulerDriver, SchedulerReport
from taskflow.managers.completion_tracker import CompletionTracker, status_counts
from taskflow.managers.events import (
    EventBus,
    Event,
    ItemEvent,
    ProjectEvent,
    EventType,
    EventListener,
    get_event_bus,
    publish_event,
    subscribe_listener,
)
from taskflow.managers.activity_log import ActivityLogListener
from taskflow.exceptions import StorageError

__all__ = [
    "StorageManager",
    "StorageError",
    "HierarchyGraph",
    "next_status",
    "is_rollup_complete",
    "ProjectLockManager",
    "PropagationEngine",
    "TickResult",
    "SchedulerDriver",
    "SchedulerReport",
    "CompletionTracker",
    "status_counts",
    "EventBus",
    "Event",
    "ItemEvent",
    "ProjectEvent",
    "EventType",
    "EventListener",
    "get_event_bus",
    "publish_event",
    "subscribe_listener",
    "ActivityLogListener",
]
