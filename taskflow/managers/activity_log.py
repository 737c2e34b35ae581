"""
Activity log listener for engine events.

Writes one line per engine event so scheduled runs leave a trace.
"""
from typing import List

import click

from taskflow.managers.events import (
    Event,
    EventListener,
    EventType,
    ItemEvent,
    ProjectEvent,
)


class ActivityLogListener(EventListener):
    """
    Echoes engine events.

    Failures (tick.failed, orphan.skipped) always go to stderr.
    Status changes and tick summaries are only written when verbose.
    """

    def __init__(self, verbose: bool = False) -> None:
        """
        Initialize ActivityLogListener.

        Args:
            verbose: Also log status changes and successful ticks.
        """
        self.verbose = verbose

    @property
    def subscribed_events(self) -> List[EventType]:
        """Return list of events this listener handles."""
        return [
            EventType.STATUS_CHANGED,
            EventType.WORKERS_UNASSIGNED,
            EventType.WORKER_TERMINATED,
            EventType.TICK_COMPLETED,
            EventType.TICK_FAILED,
            EventType.ORPHAN_SKIPPED,
        ]

    def handle(self, event: Event) -> None:
        """Write the event as a single line.

        Args:
            event: The event to log.
        """
        stamp = event.timestamp.strftime("%Y-%m-%d %H:%M:%S")

        if event.type == EventType.TICK_FAILED and isinstance(event, ProjectEvent):
            click.echo(
                f"[{stamp}] ✗ Tick failed for project {event.project_id}: {event.error}",
                err=True,
            )
            return

        if event.type == EventType.ORPHAN_SKIPPED and isinstance(event, ProjectEvent):
            click.echo(
                f"[{stamp}] ⚠ Project {event.project_id}: {event.message}",
                err=True,
            )
            return

        if not self.verbose:
            return

        if isinstance(event, ItemEvent):
            click.echo(
                f"[{stamp}] {event.item_type} {event.item_id}: "
                f"{event.old_status} → {event.new_status}"
            )
        elif isinstance(event, ProjectEvent):
            click.echo(f"[{stamp}] Project {event.project_id}: {event.message}")
