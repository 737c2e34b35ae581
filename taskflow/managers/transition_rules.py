"""
Date-driven status transitions for a single work item.

No hierarchy knowledge here: parents and children are handled by
PropagationEngine. Boundaries are inclusive for entering a state and
exclusive for leaving it (at or after start, strictly after completion).
"""

from datetime import datetime
from typing import Optional

from taskflow.models.base import WorkItem, WorkStatus


def next_status(item: WorkItem, now: datetime) -> WorkStatus:
    """Compute the status an item should have at `now`.

    Pure function: the item is not modified.

    Args:
        item: Project, phase or task.
        now: Evaluation instant.

    Returns:
        The next WorkStatus (possibly the current one).
    """
    return status_at(
        item.status,
        item.start_date_time,
        item.completion_date_time,
        item.actual_completion_date_time,
        now,
    )


def status_at(
    status: WorkStatus,
    start: datetime,
    completion: datetime,
    actual_completion: Optional[datetime],
    now: datetime,
) -> WorkStatus:
    """Same as next_status, on raw fields."""
    if status.is_terminal:
        return status

    # Explicit completion wins over date-based inference
    if actual_completion is not None:
        return WorkStatus.COMPLETED

    if status == WorkStatus.PENDING and start <= now <= completion:
        return WorkStatus.ON_GOING

    # Never-started items that are already overdue skip onGoing
    if status in (WorkStatus.PENDING, WorkStatus.ON_GOING) and now > completion:
        return WorkStatus.DELAYED

    return status


def is_rollup_complete(child_statuses) -> bool:
    """Whether a parent should roll up to completed from its children.

    Requires at least one child, every non-cancelled child completed, and at
    least one child actually completed. A parent whose children are all
    cancelled (or which has none) never completes by rollup.
    """
    statuses = list(child_statuses)
    if not statuses:
        return False
    completed = 0
    for status in statuses:
        if status == WorkStatus.COMPLETED:
            completed += 1
        elif status != WorkStatus.CANCELLED:
            return False
    return completed > 0
