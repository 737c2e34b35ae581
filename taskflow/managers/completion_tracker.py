"""
CompletionTracker for status counts and percentage calculations.

Read model computed on demand from a loaded subtree; nothing here is
cached or written back.
"""

from typing import Dict, Iterable, Optional

from taskflow.constants import PERCENTAGE_ROUND_PRECISION
from taskflow.managers.hierarchy import HierarchyGraph
from taskflow.models.base import WorkItem, WorkStatus


def status_counts(items: Iterable[WorkItem]) -> Dict[str, int]:
    """Count items per status. Every status is present, zero if unused."""
    counts = {status.value: 0 for status in WorkStatus}
    for item in items:
        counts[item.status.value] += 1
    return counts


class CompletionTracker:
    """
    Calculates progress of a project subtree.

    Handles:
    - Status counts per level (phases, tasks) and per phase
    - Completion percentage (completed / non-cancelled)
    """

    def __init__(self, round_precision: Optional[int] = None) -> None:
        """
        Initialize CompletionTracker.

        Args:
            round_precision: Decimal places for percentage rounding. Defaults to config value.
        """
        self._round_precision = (
            PERCENTAGE_ROUND_PRECISION if round_precision is None else round_precision
        )

    def completion_percentage(self, items: Iterable[WorkItem]) -> float:
        """Share of completed items among the non-cancelled ones.

        Returns 0.0 when every item is cancelled or there are none.
        """
        counts = status_counts(items)
        denominator = sum(counts.values()) - counts[WorkStatus.CANCELLED.value]
        if denominator <= 0:
            return 0.0
        return round(
            counts[WorkStatus.COMPLETED.value] / denominator * 100,
            self._round_precision,
        )

    def summarize(self, graph: HierarchyGraph) -> Dict:
        """Build the progress summary of one project.

        Args:
            graph: Hierarchy of the project.

        Returns:
            Dictionary with project status, per-level counts and per-phase breakdown.
        """
        phases = graph.phases_of(graph.project_id)
        tasks = graph.all_tasks()

        phase_breakdown = []
        for phase in phases:
            phase_tasks = graph.tasks_of(phase.id)
            phase_breakdown.append(
                {
                    "id": phase.id,
                    "name": phase.name,
                    "status": phase.status.value,
                    "tasks": status_counts(phase_tasks),
                    "percentage": self.completion_percentage(phase_tasks),
                }
            )

        return {
            "project": {
                "id": graph.project.id,
                "name": graph.project.name,
                "status": graph.project.status.value,
            },
            "phases": status_counts(phases),
            "tasks": status_counts(tasks),
            "percentage": self.completion_percentage(tasks),
            "phase_breakdown": phase_breakdown,
            "orphans": [item.id for item in graph.orphans],
        }
