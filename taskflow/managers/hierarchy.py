"""
HierarchyGraph for read-only traversal of one project subtree.

Builds parent/child maps from the flat lists stored in a ProjectFile.
Items whose parent is missing are orphans: they are reported, never
traversed.
"""

from typing import Dict, List

from taskflow.exceptions import NotFoundError
from taskflow.models.base import Phase, Project, Task, WorkItem
from taskflow.models.files import ProjectFile


def _schedule_order(item: WorkItem):
    return (item.start_date_time, item.id)


class HierarchyGraph:
    """
    Read-only view of a project, its phases and their tasks.

    Handles:
    - Child lookup (phases of a project, tasks of a phase), ordered by start
    - Parent lookup (project of a phase, phase of a task)
    - Orphan detection (tasks with a missing phase, phases of another project)
    """

    def __init__(self, subtree: ProjectFile) -> None:
        """
        Initialize HierarchyGraph.

        Args:
            subtree: Loaded project subtree. It is never modified.
        """
        self.project: Project = subtree.project
        self._phases: Dict[str, Phase] = {}
        self._tasks: Dict[str, Task] = {}
        self._tasks_by_phase: Dict[str, List[Task]] = {}
        self.orphans: List[WorkItem] = []

        for phase in subtree.phases:
            if phase.project_id != self.project.id:
                self.orphans.append(phase)
                continue
            self._phases[phase.id] = phase
            self._tasks_by_phase[phase.id] = []

        for task in subtree.tasks:
            if task.phase_id not in self._phases:
                self.orphans.append(task)
                continue
            self._tasks[task.id] = task
            self._tasks_by_phase[task.phase_id].append(task)

        for tasks in self._tasks_by_phase.values():
            tasks.sort(key=_schedule_order)

    @property
    def project_id(self) -> str:
        return self.project.id

    def phases_of(self, project_id: str) -> List[Phase]:
        """Get the phases of a project, ordered by start.

        Raises:
            NotFoundError: If project_id is not this graph's project.
        """
        if project_id != self.project.id:
            raise NotFoundError(f"Project not found: {project_id}")
        return sorted(self._phases.values(), key=_schedule_order)

    def tasks_of(self, phase_id: str) -> List[Task]:
        """Get the tasks of a phase, ordered by start.

        Raises:
            NotFoundError: If the phase is not part of this project.
        """
        if phase_id not in self._tasks_by_phase:
            raise NotFoundError(f"Phase not found: {phase_id}")
        return list(self._tasks_by_phase[phase_id])

    def all_tasks(self) -> List[Task]:
        """Get every reachable task, phase by phase."""
        tasks = []
        for phase in self.phases_of(self.project.id):
            tasks.extend(self._tasks_by_phase[phase.id])
        return tasks

    def project_of(self, phase_id: str) -> Project:
        """Get the project owning a phase."""
        if phase_id not in self._phases:
            raise NotFoundError(f"Phase not found: {phase_id}")
        return self.project

    def phase_of(self, task_id: str) -> Phase:
        """Get the phase owning a task."""
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFoundError(f"Task not found: {task_id}")
        return self._phases[task.phase_id]

    def get_phase(self, phase_id: str) -> Phase:
        phase = self._phases.get(phase_id)
        if phase is None:
            raise NotFoundError(f"Phase not found: {phase_id}")
        return phase

    def get_item(self, item_id: str) -> WorkItem:
        """Get the project, a phase or a task by id."""
        if item_id == self.project.id:
            return self.project
        item = self._phases.get(item_id) or self._tasks.get(item_id)
        if item is None:
            raise NotFoundError(f"Item not found: {item_id}")
        return item
