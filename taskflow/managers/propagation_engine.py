"""
PropagationEngine for the work-status lifecycle.

Handles:
- Scheduled ticks: date-driven transitions, then completion rollup
  (tasks, then phases, then the project)
- Cancellation cascades (project or phase scope) with worker release
- Manual completion recording and worker termination

Every operation holds the project's lock for its whole
load-compute-commit cycle and commits one atomic batch.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from taskflow.clock import Clock, SystemClock
from taskflow.exceptions import InvalidOperationError, NotFoundError
from taskflow.managers.events import (
    EventType,
    ItemEvent,
    ProjectEvent,
    publish_event,
)
from taskflow.managers.hierarchy import HierarchyGraph
from taskflow.managers.lock_manager import ProjectLockManager
from taskflow.managers.storage_manager import StorageManager
from taskflow.managers.transition_rules import is_rollup_complete, next_status
from taskflow.models.base import WorkerStatus, WorkItem, WorkStatus
from taskflow.models.files import (
    ProjectFile,
    StatusChange,
    UnassignScope,
    WorkerChange,
)


@dataclass
class TickResult:
    """Outcome of one engine operation on one project."""

    project_id: str
    changes: List[StatusChange] = field(default_factory=list)
    orphans: List[str] = field(default_factory=list)
    released_workers: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.changes) or self.released_workers > 0

    def status_of(self, item_id: str) -> Optional[WorkStatus]:
        """New status staged for an item, None if it did not change."""
        for change in self.changes:
            if change.item_id == item_id:
                return change.new_status
        return None


class _StagedChanges:
    """Statuses computed during one pass, layered over the loaded subtree."""

    def __init__(self) -> None:
        self.changes: List[StatusChange] = []
        self._statuses: Dict[str, WorkStatus] = {}

    def status(self, item: WorkItem) -> WorkStatus:
        return self._statuses.get(item.id, item.status)

    def stage(
        self,
        item: WorkItem,
        new_status: WorkStatus,
        actual_completion: Optional[datetime] = None,
    ) -> None:
        if new_status == self.status(item):
            return
        self._statuses[item.id] = new_status
        self.changes.append(
            StatusChange(
                item_id=item.id,
                item_type=item.item_type,
                old_status=item.status,
                new_status=new_status,
                new_actual_completion=(
                    actual_completion if new_status == WorkStatus.COMPLETED else None
                ),
            )
        )


class PropagationEngine:
    """
    Applies the lifecycle rules across a project's phase/task hierarchy.

    Usage:
        engine = PropagationEngine(StorageManager(), clock=SystemClock())
        engine.tick(project_id)            # scheduled passes 1-2
        engine.cancel_project(project_id)  # cascade, pass 3
    """

    def __init__(
        self,
        storage: StorageManager,
        clock: Optional[Clock] = None,
        locks: Optional[ProjectLockManager] = None,
        emit_events: bool = True,
    ) -> None:
        """
        Initialize PropagationEngine.

        Args:
            storage: Storage collaborator for loading and committing subtrees.
            clock: Time source. Defaults to SystemClock.
            locks: Per-project locks, shared with anything else that mutates projects.
                Defaults to file locks in the storage projects directory.
            emit_events: Whether to publish events on the global bus.
        """
        self.storage = storage
        self.clock = clock or SystemClock()
        self.locks = locks or ProjectLockManager(lock_dir=storage.projects_dir)
        self._emit_events = emit_events

    # =========================================================================
    # Scheduled passes
    # =========================================================================

    def plan_tick(self, graph: HierarchyGraph, now: datetime) -> List[StatusChange]:
        """Compute the status changes of one tick without persisting them.

        Tasks are evaluated before the phases containing them, and phases
        before the project, so each rollup sees freshly computed statuses.

        Args:
            graph: Hierarchy of the project to evaluate.
            now: Evaluation instant.

        Returns:
            Staged changes in evaluation order.
        """
        staged = _StagedChanges()

        # Pass 1: leaf-level date-driven transitions
        for task in graph.all_tasks():
            staged.stage(task, next_status(task, now), task.actual_completion_date_time)

        # Pass 2a: phase rollup
        phases = graph.phases_of(graph.project_id)
        for phase in phases:
            self._stage_parent(
                staged, phase, graph.tasks_of(phase.id), now
            )

        # Pass 2b: project rollup
        self._stage_parent(staged, graph.project, phases, now)

        return staged.changes

    def _stage_parent(
        self,
        staged: _StagedChanges,
        parent: WorkItem,
        children: Iterable[WorkItem],
        now: datetime,
    ) -> None:
        status = next_status(parent, now)
        actual = parent.actual_completion_date_time

        if not status.is_terminal and is_rollup_complete(
            staged.status(child) for child in children
        ):
            status = WorkStatus.COMPLETED
            actual = now

        staged.stage(parent, status, actual)

    def tick(self, project_id: str, now: Optional[datetime] = None) -> TickResult:
        """Run the date-driven and rollup passes for one project.

        Raises:
            NotFoundError: If the project does not exist.
            StorageError: If loading or committing fails. Nothing is persisted.
            LockTimeoutError: If the project stays locked past the timeout.
        """
        now = now or self.clock.now()

        with self.locks.hold(project_id):
            subtree = self.storage.load_project_subtree(project_id)
            graph = HierarchyGraph(subtree)
            changes = self.plan_tick(graph, now)
            if changes:
                self.storage.commit_status_changes(project_id, changes, timestamp=now)

        result = TickResult(
            project_id=project_id,
            changes=changes,
            orphans=[item.id for item in graph.orphans],
        )
        self._report_orphans(graph)
        self._publish_changes(project_id, changes)
        self._publish_project_event(
            EventType.TICK_COMPLETED,
            project_id,
            f"tick applied {len(changes)} status change(s)",
        )
        return result

    # =========================================================================
    # Cancellation cascade
    # =========================================================================

    def cancel_project(self, project_id: str, now: Optional[datetime] = None) -> TickResult:
        """Cancel a project with all of its phases and tasks.

        Completed descendants are cancelled too. Every worker assignment of
        the project and its tasks is released in the same commit. Cancelling
        an already-cancelled project only repairs descendants that are not
        cancelled yet.

        Raises:
            InvalidOperationError: If the project is completed.
        """
        now = now or self.clock.now()

        with self.locks.hold(project_id):
            subtree = self.storage.load_project_subtree(project_id)
            graph = HierarchyGraph(subtree)
            project = graph.project

            if project.status == WorkStatus.COMPLETED:
                raise InvalidOperationError(
                    f"Project {project_id} is completed and cannot be cancelled"
                )

            staged = _StagedChanges()
            staged.stage(project, WorkStatus.CANCELLED)
            for phase in graph.phases_of(project_id):
                staged.stage(phase, WorkStatus.CANCELLED)
            for task in graph.all_tasks():
                staged.stage(task, WorkStatus.CANCELLED)

            scope = UnassignScope(project_id=project_id)
            released = self._count_releasable(subtree, scope)
            if staged.changes or released:
                self.storage.commit_status_changes(
                    project_id, staged.changes, unassign=scope, timestamp=now
                )

        self._publish_changes(project_id, staged.changes)
        self._publish_release(project_id, released)
        return TickResult(
            project_id=project_id,
            changes=staged.changes,
            orphans=[item.id for item in graph.orphans],
            released_workers=released,
        )

    def cancel_phase(self, phase_id: str, now: Optional[datetime] = None) -> TickResult:
        """Cancel one phase and its tasks; the project is left untouched.

        Worker assignments of the phase's tasks are released in the same
        commit.

        Raises:
            NotFoundError: If no project contains the phase.
            InvalidOperationError: If the phase is completed.
        """
        now = now or self.clock.now()
        project_id = self.storage.find_project_id(phase_id)

        with self.locks.hold(project_id):
            subtree = self.storage.load_project_subtree(project_id)
            graph = HierarchyGraph(subtree)
            phase = graph.get_phase(phase_id)

            if phase.status == WorkStatus.COMPLETED:
                raise InvalidOperationError(
                    f"Phase {phase_id} is completed and cannot be cancelled"
                )

            tasks = graph.tasks_of(phase_id)
            staged = _StagedChanges()
            staged.stage(phase, WorkStatus.CANCELLED)
            for task in tasks:
                staged.stage(task, WorkStatus.CANCELLED)

            scope = UnassignScope(
                project_id=project_id, task_ids=[task.id for task in tasks]
            )
            released = self._count_releasable(subtree, scope)
            if staged.changes or released:
                self.storage.commit_status_changes(
                    project_id, staged.changes, unassign=scope, timestamp=now
                )

        self._publish_changes(project_id, staged.changes)
        self._publish_release(project_id, released)
        return TickResult(
            project_id=project_id,
            changes=staged.changes,
            orphans=[item.id for item in graph.orphans],
            released_workers=released,
        )

    @staticmethod
    def _count_releasable(subtree: ProjectFile, scope: UnassignScope) -> int:
        task_ids = set(scope.task_ids) if scope.task_ids is not None else None
        return sum(
            1
            for assignment in subtree.workers
            if assignment.status == WorkerStatus.ASSIGNED
            and (task_ids is None or assignment.task_id in task_ids)
        )

    # =========================================================================
    # User actions
    # =========================================================================

    def complete_item(self, item_id: str, now: Optional[datetime] = None) -> TickResult:
        """Record the actual completion of a project, phase or task.

        Parents are not touched here; the next tick rolls them up.

        Raises:
            NotFoundError: If no project contains the item.
            InvalidOperationError: If the item is already completed or cancelled.
        """
        now = now or self.clock.now()
        project_id = self.storage.find_project_id(item_id)

        with self.locks.hold(project_id):
            graph = HierarchyGraph(self.storage.load_project_subtree(project_id))
            item = graph.get_item(item_id)

            if item.status.is_terminal:
                raise InvalidOperationError(
                    f"{item.item_type.capitalize()} {item_id} is already {item.status.value}"
                )
            if now <= item.start_date_time:
                raise InvalidOperationError(
                    f"{item.item_type.capitalize()} {item_id} cannot complete "
                    f"before its start date"
                )

            staged = _StagedChanges()
            staged.stage(item, WorkStatus.COMPLETED, now)
            self.storage.commit_status_changes(
                project_id, staged.changes, timestamp=now
            )

        self._publish_changes(project_id, staged.changes)
        return TickResult(project_id=project_id, changes=staged.changes)

    def terminate_worker(
        self, project_id: str, worker_id: str, now: Optional[datetime] = None
    ) -> List[WorkerChange]:
        """Terminate a worker on a project and on all of its tasks there.

        Raises:
            NotFoundError: If the worker is not assigned to the project.
            InvalidOperationError: If the worker is already terminated.
        """
        now = now or self.clock.now()

        with self.locks.hold(project_id):
            subtree = self.storage.load_project_subtree(project_id)
            own = [w for w in subtree.workers if w.worker_id == worker_id]
            membership = next((w for w in own if w.is_project_assignment), None)

            if membership is None:
                raise NotFoundError(
                    f"Worker {worker_id} is not a member of project {project_id}"
                )
            if membership.status == WorkerStatus.TERMINATED:
                raise InvalidOperationError(
                    f"Worker {worker_id} is already terminated on project {project_id}"
                )

            worker_changes = [
                WorkerChange(worker_id=worker_id, new_status=WorkerStatus.TERMINATED)
            ]
            worker_changes.extend(
                WorkerChange(
                    worker_id=worker_id,
                    task_id=w.task_id,
                    new_status=WorkerStatus.TERMINATED,
                )
                for w in own
                if not w.is_project_assignment and w.status == WorkerStatus.ASSIGNED
            )
            self.storage.commit_worker_changes(project_id, worker_changes, timestamp=now)

        self._publish_project_event(
            EventType.WORKER_TERMINATED,
            project_id,
            f"worker {worker_id} terminated on {len(worker_changes) - 1} task(s)",
        )
        return worker_changes

    # =========================================================================
    # Events
    # =========================================================================

    def _publish_changes(self, project_id: str, changes: List[StatusChange]) -> None:
        if not self._emit_events:
            return
        for change in changes:
            for event_type in self._event_types_for(change):
                publish_event(
                    ItemEvent(
                        type=event_type,
                        item_id=change.item_id,
                        item_type=change.item_type,
                        project_id=project_id,
                        old_status=change.old_status.value,
                        new_status=change.new_status.value,
                    )
                )

    @staticmethod
    def _event_types_for(change: StatusChange) -> List[EventType]:
        event_types = [EventType.STATUS_CHANGED]
        if change.new_status == WorkStatus.COMPLETED:
            event_types.append(EventType.ITEM_COMPLETED)
        elif change.new_status == WorkStatus.CANCELLED:
            event_types.append(EventType.ITEM_CANCELLED)
        return event_types

    def _publish_release(self, project_id: str, released: int) -> None:
        if released:
            self._publish_project_event(
                EventType.WORKERS_UNASSIGNED,
                project_id,
                f"{released} worker assignment(s) released",
            )

    def _report_orphans(self, graph: HierarchyGraph) -> None:
        for orphan in graph.orphans:
            self._publish_project_event(
                EventType.ORPHAN_SKIPPED,
                graph.project_id,
                f"skipped orphan {orphan.item_type} {orphan.id} "
                f"(parent {orphan.parent_id} not in project)",
            )

    def _publish_project_event(
        self, event_type: EventType, project_id: str, message: str
    ) -> None:
        if self._emit_events:
            publish_event(
                ProjectEvent(type=event_type, project_id=project_id, message=message)
            )
