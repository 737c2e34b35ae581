"""
TaskflowCore - entry point for the lifecycle engine.

Orchestrates manager classes for all operations.
Uses StorageManager for .taskflow/ folder-based storage exclusively.
Uses EventBus for decoupled event-driven logging.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from taskflow.clock import Clock, SystemClock
from taskflow.constants import (
    ConfigManager,
    get_hourly_window,
    get_lock_timeout_seconds,
    get_percentage_round_precision,
    get_schedule_mode,
    get_scheduler_max_workers,
    get_tick_interval_seconds,
)
from taskflow.managers import (
    ActivityLogListener,
    CompletionTracker,
    HierarchyGraph,
    ProjectLockManager,
    PropagationEngine,
    SchedulerDriver,
    SchedulerReport,
    StorageManager,
    TickResult,
    get_event_bus,
    subscribe_listener,
)
from taskflow.models.files import ProjectFile, WorkerChange


class TaskflowCore:
    """
    Core class wiring the engine together.

    Orchestrates manager classes:
    - StorageManager: Persistence to .taskflow/ folder
    - ProjectLockManager: Shared by engine operations
    - PropagationEngine: Ticks, cascades, user actions
    - SchedulerDriver: Periodic ticks over all projects
    - CompletionTracker: Progress summaries
    - EventBus / ActivityLogListener: Event-driven logging
    """

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        clock: Optional[Clock] = None,
        verbose: bool = False,
        log_activity: bool = True,
    ):
        """
        Initialize the TaskflowCore with a data directory.

        Args:
            data_dir: Path to the data directory. Defaults to .taskflow/ in current directory.
            clock: Time source. Defaults to SystemClock.
            verbose: Log every status change, not only failures.
            log_activity: Whether to subscribe the activity log listener.
        """
        self.storage = StorageManager(data_dir)
        self.config = ConfigManager(data_dir=self.storage.data_dir)
        self.clock = clock or SystemClock()

        self.locks = ProjectLockManager(
            timeout=get_lock_timeout_seconds(self.config),
            lock_dir=self.storage.projects_dir,
        )
        self.engine = PropagationEngine(self.storage, clock=self.clock, locks=self.locks)
        self.completion_tracker = CompletionTracker(
            round_precision=get_percentage_round_precision(self.config)
        )

        # Set up event-driven logging
        self.event_bus = get_event_bus()
        self.activity_log: Optional[ActivityLogListener] = None
        if log_activity:
            self.activity_log = ActivityLogListener(verbose=verbose)
            subscribe_listener(self.activity_log)

    def close(self) -> None:
        """Unsubscribe listeners registered by this core."""
        if self.activity_log is not None:
            self.event_bus.unsubscribe(self.activity_log)
            self.activity_log = None

    def build_scheduler(
        self,
        mode: Optional[str] = None,
        interval_seconds: Optional[float] = None,
    ) -> SchedulerDriver:
        """Create a scheduler driver from config, with optional overrides."""
        mode = mode or get_schedule_mode(self.config)
        return SchedulerDriver(
            self.engine,
            self.storage,
            clock=self.clock,
            mode=mode,
            interval_seconds=interval_seconds or get_tick_interval_seconds(mode, self.config),
            hourly_window=get_hourly_window(self.config),
            max_workers=get_scheduler_max_workers(self.config),
        )

    # =========================================================================
    # Projects
    # =========================================================================

    def import_project(self, data: Dict[str, Any]) -> ProjectFile:
        """Validate and store a project subtree (replacing an existing one)."""
        subtree = ProjectFile.model_validate(data)
        self.storage.save_project_subtree(subtree)
        return subtree

    def list_projects(self) -> List[ProjectFile]:
        """Load every stored project."""
        return [
            self.storage.load_project_subtree(project_id)
            for project_id in self.storage.load_all_project_ids()
        ]

    def load_graph(self, project_id: str) -> HierarchyGraph:
        """Load the hierarchy of one project."""
        return HierarchyGraph(self.storage.load_project_subtree(project_id))

    def summarize(self, project_id: str) -> Dict:
        """Progress summary of one project."""
        return self.completion_tracker.summarize(self.load_graph(project_id))

    # =========================================================================
    # Engine operations
    # =========================================================================

    def tick(self, project_id: str, now: Optional[datetime] = None) -> TickResult:
        """Run the scheduled passes for a single project."""
        return self.engine.tick(project_id, now)

    def run_scheduled_tick(self, now: Optional[datetime] = None) -> SchedulerReport:
        """Tick every project once."""
        return self.build_scheduler().run_scheduled_tick(now)

    def cancel_project(self, project_id: str) -> TickResult:
        """Cancel a project and cascade to its phases, tasks and workers."""
        return self.engine.cancel_project(project_id)

    def cancel_phase(self, phase_id: str) -> TickResult:
        """Cancel a phase and cascade to its tasks and their workers."""
        return self.engine.cancel_phase(phase_id)

    def complete_item(self, item_id: str) -> TickResult:
        """Record the actual completion of a project, phase or task."""
        return self.engine.complete_item(item_id)

    def terminate_worker(self, project_id: str, worker_id: str) -> List[WorkerChange]:
        """Terminate a worker on a project and its tasks."""
        return self.engine.terminate_worker(project_id, worker_id)
