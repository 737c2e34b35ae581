"""
Test fixtures for the TaskFlow test suite.

Provides:
- Temporary data directory fixtures (isolated from the project's .taskflow/)
- Mock data builders for creating projects, phases, tasks and workers
- A pinned clock and an engine wired to temporary storage
"""

import shutil
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Generator, List, Optional

import pytest

from taskflow.clock import FixedClock
from taskflow.managers.events import Event, EventListener, EventType, get_event_bus
from taskflow.managers.lock_manager import ProjectLockManager
from taskflow.managers.propagation_engine import PropagationEngine
from taskflow.managers.storage_manager import StorageManager
from taskflow.models.base import (
    Phase,
    Project,
    Task,
    WorkerAssignment,
    WorkerStatus,
    WorkStatus,
)
from taskflow.models.files import ProjectFile

NOW = datetime(2025, 6, 15, 12, 0, 0)


# =============================================================================
# Temporary Directory Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test isolation.

    Ensures tests don't modify the project's actual .taskflow/ directory.
    """
    temp_path = Path(tempfile.mkdtemp(prefix="taskflow_test_"))
    yield temp_path
    # Cleanup
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def data_dir(temp_dir: Path) -> Path:
    """Path of a .taskflow/ directory inside the temporary directory."""
    return temp_dir / ".taskflow"


@pytest.fixture(autouse=True)
def reset_event_bus():
    """Reset event bus before and after each test."""
    bus = get_event_bus()
    bus.clear()
    yield
    bus.clear()


# =============================================================================
# Mock Data Builders
# =============================================================================


class MockDataBuilder:
    """Helper class for building mock TaskFlow items for testing.

    Schedules are given as offsets from NOW so tests read as
    "started two days ago, due tomorrow".
    """

    @staticmethod
    def create_project(
        uuid: str = "proj-1",
        name: str = "Test Project",
        start: timedelta = timedelta(days=-10),
        completion: timedelta = timedelta(days=30),
        status: WorkStatus = WorkStatus.PENDING,
        actual_completion: Optional[datetime] = None,
    ) -> Project:
        """Create a mock Project for testing."""
        return Project(
            id=uuid,
            name=name,
            start_date_time=NOW + start,
            completion_date_time=NOW + completion,
            status=status,
            actual_completion_date_time=actual_completion,
        )

    @staticmethod
    def create_phase(
        uuid: str = "phase-1",
        project_id: str = "proj-1",
        name: str = "Test Phase",
        start: timedelta = timedelta(days=-5),
        completion: timedelta = timedelta(days=10),
        status: WorkStatus = WorkStatus.PENDING,
        actual_completion: Optional[datetime] = None,
    ) -> Phase:
        """Create a mock Phase for testing."""
        return Phase(
            id=uuid,
            project_id=project_id,
            name=name,
            start_date_time=NOW + start,
            completion_date_time=NOW + completion,
            status=status,
            actual_completion_date_time=actual_completion,
        )

    @staticmethod
    def create_task(
        uuid: str = "task-1",
        phase_id: str = "phase-1",
        name: str = "Test Task",
        start: timedelta = timedelta(days=-1),
        completion: timedelta = timedelta(days=2),
        status: WorkStatus = WorkStatus.PENDING,
        actual_completion: Optional[datetime] = None,
    ) -> Task:
        """Create a mock Task for testing."""
        return Task(
            id=uuid,
            phase_id=phase_id,
            name=name,
            start_date_time=NOW + start,
            completion_date_time=NOW + completion,
            status=status,
            actual_completion_date_time=actual_completion,
        )

    @staticmethod
    def create_worker(
        worker_id: str = "worker-1",
        project_id: str = "proj-1",
        task_id: Optional[str] = None,
        status: WorkerStatus = WorkerStatus.ASSIGNED,
    ) -> WorkerAssignment:
        """Create a mock WorkerAssignment for testing."""
        return WorkerAssignment(
            worker_id=worker_id,
            project_id=project_id,
            task_id=task_id,
            status=status,
        )


@pytest.fixture
def mock_data() -> MockDataBuilder:
    """Provide mock data builder for test item creation."""
    return MockDataBuilder()


# =============================================================================
# Project Structure Fixtures
# =============================================================================


@pytest.fixture
def sample_subtree(mock_data: MockDataBuilder) -> ProjectFile:
    """Create a sample project subtree for testing.

    Structure:
        proj-1 (pending, started 10 days ago)
        ├── phase-1 (pending, started 5 days ago)
        │   ├── task-1 (pending, started yesterday)
        │   └── task-2 (pending, starts tomorrow)
        └── phase-2 (pending, starts in 11 days)
            └── task-3 (pending, starts in 12 days)

    Workers:
        worker-1 on proj-1 and task-1
        worker-2 on proj-1 and task-3
    """
    return ProjectFile(
        project=mock_data.create_project(),
        phases=[
            mock_data.create_phase(),
            mock_data.create_phase(
                uuid="phase-2",
                name="Second Phase",
                start=timedelta(days=11),
                completion=timedelta(days=25),
            ),
        ],
        tasks=[
            mock_data.create_task(),
            mock_data.create_task(
                uuid="task-2",
                name="Later Task",
                start=timedelta(days=1),
                completion=timedelta(days=4),
            ),
            mock_data.create_task(
                uuid="task-3",
                phase_id="phase-2",
                name="Phase Two Task",
                start=timedelta(days=12),
                completion=timedelta(days=14),
            ),
        ],
        workers=[
            mock_data.create_worker(),
            mock_data.create_worker(task_id="task-1"),
            mock_data.create_worker(worker_id="worker-2"),
            mock_data.create_worker(worker_id="worker-2", task_id="task-3"),
        ],
    )


@pytest.fixture
def storage(data_dir: Path) -> StorageManager:
    """StorageManager on the temporary data directory."""
    return StorageManager(data_dir=data_dir)


@pytest.fixture
def stored_subtree(storage: StorageManager, sample_subtree: ProjectFile) -> ProjectFile:
    """The sample subtree, saved to storage."""
    storage.save_project_subtree(sample_subtree)
    return sample_subtree


@pytest.fixture
def clock() -> FixedClock:
    """Clock pinned to NOW."""
    return FixedClock(NOW)


@pytest.fixture
def engine(storage: StorageManager, clock: FixedClock) -> PropagationEngine:
    """PropagationEngine on temporary storage with a pinned clock."""
    return PropagationEngine(
        storage,
        clock=clock,
        locks=ProjectLockManager(timeout=2.0, lock_dir=storage.projects_dir),
    )


# =============================================================================
# Event Helpers
# =============================================================================


class RecordingListener(EventListener):
    """Listener that keeps every event it receives."""

    def __init__(self, event_types: Optional[List[EventType]] = None) -> None:
        self._event_types = event_types or list(EventType)
        self.events: List[Event] = []

    @property
    def subscribed_events(self) -> List[EventType]:
        return self._event_types

    def handle(self, event: Event) -> None:
        self.events.append(event)

    def of_type(self, event_type: EventType) -> List[Event]:
        return [event for event in self.events if event.type == event_type]


@pytest.fixture
def recorder() -> RecordingListener:
    """A RecordingListener subscribed to every event type."""
    listener = RecordingListener()
    get_event_bus().subscribe(listener)
    return listener


def statuses(storage: StorageManager, project_id: str = "proj-1") -> dict:
    """Map item id to stored status value for one project."""
    data = storage.load_project_subtree(project_id)
    result = {data.project.id: data.project.status.value}
    result.update({phase.id: phase.status.value for phase in data.phases})
    result.update({task.id: task.status.value for task in data.tasks})
    return result


@pytest.fixture
def now() -> datetime:
    """The instant every mock schedule is relative to."""
    return NOW


@pytest.fixture
def read_statuses(storage: StorageManager):
    """Provide a function reading stored statuses by item id."""
    return lambda project_id="proj-1": statuses(storage, project_id)
