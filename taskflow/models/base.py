"""
Work item models for the TaskFlow lifecycle engine.

Project, Phase and Task share one status lifecycle and one schedule shape.
Parent links are stored as ids (flat structure), hierarchy is rebuilt by
HierarchyGraph when a project subtree is loaded.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, PrivateAttr, field_validator, model_validator

from taskflow.utils import to_naive_local


class WorkStatus(str, Enum):
    """Status values shared by projects, phases and tasks."""

    PENDING = "pending"
    ON_GOING = "onGoing"
    COMPLETED = "completed"
    DELAYED = "delayed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Completed and cancelled items never auto-transition."""
        return self in (WorkStatus.COMPLETED, WorkStatus.CANCELLED)

    @property
    def display_name(self) -> str:
        """Human readable name, e.g. 'On Going'."""
        words = []
        current = ""
        for char in self.value:
            if char.isupper() and current:
                words.append(current)
                current = char
            else:
                current += char
        words.append(current)
        return " ".join(word.capitalize() for word in words)


class WorkerStatus(str, Enum):
    """Assignment status of a worker on a project or task."""

    UNASSIGNED = "unassigned"
    ASSIGNED = "assigned"
    TERMINATED = "terminated"


class WorkItem(BaseModel):
    """
    Base model for projects, phases and tasks.

    Common fields:
    - id: Unique identifier
    - name / description: Descriptive fields, not read by the engine
    - start_date_time: Instant after which work is expected to be active
    - completion_date_time: Instant by which work is expected to finish
    - actual_completion_date_time: Set when the item is completed
    - status: Current WorkStatus

    Subclasses override _item_type to specify their type.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    description: Optional[str] = None
    start_date_time: datetime
    completion_date_time: datetime
    actual_completion_date_time: Optional[datetime] = None
    status: WorkStatus = WorkStatus.PENDING
    updated_at: Optional[datetime] = None
    _item_type: str = PrivateAttr(default="item")

    @field_validator(
        "start_date_time",
        "completion_date_time",
        "actual_completion_date_time",
        "updated_at",
    )
    @classmethod
    def normalize_timezone(cls, value: Optional[datetime]) -> Optional[datetime]:
        """Store every instant as naive local time."""
        return to_naive_local(value)

    @model_validator(mode="after")
    def validate_schedule(self) -> "WorkItem":
        """Completion must be strictly later than start."""
        if self.completion_date_time <= self.start_date_time:
            raise ValueError(
                "completion_date_time must be later than start_date_time."
            )
        return self

    @property
    def item_type(self) -> str:
        """Get the item type."""
        return self._item_type

    @property
    def parent_id(self) -> Optional[str]:
        """Id of the owning item, None for projects."""
        return None


class Task(WorkItem):
    """Task model - leaf work item, belongs to exactly one phase."""

    phase_id: str
    _item_type: str = PrivateAttr(default="task")

    @property
    def parent_id(self) -> Optional[str]:
        return self.phase_id


class Phase(WorkItem):
    """Phase model - groups tasks, belongs to exactly one project."""

    project_id: str
    _item_type: str = PrivateAttr(default="phase")

    @property
    def parent_id(self) -> Optional[str]:
        return self.project_id


class Project(WorkItem):
    """Project model - root of a phase/task subtree."""

    _item_type: str = PrivateAttr(default="project")


class WorkerAssignment(BaseModel):
    """A worker assigned to a project, or to one task of that project.

    task_id is None for the project-level assignment.
    """

    worker_id: str
    project_id: str
    task_id: Optional[str] = None
    status: WorkerStatus = WorkerStatus.ASSIGNED
    updated_at: Optional[datetime] = None

    @field_validator("updated_at")
    @classmethod
    def normalize_timezone(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_local(value)

    @property
    def is_project_assignment(self) -> bool:
        return self.task_id is None
