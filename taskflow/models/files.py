"""
File models for the TaskFlow lifecycle engine.

Models representing the structure of JSON files in the .taskflow/ directory,
and the change records exchanged with the storage layer.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from taskflow.constants import (
    DEFAULT_DAILY_TICK_INTERVAL_SECONDS,
    DEFAULT_HOURLY_TICK_INTERVAL_SECONDS,
    DEFAULT_HOURLY_WINDOW_END,
    DEFAULT_HOURLY_WINDOW_START,
    DEFAULT_LOCK_TIMEOUT_SECONDS,
    DEFAULT_PERCENTAGE_ROUND_PRECISION,
    DEFAULT_SCHEDULE_MODE,
    DEFAULT_SCHEDULER_MAX_WORKERS,
)

from .base import Phase, Project, Task, WorkerAssignment, WorkerStatus, WorkStatus


class ProjectFile(BaseModel):
    """Model for projects/<project_id>.json.

    One file holds a whole project subtree, so a single atomic file
    replace commits every change made to that subtree.
    """

    project: Project
    phases: List[Phase] = Field(default_factory=list)
    tasks: List[Task] = Field(default_factory=list)
    workers: List[WorkerAssignment] = Field(default_factory=list)


class StatusChange(BaseModel):
    """One staged status update for a project, phase or task.

    new_actual_completion is only kept when new_status is completed; every
    other status clears the item's actual completion instant.
    """

    item_id: str
    item_type: str
    old_status: WorkStatus
    new_status: WorkStatus
    new_actual_completion: Optional[datetime] = None


class UnassignScope(BaseModel):
    """Which worker assignments to release.

    task_ids=None releases every assignment of the project (project-level
    and task-level). A list restricts it to those tasks.
    """

    project_id: str
    task_ids: Optional[List[str]] = None


class WorkerChange(BaseModel):
    """One staged worker assignment update, keyed by (worker_id, task_id)."""

    worker_id: str
    task_id: Optional[str] = None
    new_status: WorkerStatus


class ConfigFile(BaseModel):
    """Model for config.json file.

    Engine and scheduler settings.
    """

    schema_version: str = "0.1.0"

    # Scheduler settings
    schedule_mode: Literal["daily", "hourly"] = DEFAULT_SCHEDULE_MODE
    daily_tick_interval_seconds: int = Field(default=DEFAULT_DAILY_TICK_INTERVAL_SECONDS, gt=0)
    hourly_tick_interval_seconds: int = Field(default=DEFAULT_HOURLY_TICK_INTERVAL_SECONDS, gt=0)
    hourly_window_start: int = Field(default=DEFAULT_HOURLY_WINDOW_START, ge=0, le=23)
    hourly_window_end: int = Field(default=DEFAULT_HOURLY_WINDOW_END, ge=0, le=23)
    scheduler_max_workers: int = Field(default=DEFAULT_SCHEDULER_MAX_WORKERS, ge=1)

    # Locking
    lock_timeout_seconds: float = DEFAULT_LOCK_TIMEOUT_SECONDS

    # Display settings
    percentage_round_precision: int = Field(default=DEFAULT_PERCENTAGE_ROUND_PRECISION, ge=0)

    @model_validator(mode="after")
    def validate_hourly_window(self) -> "ConfigFile":
        if self.hourly_window_start > self.hourly_window_end:
            raise ValueError(
                "hourly_window_start must not be later than hourly_window_end."
            )
        return self
