"""
Storage manager for the TaskFlow lifecycle engine.

Handles loading and saving of all JSON files in the .taskflow/ directory.
Each project subtree lives in its own file, so committing a batch of
changes for one project is a single atomic file replace.
"""

import json
import os
import re
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from taskflow.constants import DEFAULT_DATA_DIR
from taskflow.exceptions import NotFoundError, StorageError, ValidationError
from taskflow.models.base import WorkerStatus, WorkItem, WorkStatus
from taskflow.models.files import (
    ConfigFile,
    ProjectFile,
    StatusChange,
    UnassignScope,
    WorkerChange,
)

PROJECT_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class StorageManager:
    """
    Manages persistence of project subtrees to JSON files in the .taskflow/ directory.

    Handles atomic writes to prevent data corruption. Holds no business
    rules: callers decide what changes, this class only applies them.
    """

    def __init__(self, data_dir: Optional[Path] = None) -> None:
        """
        Initialize the StorageManager with a data directory path.

        Args:
            data_dir: Path to the data directory. Defaults to .taskflow/ in current directory.
        """
        self.data_dir = Path(data_dir) if data_dir else Path(DEFAULT_DATA_DIR)
        self.projects_dir = self.data_dir / "projects"
        self._ensure_data_dir()

    def _ensure_data_dir(self) -> None:
        """Create the data directory and projects subdirectory if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.projects_dir.mkdir(exist_ok=True)

    def _atomic_write(self, file_path: Path, data: Dict[str, Any]) -> None:
        """Write data to a JSON file atomically to prevent corruption.

        Args:
            file_path: Path to the file to write.
            data: Dictionary data to write as JSON.

        Raises:
            StorageError: If writing to file fails.
        """
        temp_fd, temp_path = tempfile.mkstemp(
            dir=file_path.parent, prefix=".tmp_taskflow_", suffix=".json"
        )

        try:
            with os.fdopen(temp_fd, "w") as temp_file:
                json.dump(data, temp_file, indent=2)
            os.replace(temp_path, file_path)
        except Exception as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise StorageError(f"Failed to write to {file_path}: {e}")

    def _project_path(self, project_id: str) -> Path:
        if not PROJECT_ID_PATTERN.match(project_id):
            raise ValidationError(f"Invalid project id: {project_id!r}")
        return self.projects_dir / f"{project_id}.json"

    # =========================================================================
    # Project subtrees
    # =========================================================================

    def load_project_subtree(self, project_id: str) -> ProjectFile:
        """Load one project with its phases, tasks and worker assignments.

        Raises:
            NotFoundError: If the project has no file.
            StorageError: If the file cannot be parsed.
        """
        file_path = self._project_path(project_id)
        if not file_path.exists():
            raise NotFoundError(f"Project not found: {project_id}")

        try:
            with open(file_path, "r") as f:
                data = json.load(f)
            return ProjectFile.model_validate(data)
        except (json.JSONDecodeError, PydanticValidationError, OSError) as e:
            raise StorageError(f"Failed to load project {project_id}: {e}")

    def save_project_subtree(self, data: ProjectFile) -> None:
        """Save a whole project subtree, replacing any previous file."""
        file_path = self._project_path(data.project.id)
        self._atomic_write(file_path, data.model_dump(mode="json"))

    def load_all_project_ids(self) -> List[str]:
        """Return the ids of every stored project, sorted."""
        return sorted(
            path.stem
            for path in self.projects_dir.glob("*.json")
            if not path.name.startswith(".tmp_")
        )

    def find_project_id(self, item_id: str) -> str:
        """Find the project owning a project, phase or task id.

        Raises:
            NotFoundError: If no stored project contains the item.
        """
        for project_id in self.load_all_project_ids():
            data = self.load_project_subtree(project_id)
            if data.project.id == item_id:
                return project_id
            if any(p.id == item_id for p in data.phases):
                return project_id
            if any(t.id == item_id for t in data.tasks):
                return project_id
        raise NotFoundError(f"Item not found: {item_id}")

    # =========================================================================
    # Batched writes
    # =========================================================================

    def commit_status_changes(
        self,
        project_id: str,
        changes: List[StatusChange],
        unassign: Optional[UnassignScope] = None,
        timestamp: Optional[datetime] = None,
    ) -> None:
        """Apply a batch of status changes to one project atomically.

        Every change (and the optional worker release) is applied to a fresh
        copy of the subtree, then the file is replaced in one step. If any
        change refers to an unknown item, or its old_status no longer
        matches the stored status, nothing is written.

        Args:
            project_id: Project whose subtree is being updated.
            changes: Status changes to apply.
            unassign: Worker assignments to release in the same write.
            timestamp: Value for updated_at. Defaults to now.

        Raises:
            StorageError: If an item is unknown, was changed since the batch
                was computed, or the write fails.
        """
        timestamp = timestamp or datetime.now()
        data = self.load_project_subtree(project_id)

        items: Dict[str, WorkItem] = {data.project.id: data.project}
        items.update({phase.id: phase for phase in data.phases})
        items.update({task.id: task for task in data.tasks})

        missing = [c.item_id for c in changes if c.item_id not in items]
        if missing:
            raise StorageError(
                f"Cannot commit changes for project {project_id}: "
                f"unknown items {', '.join(missing)}"
            )

        stale = [
            f"{c.item_id} (expected {c.old_status.value}, "
            f"found {items[c.item_id].status.value})"
            for c in changes
            if items[c.item_id].status != c.old_status
        ]
        if stale:
            raise StorageError(
                f"Cannot commit changes for project {project_id}: "
                f"stale items {', '.join(stale)}"
            )

        for change in changes:
            item = items[change.item_id]
            item.status = change.new_status
            if change.new_status == WorkStatus.COMPLETED:
                item.actual_completion_date_time = change.new_actual_completion
            else:
                item.actual_completion_date_time = None
            item.updated_at = timestamp

        if unassign is not None:
            self._release_workers(data, unassign, timestamp)

        self.save_project_subtree(data)

    def unassign_workers(
        self, scope: UnassignScope, timestamp: Optional[datetime] = None
    ) -> int:
        """Release worker assignments in a project.

        Returns:
            Number of assignments moved to unassigned.
        """
        data = self.load_project_subtree(scope.project_id)
        released = self._release_workers(data, scope, timestamp or datetime.now())
        if released:
            self.save_project_subtree(data)
        return released

    def commit_worker_changes(
        self,
        project_id: str,
        worker_changes: List[WorkerChange],
        timestamp: Optional[datetime] = None,
    ) -> None:
        """Apply worker assignment status changes to one project atomically.

        Raises:
            StorageError: If an assignment is unknown or the write fails.
        """
        timestamp = timestamp or datetime.now()
        data = self.load_project_subtree(project_id)
        assignments = {(w.worker_id, w.task_id): w for w in data.workers}

        for change in worker_changes:
            assignment = assignments.get((change.worker_id, change.task_id))
            if assignment is None:
                raise StorageError(
                    f"Unknown assignment of worker {change.worker_id} "
                    f"in project {project_id}"
                )
            assignment.status = change.new_status
            assignment.updated_at = timestamp

        self.save_project_subtree(data)

    @staticmethod
    def _release_workers(
        data: ProjectFile, scope: UnassignScope, timestamp: datetime
    ) -> int:
        task_ids = set(scope.task_ids) if scope.task_ids is not None else None
        released = 0
        for assignment in data.workers:
            if assignment.status != WorkerStatus.ASSIGNED:
                continue
            if task_ids is not None and assignment.task_id not in task_ids:
                continue
            assignment.status = WorkerStatus.UNASSIGNED
            assignment.updated_at = timestamp
            released += 1
        return released

    # =========================================================================
    # Config File
    # =========================================================================

    def load_config(self) -> ConfigFile:
        """Load config.json and return as ConfigFile model."""
        file_path = self.data_dir / "config.json"
        if not file_path.exists():
            return ConfigFile()

        try:
            with open(file_path, "r") as f:
                data = json.load(f)
            return ConfigFile.model_validate(data)
        except (json.JSONDecodeError, PydanticValidationError) as e:
            raise StorageError(f"Failed to load config.json: {e}")

    def save_config(self, data: ConfigFile) -> None:
        """Save ConfigFile model to config.json."""
        file_path = self.data_dir / "config.json"
        self._atomic_write(file_path, data.model_dump(mode="json"))
