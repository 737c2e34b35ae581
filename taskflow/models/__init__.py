"""
Data models for the TaskFlow lifecycle engine.

Import models explicitly from their modules to avoid circular imports:
    from taskflow.models.base import WorkItem, WorkStatus, Project, Phase, Task
    from taskflow.models.files import ProjectFile, StatusChange, ConfigFile
"""

from .base import (
    Phase,
    Project,
    Task,
    WorkerAssignment,
    WorkerStatus,
    WorkItem,
    WorkStatus,
)
