"""
Custom exceptions for the TaskFlow lifecycle engine.
"""


class TaskflowError(Exception):
    """Base exception for all TaskFlow-related errors."""
    pass


class ValidationError(TaskflowError):
    """Raised when validation fails for an item or operation."""
    pass


class NotFoundError(TaskflowError):
    """Raised when a requested item is not found."""
    pass


class InvalidOperationError(TaskflowError):
    """Raised when an operation is not allowed in the current state."""
    pass


class StorageError(TaskflowError):
    """Raised when loading or committing project data fails."""
    pass


class LockTimeoutError(TaskflowError):
    """Raised when a project lock cannot be acquired in time."""

    def __init__(self, project_id: str, timeout: float) -> None:
        self.project_id = project_id
        self.timeout = timeout
        super().__init__(
            f"Could not acquire lock for project {project_id} within {timeout}s"
        )


class ConfigurationError(TaskflowError):
    """Raised when there's a configuration or setup issue."""
    pass
