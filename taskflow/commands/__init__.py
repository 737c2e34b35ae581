"""
CLI command groups for TaskFlow.
"""
import click

from taskflow.core import TaskflowCore
from taskflow.exceptions import (
    InvalidOperationError,
    LockTimeoutError,
    NotFoundError,
    TaskflowError,
    ValidationError,
)


def build_core(ctx: click.Context) -> TaskflowCore:
    """Create a TaskflowCore from the options of the root command."""
    obj = ctx.find_root().obj or {}
    core = TaskflowCore(data_dir=obj.get("data_dir"), verbose=obj.get("verbose", False))
    ctx.call_on_close(core.close)
    return core


def raise_click_error(error: TaskflowError) -> None:
    """Convert an engine error into a ClickException with a readable prefix."""
    if isinstance(error, NotFoundError):
        raise click.ClickException(str(error))
    if isinstance(error, ValidationError):
        raise click.ClickException(f"Validation Error: {error}")
    if isinstance(error, InvalidOperationError):
        raise click.ClickException(f"Operation Error: {error}")
    if isinstance(error, LockTimeoutError):
        raise click.ClickException(f"Busy: {error}. Try again later.")
    raise click.ClickException(f"Error: {error}")
