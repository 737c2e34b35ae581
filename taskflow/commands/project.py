"""
Project commands: import subtrees and list stored projects.
"""
import json
from pathlib import Path

import click
from pydantic import ValidationError as PydanticValidationError

from taskflow.commands import build_core, raise_click_error
from taskflow.exceptions import TaskflowError
from taskflow.utils import format_datetime


@click.group()
def project():
    """Import and list projects."""
    pass


@project.command(name="import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_project(ctx, file):
    """Import a project subtree from a JSON FILE.

    The file holds "project", "phases", "tasks" and "workers" keys.
    An existing project with the same id is replaced.
    """
    core = build_core(ctx)
    try:
        with open(file, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid JSON in {file}: {e}")

    try:
        subtree = core.import_project(data)
    except PydanticValidationError as e:
        raise click.ClickException(f"Validation Error: {e}")
    except TaskflowError as e:
        raise_click_error(e)

    click.echo(
        f"Project '{subtree.project.name}' imported "
        f"({len(subtree.phases)} phase(s), {len(subtree.tasks)} task(s))."
    )


@project.command(name="list")
@click.pass_context
def list_projects(ctx):
    """List stored projects with their status and schedule."""
    core = build_core(ctx)
    try:
        subtrees = core.list_projects()
    except TaskflowError as e:
        raise_click_error(e)

    if not subtrees:
        click.echo("No projects found.")
        return

    for subtree in subtrees:
        item = subtree.project
        click.echo(
            f"{item.id}  {item.status.display_name:<10}  {item.name}  "
            f"({format_datetime(item.start_date_time)} → "
            f"{format_datetime(item.completion_date_time)})"
        )
