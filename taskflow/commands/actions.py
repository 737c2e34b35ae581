"""
User action commands: cancel, complete, terminate workers.

These are the only commands that surface engine errors to the user.
"""
import click

from taskflow.commands import build_core, raise_click_error
from taskflow.exceptions import TaskflowError


def _echo_cascade(label, result):
    cancelled = sum(1 for change in result.changes if change.new_status.value == "cancelled")
    if not result.changed:
        click.echo(f"{label} was already cancelled.")
        return
    click.echo(f"{label} cancelled: {cancelled} item(s) cancelled, "
               f"{result.released_workers} worker assignment(s) released.")


@click.group()
def cancel():
    """Cancel a project or a phase, cascading to descendants."""
    pass


@cancel.command(name="project")
@click.argument("project_id")
@click.pass_context
def cancel_project(ctx, project_id):
    """Cancel PROJECT_ID with all of its phases and tasks."""
    core = build_core(ctx)
    try:
        result = core.cancel_project(project_id)
    except TaskflowError as e:
        raise_click_error(e)
    _echo_cascade(f"Project {project_id}", result)


@cancel.command(name="phase")
@click.argument("phase_id")
@click.pass_context
def cancel_phase(ctx, phase_id):
    """Cancel PHASE_ID and its tasks."""
    core = build_core(ctx)
    try:
        result = core.cancel_phase(phase_id)
    except TaskflowError as e:
        raise_click_error(e)
    _echo_cascade(f"Phase {phase_id}", result)


@click.command()
@click.argument("item_id")
@click.pass_context
def complete(ctx, item_id):
    """Record ITEM_ID (project, phase or task) as completed now."""
    core = build_core(ctx)
    try:
        result = core.complete_item(item_id)
    except TaskflowError as e:
        raise_click_error(e)
    change = result.changes[0]
    click.echo(f"{change.item_type.capitalize()} {item_id} marked completed.")


@click.command(name="terminate-worker")
@click.argument("project_id")
@click.argument("worker_id")
@click.pass_context
def terminate_worker(ctx, project_id, worker_id):
    """Terminate WORKER_ID on PROJECT_ID and on its tasks there."""
    core = build_core(ctx)
    try:
        changes = core.terminate_worker(project_id, worker_id)
    except TaskflowError as e:
        raise_click_error(e)
    click.echo(
        f"Worker {worker_id} terminated on project {project_id} "
        f"and {len(changes) - 1} task(s)."
    )
