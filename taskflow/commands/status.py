"""
Status command for TaskFlow.

Displays a summary of a project's lifecycle state.
"""

import json

import click

from taskflow.commands import build_core, raise_click_error
from taskflow.constants import STATUS_HEADER_WIDTH
from taskflow.exceptions import TaskflowError
from taskflow.models.base import WorkStatus
from taskflow.utils import format_datetime

STATUS_INDICATORS = {
    WorkStatus.PENDING: " ·",
    WorkStatus.ON_GOING: " ⏳",
    WorkStatus.DELAYED: " ⚠",
    WorkStatus.COMPLETED: " ✓",
    WorkStatus.CANCELLED: " ✗",
}


def _format_counts(counts):
    return ", ".join(
        f"{WorkStatus(key).display_name}: {value}" for key, value in counts.items() if value
    ) or "none"


@click.command()
@click.argument("project_id")
@click.option("--json", "json_output", is_flag=True, help="Output the summary in JSON format.")
@click.pass_context
def status(ctx, project_id, json_output):
    """Show PROJECT_ID with its phases, tasks and progress."""
    core = build_core(ctx)
    try:
        graph = core.load_graph(project_id)
        summary = core.completion_tracker.summarize(graph)
    except TaskflowError as e:
        raise_click_error(e)

    if json_output:
        click.echo(json.dumps(summary, indent=2))
        return

    project = graph.project
    click.echo("=" * STATUS_HEADER_WIDTH)
    click.echo(f"{project.name}{STATUS_INDICATORS[project.status]} {project.status.display_name}")
    click.echo("=" * STATUS_HEADER_WIDTH)
    click.echo(
        f"Schedule: {format_datetime(project.start_date_time)} → "
        f"{format_datetime(project.completion_date_time)}"
        f" (actual: {format_datetime(project.actual_completion_date_time)})"
    )
    click.echo(f"Progress: {summary['percentage']}%")
    click.echo(f"Phases: {_format_counts(summary['phases'])}")
    click.echo(f"Tasks: {_format_counts(summary['tasks'])}")
    click.echo("")

    for phase in graph.phases_of(project.id):
        click.echo(f"- {phase.name}{STATUS_INDICATORS[phase.status]}")
        for task in graph.tasks_of(phase.id):
            click.echo(f"  - {task.name}{STATUS_INDICATORS[task.status]}")

    if graph.orphans:
        click.echo("")
        click.echo(f"⚠ {len(graph.orphans)} orphaned item(s) skipped.")
