"""
Engine commands: one-off ticks and the scheduler loop.
"""
import click

from taskflow.commands import build_core, raise_click_error
from taskflow.constants import VALID_SCHEDULE_MODES
from taskflow.exceptions import TaskflowError
from taskflow.utils import parse_datetime


def _parse_at(at):
    if at is None:
        return None
    value = parse_datetime(at)
    if value is None:
        raise click.BadParameter(f"Unrecognized date/time: {at}", param_hint="--at")
    return value


def _echo_report(report):
    if report.skipped:
        click.echo("Outside the hourly window, nothing to do.")
        return
    click.echo(
        f"Ticked {len(report.results)} project(s), "
        f"{report.changed_items} status change(s), "
        f"{len(report.failures)} failure(s)."
    )


@click.command()
@click.option("--project", "project_id", help="Tick a single project instead of all.")
@click.option("--at", help="Evaluate as of this date/time (default: now).")
@click.pass_context
def tick(ctx, project_id, at):
    """Apply date-driven transitions and completion rollup once."""
    core = build_core(ctx)
    now = _parse_at(at)

    if project_id:
        try:
            result = core.tick(project_id, now)
        except TaskflowError as e:
            raise_click_error(e)
        click.echo(f"Project {project_id}: {len(result.changes)} status change(s).")
        for change in result.changes:
            click.echo(
                f"  {change.item_type} {change.item_id}: "
                f"{change.old_status.value} → {change.new_status.value}"
            )
        return

    try:
        report = core.run_scheduled_tick(now)
    except TaskflowError as e:
        raise_click_error(e)
    _echo_report(report)
    if not report.ok:
        ctx.exit(1)


@click.command()
@click.option("--mode", type=click.Choice(VALID_SCHEDULE_MODES), help="Override the configured schedule mode.")
@click.option("--interval", type=float, help="Seconds between runs (default from config).")
@click.option("--once", is_flag=True, help="Run a single scheduled tick and exit.")
@click.pass_context
def run(ctx, mode, interval, once):
    """Run the scheduler, ticking every project on an interval."""
    core = build_core(ctx)
    try:
        scheduler = core.build_scheduler(mode=mode, interval_seconds=interval)
    except TaskflowError as e:
        raise_click_error(e)

    click.echo(
        f"Scheduler started ({scheduler.mode}, every {scheduler.interval_seconds:g}s)."
    )
    try:
        scheduler.run_forever(on_report=_echo_report, max_runs=1 if once else None)
    except KeyboardInterrupt:
        click.echo("Scheduler stopped.")
