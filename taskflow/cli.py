"""
CLI for the TaskFlow work-status lifecycle engine.

Uses TaskflowCore and managers exclusively.
"""
from pathlib import Path

import click

from taskflow.commands.actions import cancel, complete, terminate_worker
from taskflow.commands.config import config
from taskflow.commands.engine import run, tick
from taskflow.commands.project import project
from taskflow.commands.status import status
from taskflow.constants import DATA_DIR_ENVVAR, DEFAULT_DATA_DIR


@click.group()
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar=DATA_DIR_ENVVAR,
    default=DEFAULT_DATA_DIR,
    show_default=True,
    help="Directory holding project files and config.json.",
)
@click.option("-v", "--verbose", is_flag=True, help="Log every status change.")
@click.pass_context
def cli(ctx, data_dir, verbose):
    """Work-status lifecycle engine for projects, phases and tasks."""
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir
    ctx.obj["verbose"] = verbose


cli.add_command(project)
cli.add_command(tick)
cli.add_command(run)
cli.add_command(cancel)
cli.add_command(complete)
cli.add_command(terminate_worker)
cli.add_command(status)
cli.add_command(config)


if __name__ == '__main__':
    cli()
