"""
Config command group for TaskFlow.

Commands for viewing and editing engine configuration.
"""
import json

import click
from pydantic import ValidationError as PydanticValidationError

from taskflow.commands import build_core, raise_click_error
from taskflow.exceptions import TaskflowError
from taskflow.models.files import ConfigFile


@click.group()
def config():
    """View and edit engine configuration.

    Configuration is stored in <data-dir>/config.json.
    """
    pass


@config.command(name="show")
@click.pass_context
def show_config(ctx):
    """Show current configuration."""
    core = build_core(ctx)
    try:
        data = core.storage.load_config()
    except TaskflowError as e:
        raise_click_error(e)
    click.echo(json.dumps(data.model_dump(mode="json"), indent=2))


@config.command(name="get")
@click.argument("key")
@click.pass_context
def get_config(ctx, key):
    """Get a configuration value."""
    if key not in ConfigFile.model_fields:
        raise click.ClickException(f"Unknown config key: {key}")
    core = build_core(ctx)
    try:
        data = core.storage.load_config()
    except TaskflowError as e:
        raise_click_error(e)
    click.echo(getattr(data, key))


@config.command(name="set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def set_config(ctx, key, value):
    """Set a configuration value."""
    if key not in ConfigFile.model_fields or key == "schema_version":
        raise click.ClickException(f"Unknown config key: {key}")
    core = build_core(ctx)
    try:
        data = core.storage.load_config()
        updated = ConfigFile.model_validate({**data.model_dump(), key: value})
        core.storage.save_config(updated)
    except PydanticValidationError as e:
        raise click.ClickException(f"Validation Error: {e}")
    except TaskflowError as e:
        raise_click_error(e)
    click.echo(f"{key} = {getattr(updated, key)}")
