"""
Config command group.

Commands for viewing and editing <data_dir>/config.json.
"""
import json

import click
from pydantic import ValidationError

from phasetrack.commands.common import echo_json, engine_errors
from phasetrack.managers.storage_manager import StorageManager
from phasetrack.models.files import ConfigFile


def _storage(ctx) -> StorageManager:
    return StorageManager(ctx.ensure_object(dict).get("data_dir"))


def _coerce(value: str):
    """Parse VALUE as JSON when possible so numbers and lists keep their type."""
    try:
        return json.loads(value)
    except ValueError:
        return value


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
    with engine_errors():
        echo_json(_storage(ctx).load_config().model_dump(mode="json"))


@config.command(name="get")
@click.argument("key")
@click.pass_context
def get_config(ctx, key):
    """Get a configuration value."""
    if key not in ConfigFile.model_fields:
        raise click.BadParameter(f"Unknown config key '{key}'.", param_hint="KEY")
    with engine_errors():
        value = getattr(_storage(ctx).load_config(), key)
    click.echo(json.dumps(value))


@config.command(name="set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def set_config(ctx, key, value):
    """Set a configuration value."""
    if key not in ConfigFile.model_fields or key == "schema_version":
        raise click.BadParameter(f"Unknown config key '{key}'.", param_hint="KEY")
    storage = _storage(ctx)
    with engine_errors():
        current = storage.load_config().model_dump()
        current[key] = _coerce(value)
        try:
            updated = ConfigFile.model_validate(current)
        except ValidationError as e:
            raise click.BadParameter(str(e), param_hint="VALUE")
        storage.save_config(updated)
    click.echo(f"Set {key} = {json.dumps(getattr(updated, key))}")
