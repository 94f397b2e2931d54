"""
Command-line interface for phasetrack.

Project state lives under the data directory (default .phasetrack/),
which can be moved with --data-dir or $PHASETRACK_DATA_DIR.
"""
from pathlib import Path

import click

from phasetrack.commands.catalog import catalog
from phasetrack.commands.config import config
from phasetrack.commands.milestone import milestone
from phasetrack.commands.project import project
from phasetrack.commands.status import advance, annotate, set_phase, status
from phasetrack.constants import DATA_DIR_ENV_VAR, DEFAULT_DATA_DIR
from phasetrack.logging_setup import setup_logging


@click.group()
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar=DATA_DIR_ENV_VAR,
    default=DEFAULT_DATA_DIR,
    show_default=True,
    help="Directory holding config.json and project records.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level (overrides $PHASETRACK_LOG_LEVEL).",
)
@click.pass_context
def cli(ctx, data_dir, log_level):
    """Track client projects through discovery, design, development, testing, launch and support."""
    setup_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir


cli.add_command(project)
cli.add_command(status)
cli.add_command(advance)
cli.add_command(set_phase)
cli.add_command(annotate)
cli.add_command(milestone)
cli.add_command(catalog)
cli.add_command(config)


if __name__ == '__main__':
    cli()
