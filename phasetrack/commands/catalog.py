"""
Catalog command: show the phase/substep catalog in use.
"""
import click

from phasetrack.commands.common import echo_json, get_core


@click.command(name="catalog")
@click.option("-j", "--json", "json_output", is_flag=True, help="Output in JSON format.")
@click.pass_context
def catalog(ctx, json_output):
    """Show phases and their substeps."""
    phase_catalog = get_core(ctx).catalog
    if json_output:
        echo_json(phase_catalog.model_dump(mode="json"))
        return
    for position, definition in enumerate(phase_catalog.list_phases(), start=1):
        weight = f" (weight {definition.weight:g})" if definition.weight is not None else ""
        click.echo(f"{position}. {definition.title}{weight}")
        for substep in definition.substeps:
            click.echo(f"   - {substep.id}: {substep.title}")
