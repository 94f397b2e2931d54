"""
Project command group: scope, list, close and portfolio statistics.
"""
import click

from phasetrack.commands.common import echo_json, echo_snapshot, engine_errors, get_core
from phasetrack.models.base import Phase


def _parse_weights(pairs):
    weights = {}
    for pair in pairs:
        phase, sep, value = pair.partition("=")
        if not sep:
            raise click.BadParameter(f"Expected PHASE=WEIGHT, got '{pair}'.", param_hint="--weight")
        try:
            weights[phase.strip()] = float(value)
        except ValueError:
            raise click.BadParameter(f"Weight for '{phase}' is not a number.", param_hint="--weight")
    return weights or None


@click.group()
def project():
    """Scope, list and close projects."""
    pass


@project.command(name="scope")
@click.argument("project_id")
@click.option(
    "--weight",
    "weights",
    multiple=True,
    metavar="PHASE=WEIGHT",
    help="Phase weight for the overall average (repeatable).",
)
@click.option("--updated-by", default=None, help="Operator label recorded on the write.")
@click.option("-j", "--json", "json_output", is_flag=True, help="Output in JSON format.")
@click.pass_context
def scope(ctx, project_id, weights, updated_by, json_output):
    """Start a new project at the first discovery substep."""
    core = get_core(ctx)
    with engine_errors():
        snapshot = core.scope_project(
            project_id, phase_weights=_parse_weights(weights), updated_by=updated_by
        )
    if json_output:
        echo_snapshot(snapshot, json_output=True)
    else:
        click.echo(f"Scoped project '{project_id}' at {snapshot.current_phase.value}/{snapshot.current_substep}.")


@project.command(name="list")
@click.option("-j", "--json", "json_output", is_flag=True, help="Output in JSON format.")
@click.pass_context
def list_projects(ctx, json_output):
    """List project ids."""
    project_ids = get_core(ctx).list_projects()
    if json_output:
        echo_json(project_ids)
    elif not project_ids:
        click.echo("No projects found.")
    else:
        for project_id in project_ids:
            click.echo(project_id)


@project.command(name="close")
@click.argument("project_id")
@click.option("--updated-by", default=None, help="Operator label recorded on the write.")
@click.pass_context
def close(ctx, project_id, updated_by):
    """Close a project and retire its milestones."""
    core = get_core(ctx)
    with engine_errors():
        snapshot = core.close_project(project_id, updated_by)
    click.echo(f"Closed project '{project_id}' at {snapshot.overall_progress}% overall.")


@project.command(name="stats")
@click.option("-j", "--json", "json_output", is_flag=True, help="Output in JSON format.")
@click.pass_context
def stats(ctx, json_output):
    """Show projects per phase and average progress."""
    result = get_core(ctx).get_statistics()
    if json_output:
        echo_json(result.model_dump(mode="json"))
        return
    click.echo(f"Projects: {result.total_projects}")
    click.echo(f"Average progress: {result.average_progress}%")
    for phase in Phase.ordered():
        click.echo(f"  {phase.display_name:<12} {result.phase_counts.get(phase, 0)}")
