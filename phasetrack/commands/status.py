"""
Status and transition commands: status, advance, set-phase, annotate.
"""
import click

from phasetrack.commands.common import echo_json, echo_snapshot, engine_errors, get_core
from phasetrack.models.base import Phase


@click.command(name="status")
@click.argument("project_id")
@click.option(
    "--background",
    is_flag=True,
    help="Poll without waiting on writes in progress (may serve the last snapshot).",
)
@click.option(
    "--revision",
    type=int,
    default=None,
    help="Revision the caller already has; used with --background.",
)
@click.option(
    "-j",
    "--json",
    "json_output",
    is_flag=True,
    help="Output status in JSON format.",
)
@click.pass_context
def status(ctx, project_id, background, revision, json_output):
    """Display a project's phase, substep and progress."""
    if revision is not None and not background:
        raise click.BadParameter("--revision requires --background.", param_hint="--revision")
    core = get_core(ctx)
    with engine_errors():
        if background:
            result = core.poll(project_id, known_revision=revision)
        else:
            snapshot = core.get_snapshot(project_id)

    if not background:
        echo_snapshot(snapshot, json_output)
        return

    if json_output:
        echo_json(result.model_dump(mode="json"))
    elif not result.changed:
        click.echo(f"No change since revision {revision}.")
    else:
        echo_snapshot(result.snapshot)


@click.command(name="advance")
@click.argument("project_id")
@click.option("--updated-by", default=None, help="Operator label recorded on the write.")
@click.pass_context
def advance(ctx, project_id, updated_by):
    """Move a project to its next substep."""
    core = get_core(ctx)
    with engine_errors():
        snapshot = core.advance_phase(project_id, updated_by)
    click.echo(
        f"Advanced '{project_id}' to {snapshot.current_phase.value}/{snapshot.current_substep}."
    )


@click.command(name="set-phase")
@click.argument("project_id")
@click.argument("phase", type=click.Choice([p.value for p in Phase.ordered()], case_sensitive=False))
@click.argument("substep")
@click.option("--updated-by", default=None, help="Operator label recorded on the write.")
@click.pass_context
def set_phase(ctx, project_id, phase, substep, updated_by):
    """Move a project to PHASE/SUBSTEP (backwards allowed)."""
    core = get_core(ctx)
    with engine_errors():
        snapshot = core.set_phase_and_substep(project_id, phase, substep, updated_by)
    click.echo(f"Moved '{project_id}' to {snapshot.current_phase.value}/{snapshot.current_substep}.")


@click.command(name="annotate")
@click.argument("project_id")
@click.argument("notes")
@click.option("--updated-by", default=None, help="Operator label recorded on the write.")
@click.pass_context
def annotate(ctx, project_id, notes, updated_by):
    """Replace a project's status notes."""
    core = get_core(ctx)
    with engine_errors():
        core.annotate_status(project_id, notes, updated_by)
    click.echo(f"Updated notes for '{project_id}'.")
