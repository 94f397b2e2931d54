"""
Milestone command group: add, toggle, update, remove and list.
"""
import click

from phasetrack.commands.common import (
    describe_milestone,
    echo_json,
    engine_errors,
    get_core,
    parse_due_date,
)
from phasetrack.models.base import Phase

PHASE_CHOICE = click.Choice([p.value for p in Phase.ordered()], case_sensitive=False)


@click.group()
def milestone():
    """Manage the milestones that drive phase progress."""
    pass


@milestone.command(name="add")
@click.argument("project_id")
@click.argument("phase", type=PHASE_CHOICE)
@click.argument("title")
@click.option("--description", default="", help="Longer description.")
@click.option("--weight", type=float, default=None, help="Relative weight (default from config).")
@click.option("--due", default=None, help="Due date, e.g. 2024-12-31 or '31 December 2024'.")
@click.option("--assignee", default=None, help="Person responsible.")
@click.option("--deliverable", "deliverables", multiple=True, help="Deliverable (repeatable).")
@click.option("--substep", default=None, help="Substep of PHASE this milestone belongs to.")
@click.option("--notes", default="", help="Free-text notes.")
@click.option("--updated-by", default=None, help="Operator label recorded on the write.")
@click.pass_context
def add(ctx, project_id, phase, title, description, weight, due, assignee, deliverables, substep, notes, updated_by):
    """Add a milestone to PHASE of a project."""
    due_date = parse_due_date(due)
    core = get_core(ctx)
    with engine_errors():
        created = core.create_milestone(
            project_id,
            phase,
            title,
            description,
            weight,
            due_date,
            assigned_to=assignee,
            deliverables=deliverables,
            substep=substep,
            notes=notes,
            updated_by=updated_by,
        )
    click.echo(f"Created milestone {created.id}: {created.title}")


@milestone.command(name="toggle")
@click.argument("milestone_id")
@click.option("--undo", is_flag=True, help="Mark the milestone not completed.")
@click.option("--updated-by", default=None, help="Operator label recorded on the write.")
@click.pass_context
def toggle(ctx, milestone_id, undo, updated_by):
    """Mark a milestone completed (or not, with --undo)."""
    core = get_core(ctx)
    with engine_errors():
        result = core.toggle_milestone(milestone_id, not undo, updated_by)
    state = "completed" if result.completed else "not completed"
    click.echo(f"Milestone '{result.title}' is {state}.")


@milestone.command(name="update")
@click.argument("milestone_id")
@click.option("--title", default=None)
@click.option("--description", default=None)
@click.option("--weight", type=float, default=None)
@click.option("--due", default=None, help="New due date.")
@click.option("--clear-due", is_flag=True, help="Remove the due date.")
@click.option("--assignee", default=None)
@click.option("--deliverable", "deliverables", multiple=True, help="Replace deliverables (repeatable).")
@click.option("--phase", type=PHASE_CHOICE, default=None)
@click.option("--substep", default=None)
@click.option("--notes", default=None)
@click.option("--updated-by", default=None, help="Operator label recorded on the write.")
@click.pass_context
def update(ctx, milestone_id, title, description, weight, due, clear_due, assignee,
           deliverables, phase, substep, notes, updated_by):
    """Edit a milestone's fields."""
    changes = {
        "title": title,
        "description": description,
        "weight": weight,
        "phase": phase,
        "notes": notes,
        "deliverables": list(deliverables) or None,
    }
    # clearable fields are only sent when given, so they are not wiped by accident
    if due is not None or clear_due:
        changes["due_date"] = None if clear_due else parse_due_date(due)
    if assignee is not None:
        changes["assigned_to"] = assignee
    if substep is not None:
        changes["substep"] = substep

    core = get_core(ctx)
    with engine_errors():
        result = core.update_milestone(milestone_id, updated_by, **changes)
    click.echo(f"Updated milestone {result.id}: {result.title}")


@milestone.command(name="remove")
@click.argument("milestone_id")
@click.option("--updated-by", default=None, help="Operator label recorded on the write.")
@click.pass_context
def remove(ctx, milestone_id, updated_by):
    """Remove a milestone from progress calculations."""
    core = get_core(ctx)
    with engine_errors():
        result = core.remove_milestone(milestone_id, updated_by)
    click.echo(f"Removed milestone '{result.title}'.")


@milestone.command(name="list")
@click.argument("project_id")
@click.option("--all", "include_removed", is_flag=True, help="Include removed milestones.")
@click.option("-j", "--json", "json_output", is_flag=True, help="Output in JSON format.")
@click.pass_context
def list_milestones(ctx, project_id, include_removed, json_output):
    """List a project's milestones in phase order."""
    core = get_core(ctx)
    with engine_errors():
        milestones = core.list_milestones(project_id, include_removed)
    if json_output:
        echo_json([m.model_dump(mode="json") for m in milestones])
    elif not milestones:
        click.echo("No milestones found.")
    else:
        now = core.clock()
        for m in milestones:
            click.echo(describe_milestone(m, now=now))
