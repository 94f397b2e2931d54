"""
Helpers shared by the CLI commands.
"""
import json
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Optional

import click

from phasetrack.constants import DATE_FORMAT_ERROR, get_config_manager
from phasetrack.core import PhaseTrackCore
from phasetrack.exceptions import PhaseTrackError
from phasetrack.models.base import Phase, PhaseStatus
from phasetrack.models.milestone import Milestone
from phasetrack.models.snapshot import ProjectSnapshot
from phasetrack.utils import format_date, parse_date, validate_date_range

logger = logging.getLogger(__name__)

STATUS_MARKERS = {
    PhaseStatus.COMPLETED: "✓",
    PhaseStatus.IN_PROGRESS: "⏳",
    PhaseStatus.PENDING: " ",
}


def get_core(ctx: click.Context) -> PhaseTrackCore:
    """Build the engine once per invocation and keep it on the context."""
    obj = ctx.ensure_object(dict)
    if "core" not in obj:
        data_dir = obj.get("data_dir")
        config = get_config_manager(reset=True, data_dir=data_dir)
        obj["core"] = PhaseTrackCore(data_dir=data_dir, config=config)
    return obj["core"]


@contextmanager
def engine_errors() -> Iterator[None]:
    """Turn engine errors into click errors with the error kind in front."""
    try:
        yield
    except PhaseTrackError as e:
        logger.warning("Rejected: %s (%s)", e.kind, e.detail)
        raise click.ClickException(f"[{e.kind}] {e.detail}")


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2))


def parse_due_date(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    due = parse_date(value)
    if due is None:
        raise click.BadParameter(DATE_FORMAT_ERROR, param_hint="--due")
    ok, error = validate_date_range(due)
    if not ok:
        raise click.BadParameter(error, param_hint="--due")
    return due


def echo_snapshot(snapshot: ProjectSnapshot, json_output: bool = False) -> None:
    """Print a snapshot as a progress table or as JSON."""
    if json_output:
        echo_json(snapshot.model_dump(mode="json"))
        return

    state = "closed" if snapshot.closed else f"{snapshot.current_phase.display_name} / {snapshot.current_substep}"
    click.echo(f"Project: {snapshot.project_id} (revision {snapshot.revision})")
    click.echo(f"Position: {state}")
    click.echo(f"Overall: {snapshot.overall_progress}%")
    click.echo(
        f"Milestones: {snapshot.milestones_completed}/{snapshot.total_milestones} completed"
    )
    click.echo("-" * 40)
    for phase in Phase.ordered():
        progress = snapshot.phase_progress.get(phase, 0)
        marker = STATUS_MARKERS.get(snapshot.phase_status.get(phase), " ")
        current = " →" if phase == snapshot.current_phase and not snapshot.closed else ""
        click.echo(f"{marker} {phase.display_name:<12} {progress:>3}%{current}")
    if snapshot.notes:
        click.echo("-" * 40)
        click.echo(f"Notes: {snapshot.notes}")
    click.echo(f"Last updated: {snapshot.last_updated.isoformat(timespec='seconds')}")


def describe_milestone(milestone: Milestone, now: Optional[datetime] = None) -> str:
    """One-line milestone summary. Open milestones past their due date are flagged when ``now`` is given."""
    check = "x" if milestone.completed else " "
    line = f"[{check}] {milestone.id}  {milestone.phase.value:<12} {milestone.title} (w={milestone.weight:g})"
    if milestone.due_date:
        line += f" due {format_date(milestone.due_date)}"
        if now is not None and milestone.is_overdue(now):
            line += " [overdue]"
    if milestone.assigned_to:
        line += f" @{milestone.assigned_to}"
    if not milestone.is_active:
        line += " [removed]"
    return line
