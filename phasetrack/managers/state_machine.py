"""
ProjectStateMachine for phasetrack.

Owns the rules for moving a project's (phase, substep) cursor. Every
transition returns a new ProjectState and leaves its input untouched, so a
rejected transition never leaves a half-applied state behind.
"""

import logging
import math
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from phasetrack.constants import DEFAULT_NOTES_MAX_LENGTH
from phasetrack.exceptions import (
    AlreadyAtTerminalStateError,
    InvalidOperationError,
    ValidationError,
)
from phasetrack.models.base import Phase, coerce_phase
from phasetrack.models.catalog import PhaseCatalog
from phasetrack.models.project import ProjectState

logger = logging.getLogger(__name__)


class ProjectStateMachine:
    """
    State transitions over the catalog's (phase, substep) positions.

    Initial state: (discovery, first discovery substep).
    Terminal state: (support, last support substep).
    """

    def __init__(
        self,
        catalog: PhaseCatalog,
        clock: Callable[[], datetime] = datetime.now,
        notes_max_length: int = DEFAULT_NOTES_MAX_LENGTH,
    ) -> None:
        self.catalog = catalog
        self.clock = clock
        self.notes_max_length = notes_max_length

    def initial_state(
        self,
        project_id: str,
        phase_weights: Optional[Dict["Phase | str", float]] = None,
        updated_by: Optional[str] = None,
    ) -> ProjectState:
        first = Phase.ordered()[0]
        now = self.clock()
        weights = None
        if phase_weights:
            weights = {coerce_phase(phase): weight for phase, weight in phase_weights.items()}
            for phase, weight in weights.items():
                if not (weight > 0 and math.isfinite(weight)):
                    raise ValidationError(f"Phase weight for '{phase.value}' must be a finite number greater than 0.")
        return ProjectState(
            project_id=project_id,
            current_phase=first,
            current_substep=self.catalog.first_substep(first).id,
            phase_weights=weights,
            created_at=now,
            last_updated=now,
            updated_by=updated_by,
        )

    def is_terminal(self, state: ProjectState) -> bool:
        last = Phase.ordered()[-1]
        return (
            state.current_phase == last
            and state.current_substep == self.catalog.last_substep(last).id
        )

    def touch(self, state: ProjectState, updated_by: Optional[str] = None, **changes: Any) -> ProjectState:
        """Return a copy with ``changes`` applied, the revision bumped and the write stamped."""
        changes["revision"] = state.revision + 1
        changes["last_updated"] = self.clock()
        if updated_by is not None:
            changes["updated_by"] = updated_by
        return state.model_copy(update=changes)

    def _ensure_open(self, state: ProjectState) -> None:
        if state.closed:
            raise InvalidOperationError(
                f"Project '{state.project_id}' is closed; its pipeline position can no longer change."
            )

    # =========================================================================
    # Transitions
    # =========================================================================

    def advance_substep(self, state: ProjectState, updated_by: Optional[str] = None) -> ProjectState:
        """Move to the next substep, rolling over into the next phase.

        Raises:
            AlreadyAtTerminalStateError: At the last substep of the last phase.
            InvalidOperationError: If the project is closed.
        """
        self._ensure_open(state)
        substep = state.current_substep
        if substep is None or not self.catalog.contains(state.current_phase, substep):
            # a cursor without a valid substep starts the phase over
            target = (state.current_phase, self.catalog.first_substep(state.current_phase).id)
        else:
            target = self.catalog.next_position(state.current_phase, substep)
        if target is None:
            raise AlreadyAtTerminalStateError(
                f"Project '{state.project_id}' is already at the final substep "
                f"'{substep}' of phase '{state.current_phase.value}'."
            )
        phase, next_substep = target
        return self.touch(state, updated_by, current_phase=phase, current_substep=next_substep)

    def set_phase_and_substep(
        self,
        state: ProjectState,
        phase: "Phase | str",
        substep: str,
        updated_by: Optional[str] = None,
    ) -> ProjectState:
        """Explicit operator override; may move backward.

        Raises:
            InvalidPhaseError: If the phase is unknown.
            InvalidSubstepForPhaseError: If the substep is not in the phase.
            InvalidOperationError: If the project is closed.
        """
        self._ensure_open(state)
        phase = coerce_phase(phase)
        self.catalog.require_substep(phase, substep)
        if phase.is_before(state.current_phase):
            logger.info(
                "Project %s moved back from %s to %s",
                state.project_id, state.current_phase.value, phase.value,
            )
        return self.touch(state, updated_by, current_phase=phase, current_substep=substep)

    def annotate_status(
        self,
        state: ProjectState,
        notes: str,
        updated_by: Optional[str] = None,
    ) -> ProjectState:
        """Replace the free-text status notes.

        Raises:
            ValidationError: If notes exceed the configured length bound.
        """
        notes = notes or ""
        if len(notes) > self.notes_max_length:
            raise ValidationError(
                f"Notes are {len(notes)} characters long; the limit is {self.notes_max_length}."
            )
        return self.touch(state, updated_by, notes=notes)

    def close(self, state: ProjectState, updated_by: Optional[str] = None) -> ProjectState:
        """Mark the project closed.

        Raises:
            InvalidOperationError: If the project is already closed.
        """
        self._ensure_open(state)
        return self.touch(state, updated_by, closed_at=self.clock())
