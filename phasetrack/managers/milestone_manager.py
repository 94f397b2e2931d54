"""
MilestoneManager for phasetrack.

Handles milestone CRUD against a loaded ProjectFile. The caller holds the
project lock and persists the file afterwards; every method validates its
input before touching the record, so a rejected call leaves it unchanged.
"""

import logging
import math
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from phasetrack.constants import DEFAULT_MILESTONE_WEIGHT
from phasetrack.exceptions import (
    InvalidWeightError,
    NotFoundError,
    ValidationError,
)
from phasetrack.models.base import Phase, coerce_phase
from phasetrack.models.catalog import PhaseCatalog
from phasetrack.models.files import ProjectFile
from phasetrack.models.milestone import Milestone

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "title",
    "description",
    "weight",
    "due_date",
    "assigned_to",
    "deliverables",
    "phase",
    "substep",
    "notes",
)


class MilestoneManager:
    """
    Manages milestones for phasetrack.

    Handles:
    - Creating milestones with phase, substep and weight validation
    - Idempotent completion toggling
    - Editing milestone fields
    - Logical removal and retirement
    - Stable listing (catalog phase order, then creation order)
    """

    def __init__(
        self,
        catalog: PhaseCatalog,
        clock: Callable[[], datetime] = datetime.now,
        default_weight: float = DEFAULT_MILESTONE_WEIGHT,
    ) -> None:
        """
        Initialize MilestoneManager.

        Args:
            catalog: Phase/substep catalog used for validation.
            clock: Source of timestamps.
            default_weight: Weight used when none is given on create.
        """
        self.catalog = catalog
        self.clock = clock
        self.default_weight = default_weight

    # =========================================================================
    # Validation
    # =========================================================================

    def _validate_weight(self, weight: Optional[float]) -> float:
        if weight is None:
            return self.default_weight
        try:
            value = float(weight)
        except (TypeError, ValueError):
            raise InvalidWeightError(f"Milestone weight must be a number, got '{weight}'.")
        if not (value > 0 and math.isfinite(value)):
            raise InvalidWeightError(f"Milestone weight must be a finite number greater than 0, got {weight}.")
        return value

    def _validate_title(self, title: str) -> str:
        if not title or not title.strip():
            raise ValidationError("Milestone title is required.")
        return title.strip()

    def _validate_substep(self, phase: Phase, substep: Optional[str]) -> Optional[str]:
        if substep is None:
            return None
        self.catalog.require_substep(phase, substep)
        return substep

    # =========================================================================
    # Lookup
    # =========================================================================

    def get(self, project: ProjectFile, milestone_id: str, include_removed: bool = False) -> Milestone:
        """Return a milestone of the project.

        Raises:
            NotFoundError: If the milestone does not exist, or was removed and
                ``include_removed`` is False.
        """
        for milestone in project.milestones:
            if milestone.id == milestone_id:
                if milestone.is_active or include_removed:
                    return milestone
                break
        raise NotFoundError(f"Milestone '{milestone_id}' not found in project '{project.project_id}'.")

    def _replace(self, project: ProjectFile, updated: Milestone) -> Milestone:
        project.milestones = [updated if m.id == updated.id else m for m in project.milestones]
        return updated

    def list_by_project(self, project: ProjectFile, include_removed: bool = False) -> List[Milestone]:
        """List milestones ordered by catalog phase order, then creation order."""
        return sort_milestones(
            m for m in project.milestones if include_removed or m.is_active
        )

    # =========================================================================
    # Mutations
    # =========================================================================

    def create(
        self,
        project: ProjectFile,
        phase: "Phase | str",
        title: str,
        description: str = "",
        weight: Optional[float] = None,
        due_date: Optional[datetime] = None,
        *,
        assigned_to: Optional[str] = None,
        deliverables: Iterable[str] = (),
        substep: Optional[str] = None,
        notes: str = "",
    ) -> Milestone:
        """Create a milestone and append it to the project.

        Raises:
            InvalidPhaseError: If the phase is not in the catalog.
            InvalidWeightError: If weight <= 0.
            InvalidSubstepForPhaseError: If substep is given and not in phase.
            ValidationError: If the title is blank.
        """
        phase = coerce_phase(phase)
        weight = self._validate_weight(weight)
        title = self._validate_title(title)
        substep = self._validate_substep(phase, substep)

        now = self.clock()
        sequence = max((m.sequence for m in project.milestones), default=0) + 1
        milestone = Milestone(
            project_id=project.project_id,
            phase=phase,
            title=title,
            description=description or "",
            weight=weight,
            due_date=due_date,
            assigned_to=assigned_to,
            deliverables=list(deliverables),
            substep=substep,
            notes=notes or "",
            sequence=sequence,
            created_at=now,
            updated_at=now,
        )
        project.milestones.append(milestone)
        logger.debug("Created milestone %s in %s/%s", milestone.id, project.project_id, phase.value)
        return milestone

    def toggle_completion(self, project: ProjectFile, milestone_id: str, completed: bool) -> Milestone:
        """Set a milestone's completion flag.

        Setting the value it already has is a no-op. false->true stamps
        completed_date; true->false clears it.
        """
        milestone = self.get(project, milestone_id)
        completed = bool(completed)
        if milestone.completed == completed:
            return milestone

        now = self.clock()
        updated = milestone.model_copy(
            update={
                "completed": completed,
                "completed_date": now if completed else None,
                "updated_at": now,
            }
        )
        return self._replace(project, updated)

    def update(self, project: ProjectFile, milestone_id: str, **changes: Any) -> Milestone:
        """Edit milestone fields.

        Only keys in UPDATABLE_FIELDS are accepted; None values are ignored
        except for ``due_date``, ``assigned_to`` and ``substep``, which may be
        cleared by passing None explicitly.

        Raises:
            ValidationError: On an unknown field or blank title.
            InvalidPhaseError / InvalidSubstepForPhaseError / InvalidWeightError:
                As for create.
        """
        milestone = self.get(project, milestone_id)
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown milestone field(s): {', '.join(sorted(unknown))}.")

        clearable = {"due_date", "assigned_to", "substep"}
        updates: Dict[str, Any] = {
            key: value for key, value in changes.items() if value is not None or key in clearable
        }
        if not updates:
            return milestone

        if "title" in updates:
            updates["title"] = self._validate_title(updates["title"])
        if "weight" in updates:
            updates["weight"] = self._validate_weight(updates["weight"])
        if "deliverables" in updates:
            updates["deliverables"] = list(updates["deliverables"])
        phase = coerce_phase(updates.get("phase", milestone.phase))
        updates["phase"] = phase

        substep = updates.get("substep", milestone.substep)
        if "phase" in changes and "substep" not in changes and substep is not None:
            # moving to another phase drops a substep that no longer fits
            substep = substep if self.catalog.contains(phase, substep) else None
        updates["substep"] = self._validate_substep(phase, substep)

        updates["updated_at"] = self.clock()
        updated = milestone.model_copy(update=updates)
        return self._replace(project, updated)

    def remove(self, project: ProjectFile, milestone_id: str) -> Milestone:
        """Remove a milestone from the active view. The record is kept."""
        milestone = self.get(project, milestone_id)
        now = self.clock()
        updated = milestone.model_copy(update={"removed_at": now, "updated_at": now})
        return self._replace(project, updated)

    def retire_all(self, project: ProjectFile) -> int:
        """Stamp retired_at on every active, not yet retired milestone.

        Returns:
            Number of milestones retired.
        """
        now = self.clock()
        retired = 0
        milestones = []
        for milestone in project.milestones:
            if milestone.is_active and not milestone.is_retired:
                milestone = milestone.model_copy(update={"retired_at": now})
                retired += 1
            milestones.append(milestone)
        project.milestones = milestones
        return retired


def sort_milestones(milestones: Iterable[Milestone]) -> List[Milestone]:
    """Order milestones by catalog phase order, then creation sequence."""
    return sorted(milestones, key=lambda m: (m.phase.position, m.sequence))
