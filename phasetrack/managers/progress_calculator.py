"""
Progress calculation for phasetrack.

Pure functions derive phase and overall progress from a project's
milestones and its pipeline position. ProgressCalculator binds them to a
catalog and a completion threshold.

Phase progress:
- phases with active milestones: floor(100 * completed weight / total weight)
- phases without milestones: 100 before the current phase, 0 after it, and
  floor(100 * substep index / substep count) for the current phase

Overall progress is the (optionally weighted) mean of the six phase values,
rounded half-up.
"""

import math
from fractions import Fraction
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from phasetrack.constants import DEFAULT_COMPLETED_THRESHOLD, PROGRESS_MIN
from phasetrack.models.base import Phase, PhaseStatus
from phasetrack.models.catalog import PhaseCatalog
from phasetrack.models.milestone import Milestone
from phasetrack.models.project import ProjectState
from phasetrack.models.snapshot import ProjectProgress
from phasetrack.utils import clamp_progress, floor_percent, round_half_up


def counted_milestones(milestones: Iterable[Milestone]) -> List[Milestone]:
    """Milestones that count toward live progress (removed ones are excluded)."""
    return [m for m in milestones if m.is_active]


def milestone_progress(milestones: Iterable[Milestone]) -> Optional[int]:
    """Weighted completion of a group of milestones, or None for an empty group.

    Sums are exact fractions, so large finite weights cannot overflow and
    results on a whole-percent boundary are not lost to float error.
    """
    total = Fraction(0)
    done = Fraction(0)
    for milestone in milestones:
        total += Fraction(milestone.weight)
        if milestone.completed:
            done += Fraction(milestone.weight)
    if total <= 0:
        return None
    return floor_percent(done, total)


def position_progress(
    catalog: PhaseCatalog,
    phase: Phase,
    current_phase: Phase,
    current_substep: Optional[str],
) -> int:
    """Progress of a milestone-free phase inferred from the pipeline cursor."""
    if phase.is_before(current_phase):
        return 100
    if phase.is_after(current_phase):
        return PROGRESS_MIN
    substeps = catalog.substeps_of(phase)
    index = 0
    if current_substep is not None and catalog.contains(phase, current_substep):
        index = catalog.index_of(phase, current_substep)
    return floor_percent(index, len(substeps))


def phase_progress(
    catalog: PhaseCatalog,
    phase: Phase,
    milestones: Iterable[Milestone],
    current_phase: Phase,
    current_substep: Optional[str],
) -> int:
    """Progress of one phase. Milestones in the phase take precedence over position."""
    in_phase = [m for m in counted_milestones(milestones) if m.phase == phase]
    weighted = milestone_progress(in_phase)
    if weighted is not None:
        return weighted
    return position_progress(catalog, phase, current_phase, current_substep)


def all_phase_progress(
    catalog: PhaseCatalog,
    milestones: Iterable[Milestone],
    current_phase: Phase,
    current_substep: Optional[str],
) -> Dict[Phase, int]:
    milestones = counted_milestones(milestones)
    return {
        phase: phase_progress(catalog, phase, milestones, current_phase, current_substep)
        for phase in Phase.ordered()
    }


def overall_progress(
    phases: Mapping[Phase, float],
    weights: Optional[Mapping[Phase, float]] = None,
) -> int:
    """Mean of the six phase values, weighted when ``weights`` is non-empty.

    Out-of-range phase values are clamped to [0, 100] first. A phase missing
    from a partial weight map gets weight 1.0. Non-finite weights fall back to
    the plain mean.
    """
    values = {phase: clamp_progress(phases.get(phase, PROGRESS_MIN)) for phase in Phase.ordered()}
    if weights and all(math.isfinite(w) for w in weights.values()):
        resolved = {phase: weights.get(phase, 1.0) for phase in Phase.ordered()}
        total_weight = sum(Fraction(w) for w in resolved.values())
        if total_weight > 0:
            mean = sum(Fraction(values[p]) * Fraction(resolved[p]) for p in Phase.ordered()) / total_weight
            return int(clamp_progress(round_half_up(mean)))
    mean = sum(values.values()) / len(values)
    return int(clamp_progress(round_half_up(mean)))


def phase_status(progress: float, threshold: int = DEFAULT_COMPLETED_THRESHOLD) -> PhaseStatus:
    """Bucket a progress value.

    A phase counts as completed from ``threshold`` (80 by default), not 100.
    """
    progress = clamp_progress(progress)
    if progress >= threshold:
        return PhaseStatus.COMPLETED
    if progress > PROGRESS_MIN:
        return PhaseStatus.IN_PROGRESS
    return PhaseStatus.PENDING


def milestone_counts(milestones: Iterable[Milestone]) -> Tuple[int, int]:
    """Return (completed, total) over milestones that count toward progress."""
    active = counted_milestones(milestones)
    return sum(1 for m in active if m.completed), len(active)


class ProgressCalculator:
    """
    Calculates project progress against a catalog.

    Handles:
    - Per-phase progress (milestone-weighted or position-based)
    - Overall progress with per-project or catalog phase weights
    - Status bucketing with a configurable completion threshold
    """

    def __init__(
        self,
        catalog: PhaseCatalog,
        completed_threshold: int = DEFAULT_COMPLETED_THRESHOLD,
    ) -> None:
        """
        Initialize ProgressCalculator.

        Args:
            catalog: Phase/substep catalog.
            completed_threshold: Progress at or above which a phase is shown as completed.
        """
        self.catalog = catalog
        self.completed_threshold = completed_threshold

    def weights_for(self, state: ProjectState) -> Dict[Phase, float]:
        """Resolve phase weights: project override, then catalog, then none (equal)."""
        if state.phase_weights:
            return dict(state.phase_weights)
        return self.catalog.phase_weights()

    def calculate(self, state: ProjectState, milestones: Iterable[Milestone]) -> ProjectProgress:
        """Compute phase and overall progress for a project."""
        phases = all_phase_progress(
            self.catalog, milestones, state.current_phase, state.current_substep
        )
        return ProjectProgress(
            phases=phases,
            overall=overall_progress(phases, self.weights_for(state)),
        )

    def status_of(self, progress: float) -> PhaseStatus:
        return phase_status(progress, self.completed_threshold)

    def status_map(self, progress: ProjectProgress) -> Dict[Phase, PhaseStatus]:
        return {phase: self.status_of(value) for phase, value in progress.phases.items()}
