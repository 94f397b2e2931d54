"""
Phase/substep catalog for the phasetrack engine.

The catalog is immutable data built once at startup, either from the
built-in default table or from a JSON file.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from phasetrack.constants import DEFAULT_CATALOG_VERSION, DEFAULT_PHASE_SUBSTEPS
from phasetrack.exceptions import (
    ConfigurationError,
    InvalidSubstepForPhaseError,
    NotFoundError,
)
from phasetrack.models.base import Phase, coerce_phase


class Substep(BaseModel):
    """A named, ordered sub-task of one phase."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(pattern=r"^[a-z0-9-]+$")
    title: str
    ordinal: int = Field(ge=0)


class PhaseDefinition(BaseModel):
    """Catalog entry for one phase: its substeps and optional default weight."""

    model_config = ConfigDict(frozen=True)

    phase: Phase
    title: str
    substeps: List[Substep]
    weight: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)

    @model_validator(mode="before")
    @classmethod
    def assign_ordinals(cls, data):
        """Fill in substep ordinals from list position when they are omitted."""
        if isinstance(data, dict) and isinstance(data.get("substeps"), list):
            data = dict(data)
            data["substeps"] = [
                {"ordinal": index, **substep} if isinstance(substep, dict) else substep
                for index, substep in enumerate(data["substeps"])
            ]
        return data

    @model_validator(mode="after")
    def check_substeps(self) -> "PhaseDefinition":
        if not self.substeps:
            raise ValueError(f"Phase '{self.phase.value}' must have at least one substep")
        seen = set()
        for index, substep in enumerate(self.substeps):
            if substep.ordinal != index:
                raise ValueError(
                    f"Substep '{substep.id}' has ordinal {substep.ordinal}, expected {index}"
                )
            if substep.id in seen:
                raise ValueError(f"Duplicate substep id '{substep.id}' in phase '{self.phase.value}'")
            seen.add(substep.id)
        return self

    @property
    def substep_ids(self) -> List[str]:
        return [s.id for s in self.substeps]


class PhaseCatalog(BaseModel):
    """
    The six-phase pipeline definition.

    Lookups accept either a ``Phase`` or its string value. Unknown phases
    raise InvalidPhaseError; unknown substeps raise NotFoundError.
    """

    model_config = ConfigDict(frozen=True)

    version: str = DEFAULT_CATALOG_VERSION
    phases: List[PhaseDefinition]

    @model_validator(mode="after")
    def check_phase_order(self) -> "PhaseCatalog":
        declared = [d.phase for d in self.phases]
        if declared != Phase.ordered():
            expected = ", ".join(p.value for p in Phase)
            raise ValueError(f"Catalog must define each phase exactly once, in order: {expected}")
        return self

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def default(cls) -> "PhaseCatalog":
        """Build the built-in catalog."""
        return cls(
            version=DEFAULT_CATALOG_VERSION,
            phases=[
                {
                    "phase": key,
                    "title": title,
                    "substeps": [{"id": sid, "title": stitle} for sid, stitle in substeps],
                }
                for key, title, substeps in DEFAULT_PHASE_SUBSTEPS
            ],
        )

    @classmethod
    def from_file(cls, path: Path) -> "PhaseCatalog":
        """Load and validate a catalog from a JSON file.

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid.
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Catalog file not found: {path}")
        try:
            with open(path, "r") as f:
                data = json.load(f)
            return cls.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigurationError(f"Failed to load catalog from {path}: {e}")

    # =========================================================================
    # Lookup
    # =========================================================================

    def list_phases(self) -> List[PhaseDefinition]:
        """Return phase definitions in pipeline order."""
        return list(self.phases)

    def definition(self, phase: "Phase | str") -> PhaseDefinition:
        phase = coerce_phase(phase)
        return self.phases[phase.position]

    def substeps_of(self, phase: "Phase | str") -> List[Substep]:
        """Return the ordered substeps of a phase."""
        return list(self.definition(phase).substeps)

    def contains(self, phase: "Phase | str", substep_id: str) -> bool:
        return substep_id in self.definition(phase).substep_ids

    def index_of(self, phase: "Phase | str", substep_id: str) -> int:
        """Return the 0-based ordinal of a substep within its phase.

        Raises:
            NotFoundError: If the substep is not part of the phase.
        """
        definition = self.definition(phase)
        try:
            return definition.substep_ids.index(substep_id)
        except ValueError:
            raise NotFoundError(
                f"Substep '{substep_id}' not found in phase '{definition.phase.value}'."
            )

    def require_substep(self, phase: "Phase | str", substep_id: str) -> Substep:
        """Return the substep, raising InvalidSubstepForPhaseError if it does not belong to phase."""
        definition = self.definition(phase)
        for substep in definition.substeps:
            if substep.id == substep_id:
                return substep
        raise InvalidSubstepForPhaseError(
            f"Substep '{substep_id}' does not belong to phase '{definition.phase.value}'. "
            f"Valid substeps: {', '.join(definition.substep_ids)}."
        )

    def first_substep(self, phase: "Phase | str") -> Substep:
        return self.definition(phase).substeps[0]

    def last_substep(self, phase: "Phase | str") -> Substep:
        return self.definition(phase).substeps[-1]

    def next_position(self, phase: "Phase | str", substep_id: str) -> Optional[Tuple[Phase, str]]:
        """Return the (phase, substep) after the given one, or None at the terminal position."""
        phase = coerce_phase(phase)
        index = self.index_of(phase, substep_id)
        substeps = self.definition(phase).substeps
        if index + 1 < len(substeps):
            return phase, substeps[index + 1].id
        if phase.position + 1 < len(Phase.ordered()):
            next_phase = Phase.ordered()[phase.position + 1]
            return next_phase, self.first_substep(next_phase).id
        return None

    def total_substeps(self) -> int:
        return sum(len(d.substeps) for d in self.phases)

    @property
    def has_phase_weights(self) -> bool:
        """True when at least one phase declares an explicit weight."""
        return any(d.weight is not None for d in self.phases)

    def phase_weights(self) -> Dict[Phase, float]:
        """Return catalog phase weights, or an empty dict when none are declared.

        Phases without an explicit weight get 1.0 when others declare one.
        """
        if not self.has_phase_weights:
            return {}
        return {d.phase: d.weight if d.weight is not None else 1.0 for d in self.phases}
