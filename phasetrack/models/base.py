"""
Base enumerations for the phasetrack engine.

The pipeline order is the declaration order of ``Phase``.
"""

from enum import Enum
from typing import List

from phasetrack.exceptions import InvalidPhaseError


class Phase(str, Enum):
    """The six delivery phases, in pipeline order."""

    DISCOVERY = "discovery"
    DESIGN = "design"
    DEVELOPMENT = "development"
    TESTING = "testing"
    LAUNCH = "launch"
    SUPPORT = "support"

    @classmethod
    def ordered(cls) -> List["Phase"]:
        """Return all phases in pipeline order."""
        return list(cls)

    @property
    def position(self) -> int:
        """0-based position of this phase in the pipeline."""
        return Phase.ordered().index(self)

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    def is_before(self, other: "Phase") -> bool:
        return self.position < other.position

    def is_after(self, other: "Phase") -> bool:
        return self.position > other.position


class PhaseStatus(str, Enum):
    """Display bucket derived from a phase's progress value."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class ReadMode(str, Enum):
    """How a snapshot read was triggered."""

    FOREGROUND = "foreground"
    BACKGROUND = "background"


def coerce_phase(value: "Phase | str") -> Phase:
    """Convert a phase name (case-insensitive) or Phase into a Phase.

    Raises:
        InvalidPhaseError: If the value does not name a catalog phase.
    """
    if isinstance(value, Phase):
        return value
    if isinstance(value, str):
        try:
            return Phase(value.strip().lower())
        except ValueError:
            pass
    valid = ", ".join(p.value for p in Phase)
    raise InvalidPhaseError(f"Unknown phase '{value}'. Valid phases: {valid}.")
