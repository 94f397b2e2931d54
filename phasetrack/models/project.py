"""
Project state model for the phasetrack engine.

ProjectState is the authoritative, mutable-by-replacement record of where a
project sits in the pipeline. Transitions build a new instance rather than
editing one in place.
"""

import math
from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator

from phasetrack.models.base import Phase


class ProjectState(BaseModel):
    """
    Per-project pipeline position.

    Fields:
    - current_phase / current_substep: the pipeline cursor
    - notes: free-text status annotation shown to the client
    - phase_weights: optional per-project override of the averaging weights
    - revision: incremented on every write, used by pollers to detect change
    - last_updated / updated_by: stamp of the last write
    - closed_at: set when the engagement is closed
    """

    project_id: str
    current_phase: Phase = Phase.DISCOVERY
    current_substep: Optional[str] = None
    notes: str = ""
    phase_weights: Optional[Dict[Phase, float]] = None
    revision: int = 0
    created_at: datetime = Field(default_factory=datetime.now)
    last_updated: datetime = Field(default_factory=datetime.now)
    updated_by: Optional[str] = None
    closed_at: Optional[datetime] = None

    @field_validator("phase_weights")
    @classmethod
    def validate_phase_weights(cls, v: Optional[Dict[Phase, float]]) -> Optional[Dict[Phase, float]]:
        if v is None:
            return v
        for phase, weight in v.items():
            if not (weight > 0 and math.isfinite(weight)):
                raise ValueError(f"Phase weight for '{phase.value}' must be finite and > 0")
        return v

    @property
    def closed(self) -> bool:
        return self.closed_at is not None
