"""
Read models served to dashboards and other pollers.

The ProjectSnapshot field names are a stable contract: external consumers
poll it. New fields may be added, existing ones are never renamed.
"""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field

from phasetrack.models.base import Phase, PhaseStatus, ReadMode


class ProjectProgress(BaseModel):
    """Derived progress: one 0-100 value per phase plus the overall value."""

    phases: Dict[Phase, int]
    overall: int


class ProjectSnapshot(BaseModel):
    """
    Point-in-time read of a project's state and derived progress.

    State and progress are always computed from the same load.

    Optional fields default as follows:
    - phase_status: empty when the snapshot was built without a threshold
    - updated_by: None when no operator label was supplied on the last write
    - milestones_completed / total_milestones: 0 when the project has no
      active milestones (progress then comes from substep position)
    """

    project_id: str
    current_phase: Phase
    current_substep: Optional[str]
    notes: str
    phase_progress: Dict[Phase, int]
    overall_progress: int
    last_updated: datetime

    phase_status: Dict[Phase, PhaseStatus] = Field(default_factory=dict)
    revision: int = 0
    updated_by: Optional[str] = None
    milestones_completed: int = 0
    total_milestones: int = 0
    closed: bool = False


class SyncResult(BaseModel):
    """Result of a background poll.

    ``changed`` is False when the caller's known revision already matches.
    The snapshot is always present and complete.
    """

    snapshot: ProjectSnapshot
    changed: bool
    mode: ReadMode
    served_at: datetime
    from_cache: bool = False


class PortfolioStats(BaseModel):
    """Aggregate statistics across all projects."""

    total_projects: int
    phase_counts: Dict[Phase, int]
    average_progress: float
