"""
Milestone model for the phasetrack engine.

Milestones are weighted, completable deliverables scoped to one phase of one
project. They are never physically deleted: removal and retirement are
recorded as timestamps.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from phasetrack.constants import DEFAULT_MILESTONE_WEIGHT
from phasetrack.models.base import Phase


class Milestone(BaseModel):
    """
    Milestone record.

    Fields:
    - id / project_id: identity and owning project
    - phase / substep: where the milestone sits in the pipeline (substep optional)
    - completed / completed_date: completion flag and when it last became true
    - weight: relative importance within its phase, always > 0
    - sequence: creation order within the project, used for stable listing
    - removed_at: logical removal from the active view
    - retired_at: set when the owning project is closed
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    project_id: str
    phase: Phase
    title: str
    description: str = ""
    weight: float = Field(default=DEFAULT_MILESTONE_WEIGHT, gt=0, allow_inf_nan=False)
    completed: bool = False
    due_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    assigned_to: Optional[str] = None
    deliverables: List[str] = Field(default_factory=list)
    substep: Optional[str] = None
    notes: str = ""
    sequence: int = 0
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    removed_at: Optional[datetime] = None
    retired_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        """Active milestones are listed and count toward live progress."""
        return self.removed_at is None

    @property
    def is_retired(self) -> bool:
        return self.retired_at is not None

    def is_overdue(self, now: datetime) -> bool:
        return bool(self.due_date and not self.completed and self.due_date < now)
