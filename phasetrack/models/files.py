"""
File models for the phasetrack engine.

Models representing the structure of JSON files in the data directory.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from phasetrack.constants import (
    DEFAULT_COMPLETED_THRESHOLD,
    DEFAULT_DATE_FORMATS,
    DEFAULT_DATE_MAX_YEARS_FUTURE,
    DEFAULT_DATE_MAX_YEARS_PAST,
    DEFAULT_MILESTONE_WEIGHT,
    DEFAULT_NOTES_MAX_LENGTH,
    DEFAULT_POLL_INTERVAL_SECONDS,
)

from .milestone import Milestone
from .project import ProjectState
from .snapshot import ProjectProgress


class ProjectFile(BaseModel):
    """Model for projects/<project_id>.json.

    State and milestones live in one file so a single read always sees them
    together. ``progress`` is a cache written alongside; readers recompute it.
    """

    schema_version: str = "1.0.0"
    state: ProjectState
    milestones: List[Milestone] = Field(default_factory=list)
    progress: Optional[ProjectProgress] = None

    @property
    def project_id(self) -> str:
        return self.state.project_id


class MilestoneIndexFile(BaseModel):
    """Model for milestone_index.json: milestone id -> project id."""

    entries: Dict[str, str] = Field(default_factory=dict)


class ConfigFile(BaseModel):
    """Model for config.json file.

    Engine settings and policy constants.
    """

    schema_version: str = "1.0.0"

    # Progress policy
    completed_threshold: int = Field(default=DEFAULT_COMPLETED_THRESHOLD, ge=1, le=100)
    default_milestone_weight: float = Field(default=DEFAULT_MILESTONE_WEIGHT, gt=0)

    # Sync settings
    poll_interval_seconds: int = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, ge=1)

    # State machine settings
    notes_max_length: int = Field(default=DEFAULT_NOTES_MAX_LENGTH, ge=0)

    # Catalog override
    catalog_path: Optional[str] = None

    # Date settings
    date_formats: List[str] = Field(default_factory=lambda: list(DEFAULT_DATE_FORMATS))
    date_max_years_future: int = DEFAULT_DATE_MAX_YEARS_FUTURE
    date_max_years_past: int = DEFAULT_DATE_MAX_YEARS_PAST
