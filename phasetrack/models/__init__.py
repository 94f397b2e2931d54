"""
Data models for phasetrack.

Import models explicitly from their modules:
    from phasetrack.models.base import Phase, PhaseStatus, ReadMode
    from phasetrack.models.catalog import PhaseCatalog, PhaseDefinition, Substep
    from phasetrack.models.milestone import Milestone
    from phasetrack.models.project import ProjectState
    from phasetrack.models.snapshot import ProjectProgress, ProjectSnapshot, SyncResult
    from phasetrack.models.files import ProjectFile, ConfigFile
"""

from .base import Phase, PhaseStatus, ReadMode
from .catalog import PhaseCatalog, PhaseDefinition, Substep
from .milestone import Milestone
from .project import ProjectState
from .snapshot import PortfolioStats, ProjectProgress, ProjectSnapshot, SyncResult
