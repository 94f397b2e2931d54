"""
Test fixtures for the phasetrack test suite.

Provides:
- A controllable clock so timestamps are deterministic
- Engines on in-memory and on-disk storage (isolated from any real .phasetrack/)
- A small custom catalog and mock data builders
"""

import logging
import shutil
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Generator, Iterable, Optional

import pytest

from phasetrack.constants import ConfigManager, reset_config_manager
from phasetrack.core import PhaseTrackCore
from phasetrack.models.base import Phase
from phasetrack.models.catalog import PhaseCatalog
from phasetrack.models.files import ProjectFile
from phasetrack.models.milestone import Milestone
from phasetrack.models.project import ProjectState


# =============================================================================
# Clock
# =============================================================================


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2024, 6, 1, 9, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# Temporary Directory Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test isolation.

    Ensures tests don't touch a real .phasetrack/ directory.
    """
    temp_path = Path(tempfile.mkdtemp(prefix="phasetrack_test_"))
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def data_dir(temp_dir: Path) -> Path:
    """Path to a not-yet-created data directory inside temp_dir."""
    return temp_dir / ".phasetrack"


@pytest.fixture(autouse=True)
def _reset_config_singleton():
    reset_config_manager()
    yield
    reset_config_manager()


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop handlers installed by CLI runs so they never outlive the runner streams."""
    yield
    logger = logging.getLogger("phasetrack")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


# =============================================================================
# Catalog Fixtures
# =============================================================================


def build_catalog(substep_counts: Optional[dict] = None, weights: Optional[dict] = None) -> PhaseCatalog:
    """Build a catalog with ``n`` generic substeps per phase (2 unless overridden)."""
    substep_counts = substep_counts or {}
    weights = weights or {}
    phases = []
    for phase in Phase.ordered():
        count = substep_counts.get(phase, 2)
        phases.append({
            "phase": phase.value,
            "title": phase.display_name,
            "weight": weights.get(phase),
            "substeps": [
                {"id": f"{phase.value}-step-{i + 1}", "title": f"{phase.display_name} step {i + 1}"}
                for i in range(count)
            ],
        })
    return PhaseCatalog(phases=phases)


@pytest.fixture
def default_catalog() -> PhaseCatalog:
    return PhaseCatalog.default()


@pytest.fixture
def small_catalog() -> PhaseCatalog:
    """Two substeps per phase, except Design which has three."""
    return build_catalog({Phase.DESIGN: 3})


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def core(clock: FakeClock) -> PhaseTrackCore:
    """Engine on in-memory storage with the built-in catalog."""
    return PhaseTrackCore.in_memory(clock=clock)


@pytest.fixture
def small_core(clock: FakeClock, small_catalog: PhaseCatalog) -> PhaseTrackCore:
    """Engine on in-memory storage with the small catalog."""
    return PhaseTrackCore.in_memory(clock=clock, catalog=small_catalog)


@pytest.fixture
def disk_core(clock: FakeClock, data_dir: Path) -> PhaseTrackCore:
    """Engine persisting JSON files under a temp data directory."""
    return PhaseTrackCore(data_dir=data_dir, clock=clock, config=ConfigManager(data_dir=data_dir))


# =============================================================================
# Mock Data Builders
# =============================================================================


class MockDataBuilder:
    """Helper class for building mock phasetrack records for testing."""

    @staticmethod
    def create_state(
        project_id: str = "acme",
        phase: Phase = Phase.DISCOVERY,
        substep: Optional[str] = "requirements-analysis",
        revision: int = 0,
        phase_weights: Optional[dict] = None,
        closed_at: Optional[datetime] = None,
    ) -> ProjectState:
        """Create a ProjectState for testing."""
        return ProjectState(
            project_id=project_id,
            current_phase=phase,
            current_substep=substep,
            revision=revision,
            phase_weights=phase_weights,
            closed_at=closed_at,
        )

    @staticmethod
    def create_milestone(
        phase: Phase = Phase.DISCOVERY,
        title: str = "Test Milestone",
        weight: float = 5.0,
        completed: bool = False,
        project_id: str = "acme",
        sequence: int = 0,
        removed_at: Optional[datetime] = None,
        milestone_id: Optional[str] = None,
    ) -> Milestone:
        """Create a Milestone for testing."""
        milestone = Milestone(
            project_id=project_id,
            phase=phase,
            title=title,
            weight=weight,
            completed=completed,
            sequence=sequence,
            removed_at=removed_at,
        )
        if milestone_id:
            milestone.id = milestone_id
        return milestone

    @staticmethod
    def create_project_file(
        state: Optional[ProjectState] = None,
        milestones: Iterable[Milestone] = (),
    ) -> ProjectFile:
        """Create a ProjectFile for testing."""
        return ProjectFile(
            state=state or MockDataBuilder.create_state(),
            milestones=list(milestones),
        )


@pytest.fixture
def mock_data() -> MockDataBuilder:
    """Provide mock data builder for test record creation."""
    return MockDataBuilder()
