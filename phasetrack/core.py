"""
PhaseTrackCore - the engine facade.

Orchestrates manager classes for all operations exposed to calling layers.
Each write runs load -> mutate -> recompute -> save under the project's
lock, then publishes an event. Reads go through SyncManager.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from phasetrack.constants import (
    DEFAULT_COMPLETED_THRESHOLD,
    DEFAULT_MILESTONE_WEIGHT,
    DEFAULT_NOTES_MAX_LENGTH,
    DEFAULT_POLL_INTERVAL_SECONDS,
    ConfigManager,
)
from phasetrack.exceptions import DuplicateError, NotFoundError
from phasetrack.managers import (
    EventBus,
    EventType,
    InMemoryStorage,
    LockManager,
    LoggingListener,
    MilestoneManager,
    ProgressCalculator,
    ProjectEvent,
    ProjectStateMachine,
    StorageBackend,
    StorageManager,
    SyncManager,
)
from phasetrack.models.base import Phase, ReadMode
from phasetrack.models.catalog import PhaseCatalog
from phasetrack.models.files import ProjectFile
from phasetrack.models.milestone import Milestone
from phasetrack.models.snapshot import PortfolioStats, ProjectSnapshot, SyncResult
from phasetrack.utils import validate_project_id

logger = logging.getLogger(__name__)


class PhaseTrackCore:
    """
    Core class for the progress-tracking engine.

    Orchestrates manager classes:
    - StorageBackend: persistence of project records
    - LockManager: per-project write serialization
    - MilestoneManager: milestone store
    - ProgressCalculator: derived progress
    - ProjectStateMachine: pipeline transitions
    - SyncManager: snapshot reads for pollers
    - EventBus: notifications after persisted writes

    Explicit constructor arguments win over config.json values, which win
    over the built-in defaults.
    """

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        storage: Optional[StorageBackend] = None,
        catalog: Optional[PhaseCatalog] = None,
        clock: Callable[[], datetime] = datetime.now,
        config: Optional[ConfigManager] = None,
        completed_threshold: Optional[int] = None,
        poll_interval_seconds: Optional[int] = None,
        default_milestone_weight: Optional[float] = None,
        notes_max_length: Optional[int] = None,
        event_bus: Optional[EventBus] = None,
    ):
        """
        Initialize the engine.

        Args:
            data_dir: Data directory for the JSON backend and config.json.
            storage: Storage backend. Defaults to StorageManager(data_dir).
            catalog: Phase catalog. Defaults to config ``catalog_path`` or the built-in catalog.
            clock: Timestamp source.
            config: ConfigManager. Defaults to one reading data_dir/config.json.
        """
        self.config = config or ConfigManager(data_dir=Path(data_dir) if data_dir else None)
        self.storage = storage or StorageManager(data_dir)
        self.clock = clock
        self.catalog = catalog or self._load_catalog()

        threshold = completed_threshold if completed_threshold is not None else self.config.get_int(
            "completed_threshold", DEFAULT_COMPLETED_THRESHOLD
        )
        poll_interval = poll_interval_seconds if poll_interval_seconds is not None else self.config.get_int(
            "poll_interval_seconds", DEFAULT_POLL_INTERVAL_SECONDS
        )
        weight = default_milestone_weight if default_milestone_weight is not None else self.config.get_float(
            "default_milestone_weight", DEFAULT_MILESTONE_WEIGHT
        )
        max_notes = notes_max_length if notes_max_length is not None else self.config.get_int(
            "notes_max_length", DEFAULT_NOTES_MAX_LENGTH
        )

        self.locks = LockManager()
        self.calculator = ProgressCalculator(self.catalog, threshold)
        self.milestones = MilestoneManager(self.catalog, clock, weight)
        self.state_machine = ProjectStateMachine(self.catalog, clock, max_notes)
        self.sync = SyncManager(self.storage, self.locks, self.calculator, clock, poll_interval)

        self.event_bus = event_bus or EventBus()
        self.event_bus.subscribe(LoggingListener())

    @classmethod
    def in_memory(cls, **kwargs: Any) -> "PhaseTrackCore":
        """Build an engine on InMemoryStorage with default config."""
        kwargs.setdefault("storage", InMemoryStorage())
        kwargs.setdefault("config", ConfigManager(values={}))
        return cls(**kwargs)

    def _load_catalog(self) -> PhaseCatalog:
        catalog_path = self.config.get_str("catalog_path", None)
        if catalog_path:
            path = Path(catalog_path)
            if not path.is_absolute():
                path = self.config.config_path.parent / path
            logger.info("Loading phase catalog from %s", path)
            return PhaseCatalog.from_file(path)
        return PhaseCatalog.default()

    # =========================================================================
    # Write helpers
    # =========================================================================

    def _load(self, project_id: str) -> ProjectFile:
        project = self.storage.load_project(project_id)
        if project is None:
            raise NotFoundError(f"Project '{project_id}' not found.")
        return project

    @contextmanager
    def _writing(self, project_id: str) -> Iterator[ProjectFile]:
        """Hold the project lock around load, mutate, recompute and save.

        Nothing is saved if the block raises.
        """
        with self.locks.hold(project_id):
            project = self._load(project_id)
            yield project
            project.progress = self.calculator.calculate(project.state, project.milestones)
            self.storage.save_project(project)

    def _project_for_milestone(self, milestone_id: str) -> str:
        project_id = self.storage.find_project_for_milestone(milestone_id)
        if project_id is None:
            raise NotFoundError(f"Milestone '{milestone_id}' not found.")
        return project_id

    def _publish(
        self,
        event_type: EventType,
        project: ProjectFile,
        milestone_id: Optional[str] = None,
        **data: Any,
    ) -> None:
        self.event_bus.publish(
            ProjectEvent(
                type=event_type,
                project_id=project.project_id,
                revision=project.state.revision,
                milestone_id=milestone_id,
                data=data,
            )
        )

    # =========================================================================
    # Projects
    # =========================================================================

    def scope_project(
        self,
        project_id: str,
        *,
        phase_weights: Optional[Dict["Phase | str", float]] = None,
        updated_by: Optional[str] = None,
    ) -> ProjectSnapshot:
        """Create a project at (discovery, first substep).

        Raises:
            DuplicateError: If the project already exists.
            ValidationError: If the id or phase weights are invalid.
        """
        validate_project_id(project_id)
        with self.locks.hold(project_id):
            if self.storage.project_exists(project_id):
                raise DuplicateError(f"Project '{project_id}' already exists.")
            state = self.state_machine.initial_state(project_id, phase_weights, updated_by)
            project = ProjectFile(state=state)
            project.progress = self.calculator.calculate(state, project.milestones)
            self.storage.save_project(project)
        self._publish(EventType.PROJECT_SCOPED, project)
        return self.sync.foreground_read(project_id)

    def list_projects(self) -> List[str]:
        return self.storage.list_project_ids()

    def close_project(self, project_id: str, updated_by: Optional[str] = None) -> ProjectSnapshot:
        """Close a project and retire its active milestones."""
        with self._writing(project_id) as project:
            project.state = self.state_machine.close(project.state, updated_by)
            retired = self.milestones.retire_all(project)
        self._publish(EventType.PROJECT_CLOSED, project, retired=retired)
        return self.sync.foreground_read(project_id)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_snapshot(self, project_id: str, mode: ReadMode = ReadMode.FOREGROUND) -> ProjectSnapshot:
        """Return the project's snapshot.

        Raises:
            NotFoundError: If the project does not exist.
        """
        return self.sync.read(project_id, mode)

    def poll(self, project_id: str, known_revision: Optional[int] = None) -> SyncResult:
        """Background read for timer-driven pollers."""
        return self.sync.background_read(project_id, known_revision)

    def list_milestones(self, project_id: str, include_removed: bool = False) -> List[Milestone]:
        with self.locks.hold(project_id):
            project = self._load(project_id)
        return self.milestones.list_by_project(project, include_removed)

    def get_statistics(self) -> PortfolioStats:
        """Project count, projects per current phase and mean overall progress."""
        phase_counts = {phase: 0 for phase in Phase.ordered()}
        total_progress = 0
        project_ids = self.storage.list_project_ids()
        for project_id in project_ids:
            snapshot = self.sync.foreground_read(project_id)
            phase_counts[snapshot.current_phase] += 1
            total_progress += snapshot.overall_progress
        average = round(total_progress / len(project_ids), 1) if project_ids else 0.0
        return PortfolioStats(
            total_projects=len(project_ids),
            phase_counts=phase_counts,
            average_progress=average,
        )

    # =========================================================================
    # Milestones
    # =========================================================================

    def create_milestone(
        self,
        project_id: str,
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
        updated_by: Optional[str] = None,
    ) -> Milestone:
        """Create a milestone in one of the project's phases."""
        with self._writing(project_id) as project:
            milestone = self.milestones.create(
                project,
                phase,
                title,
                description,
                weight,
                due_date,
                assigned_to=assigned_to,
                deliverables=deliverables,
                substep=substep,
                notes=notes,
            )
            project.state = self.state_machine.touch(project.state, updated_by)
            # indexed before the save so an index failure leaves the project unchanged
            self.storage.index_milestone(milestone.id, project_id)
        self._publish(EventType.MILESTONE_CREATED, project, milestone.id, phase=milestone.phase.value)
        return milestone

    def toggle_milestone(
        self,
        milestone_id: str,
        completed: bool,
        updated_by: Optional[str] = None,
    ) -> Milestone:
        """Set a milestone's completion. Repeating the current value changes nothing."""
        project_id = self._project_for_milestone(milestone_id)
        with self.locks.hold(project_id):
            project = self._load(project_id)
            before = self.milestones.get(project, milestone_id)
            milestone = self.milestones.toggle_completion(project, milestone_id, completed)
            if milestone.completed == before.completed:
                return milestone
            project.state = self.state_machine.touch(project.state, updated_by)
            project.progress = self.calculator.calculate(project.state, project.milestones)
            self.storage.save_project(project)
        self._publish(EventType.MILESTONE_TOGGLED, project, milestone_id, completed=milestone.completed)
        return milestone

    def update_milestone(
        self,
        milestone_id: str,
        updated_by: Optional[str] = None,
        **changes: Any,
    ) -> Milestone:
        """Edit milestone fields (see MilestoneManager.update)."""
        project_id = self._project_for_milestone(milestone_id)
        with self._writing(project_id) as project:
            milestone = self.milestones.update(project, milestone_id, **changes)
            project.state = self.state_machine.touch(project.state, updated_by)
        self._publish(EventType.MILESTONE_UPDATED, project, milestone_id, fields=sorted(changes))
        return milestone

    def remove_milestone(self, milestone_id: str, updated_by: Optional[str] = None) -> Milestone:
        """Remove a milestone from the active view; its record is kept."""
        project_id = self._project_for_milestone(milestone_id)
        with self._writing(project_id) as project:
            milestone = self.milestones.remove(project, milestone_id)
            project.state = self.state_machine.touch(project.state, updated_by)
        self._publish(EventType.MILESTONE_REMOVED, project, milestone_id)
        return milestone

    # =========================================================================
    # Transitions
    # =========================================================================

    def advance_phase(self, project_id: str, updated_by: Optional[str] = None) -> ProjectSnapshot:
        """Advance to the next substep (rolling into the next phase)."""
        with self._writing(project_id) as project:
            project.state = self.state_machine.advance_substep(project.state, updated_by)
        self._publish(
            EventType.PHASE_ADVANCED,
            project,
            phase=project.state.current_phase.value,
            substep=project.state.current_substep,
        )
        return self.sync.build_snapshot(project)

    def set_phase_and_substep(
        self,
        project_id: str,
        phase: "Phase | str",
        substep: str,
        updated_by: Optional[str] = None,
    ) -> ProjectSnapshot:
        """Move the cursor explicitly, forward or backward."""
        with self._writing(project_id) as project:
            project.state = self.state_machine.set_phase_and_substep(
                project.state, phase, substep, updated_by
            )
        self._publish(
            EventType.PHASE_SET,
            project,
            phase=project.state.current_phase.value,
            substep=project.state.current_substep,
        )
        return self.sync.build_snapshot(project)

    def annotate_status(
        self,
        project_id: str,
        notes: str,
        updated_by: Optional[str] = None,
    ) -> ProjectSnapshot:
        """Replace the project's status notes."""
        with self._writing(project_id) as project:
            project.state = self.state_machine.annotate_status(project.state, notes, updated_by)
        self._publish(EventType.STATUS_ANNOTATED, project)
        return self.sync.build_snapshot(project)
