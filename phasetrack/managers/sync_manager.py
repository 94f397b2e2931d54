"""
SyncManager for phasetrack.

Serves ProjectSnapshots to pollers. Two read modes:

- foreground: user-initiated. Waits for any in-flight write on the project
  and always returns the latest persisted state.
- background: timer-initiated. Never waits on a write in progress; if the
  project is locked and a previously served snapshot exists, that snapshot is
  returned instead. The result says whether the revision moved past the
  caller's ``known_revision``.

Either way the snapshot's state and progress come from a single load.
Scheduling is left to the caller; ``poll_interval``, ``is_stale`` and
``next_poll_at`` only describe the policy.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from phasetrack.constants import DEFAULT_POLL_INTERVAL_SECONDS
from phasetrack.exceptions import NotFoundError
from phasetrack.managers.lock_manager import LockManager
from phasetrack.managers.progress_calculator import ProgressCalculator, milestone_counts
from phasetrack.managers.storage_manager import StorageBackend
from phasetrack.models.base import ReadMode
from phasetrack.models.files import ProjectFile
from phasetrack.models.snapshot import ProjectSnapshot, SyncResult

logger = logging.getLogger(__name__)


class SyncManager:
    """Builds snapshots and implements the foreground/background read contract."""

    def __init__(
        self,
        storage: StorageBackend,
        locks: LockManager,
        calculator: ProgressCalculator,
        clock: Callable[[], datetime] = datetime.now,
        poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS,
    ) -> None:
        self.storage = storage
        self.locks = locks
        self.calculator = calculator
        self.clock = clock
        self.poll_interval = timedelta(seconds=poll_interval_seconds)
        self._last_served: Dict[str, ProjectSnapshot] = {}
        self._cache_lock = threading.Lock()

    # =========================================================================
    # Snapshot construction
    # =========================================================================

    def build_snapshot(self, project: ProjectFile) -> ProjectSnapshot:
        """Compute a snapshot from one loaded project record.

        The cached progress stored in the record is ignored and recomputed.
        """
        state = project.state
        progress = self.calculator.calculate(state, project.milestones)
        completed, total = milestone_counts(project.milestones)
        return ProjectSnapshot(
            project_id=state.project_id,
            current_phase=state.current_phase,
            current_substep=state.current_substep,
            notes=state.notes,
            phase_progress=progress.phases,
            overall_progress=progress.overall,
            last_updated=state.last_updated,
            phase_status=self.calculator.status_map(progress),
            revision=state.revision,
            updated_by=state.updated_by,
            milestones_completed=completed,
            total_milestones=total,
            closed=state.closed,
        )

    def _load(self, project_id: str) -> ProjectFile:
        project = self.storage.load_project(project_id)
        if project is None:
            self.forget(project_id)
            raise NotFoundError(f"Project '{project_id}' not found.")
        return project

    def _remember(self, snapshot: ProjectSnapshot) -> ProjectSnapshot:
        with self._cache_lock:
            self._last_served[snapshot.project_id] = snapshot
        return snapshot

    def _cached(self, project_id: str) -> Optional[ProjectSnapshot]:
        with self._cache_lock:
            return self._last_served.get(project_id)

    # =========================================================================
    # Reads
    # =========================================================================

    def foreground_read(self, project_id: str) -> ProjectSnapshot:
        """Latest persisted snapshot; waits for an in-flight write to finish.

        Raises:
            NotFoundError: If the project does not exist.
        """
        with self.locks.hold(project_id):
            project = self._load(project_id)
        snapshot = self.build_snapshot(project)
        logger.debug("Foreground read %s at revision %s", project_id, snapshot.revision)
        return self._remember(snapshot)

    def background_read(self, project_id: str, known_revision: Optional[int] = None) -> SyncResult:
        """Staleness-tolerant read for timer-driven polls.

        Raises:
            NotFoundError: If the project does not exist and nothing was served before.
        """
        from_cache = False
        with self.locks.try_hold(project_id) as acquired:
            project = self._load(project_id) if acquired else None

        if project is not None:
            snapshot = self._remember(self.build_snapshot(project))
        else:
            cached = self._cached(project_id)
            if cached is not None:
                snapshot = cached
                from_cache = True
            else:
                # nothing served yet: wait for the write rather than fail the poll
                with self.locks.hold(project_id):
                    project = self._load(project_id)
                snapshot = self._remember(self.build_snapshot(project))

        changed = known_revision is None or snapshot.revision != known_revision
        logger.debug(
            "Background read %s at revision %s (changed=%s, cached=%s)",
            project_id, snapshot.revision, changed, from_cache,
        )
        return SyncResult(
            snapshot=snapshot,
            changed=changed,
            mode=ReadMode.BACKGROUND,
            served_at=self.clock(),
            from_cache=from_cache,
        )

    def read(self, project_id: str, mode: ReadMode = ReadMode.FOREGROUND) -> ProjectSnapshot:
        """Read a snapshot in the given mode."""
        if ReadMode(mode) == ReadMode.BACKGROUND:
            return self.background_read(project_id).snapshot
        return self.foreground_read(project_id)

    def forget(self, project_id: str) -> None:
        """Drop the remembered snapshot for a project."""
        with self._cache_lock:
            self._last_served.pop(project_id, None)

    # =========================================================================
    # Refresh policy
    # =========================================================================

    def is_stale(self, served_at: datetime, now: Optional[datetime] = None) -> bool:
        """True once a snapshot served at ``served_at`` is older than one poll interval."""
        now = now or self.clock()
        return now - served_at >= self.poll_interval

    def next_poll_at(self, served_at: datetime) -> datetime:
        return served_at + self.poll_interval
