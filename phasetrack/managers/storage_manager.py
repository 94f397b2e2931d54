"""
Storage backends for the phasetrack engine.

StorageManager persists one JSON file per project in the data directory.
InMemoryStorage keeps the same records in a dict, for tests and embedding.
"""

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from phasetrack.constants import DEFAULT_DATA_DIR
from phasetrack.exceptions import StorageError
from phasetrack.models.files import ConfigFile, MilestoneIndexFile, ProjectFile
from phasetrack.utils import is_valid_project_id, validate_project_id

logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    """Persistence contract: ProjectFile records keyed by project id."""

    @abstractmethod
    def load_project(self, project_id: str) -> Optional[ProjectFile]:
        """Return the stored record, or None if the project does not exist."""

    @abstractmethod
    def save_project(self, data: ProjectFile) -> None:
        """Persist a record, replacing any previous version."""

    @abstractmethod
    def list_project_ids(self) -> List[str]:
        """Return all stored project ids, sorted."""

    @abstractmethod
    def find_project_for_milestone(self, milestone_id: str) -> Optional[str]:
        """Return the project id owning a milestone, or None."""

    @abstractmethod
    def index_milestone(self, milestone_id: str, project_id: str) -> None:
        """Record which project owns a milestone."""

    def project_exists(self, project_id: str) -> bool:
        return self.load_project(project_id) is not None


class InMemoryStorage(StorageBackend):
    """Dict-backed storage. Records are deep-copied on the way in and out."""

    def __init__(self) -> None:
        self._projects: Dict[str, ProjectFile] = {}
        self._milestone_index: Dict[str, str] = {}
        self._lock = threading.Lock()

    def load_project(self, project_id: str) -> Optional[ProjectFile]:
        with self._lock:
            stored = self._projects.get(project_id)
            return stored.model_copy(deep=True) if stored else None

    def save_project(self, data: ProjectFile) -> None:
        validate_project_id(data.project_id)
        with self._lock:
            self._projects[data.project_id] = data.model_copy(deep=True)

    def list_project_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._projects)

    def find_project_for_milestone(self, milestone_id: str) -> Optional[str]:
        with self._lock:
            return self._milestone_index.get(milestone_id)

    def index_milestone(self, milestone_id: str, project_id: str) -> None:
        with self._lock:
            self._milestone_index[milestone_id] = project_id


class StorageManager(StorageBackend):
    """
    Manages persistence of project data to JSON files in the data directory.

    Layout:
        <data_dir>/config.json
        <data_dir>/milestone_index.json
        <data_dir>/projects/<project_id>.json
    """

    def __init__(self, data_dir: Optional[Path] = None) -> None:
        """
        Initialize the StorageManager with a data directory path.

        Args:
            data_dir: Path to the data directory. Defaults to .phasetrack/ in current directory.
        """
        self.data_dir = Path(data_dir) if data_dir else DEFAULT_DATA_DIR
        self.projects_dir = self.data_dir / "projects"
        self._index_lock = threading.Lock()
        self._ensure_data_dir()

    def _ensure_data_dir(self) -> None:
        """Create the data directory and projects subdirectory if they don't exist."""
        self.projects_dir.mkdir(parents=True, exist_ok=True)

    def _atomic_write(self, file_path: Path, data: Dict[str, Any]) -> None:
        """Write JSON next to the target, then rename over it.

        Readers see either the old file or the new one, never a partial write.

        Raises:
            StorageError: If the write or rename fails.
        """
        temp_fd, temp_path = tempfile.mkstemp(
            dir=file_path.parent, prefix=".tmp_phasetrack_", suffix=".json"
        )

        try:
            with os.fdopen(temp_fd, "w") as temp_file:
                json.dump(data, temp_file, indent=2)
            os.replace(temp_path, file_path)
        except Exception as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise StorageError(f"Failed to write to {file_path}: {e}")

    def _read_json(self, file_path: Path) -> Any:
        try:
            with open(file_path, "r") as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise StorageError(f"Failed to read {file_path}: {e}")

    def _project_path(self, project_id: str) -> Path:
        validate_project_id(project_id)
        return self.projects_dir / f"{project_id}.json"

    # =========================================================================
    # Project Files
    # =========================================================================

    def load_project(self, project_id: str) -> Optional[ProjectFile]:
        """Load projects/<project_id>.json and return it as a ProjectFile model."""
        if not self.project_exists(project_id):
            return None
        file_path = self._project_path(project_id)
        data = self._read_json(file_path)
        try:
            return ProjectFile.model_validate(data)
        except ValidationError as e:
            raise StorageError(f"Failed to load project '{project_id}': {e}")

    def save_project(self, data: ProjectFile) -> None:
        """Save a ProjectFile model to projects/<project_id>.json."""
        file_path = self._project_path(data.project_id)
        self._atomic_write(file_path, data.model_dump(mode="json"))
        logger.debug("Saved project %s (revision %s)", data.project_id, data.state.revision)

    def project_exists(self, project_id: str) -> bool:
        """Ids that could never have been saved read as missing."""
        if not is_valid_project_id(project_id):
            return False
        return self._project_path(project_id).exists()

    def list_project_ids(self) -> List[str]:
        return sorted(p.stem for p in self.projects_dir.glob("*.json") if not p.name.startswith("."))

    # =========================================================================
    # Milestone Index
    # =========================================================================

    def _load_index(self) -> MilestoneIndexFile:
        file_path = self.data_dir / "milestone_index.json"
        if not file_path.exists():
            return MilestoneIndexFile()
        try:
            return MilestoneIndexFile.model_validate(self._read_json(file_path))
        except ValidationError as e:
            raise StorageError(f"Failed to load milestone_index.json: {e}")

    def find_project_for_milestone(self, milestone_id: str) -> Optional[str]:
        with self._index_lock:
            return self._load_index().entries.get(milestone_id)

    def index_milestone(self, milestone_id: str, project_id: str) -> None:
        with self._index_lock:
            index = self._load_index()
            index.entries[milestone_id] = project_id
            self._atomic_write(
                self.data_dir / "milestone_index.json", index.model_dump(mode="json")
            )

    # =========================================================================
    # Config File
    # =========================================================================

    def load_config(self) -> ConfigFile:
        """Return the validated config.json, or defaults when it is absent."""
        file_path = self.data_dir / "config.json"
        if not file_path.exists():
            return ConfigFile()

        try:
            return ConfigFile.model_validate(self._read_json(file_path))
        except ValidationError as e:
            raise StorageError(f"Failed to load config.json: {e}")

    def save_config(self, data: ConfigFile) -> None:
        """Persist validated settings to config.json."""
        file_path = self.data_dir / "config.json"
        self._atomic_write(file_path, data.model_dump(mode="json"))
