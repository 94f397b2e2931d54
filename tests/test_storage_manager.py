"""
Tests for the storage backends.

StorageManager is exercised against a temp data directory; InMemoryStorage
is checked for the same contract.
"""
import json
from pathlib import Path

import pytest

from phasetrack.exceptions import StorageError, ValidationError
from phasetrack.managers.storage_manager import InMemoryStorage, StorageManager
from phasetrack.models.base import Phase
from phasetrack.models.files import ConfigFile


@pytest.fixture
def storage_manager(data_dir):
    """Create a StorageManager instance with temp directory."""
    return StorageManager(data_dir)


@pytest.fixture(params=["json", "memory"])
def backend(request, data_dir):
    if request.param == "json":
        return StorageManager(data_dir)
    return InMemoryStorage()


class TestStorageManagerInitialization:
    """Test StorageManager initialization."""

    def test_creates_data_dir(self, data_dir):
        StorageManager(data_dir)
        assert (data_dir / "projects").is_dir()

    def test_default_path(self, monkeypatch, tmp_path):
        """StorageManager uses .phasetrack/ in the current directory by default."""
        monkeypatch.chdir(tmp_path)
        storage = StorageManager()
        assert storage.data_dir == Path(".phasetrack")
        assert (tmp_path / ".phasetrack" / "projects").exists()


class TestProjectRecords:
    """Backend contract shared by both implementations."""

    def test_missing_project_is_none(self, backend):
        assert backend.load_project("ghost") is None
        assert backend.project_exists("ghost") is False

    def test_save_and_load(self, backend, mock_data):
        milestone = mock_data.create_milestone(phase=Phase.DESIGN, title="Wireframes", completed=True)
        project = mock_data.create_project_file(
            state=mock_data.create_state(phase=Phase.DESIGN, substep="wireframing", revision=4),
            milestones=[milestone],
        )
        backend.save_project(project)

        loaded = backend.load_project("acme")

        assert loaded == project
        assert loaded.state.revision == 4
        assert loaded.milestones[0].phase == Phase.DESIGN
        assert backend.project_exists("acme")

    def test_loaded_copy_is_detached(self, backend, mock_data):
        backend.save_project(mock_data.create_project_file())
        loaded = backend.load_project("acme")
        loaded.state = loaded.state.model_copy(update={"notes": "changed"})
        assert backend.load_project("acme").state.notes == ""

    def test_list_project_ids_sorted(self, backend, mock_data):
        for project_id in ("zeta", "alpha", "mid"):
            backend.save_project(mock_data.create_project_file(mock_data.create_state(project_id=project_id)))
        assert backend.list_project_ids() == ["alpha", "mid", "zeta"]

    def test_milestone_index(self, backend):
        assert backend.find_project_for_milestone("m-1") is None
        backend.index_milestone("m-1", "acme")
        assert backend.find_project_for_milestone("m-1") == "acme"

    def test_unsafe_project_id_rejected(self, backend, mock_data):
        with pytest.raises(ValidationError):
            backend.save_project(mock_data.create_project_file(mock_data.create_state(project_id="../etc")))


class TestJsonFiles:
    """Test the on-disk layout."""

    def test_project_file_written(self, storage_manager, data_dir, mock_data):
        storage_manager.save_project(mock_data.create_project_file())
        path = data_dir / "projects" / "acme.json"
        assert path.exists()
        data = json.loads(path.read_text())
        assert data["state"]["project_id"] == "acme"
        assert data["state"]["current_phase"] == "discovery"

    def test_no_temp_files_left_behind(self, storage_manager, data_dir, mock_data):
        storage_manager.save_project(mock_data.create_project_file())
        storage_manager.save_project(mock_data.create_project_file())
        assert [p.name for p in (data_dir / "projects").iterdir()] == ["acme.json"]

    def test_corrupt_project_file(self, storage_manager, data_dir):
        (data_dir / "projects" / "acme.json").write_text("{broken")
        with pytest.raises(StorageError):
            storage_manager.load_project("acme")

    def test_invalid_project_structure(self, storage_manager, data_dir):
        (data_dir / "projects" / "acme.json").write_text(json.dumps({"state": {"current_phase": "qa"}}))
        with pytest.raises(StorageError):
            storage_manager.load_project("acme")

    def test_milestone_index_survives_new_instance(self, data_dir):
        StorageManager(data_dir).index_milestone("m-1", "acme")
        assert StorageManager(data_dir).find_project_for_milestone("m-1") == "acme"


class TestConfigFile:
    """Test config.json read/write."""

    def test_defaults_when_missing(self, storage_manager):
        config = storage_manager.load_config()
        assert config.completed_threshold == 80
        assert config.poll_interval_seconds == 30
        assert config.default_milestone_weight == 5.0

    def test_save_and_load(self, storage_manager):
        storage_manager.save_config(ConfigFile(completed_threshold=90, catalog_path="catalog.json"))
        config = storage_manager.load_config()
        assert config.completed_threshold == 90
        assert config.catalog_path == "catalog.json"

    def test_invalid_config(self, storage_manager, data_dir):
        (data_dir / "config.json").write_text(json.dumps({"completed_threshold": 0}))
        with pytest.raises(StorageError):
            storage_manager.load_config()
