"""
Defaults and runtime configuration for phasetrack.

Every setting has a built-in default here. A data directory may override
them in its config.json, read through ConfigManager.
"""
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# =============================================================================
# Built-in defaults
# =============================================================================

# Data directory
DEFAULT_DATA_DIR = Path(".phasetrack")
DATA_DIR_ENV_VAR = "PHASETRACK_DATA_DIR"

# Progress policy defaults
DEFAULT_COMPLETED_THRESHOLD = 80
DEFAULT_MILESTONE_WEIGHT = 5.0
PROGRESS_MIN = 0
PROGRESS_MAX = 100

# Sync defaults
DEFAULT_POLL_INTERVAL_SECONDS = 30

# State machine defaults
DEFAULT_NOTES_MAX_LENGTH = 2000

# Project id format (used as a file name by the JSON storage backend)
PROJECT_ID_REGEX_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9_-]{0,63}$"

# Accepted due-date formats, tried in order
DEFAULT_DATE_FORMATS = [
    "%Y-%m-%d",  # ISO 8601
    "%Y/%m/%d",
    "%d-%m-%Y",
    "%d/%m/%Y",
    "%Y%m%d",
    "%d %B %Y",  # 31 December 2024
    "%d %b %Y",
    "%B %d, %Y",  # December 31, 2024
    "%b %d, %Y",
]
DEFAULT_DATE_MAX_YEARS_FUTURE = 10
DEFAULT_DATE_MAX_YEARS_PAST = 1

DATE_FORMAT_ERROR = (
    "Invalid date format. Supported formats: YYYY-MM-DD, YYYY/MM/DD, DD-MM-YYYY, DD/MM/YYYY, "
    "YYYYMMDD, 'DD Month YYYY', 'Month DD, YYYY'. "
    "Examples: 2024-12-31, 31/12/2024, '31 December 2024', 'December 31, 2024'."
)

# =============================================================================
# Default Phase/Substep Catalog
# (phase key, display title, [(substep id, substep title), ...])
# =============================================================================

DEFAULT_CATALOG_VERSION = "1"

DEFAULT_PHASE_SUBSTEPS: List[Tuple[str, str, List[Tuple[str, str]]]] = [
    ("discovery", "Discovery", [
        ("requirements-analysis", "Project Requirements Analysis"),
        ("market-research", "Market Research"),
        ("competitor-analysis", "Competitor Analysis"),
        ("user-personas", "User Persona Development"),
        ("feasibility-study", "Technical Feasibility Study"),
        ("scope-definition", "Project Scope Definition"),
    ]),
    ("design", "Design", [
        ("information-architecture", "Information Architecture"),
        ("wireframing", "Wireframing"),
        ("ui-ux-design", "UI/UX Design"),
        ("design-system", "Design System Creation"),
        ("prototype", "Prototype Development"),
        ("design-review", "Design Review & Approval"),
    ]),
    ("development", "Development", [
        ("environment-setup", "Environment Setup"),
        ("database-design", "Database Design"),
        ("build-core", "Core Backend Development"),
        ("frontend-development", "Frontend Development"),
        ("api-integration", "API Integration"),
        ("third-party-integrations", "Third-party Integrations"),
    ]),
    ("testing", "Testing", [
        ("unit-testing", "Unit Testing"),
        ("integration-testing", "Integration Testing"),
        ("acceptance-testing", "User Acceptance Testing"),
        ("performance-testing", "Performance Testing"),
        ("security-testing", "Security Testing"),
        ("bug-fixes", "Bug Fixes & Optimization"),
    ]),
    ("launch", "Launch", [
        ("production-setup", "Production Environment Setup"),
        ("deployment", "Deployment"),
        ("domain-configuration", "Domain Configuration"),
        ("ssl-setup", "SSL Certificate Setup"),
        ("performance-monitoring", "Performance Monitoring"),
        ("launch-announcement", "Launch Announcement"),
    ]),
    ("support", "Support", [
        ("user-training", "User Training"),
        ("documentation", "Documentation"),
        ("maintenance-plan", "Maintenance Plan"),
        ("support-setup", "Support System Setup"),
        ("monitoring-analytics", "Monitoring & Analytics"),
        ("post-launch-optimization", "Post-launch Optimization"),
    ]),
]



# =============================================================================
# Runtime configuration
# =============================================================================

_config_manager_instance: Optional["ConfigManager"] = None


class ConfigManager:
    """
    Read-only view over a data directory's config.json.

    The file is read lazily on first access and cached for the life of the instance.
    A missing file means "all defaults"; an unreadable one is logged and
    treated the same way, so a bad edit never stops the engine from serving
    snapshots. ``phasetrack config set`` validates values before writing.

    Example:
        config = ConfigManager(data_dir=Path("/srv/phasetrack"))
        threshold = config.get_int("completed_threshold", DEFAULT_COMPLETED_THRESHOLD)
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        data_dir: Optional[Path] = None,
        values: Optional[dict] = None,
    ) -> None:
        """
        Args:
            config_path: Explicit config file. Wins over ``data_dir``.
            data_dir: Data directory holding config.json. Defaults to .phasetrack/.
            values: In-memory settings. When given, no file is read.
        """
        self._values: Optional[Dict[str, Any]] = dict(values) if values is not None else None
        if config_path is None:
            config_path = (data_dir or DEFAULT_DATA_DIR) / "config.json"
        self._config_path = Path(config_path)

    def _settings(self) -> Dict[str, Any]:
        if self._values is None:
            self._values = self._read_file()
        return self._values

    def _read_file(self) -> Dict[str, Any]:
        if not self._config_path.exists():
            return {}
        try:
            with open(self._config_path, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Ignoring unreadable %s: %s", self._config_path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring %s: expected a JSON object", self._config_path)
            return {}
        return data

    def _typed(self, key: str, default: Any, cast: Callable[[Any], Any]) -> Any:
        value = self._settings().get(key)
        if value is None:
            return default
        try:
            return cast(value)
        except (TypeError, ValueError):
            logger.warning("Config key '%s' has invalid value %r; using %r", key, value, default)
            return default

    def get(self, key: str, default: Any = None) -> Any:
        """Raw value for ``key``, or ``default`` when unset."""
        return self._settings().get(key, default)

    def get_int(self, key: str, default: int) -> int:
        return self._typed(key, default, int)

    def get_float(self, key: str, default: float) -> float:
        return self._typed(key, default, float)

    def get_str(self, key: str, default: Optional[str]) -> Optional[str]:
        return self._typed(key, default, str)

    def get_list(self, key: str, default: list) -> list:
        value = self._settings().get(key)
        return list(value) if isinstance(value, (list, tuple)) else default

    @property
    def config_path(self) -> Path:
        return self._config_path


def get_config_manager(reset: bool = False, data_dir: Optional[Path] = None) -> ConfigManager:
    """
    Process-wide ConfigManager used by the date helpers in utils.

    Args:
        reset: Build a fresh instance even if one exists.
        data_dir: Data directory for a fresh instance. Defaults to .phasetrack/.
    """
    global _config_manager_instance
    if reset or _config_manager_instance is None:
        _config_manager_instance = ConfigManager(data_dir=Path(data_dir) if data_dir else None)
    return _config_manager_instance


def reset_config_manager() -> None:
    global _config_manager_instance
    _config_manager_instance = None


def get_date_formats() -> List[str]:
    return get_config_manager().get_list("date_formats", DEFAULT_DATE_FORMATS)


def get_date_max_years_future() -> int:
    return get_config_manager().get_int("date_max_years_future", DEFAULT_DATE_MAX_YEARS_FUTURE)


def get_date_max_years_past() -> int:
    return get_config_manager().get_int("date_max_years_past", DEFAULT_DATE_MAX_YEARS_PAST)
