"""
Custom exceptions for the phasetrack engine.

Every error carries a stable ``kind`` string and a human-readable ``detail``
so calling layers can map them to their own user-facing messages.
"""
from typing import Any, Dict


class PhaseTrackError(Exception):
    """Base exception for all phasetrack errors."""

    kind = "error"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error as ``{"error": kind, "detail": detail}``."""
        return {"error": self.kind, "detail": self.detail}


class NotFoundError(PhaseTrackError):
    """Raised when a project, milestone or substep is not found."""

    kind = "not_found"


class InvalidPhaseError(PhaseTrackError):
    """Raised when a phase is not part of the catalog."""

    kind = "invalid_phase"


class InvalidSubstepForPhaseError(PhaseTrackError):
    """Raised when a substep does not belong to the given phase."""

    kind = "invalid_substep_for_phase"


class InvalidWeightError(PhaseTrackError):
    """Raised when a milestone weight is not strictly positive."""

    kind = "invalid_weight"


class AlreadyAtTerminalStateError(PhaseTrackError):
    """Raised when advancing past the last substep of the last phase."""

    kind = "already_at_terminal_state"


class ValidationError(PhaseTrackError):
    """Raised when input fails validation (blank titles, oversized notes, bad ids)."""

    kind = "validation"


class InvalidOperationError(PhaseTrackError):
    """Raised when an operation is not allowed in the current state."""

    kind = "invalid_operation"


class DuplicateError(PhaseTrackError):
    """Raised when attempting to scope a project that already exists."""

    kind = "duplicate"


class StorageError(PhaseTrackError):
    """Raised when persisted data cannot be read or written."""

    kind = "storage"


class ConfigurationError(PhaseTrackError):
    """Raised when there's a configuration or catalog setup issue."""

    kind = "configuration"
