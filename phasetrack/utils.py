"""
Utility functions for the phasetrack engine.
"""

import math
import re
from datetime import datetime, timedelta
from fractions import Fraction
from typing import Optional, Tuple

from phasetrack.constants import (
    PROGRESS_MAX,
    PROGRESS_MIN,
    PROJECT_ID_REGEX_PATTERN,
    get_date_formats,
    get_date_max_years_future,
    get_date_max_years_past,
)
from phasetrack.exceptions import ValidationError


def parse_date(date_string: str) -> Optional[datetime]:
    """Parse a due date, trying each configured format in turn.

    Returns None when no format matches, e.g. ``parse_date("someday")``.
    ``parse_date("31 December 2024")`` and ``parse_date("2024-12-31")`` both
    give midnight on that day.
    """
    for fmt in get_date_formats():
        try:
            return datetime.strptime(date_string.strip(), fmt)
        except ValueError:
            continue
    return None


def validate_date_range(date: datetime, now: Optional[datetime] = None) -> Tuple[bool, Optional[str]]:
    """Check a due date against the configured past/future window.

    Returns ``(True, None)`` when acceptable, otherwise ``(False, reason)``.
    """
    now = now or datetime.now()
    years_past = get_date_max_years_past()
    years_future = get_date_max_years_future()
    min_date = now - timedelta(days=365 * years_past)
    max_date = now + timedelta(days=365 * years_future)

    if date < min_date:
        return False, (
            f"Date {format_date(date)} is too far in the past. "
            f"Dates must be within the last {years_past} year."
        )

    if date > max_date:
        return False, (
            f"Date {format_date(date)} is too far in the future. "
            f"Dates must be within the next {years_future} years."
        )

    return True, None


def format_date(date: datetime) -> str:
    """Render a date as YYYY-MM-DD."""
    return date.strftime("%Y-%m-%d")


def clamp_progress(value: float) -> float:
    """Clamp a progress value into [0, 100]."""
    return max(PROGRESS_MIN, min(PROGRESS_MAX, value))


def floor_percent(numerator: float, denominator: float) -> int:
    """Return ``floor(100 * numerator / denominator)`` clamped to [0, 100].

    A zero or negative denominator yields 0.
    """
    if denominator <= 0:
        return PROGRESS_MIN
    return int(clamp_progress(math.floor(100 * numerator / denominator)))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values.

    ``round()`` uses banker's rounding (``round(2.5) == 2``), which is not what
    a progress bar should show.
    """
    return int(math.floor(value + Fraction(1, 2)))


def is_valid_project_id(project_id: str) -> bool:
    return isinstance(project_id, str) and re.match(PROJECT_ID_REGEX_PATTERN, project_id) is not None


def validate_project_id(project_id: str) -> str:
    """Check that a project id is safe to use as a storage key.

    Raises:
        ValidationError: If the id is empty or contains unsupported characters.
    """
    if not is_valid_project_id(project_id):
        raise ValidationError(
            f"Invalid project id '{project_id}'. Project ids must start with a letter "
            f"or digit and contain only letters, digits, '-' and '_' (max 64 characters)."
        )
    return project_id
