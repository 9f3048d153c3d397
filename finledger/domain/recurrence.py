"""Recurrence calendar arithmetic and occurrence sequencing"""

from datetime import date, timedelta
from typing import Any, List, Optional
from finledger.domain.exceptions import InvalidCadence, InvalidCount, InvalidInterval
from finledger.domain.models import CADENCES, RuleSpec
from finledger.utils.date_utils import add_months

HARD_OCCURRENCE_CAP = 36

_CADENCE_ALIASES = {
    "weekly": "Weekly",
    "biweekly": "BiWeekly",
    "bi-weekly": "BiWeekly",
    "bi_weekly": "BiWeekly",
    "monthly": "Monthly",
    "yearly": "Yearly",
}


def normalize_cadence(cadence: Any) -> str:
    """Map user spellings ("bi-weekly", "monthly") onto canonical cadence names"""
    if isinstance(cadence, str):
        if cadence in CADENCES:
            return cadence
        canonical = _CADENCE_ALIASES.get(cadence.strip().lower())
        if canonical:
            return canonical
    raise InvalidCadence(f"Unknown cadence: {cadence!r}")


def advance_date(current: date, cadence: str, interval: int = 1) -> date:
    """
    Compute the next occurrence date after `current`.

    - Weekly / BiWeekly: 7 / 14 days per interval
    - Monthly: calendar months, clamped to the last day of shorter months
    - Yearly: calendar years; Feb 29 lands on Feb 28 in non-leap years

    Raises:
        InvalidCadence: cadence is not one of CADENCES
    """
    if cadence == "Weekly":
        return current + timedelta(days=7 * interval)
    if cadence == "BiWeekly":
        return current + timedelta(days=14 * interval)
    if cadence == "Monthly":
        return add_months(current, interval)
    if cadence == "Yearly":
        return add_months(current, 12 * interval)
    raise InvalidCadence(f"Unknown cadence: {cadence!r}")


def generate_occurrences(
    start_date: date,
    cadence: str,
    interval: int = 1,
    max_count: int = 12,
    until: Optional[date] = None,
    hard_cap: int = HARD_OCCURRENCE_CAP,
) -> List[date]:
    """
    Expand a cadence into a bounded list of occurrence dates.

    Requirements:
    - First date is `start_date` itself
    - Stops after `max_count` dates, never more than `hard_cap`
    - `until` is inclusive: a date equal to it is emitted, later ones are not
    - Pure function of its inputs; calling it again yields the same dates

    Args:
        start_date: First candidate date
        cadence: One of CADENCES
        interval: Cadence multiplier (every N weeks/months/years)
        max_count: Requested number of dates
        until: Optional last allowed date
        hard_cap: System-wide ceiling on a single batch

    Returns:
        Ordered list of dates

    Example:
        2025-01-31, Monthly, max_count=3 -> [2025-01-31, 2025-02-28, 2025-03-28]
    """
    limit = min(max_count, hard_cap)
    occurrences: List[date] = []
    cursor = start_date
    while len(occurrences) < limit:
        if until is not None and cursor > until:
            break
        occurrences.append(cursor)
        cursor = advance_date(cursor, cadence, interval)
    return occurrences


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def validate_rule_spec(spec: RuleSpec) -> RuleSpec:
    """
    Check cadence, interval and count before anything is written.

    Returns the spec with its cadence normalised to the canonical name.
    """
    spec.cadence = normalize_cadence(spec.cadence)
    if not _is_positive_int(spec.interval):
        raise InvalidInterval(f"Interval must be a positive integer, got {spec.interval!r}")
    if spec.count is not None and not _is_positive_int(spec.count):
        raise InvalidCount(f"Count must be a positive integer, got {spec.count!r}")
    return spec
