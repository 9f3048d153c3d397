"""Materialization planning - decides which occurrence dates a rule still owes"""

from datetime import date
from typing import AbstractSet, Optional
from finledger.domain.models import MaterializationPlan, RuleSchedule
from finledger.domain.recurrence import HARD_OCCURRENCE_CAP, advance_date, generate_occurrences


def plan_materialization(
    schedule: RuleSchedule,
    existing_dates: AbstractSet[date],
    existing_count: int,
    horizon: Optional[date] = None,
    limit: Optional[int] = None,
    hard_cap: int = HARD_OCCURRENCE_CAP,
) -> MaterializationPlan:
    """
    Compute the occurrence dates to insert for a rule.

    Requirements:
    - Resume one cadence step after the watermark, or at the start date
    - Stop at the rule's end date if it has one, otherwise at `horizon`
    - Never exceed `count` occurrences in total, counted from storage
    - Skip dates already present for this rule

    Args:
        schedule: Rule scheduling fields including the watermark
        existing_dates: Dates of occurrences already stored for the rule
        existing_count: Number of occurrences already stored for the rule
        horizon: Rolling horizon used when the rule has no end date
        limit: Optional cap on the batch size (initial batch on creation)
        hard_cap: System-wide ceiling for a single pass

    Returns:
        MaterializationPlan whose `dates` are the non-duplicate dates in order
    """
    if schedule.last_generated is not None:
        start = advance_date(schedule.last_generated, schedule.cadence, schedule.interval)
    else:
        start = schedule.start_date

    until = schedule.end_date if schedule.end_date is not None else horizon

    max_count = hard_cap if limit is None else min(limit, hard_cap)
    if schedule.count is not None:
        max_count = min(max_count, schedule.count - existing_count)

    plan = MaterializationPlan(start_date=start, until=until, max_count=max(max_count, 0))
    if plan.max_count == 0:
        return plan

    candidates = generate_occurrences(
        start,
        schedule.cadence,
        schedule.interval,
        max_count=plan.max_count,
        until=until,
        hard_cap=hard_cap,
    )
    plan.dates = [d for d in candidates if d not in existing_dates]
    return plan
