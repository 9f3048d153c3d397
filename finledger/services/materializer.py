"""Materializer - expands recurrence rules into stored upcoming charges"""

import threading
import time
import uuid
from contextlib import contextmanager
from datetime import date
from typing import Dict, Optional
from sqlalchemy.orm import Session

from finledger.config import settings
from finledger.domain.exceptions import DuplicateOccurrence
from finledger.domain.materialization import plan_materialization
from finledger.domain.models import MaterializationResult
from finledger.infrastructure.database.repositories import LedgerRepository, OccurrenceRepository, RuleRepository
from finledger.infrastructure.observability.logging import log_materialization
from finledger.infrastructure.observability.metrics import materialization_failures_counter, record_materialization

_locks_guard = threading.Lock()
# rule id -> [lock, holders and waiters]; entries are dropped when the last one leaves
_rule_locks: Dict[uuid.UUID, list] = {}


@contextmanager
def rule_lock(rule_id: uuid.UUID):
    """Process-wide lock serialising materialization of a single rule"""
    with _locks_guard:
        entry = _rule_locks.setdefault(rule_id, [threading.Lock(), 0])
        entry[1] += 1

    try:
        with entry[0]:
            yield
    finally:
        with _locks_guard:
            entry[1] -= 1
            if entry[1] == 0:
                del _rule_locks[rule_id]


class Materializer:
    """Runs materialization passes inside the given session"""

    def __init__(self, db: Session, hard_cap: int | None = None, trigger: str = "sweep"):
        self.db = db
        self.hard_cap = hard_cap or settings.occurrence_hard_cap
        self.trigger = trigger  # create | sweep | manual
        self.ledgers = LedgerRepository(db)
        self.rules = RuleRepository(db)
        self.occurrences = OccurrenceRepository(db)

    def materialize(
        self,
        rule_id: uuid.UUID,
        horizon: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> MaterializationResult:
        """
        Insert the occurrences a rule still owes and advance its watermark.

        Flow:
        1. Load the rule and its owner's ledger (OwnerContextMissing -> nothing written)
        2. Read existing occurrence dates and count for the rule from storage
        3. Plan the missing dates up to the end date / horizon / count / limit
        4. Insert each date in its own SAVEPOINT; uniqueness collisions are skipped
        5. Advance the watermark to the last inserted date, if any
        6. Commit occurrences and watermark together

        Running it again with no intervening deletes inserts nothing and
        leaves the watermark untouched.

        Raises:
            RuleNotFound: rule does not exist
            OwnerContextMissing: rule's owner has no ledger
        """
        start_time = time.time()

        with rule_lock(rule_id):
            try:
                result, owner_id = self._run(rule_id, horizon, limit)
                self.db.commit()
            except Exception:
                self.db.rollback()
                materialization_failures_counter.inc()
                raise

        duration_ms = (time.time() - start_time) * 1000
        record_materialization(self.trigger, len(result.created), result.duplicates_skipped)
        log_materialization(
            result.rule_id,
            owner_id,
            result.created,
            result.duplicates_skipped,
            result.watermark,
            duration_ms,
        )
        return result

    def _run(self, rule_id: uuid.UUID, horizon: Optional[date], limit: Optional[int]):
        db_rule = self.rules.get_by_id(rule_id)
        self.ledgers.require(db_rule.owner_id)

        existing_dates = self.occurrences.dates_for_rule(db_rule.id)
        existing_count = self.occurrences.count_for_rule(db_rule.id)

        plan = plan_materialization(
            RuleRepository.schedule_of(db_rule),
            existing_dates,
            existing_count,
            horizon=horizon,
            limit=limit,
            hard_cap=self.hard_cap,
        )

        created = []
        duplicates_skipped = 0
        for occurrence_date in plan.dates:
            try:
                self.occurrences.insert_generated(db_rule, occurrence_date)
            except DuplicateOccurrence:
                # Another writer got there first
                duplicates_skipped += 1
                continue
            created.append(occurrence_date)

        if created:
            self.rules.advance_watermark(db_rule, created[-1])

        result = MaterializationResult(
            rule_id=str(db_rule.id),
            created=created,
            watermark=db_rule.last_generated,
            duplicates_skipped=duplicates_skipped,
        )
        return result, db_rule.owner_id
