"""Recurrence rule lifecycle"""

from typing import Tuple
from sqlalchemy.orm import Session

from finledger.config import settings
from finledger.domain.models import MaterializationResult, RuleSpec
from finledger.domain.recurrence import validate_rule_spec
from finledger.infrastructure.database.models import RecurrenceRule
from finledger.infrastructure.database.repositories import LedgerRepository, RuleRepository
from finledger.services.materializer import Materializer


def create_rule(
    db: Session,
    owner_id: str,
    spec: RuleSpec,
    initial_batch_size: int | None = None,
) -> Tuple[RecurrenceRule, MaterializationResult]:
    """
    Create a recurrence rule and materialize its first batch of occurrences.

    Validation runs before anything is written. The rule row and the initial
    occurrences are committed together by the Materializer.
    """
    validate_rule_spec(spec)
    LedgerRepository(db).require(owner_id)

    db_rule = RuleRepository(db).create(owner_id, spec)
    result = Materializer(db, trigger="create").materialize(
        db_rule.id,
        limit=initial_batch_size or settings.initial_batch_size,
    )
    return db_rule, result
