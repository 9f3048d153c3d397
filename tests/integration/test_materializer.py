"""Integration tests for the Materializer against the database"""

import threading
import uuid
import pytest
from datetime import date
from typing import Callable
from sqlalchemy.orm import Session, sessionmaker
from finledger.domain.exceptions import OwnerContextMissing, RuleNotFound
from finledger.domain.models import RuleSpec
from finledger.domain.recurrence import validate_rule_spec
from finledger.infrastructure.database.models import Occurrence, RecurrenceRule
from finledger.infrastructure.database.repositories import LedgerRepository, OccurrenceRepository, RuleRepository
from finledger.services.materializer import Materializer, _rule_locks, rule_lock
from finledger.services.rules import create_rule

YEAR_END = date(2025, 12, 31)


def _persist_rule(db: Session, owner_id: str, spec: RuleSpec) -> uuid.UUID:
    db_rule = RuleRepository(db).create(owner_id, validate_rule_spec(spec))
    rule_id = db_rule.id
    db.commit()
    return rule_id


def _stored_dates(db: Session, owner_id: str, rule_id: uuid.UUID) -> list[date]:
    return [o.date for o in OccurrenceRepository(db).list_by_owner(owner_id, rule_id=rule_id)]


def test_monthly_count_three_materializes_once(db: Session, owner_id: str, make_spec: Callable[..., RuleSpec]):
    """Test {start=2025-01-01, Monthly, count=3} yields exactly three dates across two passes"""
    rule_id = _persist_rule(db, owner_id, make_spec(count=3))
    materializer = Materializer(db)

    first = materializer.materialize(rule_id, horizon=YEAR_END)
    second = materializer.materialize(rule_id, horizon=YEAR_END)

    expected = [date(2025, 1, 1), date(2025, 2, 1), date(2025, 3, 1)]
    assert first.created == expected
    assert second.created == []
    assert _stored_dates(db, owner_id, rule_id) == expected


def test_month_end_start_is_clamped(db: Session, owner_id: str, make_spec: Callable[..., RuleSpec]):
    """Test {start=2025-01-31, Monthly, count=2} yields Jan 31 and Feb 28"""
    rule_id = _persist_rule(db, owner_id, make_spec(start_date=date(2025, 1, 31), count=2))

    result = Materializer(db).materialize(rule_id, horizon=YEAR_END)

    assert result.created == [date(2025, 1, 31), date(2025, 2, 28)]
    assert result.watermark == date(2025, 2, 28)


def test_repeated_materialization_is_idempotent(db: Session, owner_id: str, make_spec: Callable[..., RuleSpec]):
    """Test second and third passes insert nothing and leave the watermark alone"""
    rule_id = _persist_rule(db, owner_id, make_spec(cadence="Weekly"))
    materializer = Materializer(db)
    horizon = date(2025, 3, 1)

    first = materializer.materialize(rule_id, horizon=horizon)
    second = materializer.materialize(rule_id, horizon=horizon)
    third = materializer.materialize(rule_id, horizon=horizon)

    assert len(first.created) == 9  # Jan 1 .. Feb 26
    assert second.created == [] and third.created == []
    assert first.watermark == second.watermark == third.watermark == date(2025, 2, 26)
    assert len(_stored_dates(db, owner_id, rule_id)) == 9


def test_rolling_horizon_extends_from_watermark(db: Session, owner_id: str, make_spec: Callable[..., RuleSpec]):
    """Test a later horizon only adds the dates beyond the previous watermark"""
    rule_id = _persist_rule(db, owner_id, make_spec())
    materializer = Materializer(db)

    materializer.materialize(rule_id, horizon=date(2025, 2, 15))
    later = materializer.materialize(rule_id, horizon=date(2025, 4, 15))

    assert later.created == [date(2025, 3, 1), date(2025, 4, 1)]
    assert len(_stored_dates(db, owner_id, rule_id)) == 4


def test_count_bound_holds_across_many_sweeps(db: Session, owner_id: str, make_spec: Callable[..., RuleSpec]):
    """Test a count=5 rule never exceeds five occurrences however often it is swept"""
    rule_id = _persist_rule(db, owner_id, make_spec(cadence="Weekly", count=5))
    materializer = Materializer(db)

    for month in range(1, 13):
        materializer.materialize(rule_id, horizon=date(2025, month, 28))

    assert len(_stored_dates(db, owner_id, rule_id)) == 5


def test_hard_cap_limits_a_single_pass(db: Session, owner_id: str, make_spec: Callable[..., RuleSpec]):
    rule_id = _persist_rule(db, owner_id, make_spec(cadence="Weekly"))

    result = Materializer(db).materialize(rule_id, horizon=date(2027, 12, 31))

    assert len(result.created) == 36


def test_missing_owner_context_writes_nothing(db: Session, make_spec: Callable[..., RuleSpec]):
    """Test a rule whose owner has no ledger fails without inserting occurrences"""
    rule_id = _persist_rule(db, "ghost", make_spec())

    with pytest.raises(OwnerContextMissing):
        Materializer(db).materialize(rule_id, horizon=YEAR_END)

    assert db.query(Occurrence).count() == 0
    assert db.get(RecurrenceRule, rule_id).last_generated is None


def test_unknown_rule(db: Session, owner_id: str):
    with pytest.raises(RuleNotFound):
        Materializer(db).materialize(uuid.uuid4(), horizon=YEAR_END)


def test_deleted_occurrence_is_not_an_error(db: Session, owner_id: str, make_spec: Callable[..., RuleSpec]):
    """Test user deletions between passes are tolerated and not regenerated behind the watermark"""
    rule_id = _persist_rule(db, owner_id, make_spec())
    materializer = Materializer(db)
    materializer.materialize(rule_id, horizon=date(2025, 3, 1))

    repo = OccurrenceRepository(db)
    february = [o for o in repo.list_by_owner(owner_id, rule_id=rule_id) if o.date == date(2025, 2, 1)][0]
    repo.delete(february)
    db.commit()

    result = materializer.materialize(rule_id, horizon=date(2025, 3, 1))

    assert result.created == []
    assert _stored_dates(db, owner_id, rule_id) == [date(2025, 1, 1), date(2025, 3, 1)]


def test_storage_constraint_backstops_stale_reads(
    db: Session, owner_id: str, make_spec: Callable[..., RuleSpec], monkeypatch: pytest.MonkeyPatch
):
    """Test inserts racing a writer that already stored the same dates are skipped, not duplicated"""
    rule_id = _persist_rule(db, owner_id, make_spec())
    Materializer(db).materialize(rule_id, horizon=date(2025, 3, 1))

    # Replay as a caller that read the rule and occurrence set before the first writer committed
    db.get(RecurrenceRule, rule_id).last_generated = None
    db.commit()
    monkeypatch.setattr(OccurrenceRepository, "dates_for_rule", lambda self, rule_id: set())

    replay = Materializer(db).materialize(rule_id, horizon=date(2025, 3, 1))

    assert replay.created == []
    assert replay.duplicates_skipped == 3
    assert replay.watermark is None
    assert db.query(Occurrence).count() == 3


def test_concurrent_materialization_inserts_each_date_once(
    session_factory: sessionmaker, make_spec: Callable[..., RuleSpec]
):
    """Test two threads materializing the same rule and horizon insert every date exactly once"""
    with session_factory() as setup:
        LedgerRepository(setup).open("racer")
        rule_id = _persist_rule(setup, "racer", make_spec(cadence="Weekly"))

    horizon = date(2025, 2, 1)
    barrier = threading.Barrier(2)
    results = []
    errors = []

    def worker():
        with session_factory() as session:
            barrier.wait()
            try:
                results.append(Materializer(session).materialize(rule_id, horizon=horizon))
            except Exception as e:
                errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert errors == []
    created = sorted(d for r in results for d in r.created)
    expected = [date(2025, 1, 1), date(2025, 1, 8), date(2025, 1, 15), date(2025, 1, 22), date(2025, 1, 29)]
    assert created == expected

    with session_factory() as check:
        assert sorted(_stored_dates(check, "racer", rule_id)) == expected


def test_create_rule_materializes_initial_batch(db: Session, owner_id: str, make_spec: Callable[..., RuleSpec]):
    """Test new rules get at most the initial batch, bounded by their own count"""
    open_ended, open_result = create_rule(db, owner_id, make_spec(payee="Streaming", cadence="monthly"))
    bounded, bounded_result = create_rule(db, owner_id, make_spec(payee="Loan", count=3))

    assert len(open_result.created) == 12
    assert open_result.watermark == date(2025, 12, 1)
    assert bounded_result.created == [date(2025, 1, 1), date(2025, 2, 1), date(2025, 3, 1)]
    assert db.get(RecurrenceRule, bounded.id).last_generated == date(2025, 3, 1)


def test_create_rule_requires_ledger(db: Session, make_spec: Callable[..., RuleSpec]):
    with pytest.raises(OwnerContextMissing):
        create_rule(db, "ghost", make_spec())

    db.rollback()
    assert db.query(RecurrenceRule).count() == 0


def test_rule_locks_are_released_after_each_pass(db: Session, owner_id: str, make_spec: Callable[..., RuleSpec]):
    """Test the per-rule lock registry only holds rules currently being materialized"""
    rule_ids = [_persist_rule(db, owner_id, make_spec(payee=f"Payee {i}")) for i in range(3)]

    for rule_id in rule_ids:
        Materializer(db).materialize(rule_id, horizon=date(2025, 2, 1))

    assert _rule_locks == {}

    with rule_lock(rule_ids[0]):
        assert list(_rule_locks) == [rule_ids[0]]
    assert _rule_locks == {}
