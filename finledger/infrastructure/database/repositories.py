"""Data access layer for owner-scoped ledger entities"""

import uuid
from datetime import date
from typing import Dict, List, Optional, Set
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from finledger.infrastructure.database.models import Account, Ledger, LedgerTransaction, Occurrence, RecurrenceRule
from finledger.domain.exceptions import (
    AccountNotFound,
    DuplicateOccurrence,
    OccurrenceNotFound,
    OwnerContextMissing,
    RuleNotFound,
    TransactionNotFound,
)
from finledger.domain.models import MANUAL_SOURCE, RuleSchedule, RuleSpec, TransactionData


class LedgerRepository:
    """Repository for per-owner ledger contexts"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_owner(self, owner_id: str) -> Optional[Ledger]:
        return self.db.query(Ledger).filter(Ledger.owner_id == owner_id).first()

    def require(self, owner_id: str) -> Ledger:
        """Fetch the owner's ledger or fail before any write happens"""
        ledger = self.get_by_owner(owner_id)
        if ledger is None:
            raise OwnerContextMissing(f"No ledger for owner {owner_id}")
        return ledger

    def open(self, owner_id: str) -> Ledger:
        """Create the ledger with an empty cash account; returns the existing one if present"""
        ledger = self.get_by_owner(owner_id)
        if ledger is not None:
            return ledger

        ledger = Ledger(owner_id=owner_id)
        self.db.add(ledger)
        self.db.add(Account(owner_id=owner_id, kind="cash", balance_cents=0))
        self.db.flush()
        return ledger


class AccountRepository:
    """Repository for account balances"""

    def __init__(self, db: Session):
        self.db = db

    def list_by_owner(self, owner_id: str) -> List[Account]:
        return (
            self.db.query(Account)
            .filter(Account.owner_id == owner_id)
            .order_by(Account.kind)
            .all()
        )

    def get_for_update(self, owner_id: str, kind: str) -> Account:
        """
        Fetch an account row locked for the rest of the transaction.

        Raises:
            AccountNotFound: owner has no account of this kind
        """
        account = (
            self.db.query(Account)
            .filter(Account.owner_id == owner_id, Account.kind == kind)
            .with_for_update()
            .first()
        )
        if account is None:
            raise AccountNotFound(f"No {kind} account for owner {owner_id}")
        return account

    def create(self, owner_id: str, kind: str, balance_cents: int = 0) -> Account:
        """Insert a new account; a concurrent insert for the same kind wins and is returned"""
        account = Account(owner_id=owner_id, kind=kind, balance_cents=balance_cents)
        try:
            with self.db.begin_nested():
                self.db.add(account)
        except IntegrityError:
            return self.get_for_update(owner_id, kind)
        return account


class TransactionRepository:
    """Repository for realized transactions"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, owner_id: str, data: TransactionData) -> LedgerTransaction:
        db_transaction = LedgerTransaction(
            owner_id=owner_id,
            date=data.date,
            payee=data.payee,
            amount_cents=data.amount_cents,
            type=data.type,
            category=data.category,
            account_kind=data.account_kind,
        )
        self.db.add(db_transaction)
        self.db.flush()
        return db_transaction

    def get_for_update(self, owner_id: str, transaction_id: uuid.UUID) -> LedgerTransaction:
        """
        Fetch a transaction locked for the rest of the transaction, re-read from the database.

        A concurrent edit or delete of the same row waits here and then sees its
        committed values, or no row at all.

        Raises:
            TransactionNotFound: no such transaction for this owner
        """
        db_transaction = (
            self.db.query(LedgerTransaction)
            .filter(LedgerTransaction.owner_id == owner_id, LedgerTransaction.id == transaction_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if db_transaction is None:
            raise TransactionNotFound(f"Transaction {transaction_id} not found")
        return db_transaction

    def update(self, db_transaction: LedgerTransaction, data: TransactionData) -> LedgerTransaction:
        db_transaction.date = data.date
        db_transaction.payee = data.payee
        db_transaction.amount_cents = data.amount_cents
        db_transaction.type = data.type
        db_transaction.category = data.category
        db_transaction.account_kind = data.account_kind
        self.db.flush()
        return db_transaction

    def delete(self, db_transaction: LedgerTransaction) -> None:
        self.db.delete(db_transaction)
        self.db.flush()

    def list_by_owner(self, owner_id: str) -> List[LedgerTransaction]:
        """Fetch the owner's transactions, newest first"""
        return (
            self.db.query(LedgerTransaction)
            .filter(LedgerTransaction.owner_id == owner_id)
            .order_by(LedgerTransaction.date.desc(), LedgerTransaction.created_at.desc())
            .all()
        )


class RuleRepository:
    """Repository for recurrence rules"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, owner_id: str, spec: RuleSpec) -> RecurrenceRule:
        db_rule = RecurrenceRule(
            owner_id=owner_id,
            start_date=spec.start_date,
            payee=spec.payee,
            amount_cents=spec.amount_cents,
            category=spec.category,
            cadence=spec.cadence,
            interval=spec.interval,
            end_date=spec.end_date,
            count=spec.count,
        )
        self.db.add(db_rule)
        self.db.flush()
        return db_rule

    def get(self, owner_id: str, rule_id: uuid.UUID) -> RecurrenceRule:
        db_rule = (
            self.db.query(RecurrenceRule)
            .filter(RecurrenceRule.owner_id == owner_id, RecurrenceRule.id == rule_id)
            .first()
        )
        if db_rule is None:
            raise RuleNotFound(f"Rule {rule_id} not found")
        return db_rule

    def get_by_id(self, rule_id: uuid.UUID) -> RecurrenceRule:
        """Load a rule by id, refreshing any copy already held by the session"""
        db_rule = self.db.get(RecurrenceRule, rule_id, populate_existing=True)
        if db_rule is None:
            raise RuleNotFound(f"Rule {rule_id} not found")
        return db_rule

    def list_by_owner(self, owner_id: str) -> List[RecurrenceRule]:
        return (
            self.db.query(RecurrenceRule)
            .filter(RecurrenceRule.owner_id == owner_id)
            .order_by(RecurrenceRule.created_at)
            .all()
        )

    def list_eligible_ids(self, horizon: date, today: date) -> List[uuid.UUID]:
        """Rules whose watermark is behind the horizon and whose end date has not passed"""
        rows = (
            self.db.query(RecurrenceRule.id)
            .filter(
                or_(RecurrenceRule.last_generated.is_(None), RecurrenceRule.last_generated < horizon),
                or_(RecurrenceRule.end_date.is_(None), RecurrenceRule.end_date >= today),
            )
            .order_by(RecurrenceRule.owner_id, RecurrenceRule.created_at)
            .all()
        )
        return [row.id for row in rows]

    def advance_watermark(self, db_rule: RecurrenceRule, watermark: date) -> None:
        """Move last_generated forward; earlier dates are ignored"""
        if db_rule.last_generated is None or watermark > db_rule.last_generated:
            db_rule.last_generated = watermark
            self.db.flush()

    @staticmethod
    def schedule_of(db_rule: RecurrenceRule) -> RuleSchedule:
        return RuleSchedule(
            start_date=db_rule.start_date,
            cadence=db_rule.cadence,
            interval=db_rule.interval,
            end_date=db_rule.end_date,
            count=db_rule.count,
            last_generated=db_rule.last_generated,
        )


class OccurrenceRepository:
    """Repository for upcoming charges"""

    def __init__(self, db: Session):
        self.db = db

    def list_by_owner(self, owner_id: str, rule_id: Optional[uuid.UUID] = None) -> List[Occurrence]:
        query = self.db.query(Occurrence).filter(Occurrence.owner_id == owner_id)
        if rule_id is not None:
            query = query.filter(Occurrence.rule_id == rule_id)
        return query.order_by(Occurrence.date, Occurrence.payee).all()

    def get(self, owner_id: str, occurrence_id: uuid.UUID) -> Occurrence:
        occurrence = (
            self.db.query(Occurrence)
            .filter(Occurrence.owner_id == owner_id, Occurrence.id == occurrence_id)
            .first()
        )
        if occurrence is None:
            raise OccurrenceNotFound(f"Occurrence {occurrence_id} not found")
        return occurrence

    def dates_for_rule(self, rule_id: uuid.UUID) -> Set[date]:
        """Dates already stored for a rule, read from the database on every call"""
        rows = self.db.query(Occurrence.date).filter(Occurrence.rule_id == rule_id).all()
        return {row.date for row in rows}

    def count_for_rule(self, rule_id: uuid.UUID) -> int:
        return self.db.query(func.count(Occurrence.id)).filter(Occurrence.rule_id == rule_id).scalar()

    def counts_by_rule(self, owner_id: str) -> Dict[uuid.UUID, int]:
        rows = (
            self.db.query(Occurrence.rule_id, func.count(Occurrence.id))
            .filter(Occurrence.owner_id == owner_id, Occurrence.rule_id.isnot(None))
            .group_by(Occurrence.rule_id)
            .all()
        )
        return {rule_id: count for rule_id, count in rows}

    def insert_generated(self, db_rule: RecurrenceRule, occurrence_date: date) -> Occurrence:
        """
        Insert one rule-generated occurrence inside a SAVEPOINT.

        Raises:
            DuplicateOccurrence: the uniqueness key is already taken; only this row is rolled back
        """
        occurrence = Occurrence(
            owner_id=db_rule.owner_id,
            date=occurrence_date,
            payee=db_rule.payee,
            amount_cents=db_rule.amount_cents,
            category=db_rule.category,
            recurring=True,
            rule_id=db_rule.id,
            source_key=str(db_rule.id),
        )
        return self._insert(occurrence)

    def create_manual(
        self, owner_id: str, occurrence_date: date, payee: str, amount_cents: int, category: str
    ) -> Occurrence:
        self._ensure_unique(owner_id, payee, occurrence_date, MANUAL_SOURCE)
        occurrence = Occurrence(
            owner_id=owner_id,
            date=occurrence_date,
            payee=payee,
            amount_cents=amount_cents,
            category=category,
            recurring=False,
            source_key=MANUAL_SOURCE,
        )
        return self._insert(occurrence)

    def update(
        self, occurrence: Occurrence, occurrence_date: date, payee: str, amount_cents: int, category: str
    ) -> Occurrence:
        self._ensure_unique(occurrence.owner_id, payee, occurrence_date, occurrence.source_key, exclude_id=occurrence.id)
        occurrence.date = occurrence_date
        occurrence.payee = payee
        occurrence.amount_cents = amount_cents
        occurrence.category = category
        try:
            with self.db.begin_nested():
                self.db.flush()
        except IntegrityError as e:
            raise DuplicateOccurrence(f"{payee} already has an upcoming charge on {occurrence_date}") from e
        return occurrence

    def delete(self, occurrence: Occurrence) -> None:
        self.db.delete(occurrence)
        self.db.flush()

    def _insert(self, occurrence: Occurrence) -> Occurrence:
        try:
            with self.db.begin_nested():
                self.db.add(occurrence)
        except IntegrityError as e:
            raise DuplicateOccurrence(
                f"{occurrence.payee} already has an upcoming charge on {occurrence.date}"
            ) from e
        return occurrence

    def _ensure_unique(
        self,
        owner_id: str,
        payee: str,
        occurrence_date: date,
        source_key: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = self.db.query(Occurrence.id).filter(
            Occurrence.owner_id == owner_id,
            Occurrence.payee == payee,
            Occurrence.date == occurrence_date,
            Occurrence.source_key == source_key,
        )
        if exclude_id is not None:
            query = query.filter(Occurrence.id != exclude_id)
        if query.first() is not None:
            raise DuplicateOccurrence(f"{payee} already has an upcoming charge on {occurrence_date}")
