"""LedgerBalanceUpdater - keeps account balances in step with transactions"""

import uuid
from typing import Dict
from sqlalchemy.orm import Session

from finledger.domain.exceptions import AccountNotFound
from finledger.domain.ledger import signed_effect, validate_transaction
from finledger.domain.models import TransactionData
from finledger.infrastructure.database.models import Account, LedgerTransaction
from finledger.infrastructure.database.repositories import AccountRepository, LedgerRepository, TransactionRepository
from finledger.infrastructure.observability.logging import log_balance_transition
from finledger.infrastructure.observability.metrics import balance_transition_counter


class LedgerBalanceUpdater:
    """
    Applies transaction create/edit/delete together with the matching balance change.

    Each transition is one database transaction: the transaction row and every
    account adjustment it implies commit together or not at all. Balances are
    updated with an SQL increment on rows locked in kind order, so concurrent
    transitions on the same account serialise instead of overwriting each other.
    """

    def __init__(self, db: Session):
        self.db = db
        self.ledgers = LedgerRepository(db)
        self.accounts = AccountRepository(db)
        self.transactions = TransactionRepository(db)

    def create(self, owner_id: str, data: TransactionData) -> LedgerTransaction:
        validate_transaction(data)
        self.ledgers.require(owner_id)

        try:
            db_transaction = self.transactions.create(owner_id, data)
            adjustments = {data.account_kind: signed_effect(data.amount_cents, data.type)}
            self._apply(owner_id, adjustments)
            transaction_id = str(db_transaction.id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self._record("create", owner_id, transaction_id, adjustments)
        return db_transaction

    def edit(self, owner_id: str, transaction_id: uuid.UUID, data: TransactionData) -> LedgerTransaction:
        """Reverse the old effect on the old account, then apply the new effect on the new one"""
        validate_transaction(data)
        self.ledgers.require(owner_id)

        try:
            db_transaction = self.transactions.get_for_update(owner_id, transaction_id)
            old_kind = db_transaction.account_kind
            old_effect = signed_effect(db_transaction.amount_cents, db_transaction.type)
            new_effect = signed_effect(data.amount_cents, data.type)

            adjustments: Dict[str, int] = {old_kind: -old_effect}
            adjustments[data.account_kind] = adjustments.get(data.account_kind, 0) + new_effect

            self.transactions.update(db_transaction, data)
            self._apply(owner_id, adjustments)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self._record("edit", owner_id, str(transaction_id), adjustments)
        return db_transaction

    def delete(self, owner_id: str, transaction_id: uuid.UUID) -> None:
        self.ledgers.require(owner_id)

        try:
            db_transaction = self.transactions.get_for_update(owner_id, transaction_id)
            adjustments = {
                db_transaction.account_kind: -signed_effect(db_transaction.amount_cents, db_transaction.type)
            }
            self._apply(owner_id, adjustments)
            self.transactions.delete(db_transaction)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self._record("delete", owner_id, str(transaction_id), adjustments)

    def _apply(self, owner_id: str, adjustments: Dict[str, int]) -> None:
        # Lock in a stable order so two edits touching the same pair of accounts cannot deadlock
        for kind in sorted(adjustments):
            account = self._account_for_update(owner_id, kind)
            account.balance_cents = Account.balance_cents + adjustments[kind]
        self.db.flush()

    def _account_for_update(self, owner_id: str, kind: str) -> Account:
        try:
            return self.accounts.get_for_update(owner_id, kind)
        except AccountNotFound:
            return self.accounts.create(owner_id, kind, balance_cents=0)

    @staticmethod
    def _record(transition: str, owner_id: str, transaction_id: str, adjustments: Dict[str, int]) -> None:
        balance_transition_counter.labels(transition=transition).inc()
        log_balance_transition(owner_id, transition, transaction_id, adjustments)
