"""Unit tests for transaction effects and validation"""

import pytest
from datetime import date
from finledger.domain.exceptions import InvalidTransactionData
from finledger.domain.ledger import signed_effect, validate_transaction
from finledger.domain.models import TransactionData


def _data(**overrides) -> TransactionData:
    fields = dict(
        date=date(2025, 1, 10),
        payee="Grocer",
        amount_cents=10000,
        type="expense",
        account_kind="cash",
        category="other",
    )
    fields.update(overrides)
    return TransactionData(**fields)


def test_signed_effect():
    assert signed_effect(10000, "income") == 10000
    assert signed_effect(10000, "expense") == -10000


def test_signed_effect_unknown_type():
    with pytest.raises(InvalidTransactionData):
        signed_effect(100, "transfer")


def test_validate_transaction_accepts_expense_and_income():
    assert validate_transaction(_data()).type == "expense"
    assert validate_transaction(_data(type="income", category=None)).type == "income"


@pytest.mark.parametrize(
    "overrides",
    [
        {"amount_cents": 0},
        {"amount_cents": -500},
        {"category": None},  # Expense without category
        {"category": "groceries"},  # Unknown category
        {"type": "income", "category": "bill"},  # Income with category
        {"account_kind": "brokerage"},
        {"type": "refund"},
    ],
)
def test_validate_transaction_rejects(overrides):
    with pytest.raises(InvalidTransactionData):
        validate_transaction(_data(**overrides))
