"""Signed balance effects of ledger transactions"""

from finledger.domain.exceptions import InvalidTransactionData
from finledger.domain.models import ACCOUNT_KINDS, CATEGORIES, TRANSACTION_TYPES, TransactionData


def signed_effect(amount_cents: int, transaction_type: str) -> int:
    """Income adds to the account balance, expense subtracts from it"""
    if transaction_type == "income":
        return amount_cents
    if transaction_type == "expense":
        return -amount_cents
    raise InvalidTransactionData(f"Unknown transaction type: {transaction_type!r}")


def validate_transaction(data: TransactionData) -> TransactionData:
    """
    Validate a transaction before any balance is touched.

    - amount must be positive
    - expense requires a known category, income must not carry one
    - account kind must be one of ACCOUNT_KINDS
    """
    if data.type not in TRANSACTION_TYPES:
        raise InvalidTransactionData(f"Unknown transaction type: {data.type!r}")
    if data.amount_cents <= 0:
        raise InvalidTransactionData("Amount must be positive")
    if data.account_kind not in ACCOUNT_KINDS:
        raise InvalidTransactionData(f"Unknown account kind: {data.account_kind!r}")

    if data.type == "expense":
        if data.category not in CATEGORIES:
            raise InvalidTransactionData("Expense transactions require a valid category")
    elif data.category is not None:
        raise InvalidTransactionData("Income transactions cannot have a category")

    return data
