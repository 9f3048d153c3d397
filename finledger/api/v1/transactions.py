"""Transactions: every create/edit/delete carries its account balance change"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from finledger.api.v1.schemas import TransactionListResponse, TransactionRequest, TransactionResponse
from finledger.api.dependencies import get_owner_id, get_request_id, http_error, parse_uuid
from finledger.domain.exceptions import DomainException
from finledger.domain.models import TransactionData
from finledger.infrastructure.database.models import LedgerTransaction
from finledger.infrastructure.database.session import get_db
from finledger.infrastructure.database.repositories import TransactionRepository
from finledger.services.balances import LedgerBalanceUpdater

router = APIRouter()


def _transaction_data(request_body: TransactionRequest) -> TransactionData:
    return TransactionData(
        date=request_body.date,
        payee=request_body.payee,
        amount_cents=request_body.amount_cents,
        type=request_body.type,
        category=request_body.category,
        account_kind=request_body.account,
    )


def _transaction_response(db_transaction: LedgerTransaction) -> TransactionResponse:
    return TransactionResponse(
        transaction_id=str(db_transaction.id),
        date=db_transaction.date,
        payee=db_transaction.payee,
        amount_cents=db_transaction.amount_cents,
        type=db_transaction.type,
        category=db_transaction.category,
        account=db_transaction.account_kind,
    )


@router.get("/transactions", response_model=TransactionListResponse)
def list_transactions(owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    transactions = TransactionRepository(db).list_by_owner(owner_id)
    return TransactionListResponse(
        owner_id=owner_id,
        transactions=[_transaction_response(t) for t in transactions],
    )


@router.post("/transactions", response_model=TransactionResponse, status_code=201)
def add_transaction(
    request_body: TransactionRequest,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Record a transaction and apply its signed amount to the target account"""
    request_id = get_request_id(request)
    try:
        db_transaction = LedgerBalanceUpdater(db).create(owner_id, _transaction_data(request_body))
    except DomainException as e:
        raise http_error(e)
    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return _transaction_response(db_transaction)


@router.put("/transactions/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: str,
    request_body: TransactionRequest,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Edit a transaction, moving its balance effect between accounts if needed"""
    request_id = get_request_id(request)
    transaction_uuid = parse_uuid(transaction_id, "transaction")

    try:
        db_transaction = LedgerBalanceUpdater(db).edit(owner_id, transaction_uuid, _transaction_data(request_body))
    except DomainException as e:
        raise http_error(e)
    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return _transaction_response(db_transaction)


@router.delete("/transactions/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: str,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    request_id = get_request_id(request)
    transaction_uuid = parse_uuid(transaction_id, "transaction")

    try:
        LedgerBalanceUpdater(db).delete(owner_id, transaction_uuid)
    except DomainException as e:
        raise http_error(e)
    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return Response(status_code=204)
