"""POST /v1/ledgers - Open a ledger for an owner"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from finledger.api.v1.schemas import LedgerResponse
from finledger.api.dependencies import get_owner_id, get_request_id
from finledger.infrastructure.database.session import get_db
from finledger.infrastructure.database.repositories import LedgerRepository

router = APIRouter()


@router.post("/ledgers", response_model=LedgerResponse, status_code=201)
def open_ledger(
    request: Request,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """
    Create the owner's ledger context with an empty cash account.

    Calling it again for the same owner returns the existing ledger.
    """
    request_id = get_request_id(request)
    try:
        ledger = LedgerRepository(db).open(owner_id)
        db.commit()
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return LedgerResponse(owner_id=ledger.owner_id, created_at=ledger.created_at.isoformat())
