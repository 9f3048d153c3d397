"""GET /v1/accounts - Account balances and overview"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from finledger.api.v1.schemas import AccountSchema, AccountsResponse
from finledger.api.dependencies import get_owner_id
from finledger.infrastructure.database.session import get_db
from finledger.infrastructure.database.repositories import AccountRepository

router = APIRouter()


@router.get("/accounts", response_model=AccountsResponse)
def get_accounts(owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    """
    Retrieve the owner's accounts.

    Returns:
        Per-kind balances plus the total across all accounts
    """
    accounts = AccountRepository(db).list_by_owner(owner_id)
    return AccountsResponse(
        owner_id=owner_id,
        total_balance_cents=sum(a.balance_cents for a in accounts),
        accounts=[
            AccountSchema(kind=a.kind, balance_cents=a.balance_cents, created_at=a.created_at.isoformat())
            for a in accounts
        ],
    )
