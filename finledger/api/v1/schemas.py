"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date
from typing import List, Literal, Optional

Category = Literal["subscription", "bill", "loan", "insurance", "tax", "other"]


class LedgerResponse(BaseModel):
    """Response for POST /v1/ledgers"""

    owner_id: str
    created_at: str


class RuleCreateRequest(BaseModel):
    """Request body for POST /v1/rules; cadence, interval and count are checked by the domain layer"""

    start_date: date
    payee: str = Field(..., min_length=1, description="Company or payee label")
    amount_cents: int = Field(..., gt=0, description="Charge amount in cents")
    category: Category
    cadence: str = Field(..., description="Weekly, BiWeekly, Monthly or Yearly")
    interval: int = Field(1, description="Repeat every N cadence steps")
    end_date: Optional[date] = None
    count: Optional[int] = Field(None, description="Maximum number of occurrences")


class RuleResponse(BaseModel):
    """Single recurrence rule"""

    rule_id: str
    start_date: date
    payee: str
    amount_cents: int
    category: str
    cadence: str
    interval: int
    end_date: Optional[date] = None
    count: Optional[int] = None
    last_generated: Optional[date] = None
    occurrence_count: int


class RuleCreateResponse(BaseModel):
    """Response for POST /v1/rules"""

    rule: RuleResponse
    created_dates: List[date]


class RuleListResponse(BaseModel):
    """Response for GET /v1/rules"""

    owner_id: str
    rules: List[RuleResponse]


class MaterializeResponse(BaseModel):
    """Response for POST /v1/rules/{rule_id}/materialize"""

    rule_id: str
    created_dates: List[date]
    watermark: Optional[date] = None
    duplicates_skipped: int


class OccurrenceRequest(BaseModel):
    """Request body for creating or editing an upcoming charge"""

    date: date
    payee: str = Field(..., min_length=1)
    amount_cents: int = Field(..., gt=0)
    category: Category


class OccurrenceResponse(BaseModel):
    """Single upcoming charge"""

    occurrence_id: str
    date: date
    payee: str
    amount_cents: int
    category: str
    recurring: bool
    rule_id: Optional[str] = None


class OccurrenceListResponse(BaseModel):
    """Response for GET /v1/occurrences"""

    owner_id: str
    occurrences: List[OccurrenceResponse]


class TransactionRequest(BaseModel):
    """Request body for creating or editing a transaction"""

    date: date
    payee: str = Field(..., min_length=1)
    amount_cents: int = Field(..., description="Positive amount in cents")
    type: Literal["income", "expense"]
    category: Optional[str] = None
    account: str = Field("cash", description="checking, savings, credit or cash")


class TransactionResponse(BaseModel):
    """Single transaction"""

    transaction_id: str
    date: date
    payee: str
    amount_cents: int
    type: str
    category: Optional[str] = None
    account: str


class TransactionListResponse(BaseModel):
    """Response for GET /v1/transactions"""

    owner_id: str
    transactions: List[TransactionResponse]


class AccountSchema(BaseModel):
    """Single account balance"""

    kind: str
    balance_cents: int
    created_at: str


class AccountsResponse(BaseModel):
    """Response for GET /v1/accounts"""

    owner_id: str
    total_balance_cents: int
    accounts: List[AccountSchema]
