"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

CADENCES = ("Weekly", "BiWeekly", "Monthly", "Yearly")
ACCOUNT_KINDS = ("checking", "savings", "credit", "cash")
CATEGORIES = ("subscription", "bill", "loan", "insurance", "tax", "other")
TRANSACTION_TYPES = ("income", "expense")

MANUAL_SOURCE = "manual"  # Provenance key for occurrences not generated from a rule


@dataclass
class RuleSpec:
    """Validated recurring charge definition as submitted by the user"""

    start_date: date
    payee: str
    amount_cents: int
    category: str
    cadence: str
    interval: int = 1
    end_date: Optional[date] = None
    count: Optional[int] = None


@dataclass
class RuleSchedule:
    """Scheduling view of a persisted recurrence rule"""

    start_date: date
    cadence: str
    interval: int
    end_date: Optional[date]
    count: Optional[int]
    last_generated: Optional[date]


@dataclass
class MaterializationPlan:
    """Dates a single materialization pass should insert"""

    start_date: date
    until: Optional[date]
    max_count: int
    dates: List[date] = field(default_factory=list)


@dataclass
class MaterializationResult:
    """Outcome of one materialization pass for one rule"""

    rule_id: str
    created: List[date]
    watermark: Optional[date]
    duplicates_skipped: int = 0


@dataclass
class TransactionData:
    """User-supplied transaction fields"""

    date: date
    payee: str
    amount_cents: int
    type: str  # "income" or "expense"
    account_kind: str
    category: Optional[str] = None


@dataclass
class SweepReport:
    """Summary of one scheduler tick"""

    started_at: datetime
    horizon: date
    rules_processed: int = 0
    occurrences_created: int = 0
    failures: int = 0
