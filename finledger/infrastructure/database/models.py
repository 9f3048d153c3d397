"""SQLAlchemy ORM models for the owner-scoped ledger"""

import uuid
from sqlalchemy import Column, BigInteger, Integer, Boolean, Date, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class Ledger(Base):
    """Per-owner ledger context; every other record hangs off its owner_id"""

    __tablename__ = "ledger"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Account(Base):
    """Running balance for one account kind of one owner"""

    __tablename__ = "account"
    __table_args__ = (UniqueConstraint("owner_id", "kind", name="uq_account_owner_kind"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    kind = Column(Text, nullable=False)  # checking | savings | credit | cash
    balance_cents = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class LedgerTransaction(Base):
    """Realized income or expense routed to an account kind"""

    __tablename__ = "ledger_transaction"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    date = Column(Date, nullable=False)
    payee = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    type = Column(Text, nullable=False)  # income | expense
    category = Column(Text, nullable=True)
    account_kind = Column(Text, nullable=False, default="cash")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class RecurrenceRule(Base):
    """Recurring charge definition; only last_generated changes after creation"""

    __tablename__ = "recurrence_rule"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    payee = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    category = Column(Text, nullable=False)
    cadence = Column(Text, nullable=False)
    interval = Column(Integer, nullable=False, default=1)
    end_date = Column(Date, nullable=True)
    count = Column(Integer, nullable=True)
    last_generated = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    occurrences = relationship("Occurrence", back_populates="rule", passive_deletes=True)


class Occurrence(Base):
    """Upcoming charge, either entered manually or generated from a rule"""

    __tablename__ = "occurrence"
    __table_args__ = (
        UniqueConstraint("owner_id", "payee", "date", "source_key", name="uq_occurrence_owner_payee_date_source"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    date = Column(Date, nullable=False)
    payee = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    category = Column(Text, nullable=False)
    recurring = Column(Boolean, nullable=False, default=False)
    rule_id = Column(UUID(as_uuid=True), ForeignKey("recurrence_rule.id", ondelete="SET NULL"), nullable=True, index=True)
    source_key = Column(Text, nullable=False, default="manual")  # rule id, or "manual"
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    rule = relationship("RecurrenceRule", back_populates="occurrences")
