"""
Office Nexus Ledger - Ledger Models

Append-only double-entry storage.

A LedgerTransaction is the atomic posting unit (header); LedgerEntry rows
are its debit/credit lines. Neither is ever updated or deleted after
commit: corrections are posted as reversing transactions.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import (
    Date, DateTime, Enum as SQLEnum, ForeignKey, Index, Integer,
    Numeric, String, Text, UniqueConstraint, Uuid, event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.utils.error_handling import ImmutableLedgerError


class SourceType(str, Enum):
    """Kind of business document a posting came from."""
    INVOICE = "invoice"
    PURCHASE = "purchase"
    PAYROLL = "payroll"
    ASSET = "asset"
    PAYMENT = "payment"
    MANUAL = "manual"
    REVERSAL = "reversal"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


SourceTypeColumn = SQLEnum(
    SourceType,
    name="ledger_source_type",
    native_enum=False,
    length=20,
    values_callable=_enum_values,
)


class LedgerTransaction(Base):
    """
    Posting header.

    The (company_id, source_type, source_id) unique constraint is the
    storage-level idempotency guard: a business document posts at most once.
    """

    __tablename__ = "ledger_transactions"
    __table_args__ = (
        UniqueConstraint(
            "company_id", "source_type", "source_id",
            name="uq_ledger_transactions_idempotency_key",
        ),
        Index("ix_ledger_transactions_company_date", "company_id", "transaction_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    reference: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)

    source_type: Mapped[SourceType] = mapped_column(SourceTypeColumn, nullable=False)
    source_id: Mapped[str] = mapped_column(String(128), nullable=False)

    total_debit: Mapped[Decimal] = mapped_column(Numeric(precision=18, scale=2), nullable=False)
    total_credit: Mapped[Decimal] = mapped_column(Numeric(precision=18, scale=2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="RWF", nullable=False)

    # Set on reversing transactions only
    reverses_transaction_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("ledger_transactions.id", ondelete="RESTRICT"),
        nullable=True,
    )
    reversal_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    posted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    entries: Mapped[List["LedgerEntry"]] = relationship(
        "LedgerEntry",
        back_populates="transaction",
        order_by="LedgerEntry.line_number",
        lazy="selectin",
    )

    @property
    def is_reversal(self) -> bool:
        return self.source_type == SourceType.REVERSAL

    def __repr__(self) -> str:
        return (
            f"<LedgerTransaction(id={self.id}, source={self.source_type.value}:{self.source_id}, "
            f"debit={self.total_debit}, credit={self.total_credit})>"
        )


class LedgerEntry(Base):
    """
    A single debit or credit line.

    Exactly one of debit/credit is non-zero. source_id/source_type are
    denormalized from the header so audit trails and tax returns can filter
    lines without a join.
    """

    __tablename__ = "ledger_entries"
    __table_args__ = (
        Index("ix_ledger_entries_company_date", "company_id", "entry_date"),
        Index("ix_ledger_entries_company_account_date", "company_id", "account_code", "entry_date"),
        Index("ix_ledger_entries_company_source", "company_id", "source_type", "source_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    transaction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("ledger_transactions.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    account_code: Mapped[str] = mapped_column(String(10), nullable=False)
    account_name: Mapped[str] = mapped_column(String(100), nullable=False)
    debit: Mapped[Decimal] = mapped_column(
        Numeric(precision=18, scale=2), default=Decimal("0.00"), nullable=False,
    )
    credit: Mapped[Decimal] = mapped_column(
        Numeric(precision=18, scale=2), default=Decimal("0.00"), nullable=False,
    )

    reference: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    source_type: Mapped[SourceType] = mapped_column(SourceTypeColumn, nullable=False)
    source_id: Mapped[str] = mapped_column(String(128), nullable=False)
    party_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    transaction: Mapped["LedgerTransaction"] = relationship(
        "LedgerTransaction", back_populates="entries",
    )

    @property
    def net_amount(self) -> Decimal:
        """Debit-positive signed amount."""
        return (self.debit or Decimal("0")) - (self.credit or Decimal("0"))

    def __repr__(self) -> str:
        return (
            f"<LedgerEntry(account={self.account_code}, debit={self.debit}, "
            f"credit={self.credit}, source={self.source_type.value}:{self.source_id})>"
        )


# ===========================================
# APPEND-ONLY ENFORCEMENT
# ===========================================

@event.listens_for(LedgerEntry, "before_update")
@event.listens_for(LedgerTransaction, "before_update")
def _refuse_update(mapper, connection, target):
    raise ImmutableLedgerError("update", getattr(target, "id", None))


@event.listens_for(LedgerEntry, "before_delete")
@event.listens_for(LedgerTransaction, "before_delete")
def _refuse_delete(mapper, connection, target):
    raise ImmutableLedgerError("delete", getattr(target, "id", None))
