"""
Office Nexus Ledger - Ledger Schemas

Pydantic schemas for posting requests, posting results and ledger reads.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.ledger import SourceType


# =============================================================================
# POSTING REQUEST
# =============================================================================

class TransactionLine(BaseModel):
    """
    One requested debit or credit line.

    Amount rules (non-negative, exactly one side) are enforced by the
    posting engine so callers get a ValidationException naming the line.
    """
    account_code: str = Field(..., min_length=1, max_length=10)
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    description: Optional[str] = None
    party_id: Optional[str] = None


class TransactionCreate(BaseModel):
    """A balanced set of lines to post atomically."""
    model_config = ConfigDict(populate_by_name=True)

    transaction_date: date = Field(..., alias="date")
    reference: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    source_id: str = Field(..., min_length=1, max_length=128)
    source_type: SourceType
    entries: List[TransactionLine]

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit for line in self.entries), Decimal("0"))

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit for line in self.entries), Decimal("0"))


class ReverseRequest(BaseModel):
    """Schema for reversing a posted transaction."""
    reversal_date: date
    reason: str = Field(..., min_length=1, max_length=500)


# =============================================================================
# POSTING RESULT
# =============================================================================

class PostingStatus(str, Enum):
    POSTED = "posted"
    DUPLICATE_SKIPPED = "duplicate_skipped"


class PostingResult(BaseModel):
    """Response from the posting engine."""
    status: PostingStatus
    transaction_id: UUID
    source_type: SourceType
    source_id: str
    entry_ids: List[UUID] = []
    total_debit: Decimal = Decimal("0")
    total_credit: Decimal = Decimal("0")
    warnings: List[str] = []

    @property
    def is_duplicate(self) -> bool:
        return self.status == PostingStatus.DUPLICATE_SKIPPED


# =============================================================================
# LEDGER READS
# =============================================================================

class LedgerEntryResponse(BaseModel):
    """A stored ledger line."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    transaction_id: UUID
    line_number: int
    entry_date: date
    account_code: str
    account_name: str
    debit: Decimal
    credit: Decimal
    reference: str
    description: str
    source_type: SourceType
    source_id: str
    party_id: Optional[str] = None
    created_at: datetime


class LedgerTransactionResponse(BaseModel):
    """A stored posting with its lines."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    transaction_date: date
    reference: str
    description: str
    source_type: SourceType
    source_id: str
    total_debit: Decimal
    total_credit: Decimal
    reverses_transaction_id: Optional[UUID] = None
    posted_at: datetime
    entries: List[LedgerEntryResponse] = []


class AccountResponse(BaseModel):
    """Chart of accounts row."""
    code: str
    name: str
    category: str


class TrialBalanceRow(BaseModel):
    """Per-account totals; balance is debit_total - credit_total."""
    account_code: str
    account_name: str
    debit_total: Decimal
    credit_total: Decimal
    balance: Decimal


class TrialBalanceReport(BaseModel):
    """Trial balance with closing totals."""
    company_id: UUID
    as_of_date: date
    total_debits: Decimal
    total_credits: Decimal
    is_balanced: bool
    rows: List[TrialBalanceRow]


class AccountBalanceResponse(BaseModel):
    account_code: str
    account_name: str
    as_of_date: date
    balance: Decimal


class FinancialSummary(BaseModel):
    """Headline figures derived from the trial balance."""
    company_id: UUID
    as_of_date: date
    revenue: Decimal
    expenses: Decimal
    profit: Decimal
    assets: Decimal
    liabilities: Decimal
    equity: Decimal
