"""
Office Nexus Ledger - Capital & Ownership Schemas

Pydantic schemas for share capital, shareholders, beneficial owners and
dividends.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.capital import (
    ContributionStatus,
    ContributionType,
    DeclarationStatus,
    VerificationStatus,
)
from app.services.chart_of_accounts import PaymentMethod


# ===========================================
# SHARE CAPITAL
# ===========================================

class CompanyCapitalCreate(BaseModel):
    authorized_shares: int = Field(..., gt=0)
    share_price: Decimal = Field(..., gt=0)
    currency: str = Field("RWF", min_length=3, max_length=3)
    capital_type: str = Field("ordinary", max_length=30)


class CompanyCapitalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    authorized_shares: int
    share_price: Decimal
    issued_shares: int
    paid_up_capital: Decimal
    currency: str
    capital_type: str
    total_authorized_capital: Decimal
    remaining_shares: int
    utilization_percentage: Decimal


class ShareAllocationRequest(BaseModel):
    shares: int = Field(..., gt=0)
    shareholder_ref: Optional[str] = Field(None, max_length=128)
    shareholder_name: Optional[str] = Field(None, max_length=200)


class ShareAllocationValidation(BaseModel):
    is_valid: bool
    message: str
    available_shares: int


class CapitalSummary(BaseModel):
    """Capital position with register and contribution counts."""
    company_id: UUID
    currency: str
    authorized_shares: int
    issued_shares: int
    remaining_shares: int
    share_price: Decimal
    total_authorized_capital: Decimal
    paid_up_capital: Decimal
    utilization_percentage: Decimal
    shareholder_count: int
    confirmed_contributions: int
    pending_contributions: int
    total_contributed: Decimal


# ===========================================
# CONTRIBUTIONS
# ===========================================

class ContributionCreate(BaseModel):
    """
    Record a capital contribution.

    Confirmed contributions allocate shares immediately; pending ones wait
    for confirm_contribution.
    """
    shareholder_ref: str = Field(..., min_length=1, max_length=128)
    shareholder_name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0)
    shares_allocated: Optional[int] = Field(None, ge=0)
    contribution_type: ContributionType = ContributionType.CASH
    contribution_date: date
    status: ContributionStatus = ContributionStatus.PENDING
    description: Optional[str] = None


class ContributionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    shareholder_ref: str
    shareholder_name: str
    amount: Decimal
    shares_allocated: int
    contribution_type: ContributionType
    contribution_date: date
    status: ContributionStatus
    description: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    ledger_transaction_id: Optional[UUID] = None


# ===========================================
# SHAREHOLDER REGISTER
# ===========================================

class ShareholderUpdate(BaseModel):
    """Registry attributes only; shares move through allocations."""
    name: str = Field(..., min_length=1, max_length=200)
    is_director: Optional[bool] = None
    is_active: Optional[bool] = None


class ShareholderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    shareholder_ref: str
    name: str
    shares_held: int
    ownership_percentage: Decimal
    is_active: bool
    is_director: bool
    is_beneficial_owner: bool
    entry_date: date


# ===========================================
# BENEFICIAL OWNERS
# ===========================================

class BeneficialOwnerInput(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=200)
    nationality: str = Field(..., min_length=1, max_length=100)
    id_number: str = Field(..., min_length=1, max_length=50)
    relationship_to_company: str = Field(..., min_length=1, max_length=100)
    ownership_percentage: Decimal = Field(Decimal("0"), ge=0, le=100)
    control_percentage: Decimal = Field(Decimal("0"), ge=0, le=100)
    verification_status: VerificationStatus = VerificationStatus.PENDING
    date_of_birth: Optional[date] = None
    address: Optional[str] = None


class BeneficialOwnerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    full_name: str
    nationality: str
    id_number: str
    relationship_to_company: str
    ownership_percentage: Decimal
    control_percentage: Decimal
    has_significant_control: bool
    verification_status: VerificationStatus
    date_of_birth: Optional[date] = None
    address: Optional[str] = None


class OwnershipValidation(BaseModel):
    is_valid: bool
    total_percentage: Decimal
    violations: List[str] = []


class BeneficialOwnershipRegister(BaseModel):
    """Register extract for filing with the registrar."""
    company_id: UUID
    generated_on: date
    total_owners: int
    significant_control_count: int
    total_ownership_percentage: Decimal
    verified_count: int
    owners: List[BeneficialOwnerResponse]


# ===========================================
# DIVIDENDS
# ===========================================

class DividendDeclareRequest(BaseModel):
    profit_amount: Decimal = Field(..., gt=0)
    dividend_percentage: Decimal = Field(..., gt=0, le=100)
    approved_by: str = Field(..., min_length=1, max_length=200)
    declaration_date: date
    notes: Optional[str] = None


class ShareholderSnapshot(BaseModel):
    """A holder as of the distribution date."""
    shareholder_ref: str = Field(..., min_length=1, max_length=128)
    name: str = Field(..., min_length=1, max_length=200)
    shares_held: int = Field(..., ge=0)


class DistributeRequest(BaseModel):
    """Omit shareholders to use the company's active register."""
    shareholders: Optional[List[ShareholderSnapshot]] = None


class PayDistributionRequest(BaseModel):
    paid_on: date
    payment_method: PaymentMethod = PaymentMethod.BANK
    proof_url: Optional[str] = Field(None, max_length=500)


class DividendDistributionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    declaration_id: UUID
    shareholder_ref: str
    shareholder_name: str
    shares_held_at_time: int
    amount: Decimal
    is_paid: bool
    paid_on: Optional[date] = None
    payment_proof_url: Optional[str] = None
    ledger_transaction_id: Optional[UUID] = None


class DividendDeclarationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    declaration_date: date
    profit_amount: Decimal
    dividend_percentage: Decimal
    dividend_pool: Decimal
    approved_by: str
    notes: Optional[str] = None
    status: DeclarationStatus
    ledger_transaction_id: Optional[UUID] = None
    distributions: List[DividendDistributionResponse] = []


class DividendSummary(BaseModel):
    company_id: UUID
    declaration_count: int
    by_status: Dict[str, int]
    total_declared: Decimal
    total_distributed: Decimal
    total_paid: Decimal
    total_outstanding: Decimal
