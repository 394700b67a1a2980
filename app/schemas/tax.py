"""
Office Nexus Ledger - Tax Return Schemas

Pydantic schemas for VAT, PAYE, CIT and QIT returns and the tax summary.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.ledger import LedgerEntryResponse


# =============================================================================
# VAT
# =============================================================================

class VATReturn(BaseModel):
    """Output VAT on sales less input VAT on purchases."""
    company_id: UUID
    period_start: date
    period_end: date
    total_sales: Decimal
    total_purchases: Decimal
    sales_vat: Decimal
    purchase_vat: Decimal
    net_vat_payable: Decimal
    due_date: date
    entries: List[LedgerEntryResponse] = []


# =============================================================================
# PAYE
# =============================================================================

class PAYEEmployeeRow(BaseModel):
    """One employee's payroll contribution to the return, traced to its posting."""
    employee_id: str
    employee_name: Optional[str] = None
    period: str
    gross_salary: Decimal
    paye: Decimal
    rssb_employee: Decimal
    rssb_employer: Decimal
    net_salary: Decimal
    ledger_transaction_id: Optional[UUID] = None


class PAYEReturn(BaseModel):
    company_id: UUID
    period_start: date
    period_end: date
    total_gross_salary: Decimal
    total_salary_expense: Decimal
    total_paye: Decimal
    total_rssb: Decimal
    employee_count: int
    employees: List[PAYEEmployeeRow]
    due_date: date


# =============================================================================
# CIT
# =============================================================================

class CITBreakdownRow(BaseModel):
    account_code: str
    account_name: str
    category: str
    amount: Decimal


class CITReturn(BaseModel):
    company_id: UUID
    year: int
    turnover: Decimal
    total_expenses: Decimal
    profit: Decimal
    cit_rate: Decimal
    cit_payable: Decimal
    due_date: date
    revenue_breakdown: List[CITBreakdownRow]
    expense_breakdown: List[CITBreakdownRow]


# =============================================================================
# QIT
# =============================================================================

class QITRecordRequest(BaseModel):
    """Create or update a quarterly income tax record."""
    quarter: str = Field(..., pattern=r"^[Qq][1-4]$")
    year: int = Field(..., ge=1900, le=9999)
    estimated_income: Decimal = Field(..., ge=0)
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100, description="Percent, e.g. 30")
    paid: bool = False
    paid_date: Optional[date] = None
    proof_reference: Optional[str] = None


class QITReturnResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[UUID] = None
    company_id: UUID
    quarter: str
    year: int
    estimated_income: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    due_date: date
    paid: bool
    paid_date: Optional[date] = None
    proof_reference: Optional[str] = None
    is_stored: bool = True


# =============================================================================
# SUMMARY
# =============================================================================

class TaxObligation(BaseModel):
    tax_type: str
    period: str
    amount_due: Decimal
    due_date: date


class TaxSummary(BaseModel):
    company_id: UUID
    as_of_date: date
    vat_due: Decimal
    paye_due: Decimal
    cit_due: Decimal
    qit_due: Decimal
    total_due: Decimal
    obligations: List[TaxObligation]
