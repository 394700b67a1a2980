"""
Office Nexus Ledger - Payroll Schemas

Pydantic schemas for payroll requests and responses.
Rwanda PAYE / RSSB ready.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.services.chart_of_accounts import PaymentMethod


# ===========================================
# CALCULATION
# ===========================================

class PayrollCalculationRequest(BaseModel):
    """Preview deductions for a gross monthly salary."""
    gross_salary: Decimal


class PayrollBreakdown(BaseModel):
    """Statutory deductions for one gross salary."""
    gross_salary: Decimal
    paye: Decimal
    rssb_employee: Decimal
    rssb_employer: Decimal
    net_salary: Decimal

    @property
    def total_employer_cost(self) -> Decimal:
        return self.gross_salary + self.rssb_employer


# ===========================================
# PAYROLL RUNS
# ===========================================

class PayrollEmployeeInput(BaseModel):
    employee_id: str = Field(..., min_length=1, max_length=128)
    gross_salary: Decimal
    name: Optional[str] = Field(None, max_length=200)


class PayrollRunRequest(BaseModel):
    """Pay a list of employees for one month."""
    period: str = Field(..., description="YYYY-MM")
    payment_date: date
    payment_method: PaymentMethod = PaymentMethod.BANK
    employees: List[PayrollEmployeeInput] = Field(..., min_length=1)


class PayrollRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    employee_id: str
    employee_name: Optional[str] = None
    period: str
    gross_salary: Decimal
    paye: Decimal
    rssb_employee: Decimal
    rssb_employer: Decimal
    net_salary: Decimal
    is_paid: bool
    ledger_transaction_id: Optional[UUID] = None


class PayrollRunResult(BaseModel):
    period: str
    records: List[PayrollRecordResponse]
    posted_count: int
    skipped_count: int
    warnings: List[str] = []


class PayrollSummary(BaseModel):
    """Totals for one payroll period."""
    period: str
    employee_count: int
    total_gross: Decimal
    total_paye: Decimal
    total_rssb_employee: Decimal
    total_rssb_employer: Decimal
    total_net: Decimal
    total_employer_cost: Decimal
    paid_count: int
    unpaid_count: int
