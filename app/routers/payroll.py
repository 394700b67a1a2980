"""
Office Nexus Ledger - Payroll Router

API endpoints for payroll calculation and monthly payroll runs.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends

from app.dependencies import get_payroll_service
from app.schemas.payroll import (
    PayrollBreakdown,
    PayrollCalculationRequest,
    PayrollRecordResponse,
    PayrollRunRequest,
    PayrollRunResult,
    PayrollSummary,
)
from app.services.payroll_service import PayrollCalculator, PayrollService
from app.utils.error_handling import NotFoundException


router = APIRouter()


@router.post(
    "/calculate",
    response_model=PayrollBreakdown,
    summary="Calculate PAYE and RSSB for a gross salary",
)
async def calculate_payroll(company_id: UUID, request: PayrollCalculationRequest):
    """
    Preview statutory deductions.

    - PAYE: 15% of salary above RWF 30,000
    - RSSB: 7.5% employee, 7.5% employer
    """
    return PayrollCalculator().calculate(request.gross_salary)


@router.post(
    "/runs",
    response_model=PayrollRunResult,
    summary="Run payroll for a period",
)
async def run_payroll(
    company_id: UUID,
    request: PayrollRunRequest,
    service: PayrollService = Depends(get_payroll_service),
):
    """Posts one payroll transaction per employee. Employees already paid are skipped."""
    return await service.run_payroll(
        company_id,
        period=request.period,
        employees=request.employees,
        payment_date=request.payment_date,
        payment_method=request.payment_method,
    )


@router.get(
    "/{period}",
    response_model=List[PayrollRecordResponse],
    summary="Payroll records for a period",
)
async def get_payroll_records(
    company_id: UUID,
    period: str,
    service: PayrollService = Depends(get_payroll_service),
):
    return await service.get_payroll_records(company_id, period)


@router.get(
    "/{period}/summary",
    response_model=PayrollSummary,
    summary="Payroll totals for a period",
)
async def get_payroll_summary(
    company_id: UUID,
    period: str,
    service: PayrollService = Depends(get_payroll_service),
):
    summary = await service.get_payroll_summary(company_id, period)
    if summary is None:
        raise NotFoundException("PayrollSummary", period, message=f"No payroll recorded for {period}")
    return summary
