"""
Office Nexus Ledger - Tax Router

API endpoints for tax returns (VAT, PAYE, CIT, QIT) and the tax summary.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.dependencies import get_qit_service, get_reporting_service
from app.schemas.tax import (
    CITReturn,
    PAYEReturn,
    QITRecordRequest,
    QITReturnResponse,
    TaxSummary,
    VATReturn,
)
from app.services.reporting_service import ReportingService
from app.services.tax_calculators import QITService


router = APIRouter()


# ===========================================
# MONTHLY RETURNS
# ===========================================

@router.get(
    "/vat",
    response_model=VATReturn,
    summary="VAT return",
    tags=["Tax - VAT"],
)
async def get_vat_return(
    company_id: UUID,
    start: date = Query(..., description="Period start (inclusive)"),
    end: date = Query(..., description="Period end (inclusive)"),
    reporting: ReportingService = Depends(get_reporting_service),
):
    """
    Output VAT on invoices less input VAT on purchases for the period.

    Rwanda standard VAT rate is 18%.
    """
    return await reporting.get_vat_return(company_id, start, end)


@router.get(
    "/paye",
    response_model=PAYEReturn,
    summary="PAYE return",
    tags=["Tax - PAYE"],
)
async def get_paye_return(
    company_id: UUID,
    start: date = Query(...),
    end: date = Query(...),
    reporting: ReportingService = Depends(get_reporting_service),
):
    return await reporting.get_paye_return(company_id, start, end)


# ===========================================
# ANNUAL / QUARTERLY
# ===========================================

@router.get(
    "/cit",
    response_model=CITReturn,
    summary="Corporate income tax return",
    tags=["Tax - CIT"],
)
async def get_cit_return(
    company_id: UUID,
    year: int = Query(..., ge=1900, le=9999),
    reporting: ReportingService = Depends(get_reporting_service),
):
    return await reporting.get_cit_return(company_id, year)


@router.get(
    "/qit",
    response_model=QITReturnResponse,
    summary="Quarterly income tax",
    tags=["Tax - QIT"],
)
async def get_qit_return(
    company_id: UUID,
    quarter: str = Query(..., description="Q1..Q4"),
    year: int = Query(..., ge=1900, le=9999),
    qit: QITService = Depends(get_qit_service),
):
    """Stored declaration, or an unsaved zero declaration at the default rate."""
    return await qit.get_qit_return(company_id, quarter, year)


@router.put(
    "/qit",
    response_model=QITReturnResponse,
    summary="Record quarterly income tax",
    tags=["Tax - QIT"],
)
async def record_qit(
    company_id: UUID,
    request: QITRecordRequest,
    qit: QITService = Depends(get_qit_service),
):
    return await qit.record_qit(
        company_id,
        quarter=request.quarter,
        year=request.year,
        estimated_income=request.estimated_income,
        tax_rate=request.tax_rate,
        paid=request.paid,
        paid_date=request.paid_date,
        proof_reference=request.proof_reference,
    )


@router.get(
    "/summary",
    response_model=TaxSummary,
    summary="Taxes due for the current period",
    tags=["Tax"],
)
async def get_tax_summary(
    company_id: UUID,
    as_of: Optional[date] = Query(None),
    reporting: ReportingService = Depends(get_reporting_service),
):
    return await reporting.get_tax_summary(company_id, as_of)
