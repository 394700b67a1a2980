"""
Office Nexus Ledger - Dividends Router

API endpoints for the dividend lifecycle.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, status

from app.dependencies import get_dividend_service
from app.schemas.capital import (
    DistributeRequest,
    DividendDeclarationResponse,
    DividendDeclareRequest,
    DividendDistributionResponse,
    DividendSummary,
    PayDistributionRequest,
)
from app.services.dividend_service import DividendService


router = APIRouter()


@router.post(
    "",
    response_model=DividendDeclarationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Declare a dividend (draft)",
)
async def declare_dividend(
    company_id: UUID,
    request: DividendDeclareRequest,
    service: DividendService = Depends(get_dividend_service),
):
    return await service.declare_dividend(
        company_id,
        profit_amount=request.profit_amount,
        dividend_percentage=request.dividend_percentage,
        approved_by=request.approved_by,
        declaration_date=request.declaration_date,
        notes=request.notes,
    )


@router.get("", response_model=List[DividendDeclarationResponse], summary="List declarations")
async def list_declarations(company_id: UUID, service: DividendService = Depends(get_dividend_service)):
    return await service.list_declarations(company_id)


@router.get("/summary", response_model=DividendSummary, summary="Dividend summary")
async def get_dividend_summary(company_id: UUID, service: DividendService = Depends(get_dividend_service)):
    return await service.get_dividend_summary(company_id)


@router.post(
    "/{declaration_id}/confirm",
    response_model=DividendDeclarationResponse,
    summary="Confirm a declaration and post it",
)
async def confirm_declaration(
    company_id: UUID,
    declaration_id: UUID,
    service: DividendService = Depends(get_dividend_service),
):
    return await service.confirm_declaration(company_id, declaration_id)


@router.post(
    "/{declaration_id}/distributions",
    response_model=DividendDeclarationResponse,
    summary="Distribute a confirmed dividend",
)
async def distribute_dividend(
    company_id: UUID,
    declaration_id: UUID,
    request: Optional[DistributeRequest] = Body(None),
    service: DividendService = Depends(get_dividend_service),
):
    """Without a shareholder list, the company's active register is used."""
    shareholders = request.shareholders if request is not None else None
    return await service.distribute_dividend(company_id, declaration_id, shareholders)


@router.post(
    "/distributions/{distribution_id}/pay",
    response_model=DividendDistributionResponse,
    summary="Pay a distribution",
)
async def pay_distribution(
    company_id: UUID,
    distribution_id: UUID,
    request: PayDistributionRequest,
    service: DividendService = Depends(get_dividend_service),
):
    return await service.pay_distribution(
        company_id,
        distribution_id,
        paid_on=request.paid_on,
        payment_method=request.payment_method,
        proof_url=request.proof_url,
    )
