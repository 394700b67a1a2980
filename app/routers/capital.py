"""
Office Nexus Ledger - Capital Router

API endpoints for share capital, the shareholder register and beneficial
owners.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.dependencies import get_capital_service
from app.schemas.capital import (
    BeneficialOwnerInput,
    BeneficialOwnerResponse,
    BeneficialOwnershipRegister,
    CapitalSummary,
    CompanyCapitalCreate,
    CompanyCapitalResponse,
    ContributionCreate,
    ContributionResponse,
    OwnershipValidation,
    ShareAllocationRequest,
    ShareholderResponse,
    ShareholderUpdate,
)
from app.services.capital_service import CapitalService


router = APIRouter()


# ===========================================
# SHARE CAPITAL
# ===========================================

@router.post(
    "",
    response_model=CompanyCapitalResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Initialize company capital",
)
async def initialize_capital(
    company_id: UUID,
    request: CompanyCapitalCreate,
    service: CapitalService = Depends(get_capital_service),
):
    return await service.initialize_company_capital(
        company_id,
        authorized_shares=request.authorized_shares,
        share_price=request.share_price,
        currency=request.currency,
        capital_type=request.capital_type,
    )


@router.get("", response_model=CompanyCapitalResponse, summary="Company capital")
async def get_capital(company_id: UUID, service: CapitalService = Depends(get_capital_service)):
    return await service.get_company_capital(company_id)


@router.get("/summary", response_model=CapitalSummary, summary="Capital summary")
async def get_capital_summary(company_id: UUID, service: CapitalService = Depends(get_capital_service)):
    return await service.get_capital_summary(company_id)


@router.post(
    "/allocations",
    response_model=CompanyCapitalResponse,
    summary="Allocate shares",
)
async def allocate_shares(
    company_id: UUID,
    request: ShareAllocationRequest,
    service: CapitalService = Depends(get_capital_service),
):
    """Rejected with CAPITAL_LIMIT_EXCEEDED when authorized shares would be passed."""
    return await service.allocate_shares(
        company_id,
        request.shares,
        shareholder_ref=request.shareholder_ref,
        shareholder_name=request.shareholder_name,
    )


# ===========================================
# CONTRIBUTIONS
# ===========================================

@router.post(
    "/contributions",
    response_model=ContributionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a capital contribution",
)
async def record_contribution(
    company_id: UUID,
    request: ContributionCreate,
    service: CapitalService = Depends(get_capital_service),
):
    return await service.record_contribution(company_id, request)


@router.post(
    "/contributions/{contribution_id}/confirm",
    response_model=ContributionResponse,
    summary="Confirm a pending contribution",
)
async def confirm_contribution(
    company_id: UUID,
    contribution_id: UUID,
    service: CapitalService = Depends(get_capital_service),
):
    return await service.confirm_contribution(company_id, contribution_id)


# ===========================================
# SHAREHOLDERS
# ===========================================

@router.get("/shareholders", response_model=List[ShareholderResponse], summary="Shareholder register")
async def list_shareholders(company_id: UUID, service: CapitalService = Depends(get_capital_service)):
    return await service.list_shareholders(company_id)


@router.put(
    "/shareholders/{shareholder_ref}",
    response_model=ShareholderResponse,
    summary="Create or update a shareholder's registry details",
)
async def sync_shareholder(
    company_id: UUID,
    shareholder_ref: str,
    request: ShareholderUpdate,
    service: CapitalService = Depends(get_capital_service),
):
    return await service.sync_shareholder(
        company_id,
        shareholder_ref,
        name=request.name,
        is_director=request.is_director,
        is_active=request.is_active,
    )


# ===========================================
# BENEFICIAL OWNERS
# ===========================================

@router.put(
    "/beneficial-owners",
    response_model=BeneficialOwnerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a beneficial owner",
)
async def add_beneficial_owner(
    company_id: UUID,
    request: BeneficialOwnerInput,
    service: CapitalService = Depends(get_capital_service),
):
    return await service.upsert_beneficial_owner(company_id, request)


@router.get(
    "/beneficial-owners/register",
    response_model=BeneficialOwnershipRegister,
    summary="Beneficial ownership register",
)
async def get_beneficial_ownership_register(
    company_id: UUID,
    service: CapitalService = Depends(get_capital_service),
):
    return await service.beneficial_ownership_register(company_id)


@router.get(
    "/beneficial-owners/validation",
    response_model=OwnershipValidation,
    summary="Check beneficial ownership percentages",
)
async def validate_beneficial_owners(
    company_id: UUID,
    service: CapitalService = Depends(get_capital_service),
):
    return await service.validate_ownership_percentages(company_id)


@router.put(
    "/beneficial-owners/{owner_id}",
    response_model=BeneficialOwnerResponse,
    summary="Update a beneficial owner",
)
async def update_beneficial_owner(
    company_id: UUID,
    owner_id: UUID,
    request: BeneficialOwnerInput,
    service: CapitalService = Depends(get_capital_service),
):
    return await service.upsert_beneficial_owner(company_id, request, owner_id=owner_id)


@router.delete(
    "/beneficial-owners/{owner_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a beneficial owner",
)
async def delete_beneficial_owner(
    company_id: UUID,
    owner_id: UUID,
    service: CapitalService = Depends(get_capital_service),
):
    await service.delete_beneficial_owner(company_id, owner_id)
