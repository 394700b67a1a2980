"""
Office Nexus Ledger - Ledger Router

API endpoints for posting to the ledger and reading it back.
"""

from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status

from app.dependencies import get_posting_engine, get_reporting_service, get_transaction_service
from app.models.ledger import SourceType
from app.schemas.events import EventProcessingResult
from app.schemas.ledger import (
    AccountBalanceResponse,
    AccountResponse,
    FinancialSummary,
    LedgerEntryResponse,
    LedgerTransactionResponse,
    PostingResult,
    ReverseRequest,
    TransactionCreate,
    TrialBalanceReport,
)
from app.services.chart_of_accounts import list_accounts
from app.services.posting_engine import PostingEngine
from app.services.reporting_service import ReportingService
from app.services.transaction_service import TransactionService


router = APIRouter()


# ===========================================
# POSTING
# ===========================================

@router.post(
    "/transactions",
    response_model=PostingResult,
    status_code=status.HTTP_200_OK,
    summary="Post a balanced transaction",
)
async def post_transaction(
    company_id: UUID,
    request: TransactionCreate,
    engine: PostingEngine = Depends(get_posting_engine),
):
    """
    Post a balanced set of lines.

    Re-posting the same (source_type, source_id) returns
    `duplicate_skipped` with the original transaction id.
    """
    return await engine.post(company_id, request)


@router.post(
    "/transactions/{transaction_id}/reverse",
    response_model=PostingResult,
    summary="Reverse a posted transaction",
)
async def reverse_transaction(
    company_id: UUID,
    transaction_id: UUID,
    request: ReverseRequest,
    engine: PostingEngine = Depends(get_posting_engine),
):
    return await engine.reverse(company_id, transaction_id, request.reversal_date, request.reason)


@router.post(
    "/events",
    response_model=EventProcessingResult,
    summary="Process a business event",
)
async def process_event(
    company_id: UUID,
    event: Dict[str, Any] = Body(...),
    service: TransactionService = Depends(get_transaction_service),
):
    """
    Encode a business event (sale, purchase, payroll, capital, dividend...)
    and post it. Capital contributions and share issuances also allocate
    shares.
    """
    return await service.process_event(company_id, event)


@router.post(
    "/events/encode",
    response_model=TransactionCreate,
    summary="Preview the journal for a business event",
)
async def encode_event(
    company_id: UUID,
    event: Dict[str, Any] = Body(...),
    service: TransactionService = Depends(get_transaction_service),
):
    """Encode only; nothing is posted."""
    return service.encode(event)


# ===========================================
# REPORTS
# ===========================================

@router.get(
    "/trial-balance",
    response_model=TrialBalanceReport,
    summary="Trial balance",
)
async def get_trial_balance(
    company_id: UUID,
    as_of: Optional[date] = Query(None, description="Include entries dated on or before this day"),
    reporting: ReportingService = Depends(get_reporting_service),
):
    return await reporting.get_trial_balance_report(company_id, as_of)


@router.get(
    "/accounts/{account_code}/balance",
    response_model=AccountBalanceResponse,
    summary="Account balance",
)
async def get_account_balance(
    company_id: UUID,
    account_code: str,
    as_of: Optional[date] = Query(None),
    reporting: ReportingService = Depends(get_reporting_service),
):
    return await reporting.get_account_balance(company_id, account_code, as_of)


@router.get(
    "/general-ledger",
    response_model=List[LedgerEntryResponse],
    summary="General ledger lines, newest first",
)
async def get_general_ledger(
    company_id: UUID,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    account_code: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=5000),
    reporting: ReportingService = Depends(get_reporting_service),
):
    return await reporting.get_general_ledger(company_id, start, end, account_code, limit)


@router.get(
    "/audit-trail",
    response_model=List[LedgerTransactionResponse],
    summary="Postings for a source document",
)
async def get_audit_trail(
    company_id: UUID,
    source_type: Optional[SourceType] = Query(None),
    source_id: Optional[str] = Query(None),
    reporting: ReportingService = Depends(get_reporting_service),
):
    return await reporting.get_audit_trail(company_id, source_type, source_id)


@router.get(
    "/financial-summary",
    response_model=FinancialSummary,
    summary="Revenue, expenses, profit and balance sheet totals",
)
async def get_financial_summary(
    company_id: UUID,
    as_of: Optional[date] = Query(None),
    reporting: ReportingService = Depends(get_reporting_service),
):
    return await reporting.get_financial_summary(company_id, as_of)


@router.get(
    "/chart-of-accounts",
    response_model=List[AccountResponse],
    summary="Chart of accounts",
)
async def get_chart_of_accounts(company_id: UUID):
    return list_accounts()
