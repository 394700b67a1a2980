"""
Office Nexus Ledger - FastAPI Dependencies

Shared dependencies for database sessions and request-scoped services.

Every service gets the request's AsyncSession; nothing is shared between
requests except the process-wide keyed locks.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.services.capital_service import CapitalService
from app.services.dividend_service import DividendService
from app.services.payroll_service import PayrollService
from app.services.posting_engine import PostingEngine
from app.services.reporting_service import ReportingService
from app.services.tax_calculators import QITService
from app.services.transaction_service import TransactionService


async def get_posting_engine(db: AsyncSession = Depends(get_async_session)) -> PostingEngine:
    return PostingEngine(db)


async def get_transaction_service(db: AsyncSession = Depends(get_async_session)) -> TransactionService:
    return TransactionService(db)


async def get_reporting_service(db: AsyncSession = Depends(get_async_session)) -> ReportingService:
    return ReportingService(db)


async def get_qit_service(db: AsyncSession = Depends(get_async_session)) -> QITService:
    return QITService(db)


async def get_payroll_service(db: AsyncSession = Depends(get_async_session)) -> PayrollService:
    return PayrollService(db)


async def get_capital_service(db: AsyncSession = Depends(get_async_session)) -> CapitalService:
    return CapitalService(db)


async def get_dividend_service(db: AsyncSession = Depends(get_async_session)) -> DividendService:
    return DividendService(db)
