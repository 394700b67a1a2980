"""
Office Nexus Ledger - Test Configuration

Pytest fixtures and configuration.

Every test gets its own in-memory SQLite database, so tests never share
ledger rows.
"""

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  (registers every table on the metadata)
from app.database import Base, get_async_session
from app.models.capital import CompanyCapital
from app.services.capital_service import CapitalService
from app.services.posting_engine import PostingEngine
from main import app


TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session override."""

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ===========================================
# DATA FIXTURES
# ===========================================

@pytest.fixture
def company_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_company_id() -> UUID:
    return uuid4()


@pytest.fixture
def api_base(company_id: UUID) -> str:
    return f"/api/v1/companies/{company_id}"


@pytest.fixture
def engine(db_session: AsyncSession) -> PostingEngine:
    return PostingEngine(db_session)


@pytest_asyncio.fixture
async def company_capital(db_session: AsyncSession, company_id: UUID) -> CompanyCapital:
    """10,000 authorized shares at RWF 1,000."""
    service = CapitalService(db_session)
    return await service.initialize_company_capital(
        company_id,
        authorized_shares=10000,
        share_price=Decimal("1000"),
    )


@pytest.fixture
def sale_event() -> dict:
    """VAT-inclusive cash sale of RWF 118,000."""
    return {
        "type": "sale",
        "date": "2026-03-10",
        "amount": "118000",
        "vat_rate": "0.18",
        "payment_method": "bank",
        "source_id": "INV-0001",
        "party_name": "Kigali Traders",
    }


@pytest.fixture
def purchase_event() -> dict:
    """VAT-inclusive purchase of office supplies, RWF 59,000."""
    return {
        "type": "purchase",
        "date": "2026-03-12",
        "amount": "59000",
        "vat_rate": "0.18",
        "payment_method": "bank",
        "expense_account_code": "5005",
        "source_id": "PUR-0001",
    }


@pytest.fixture
def march_2026():
    return date(2026, 3, 1), date(2026, 3, 31)
