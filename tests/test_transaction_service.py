"""
Office Nexus Ledger - Transaction Service Tests

Event processing end to end, capital side effects, and company isolation.
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.models.ledger import LedgerEntry, SourceType
from app.schemas.events import EventType
from app.services.capital_service import CapitalService
from app.services.ledger_store import LedgerStore
from app.services.reporting_service import ReportingService
from app.services.transaction_service import TransactionService
from app.utils.error_handling import CapitalLimitExceeded, NotFoundException, ValidationException


def _contribution_event(**overrides):
    event = {
        "type": "capital_contribution",
        "date": "2026-01-20",
        "amount": "2000000",
        "shareholder_id": "SH-1",
        "shareholder_name": "Aline Uwase",
        "source_id": "CAP-0001",
    }
    event.update(overrides)
    return event


async def _entry_count(db_session, company_id):
    return await db_session.scalar(
        select(func.count(LedgerEntry.id)).where(LedgerEntry.company_id == company_id)
    )


class TestProcessEvent:

    @pytest.mark.asyncio
    async def test_sale(self, db_session, company_id, sale_event):
        result = await TransactionService(db_session).process_event(company_id, sale_event)

        assert result.status == "posted"
        assert result.event_type == EventType.SALE
        assert result.source_type == SourceType.INVOICE
        assert result.source_id == "INV-0001"
        assert len(result.entries) == 3

    @pytest.mark.asyncio
    async def test_replay_is_duplicate(self, db_session, company_id, sale_event):
        service = TransactionService(db_session)
        first = await service.process_event(company_id, sale_event)
        replay = await service.process_event(company_id, sale_event)

        assert replay.status == "duplicate_skipped"
        assert replay.transaction_id == first.transaction_id
        assert replay.warnings
        assert await _entry_count(db_session, company_id) == 3

    @pytest.mark.asyncio
    async def test_invalid_event_posts_nothing(self, db_session, company_id):
        with pytest.raises(ValidationException):
            await TransactionService(db_session).process_event(
                company_id, {"type": "sale", "date": "2026-03-10", "amount": "-5"},
            )
        assert await _entry_count(db_session, company_id) == 0

    def test_encode_only(self, db_session, sale_event):
        tx = TransactionService(db_session).encode(sale_event)
        assert tx.total_debit == tx.total_credit == Decimal("118000")


class TestCapitalEvents:

    @pytest.mark.asyncio
    async def test_contribution_allocates_shares(self, db_session, company_id, company_capital):
        result = await TransactionService(db_session).process_event(company_id, _contribution_event())

        assert result.status == "posted"
        capital_service = CapitalService(db_session)
        capital = await capital_service.get_company_capital(company_id)
        assert capital.issued_shares == 2000
        assert capital.paid_up_capital == Decimal("2000000.00")

        contributions = await capital_service.list_contributions(company_id)
        assert len(contributions) == 1
        assert contributions[0].ledger_transaction_id == result.transaction_id

        balance = await ReportingService(db_session).get_account_balance(company_id, "3001", date(2026, 1, 31))
        assert balance.balance == Decimal("-2000000.00")

    @pytest.mark.asyncio
    async def test_contribution_with_explicit_shares(self, db_session, company_id, company_capital):
        await TransactionService(db_session).process_event(
            company_id, _contribution_event(shares_allocated=1500),
        )
        holders = await CapitalService(db_session).list_shareholders(company_id)
        assert [(h.shareholder_ref, h.shares_held) for h in holders] == [("SH-1", 1500)]

    @pytest.mark.asyncio
    async def test_replayed_contribution_allocates_once(self, db_session, company_id, company_capital):
        service = TransactionService(db_session)
        await service.process_event(company_id, _contribution_event())
        replay = await service.process_event(company_id, _contribution_event())

        assert replay.status == "duplicate_skipped"
        capital = await CapitalService(db_session).get_company_capital(company_id)
        assert capital.issued_shares == 2000
        assert len(await CapitalService(db_session).list_contributions(company_id)) == 1

    @pytest.mark.asyncio
    async def test_contribution_over_limit_posts_nothing(self, db_session, company_id, company_capital):
        service = TransactionService(db_session)
        with pytest.raises(CapitalLimitExceeded):
            await service.process_event(company_id, _contribution_event(amount="20000000"))

        assert await _entry_count(db_session, company_id) == 0
        capital = await CapitalService(db_session).get_company_capital(company_id)
        assert capital.issued_shares == 0
        assert await CapitalService(db_session).list_contributions(company_id) == []

    @pytest.mark.asyncio
    async def test_contribution_without_capital(self, db_session, company_id):
        with pytest.raises(NotFoundException):
            await TransactionService(db_session).process_event(company_id, _contribution_event())
        assert await _entry_count(db_session, company_id) == 0

    @pytest.mark.asyncio
    async def test_contribution_requires_shareholder(self, db_session, company_id, company_capital):
        with pytest.raises(ValidationException):
            await TransactionService(db_session).process_event(
                company_id, _contribution_event(shareholder_id=None),
            )

    @pytest.mark.asyncio
    async def test_share_issuance_splits_premium(self, db_session, company_id, company_capital):
        result = await TransactionService(db_session).process_event(company_id, {
            "type": "share_issuance",
            "date": "2026-02-01",
            "amount": "1250000",
            "par_value": "800",
            "shareholder_id": "SH-2",
            "shareholder_name": "Eric Mugisha",
            "source_id": "SHR-0001",
        })

        posting = await LedgerStore(db_session).find_by_source(company_id, result.source_type, "SHR-0001")
        lines = {e.account_code: e.credit for e in posting.entries if e.credit}
        assert lines == {"3001": Decimal("1249600.00"), "3003": Decimal("400.00")}

        holders = await CapitalService(db_session).list_shareholders(company_id)
        assert [(h.shareholder_ref, h.shares_held) for h in holders] == [("SH-2", 1562)]


class TestCompanyIsolation:
    """Every read and write is scoped to the company in the request."""

    @pytest.mark.asyncio
    async def test_same_source_id_in_two_companies(self, db_session, company_id, other_company_id, sale_event):
        service = TransactionService(db_session)
        first = await service.process_event(company_id, sale_event)
        second = await service.process_event(other_company_id, sale_event)

        assert first.status == second.status == "posted"
        assert first.transaction_id != second.transaction_id

    @pytest.mark.asyncio
    async def test_reports_do_not_leak(self, db_session, company_id, other_company_id, sale_event, march_2026):
        await TransactionService(db_session).process_event(company_id, sale_event)
        reporting = ReportingService(db_session)

        assert await reporting.get_trial_balance(other_company_id, date(2026, 12, 31)) == []
        assert await reporting.get_general_ledger(other_company_id) == []
        assert await reporting.get_audit_trail(other_company_id, SourceType.INVOICE, "INV-0001") == []
        vat = await reporting.get_vat_return(other_company_id, *march_2026)
        assert vat.sales_vat == Decimal("0")

    @pytest.mark.asyncio
    async def test_transaction_lookup_is_scoped(self, db_session, company_id, other_company_id, sale_event):
        result = await TransactionService(db_session).process_event(company_id, sale_event)
        store = LedgerStore(db_session)

        assert await store.get_transaction(company_id, result.transaction_id) is not None
        assert await store.get_transaction(other_company_id, result.transaction_id) is None
