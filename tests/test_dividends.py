"""
Office Nexus Ledger - Dividend Tests

Declaration -> confirmation -> distribution -> payment, and the pool
allocation rule.
"""

import random
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio

from app.models.capital import DeclarationStatus
from app.services.capital_service import CapitalService
from app.services.chart_of_accounts import PaymentMethod
from app.services.dividend_service import DividendService, allocate_pool
from app.services.ledger_store import LedgerStore
from app.services.reporting_service import ReportingService
from app.utils.error_handling import (
    BusinessRuleException,
    DeclarationNotConfirmed,
    NotFoundException,
    ValidationException,
)


@pytest_asyncio.fixture
async def shareholders(db_session, company_id, company_capital):
    """SH-1 holds 6,000 shares and SH-2 holds 4,000."""
    capital = CapitalService(db_session)
    await capital.allocate_shares(company_id, 6000, "SH-1", "Aline Uwase")
    await capital.allocate_shares(company_id, 4000, "SH-2", "Eric Mugisha")


@pytest_asyncio.fixture
async def declaration(db_session, company_id):
    """Draft declaration: 40% of 1,000,000 profit."""
    return await DividendService(db_session).declare_dividend(
        company_id, Decimal("1000000"), Decimal("40"), "Board of Directors", date(2026, 4, 10),
    )


class TestAllocatePool:

    def test_pro_rata(self):
        assert allocate_pool(Decimal("400000"), [6000, 4000]) == [Decimal("240000.00"), Decimal("160000.00")]

    def test_residual_to_first_largest_on_tie(self):
        amounts = allocate_pool(Decimal("100"), [1, 1, 1])
        assert amounts == [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")]

    def test_negative_residual_to_largest(self):
        amounts = allocate_pool(Decimal("100"), [1, 3, 3])
        assert amounts == [Decimal("14.29"), Decimal("42.85"), Decimal("42.86")]
        assert sum(amounts) == Decimal("100")

    def test_pool_always_conserved(self):
        pool = Decimal("99999.99")
        holdings = [7, 13, 29, 31, 101, 3]
        assert sum(allocate_pool(pool, holdings)) == pool

    def test_zero_shares_rejected(self):
        with pytest.raises(ValidationException):
            allocate_pool(Decimal("100"), [0, 0])

    def test_seeded_random_conservation(self):
        rng = random.Random(20260410)
        for _ in range(200):
            pool = Decimal(rng.randint(1, 10_000_000_000)) / Decimal("100")
            holdings = [rng.randint(0, 50_000) for _ in range(rng.randint(1, 12))]
            if sum(holdings) == 0:
                holdings[0] = 1
            amounts = allocate_pool(pool, holdings)
            assert sum(amounts) == pool
            assert all(a >= 0 for a in amounts)


class TestDeclaration:

    @pytest.mark.asyncio
    async def test_declare_computes_pool(self, declaration):
        assert declaration.status == DeclarationStatus.DRAFT
        assert declaration.dividend_pool == Decimal("400000.00")
        assert declaration.ledger_transaction_id is None

    @pytest.mark.parametrize("profit,pct", [("0", "10"), ("1000", "0"), ("1000", "101")])
    @pytest.mark.asyncio
    async def test_invalid_declaration(self, db_session, company_id, profit, pct):
        with pytest.raises(ValidationException):
            await DividendService(db_session).declare_dividend(
                company_id, Decimal(profit), Decimal(pct), "Board", date(2026, 4, 10),
            )

    @pytest.mark.asyncio
    async def test_confirm_posts_to_ledger(self, db_session, company_id, declaration):
        confirmed = await DividendService(db_session).confirm_declaration(company_id, declaration.id)

        assert confirmed.status == DeclarationStatus.CONFIRMED
        assert confirmed.ledger_transaction_id is not None

        posting = await LedgerStore(db_session).get_transaction(company_id, confirmed.ledger_transaction_id)
        lines = {(e.account_code, e.debit, e.credit) for e in posting.entries}
        assert lines == {
            ("3002", Decimal("400000.00"), Decimal("0.00")),
            ("2201", Decimal("0.00"), Decimal("400000.00")),
        }

    @pytest.mark.asyncio
    async def test_confirm_twice_rejected(self, db_session, company_id, declaration):
        service = DividendService(db_session)
        await service.confirm_declaration(company_id, declaration.id)
        with pytest.raises(BusinessRuleException):
            await service.confirm_declaration(company_id, declaration.id)

    @pytest.mark.asyncio
    async def test_unknown_declaration(self, db_session, company_id):
        with pytest.raises(NotFoundException):
            await DividendService(db_session).confirm_declaration(company_id, uuid4())

    @pytest.mark.asyncio
    async def test_declaration_scoped_to_company(self, db_session, other_company_id, declaration):
        with pytest.raises(NotFoundException):
            await DividendService(db_session).get_declaration(other_company_id, declaration.id)


class TestDistribution:

    @pytest.mark.asyncio
    async def test_draft_cannot_be_distributed(self, db_session, company_id, shareholders, declaration):
        with pytest.raises(DeclarationNotConfirmed):
            await DividendService(db_session).distribute_dividend(company_id, declaration.id)

    @pytest.mark.asyncio
    async def test_distribute_from_register(self, db_session, company_id, shareholders, declaration):
        service = DividendService(db_session)
        await service.confirm_declaration(company_id, declaration.id)

        distributed = await service.distribute_dividend(company_id, declaration.id)

        amounts = {d.shareholder_ref: d.amount for d in distributed.distributions}
        assert amounts == {"SH-1": Decimal("240000.00"), "SH-2": Decimal("160000.00")}
        assert sum(amounts.values()) == distributed.dividend_pool
        assert [d.shares_held_at_time for d in distributed.distributions] == [6000, 4000]

    @pytest.mark.asyncio
    async def test_distribute_from_snapshot(self, db_session, company_id, declaration):
        service = DividendService(db_session)
        await service.confirm_declaration(company_id, declaration.id)

        distributed = await service.distribute_dividend(company_id, declaration.id, [
            {"shareholder_ref": "A", "name": "Alpha", "shares_held": 1},
            {"shareholder_ref": "B", "name": "Beta", "shares_held": 1},
            {"shareholder_ref": "C", "name": "Gamma", "shares_held": 1},
            {"shareholder_ref": "D", "name": "Delta", "shares_held": 0},
        ])

        assert [d.shareholder_ref for d in distributed.distributions] == ["A", "B", "C"]
        assert [d.amount for d in distributed.distributions] == [
            Decimal("133333.34"), Decimal("133333.33"), Decimal("133333.33"),
        ]

    @pytest.mark.asyncio
    async def test_empty_snapshot_rejected(self, db_session, company_id, declaration):
        service = DividendService(db_session)
        await service.confirm_declaration(company_id, declaration.id)
        with pytest.raises(ValidationException):
            await service.distribute_dividend(company_id, declaration.id, [])

    @pytest.mark.asyncio
    async def test_redistribute_replaces_unpaid(self, db_session, company_id, shareholders, declaration):
        service = DividendService(db_session)
        await service.confirm_declaration(company_id, declaration.id)
        await service.distribute_dividend(company_id, declaration.id)

        redistributed = await service.distribute_dividend(company_id, declaration.id, [
            {"shareholder_ref": "SH-1", "name": "Aline Uwase", "shares_held": 1},
        ])
        assert len(redistributed.distributions) == 1
        assert redistributed.distributions[0].amount == Decimal("400000.00")


class TestPayment:

    @pytest_asyncio.fixture
    async def distributed(self, db_session, company_id, shareholders, declaration):
        service = DividendService(db_session)
        await service.confirm_declaration(company_id, declaration.id)
        return await service.distribute_dividend(company_id, declaration.id)

    @pytest.mark.asyncio
    async def test_pay_posts_and_marks_paid(self, db_session, company_id, distributed):
        service = DividendService(db_session)
        first = distributed.distributions[0]

        paid = await service.pay_distribution(
            company_id, first.id, date(2026, 4, 30), PaymentMethod.MOBILE_MONEY, "https://proofs.example/1",
        )

        assert paid.is_paid
        assert paid.paid_on == date(2026, 4, 30)
        assert paid.payment_proof_url == "https://proofs.example/1"
        posting = await LedgerStore(db_session).get_transaction(company_id, paid.ledger_transaction_id)
        assert {e.account_code for e in posting.entries} == {"2201", "1003"}

        declaration = await service.get_declaration(company_id, distributed.id)
        assert declaration.status == DeclarationStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_pay_twice_is_noop(self, db_session, company_id, distributed):
        service = DividendService(db_session)
        first = distributed.distributions[0]

        once = await service.pay_distribution(company_id, first.id, date(2026, 4, 30))
        twice = await service.pay_distribution(company_id, first.id, date(2026, 5, 2))

        assert twice.ledger_transaction_id == once.ledger_transaction_id
        assert twice.paid_on == date(2026, 4, 30)
        balance = await ReportingService(db_session).get_account_balance(company_id, "2201", date(2026, 12, 31))
        assert balance.balance == Decimal("-160000.00")

    @pytest.mark.asyncio
    async def test_all_paid_closes_declaration(self, db_session, company_id, distributed):
        service = DividendService(db_session)
        for distribution in list(distributed.distributions):
            await service.pay_distribution(company_id, distribution.id, date(2026, 4, 30))

        declaration = await service.get_declaration(company_id, distributed.id)
        assert declaration.status == DeclarationStatus.PAID

        balance = await ReportingService(db_session).get_account_balance(company_id, "2201", date(2026, 12, 31))
        assert balance.balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_cannot_redistribute_after_payment(self, db_session, company_id, distributed):
        service = DividendService(db_session)
        await service.pay_distribution(company_id, distributed.distributions[0].id, date(2026, 4, 30))

        with pytest.raises(BusinessRuleException):
            await service.distribute_dividend(company_id, distributed.id)

    @pytest.mark.asyncio
    async def test_summary(self, db_session, company_id, distributed):
        service = DividendService(db_session)
        await service.pay_distribution(company_id, distributed.distributions[0].id, date(2026, 4, 30))
        await service.declare_dividend(company_id, Decimal("50000"), Decimal("10"), "Board", date(2026, 6, 1))

        summary = await service.get_dividend_summary(company_id)

        assert summary.declaration_count == 2
        assert summary.by_status == {"draft": 1, "confirmed": 1, "paid": 0}
        assert summary.total_declared == Decimal("400000.00")
        assert summary.total_distributed == Decimal("400000.00")
        assert summary.total_paid == Decimal("240000.00")
        assert summary.total_outstanding == Decimal("160000.00")

