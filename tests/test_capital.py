"""
Office Nexus Ledger - Capital & Ownership Tests

Share capital limits, contributions, the shareholder register and the
beneficial ownership register.
"""

from datetime import date
from decimal import Decimal

import pytest

from app.models.capital import ContributionStatus, VerificationStatus
from app.services.capital_service import CapitalService
from app.utils.error_handling import (
    BusinessRuleException,
    CapitalLimitExceeded,
    DuplicateEntryException,
    ErrorCode,
    NotFoundException,
    OwnershipCeilingExceeded,
    ValidationException,
)


def _owner(name, ownership, control="0", **overrides):
    data = {
        "full_name": name,
        "nationality": "Rwandan",
        "id_number": f"ID-{name.replace(' ', '').upper()}",
        "relationship_to_company": "Shareholder",
        "ownership_percentage": Decimal(ownership),
        "control_percentage": Decimal(control),
    }
    data.update(overrides)
    return data


class TestShareCapital:

    @pytest.mark.asyncio
    async def test_initialize(self, db_session, company_id):
        capital = await CapitalService(db_session).initialize_company_capital(
            company_id, 5000, Decimal("2000"),
        )
        assert capital.issued_shares == 0
        assert capital.paid_up_capital == Decimal("0.00")
        assert capital.currency == "RWF"
        assert capital.total_authorized_capital == Decimal("10000000")

    @pytest.mark.asyncio
    async def test_initialize_twice_rejected(self, db_session, company_id, company_capital):
        with pytest.raises(DuplicateEntryException):
            await CapitalService(db_session).initialize_company_capital(company_id, 100, Decimal("1"))

    @pytest.mark.parametrize("shares,price", [(0, "1000"), (-5, "1000"), (100, "0")])
    @pytest.mark.asyncio
    async def test_initialize_invalid(self, db_session, company_id, shares, price):
        with pytest.raises(ValidationException):
            await CapitalService(db_session).initialize_company_capital(company_id, shares, Decimal(price))

    @pytest.mark.asyncio
    async def test_get_uninitialized(self, db_session, company_id):
        with pytest.raises(NotFoundException):
            await CapitalService(db_session).get_company_capital(company_id)

    @pytest.mark.asyncio
    async def test_allocation_within_limit(self, db_session, company_id, company_capital):
        service = CapitalService(db_session)
        capital = await service.allocate_shares(company_id, 3000, "SH-1", "Aline Uwase")

        assert capital.issued_shares == 3000
        assert capital.remaining_shares == 7000
        assert capital.utilization_percentage == Decimal("30.00")

    @pytest.mark.asyncio
    async def test_allocation_over_limit_leaves_state_unchanged(self, db_session, company_id, company_capital):
        service = CapitalService(db_session)
        await service.allocate_shares(company_id, 3000, "SH-1", "Aline Uwase")

        with pytest.raises(CapitalLimitExceeded) as exc_info:
            await service.allocate_shares(company_id, 8000, "SH-2", "Eric Mugisha")

        assert exc_info.value.code == ErrorCode.CAPITAL_LIMIT_EXCEEDED
        assert exc_info.value.details["available_shares"] == 7000

        capital = await service.get_company_capital(company_id)
        assert capital.issued_shares == 3000
        assert [h.shareholder_ref for h in await service.list_shareholders(company_id)] == ["SH-1"]

    @pytest.mark.asyncio
    async def test_allocation_up_to_exact_limit(self, db_session, company_id, company_capital):
        service = CapitalService(db_session)
        capital = await service.allocate_shares(company_id, 10000)
        assert capital.remaining_shares == 0

        with pytest.raises(CapitalLimitExceeded):
            await service.allocate_shares(company_id, 1)

    @pytest.mark.asyncio
    async def test_non_positive_allocation_rejected(self, db_session, company_id, company_capital):
        with pytest.raises(ValidationException):
            await CapitalService(db_session).allocate_shares(company_id, 0)

    @pytest.mark.asyncio
    async def test_validate_share_allocation(self, db_session, company_id, company_capital):
        service = CapitalService(db_session)
        await service.allocate_shares(company_id, 9000)

        ok = await service.validate_share_allocation(company_id, 1000)
        too_many = await service.validate_share_allocation(company_id, 1001)

        assert ok.is_valid
        assert not too_many.is_valid
        assert too_many.available_shares == 1000
        # Dry run only
        assert (await service.get_company_capital(company_id)).issued_shares == 9000


class TestShareholderRegister:

    @pytest.mark.asyncio
    async def test_ownership_recomputed_on_issue(self, db_session, company_id, company_capital):
        service = CapitalService(db_session)
        await service.allocate_shares(company_id, 3000, "SH-1", "Aline Uwase")
        holders = await service.list_shareholders(company_id)
        assert holders[0].ownership_percentage == Decimal("100")

        await service.allocate_shares(company_id, 7000, "SH-2", "Eric Mugisha")
        holders = {h.shareholder_ref: h for h in await service.list_shareholders(company_id)}

        assert holders["SH-1"].ownership_percentage == Decimal("30")
        assert holders["SH-2"].ownership_percentage == Decimal("70")
        assert sum(h.ownership_percentage for h in holders.values()) == Decimal("100")

    @pytest.mark.asyncio
    async def test_repeat_allocation_adds_to_holding(self, db_session, company_id, company_capital):
        service = CapitalService(db_session)
        await service.allocate_shares(company_id, 100, "SH-1", "Aline Uwase")
        await service.allocate_shares(company_id, 150, "SH-1")

        holders = await service.list_shareholders(company_id)
        assert len(holders) == 1
        assert holders[0].shares_held == 250
        assert holders[0].name == "Aline Uwase"

    @pytest.mark.asyncio
    async def test_sync_shareholder(self, db_session, company_id, company_capital):
        service = CapitalService(db_session)
        await service.allocate_shares(company_id, 100, "SH-1", "Aline Uwase")

        holder = await service.sync_shareholder(company_id, "SH-1", "Aline U.", is_director=True)
        assert holder.is_director
        assert holder.shares_held == 100

        await service.sync_shareholder(company_id, "SH-1", "Aline U.", is_active=False)
        assert await service.list_shareholders(company_id, active_only=True) == []

    @pytest.mark.asyncio
    async def test_register_is_per_company(self, db_session, company_id, other_company_id, company_capital):
        service = CapitalService(db_session)
        await service.allocate_shares(company_id, 100, "SH-1", "Aline Uwase")

        assert await service.list_shareholders(other_company_id) == []
        with pytest.raises(NotFoundException):
            await service.allocate_shares(other_company_id, 100, "SH-1", "Aline Uwase")


class TestContributions:

    def _contribution(self, **overrides):
        data = {
            "shareholder_ref": "SH-1",
            "shareholder_name": "Aline Uwase",
            "amount": Decimal("500000"),
            "contribution_date": date(2026, 1, 15),
        }
        data.update(overrides)
        return data

    @pytest.mark.asyncio
    async def test_pending_contribution_changes_nothing(self, db_session, company_id, company_capital):
        service = CapitalService(db_session)
        contribution = await service.record_contribution(company_id, self._contribution())

        assert contribution.status == ContributionStatus.PENDING
        assert contribution.shares_allocated == 500
        capital = await service.get_company_capital(company_id)
        assert capital.paid_up_capital == Decimal("0.00")
        assert capital.issued_shares == 0

    @pytest.mark.asyncio
    async def test_confirm_applies_contribution(self, db_session, company_id, company_capital):
        service = CapitalService(db_session)
        pending = await service.record_contribution(company_id, self._contribution())

        confirmed = await service.confirm_contribution(company_id, pending.id)

        assert confirmed.status == ContributionStatus.CONFIRMED
        assert confirmed.confirmed_at is not None
        capital = await service.get_company_capital(company_id)
        assert capital.paid_up_capital == Decimal("500000.00")
        assert capital.issued_shares == 500

        with pytest.raises(BusinessRuleException):
            await service.confirm_contribution(company_id, pending.id)

    @pytest.mark.asyncio
    async def test_confirmed_on_record(self, db_session, company_id, company_capital):
        service = CapitalService(db_session)
        await service.record_contribution(
            company_id,
            self._contribution(status=ContributionStatus.CONFIRMED, shares_allocated=400),
        )
        holders = await service.list_shareholders(company_id)
        assert holders[0].shares_held == 400

    @pytest.mark.asyncio
    async def test_contribution_over_limit_rolls_back(self, db_session, company_id, company_capital):
        service = CapitalService(db_session)
        with pytest.raises(CapitalLimitExceeded):
            await service.record_contribution(
                company_id,
                self._contribution(status=ContributionStatus.CONFIRMED, shares_allocated=20000),
            )
        assert await service.list_contributions(company_id) == []
        assert (await service.get_company_capital(company_id)).paid_up_capital == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_rejected_status_refused(self, db_session, company_id, company_capital):
        with pytest.raises(ValidationException):
            await CapitalService(db_session).record_contribution(
                company_id, self._contribution(status=ContributionStatus.REJECTED),
            )

    @pytest.mark.asyncio
    async def test_invalid_payload(self, db_session, company_id, company_capital):
        with pytest.raises(ValidationException) as exc_info:
            await CapitalService(db_session).record_contribution(
                company_id, self._contribution(amount=Decimal("-1")),
            )
        assert exc_info.value.field == "amount"

    @pytest.mark.asyncio
    async def test_summary(self, db_session, company_id, company_capital):
        service = CapitalService(db_session)
        await service.record_contribution(
            company_id, self._contribution(status=ContributionStatus.CONFIRMED),
        )
        await service.record_contribution(
            company_id, self._contribution(shareholder_ref="SH-2", shareholder_name="Eric Mugisha"),
        )

        summary = await service.get_capital_summary(company_id)
        assert summary.confirmed_contributions == 1
        assert summary.pending_contributions == 1
        assert summary.total_contributed == Decimal("500000.00")
        assert summary.shareholder_count == 1
        assert summary.issued_shares == 500


class TestBeneficialOwners:

    @pytest.mark.asyncio
    async def test_significant_control_flag(self, db_session, company_id):
        service = CapitalService(db_session)
        major = await service.upsert_beneficial_owner(company_id, _owner("Aline Uwase", "25"))
        minor = await service.upsert_beneficial_owner(company_id, _owner("Eric Mugisha", "10"))
        controller = await service.upsert_beneficial_owner(company_id, _owner("Grace Ingabire", "5", control="30"))

        assert major.has_significant_control
        assert not minor.has_significant_control
        assert controller.has_significant_control

    @pytest.mark.asyncio
    async def test_ceiling_enforced(self, db_session, company_id):
        service = CapitalService(db_session)
        await service.upsert_beneficial_owner(company_id, _owner("Aline Uwase", "60"))
        await service.upsert_beneficial_owner(company_id, _owner("Eric Mugisha", "40"))

        with pytest.raises(OwnershipCeilingExceeded):
            await service.upsert_beneficial_owner(company_id, _owner("Grace Ingabire", "0.01"))

        assert len(await service.list_beneficial_owners(company_id)) == 2

    @pytest.mark.asyncio
    async def test_update_excludes_own_share_from_total(self, db_session, company_id):
        service = CapitalService(db_session)
        owner = await service.upsert_beneficial_owner(company_id, _owner("Aline Uwase", "60"))
        await service.upsert_beneficial_owner(company_id, _owner("Eric Mugisha", "40"))

        updated = await service.upsert_beneficial_owner(
            company_id, _owner("Aline Uwase", "55", verification_status=VerificationStatus.VERIFIED), owner_id=owner.id,
        )
        assert updated.id == owner.id
        assert updated.ownership_percentage == Decimal("55")

        with pytest.raises(OwnershipCeilingExceeded):
            await service.upsert_beneficial_owner(company_id, _owner("Aline Uwase", "61"), owner_id=owner.id)

    @pytest.mark.asyncio
    async def test_delete(self, db_session, company_id):
        service = CapitalService(db_session)
        owner = await service.upsert_beneficial_owner(company_id, _owner("Aline Uwase", "60"))
        await service.delete_beneficial_owner(company_id, owner.id)
        assert await service.list_beneficial_owners(company_id) == []

        with pytest.raises(NotFoundException):
            await service.delete_beneficial_owner(company_id, owner.id)

    @pytest.mark.asyncio
    async def test_validation_requires_significant_controller(self, db_session, company_id):
        service = CapitalService(db_session)
        assert (await service.validate_ownership_percentages(company_id)).is_valid

        await service.upsert_beneficial_owner(company_id, _owner("Eric Mugisha", "10"))
        result = await service.validate_ownership_percentages(company_id)
        assert not result.is_valid
        assert result.total_percentage == Decimal("10")
        assert len(result.violations) == 1

    @pytest.mark.asyncio
    async def test_register(self, db_session, company_id):
        service = CapitalService(db_session)
        await service.upsert_beneficial_owner(company_id, _owner("Eric Mugisha", "10"))
        await service.upsert_beneficial_owner(
            company_id, _owner("Aline Uwase", "60", verification_status=VerificationStatus.VERIFIED),
        )

        register = await service.beneficial_ownership_register(company_id)
        assert register.total_owners == 2
        assert register.significant_control_count == 1
        assert register.verified_count == 1
        assert register.total_ownership_percentage == Decimal("70")
        assert [o.full_name for o in register.owners] == ["Aline Uwase", "Eric Mugisha"]

    @pytest.mark.asyncio
    async def test_invalid_percentage(self, db_session, company_id):
        with pytest.raises(ValidationException):
            await CapitalService(db_session).upsert_beneficial_owner(company_id, _owner("Aline Uwase", "101"))
