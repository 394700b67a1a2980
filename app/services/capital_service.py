"""
Office Nexus Ledger - Capital & Ownership Service

Share capital, the shareholder register and the beneficial ownership
register.

Invariants kept here:
- issued_shares never exceeds authorized_shares
- paid_up_capital only grows, through confirmed contributions
- every shareholder's ownership_percentage is recomputed whenever
  issued_shares changes
- total beneficial ownership never exceeds 100%

All mutations hold the per-company capital lock and re-read the capital
row with SELECT ... FOR UPDATE, so concurrent allocations cannot both pass
the authorized-shares check.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_FLOOR
from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.capital import (
    BeneficialOwner,
    CapitalContribution,
    CompanyCapital,
    ContributionStatus,
    Shareholder,
    VerificationStatus,
)
from app.schemas.capital import (
    BeneficialOwnerInput,
    BeneficialOwnerResponse,
    BeneficialOwnershipRegister,
    CapitalSummary,
    ContributionCreate,
    OwnershipValidation,
    ShareAllocationValidation,
)
from app.utils.error_handling import (
    BusinessRuleException,
    CapitalLimitExceeded,
    DuplicateEntryException,
    NotFoundException,
    OwnershipCeilingExceeded,
    ValidationException,
)
from app.utils.locks import KeyedLock, capital_locks
from app.utils.money import ZERO, percentage, round_money

logger = logging.getLogger(__name__)


def _validation_error(exc: PydanticValidationError, what: str) -> ValidationException:
    errors = [
        {"field": ".".join(str(loc) for loc in e["loc"]), "message": e["msg"]}
        for e in exc.errors()
    ]
    first = errors[0] if errors else {"field": what, "message": "invalid"}
    return ValidationException(
        f"Invalid {what}: {first['field']} - {first['message']}",
        field=first["field"],
        details={"errors": errors},
    )


class CapitalService:
    """
    Service for share capital and ownership registers.

    Methods that mutate accept commit=False so they can run inside a
    posting's before_commit hook and commit together with the ledger lines.
    """

    def __init__(self, db: AsyncSession, locks: KeyedLock = capital_locks):
        self.db = db
        self.locks = locks

    # ===========================================
    # SHARE CAPITAL
    # ===========================================

    async def initialize_company_capital(
        self,
        company_id: uuid.UUID,
        authorized_shares: int,
        share_price: Decimal,
        currency: str = "RWF",
        capital_type: str = "ordinary",
    ) -> CompanyCapital:
        """Create the capital record. A company has at most one."""
        if authorized_shares <= 0:
            raise ValidationException(
                f"Authorized shares must be positive, got {authorized_shares}",
                field="authorized_shares",
            )
        share_price = Decimal(str(share_price))
        if share_price <= 0:
            raise ValidationException(
                f"Share price must be positive, got {share_price}",
                field="share_price",
            )

        async with self.locks.hold(company_id):
            if await self._find_capital(company_id) is not None:
                raise DuplicateEntryException("CompanyCapital", "company_id", str(company_id))

            capital = CompanyCapital(
                id=uuid.uuid4(),
                company_id=company_id,
                authorized_shares=authorized_shares,
                share_price=share_price,
                issued_shares=0,
                paid_up_capital=Decimal("0.00"),
                currency=currency,
                capital_type=capital_type,
            )
            self.db.add(capital)
            await self.db.commit()

        logger.info(
            f"Initialized capital for company {company_id}: "
            f"{authorized_shares} shares at {share_price} {currency}"
        )
        return capital

    async def _find_capital(self, company_id: uuid.UUID, for_update: bool = False) -> Optional[CompanyCapital]:
        query = select(CompanyCapital).where(CompanyCapital.company_id == company_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_company_capital(self, company_id: uuid.UUID) -> CompanyCapital:
        capital = await self._find_capital(company_id)
        if capital is None:
            raise NotFoundException(
                "CompanyCapital",
                company_id,
                message=f"Capital has not been initialized for company {company_id}",
            )
        return capital

    async def _lock_capital(self, company_id: uuid.UUID) -> CompanyCapital:
        capital = await self._find_capital(company_id, for_update=True)
        if capital is None:
            raise NotFoundException(
                "CompanyCapital",
                company_id,
                message=f"Capital has not been initialized for company {company_id}",
            )
        return capital

    async def validate_share_allocation(self, company_id: uuid.UUID, shares: int) -> ShareAllocationValidation:
        """Dry-run check for an allocation. Never raises for a limit breach."""
        capital = await self.get_company_capital(company_id)
        available = capital.remaining_shares
        if shares <= 0:
            return ShareAllocationValidation(
                is_valid=False,
                message="Shares to allocate must be positive",
                available_shares=available,
            )
        if shares > available:
            return ShareAllocationValidation(
                is_valid=False,
                message=(
                    f"Cannot allocate {shares} shares: only {available} of "
                    f"{capital.authorized_shares} authorized shares remain"
                ),
                available_shares=available,
            )
        return ShareAllocationValidation(
            is_valid=True,
            message=f"{shares} shares can be allocated",
            available_shares=available,
        )

    async def allocate_shares(
        self,
        company_id: uuid.UUID,
        shares: int,
        shareholder_ref: Optional[str] = None,
        shareholder_name: Optional[str] = None,
        commit: bool = True,
    ) -> CompanyCapital:
        """
        Issue shares, optionally crediting a named shareholder.

        Raises CapitalLimitExceeded (state unchanged) when issued + shares
        would pass authorized_shares.
        """
        async with self.locks.hold(company_id):
            capital = await self._lock_capital(company_id)
            try:
                await self._apply_allocation(capital, shares, shareholder_ref, shareholder_name)
                if commit:
                    await self.db.commit()
            except Exception:
                if commit:
                    await self.db.rollback()
                raise
        return capital

    async def _apply_allocation(
        self,
        capital: CompanyCapital,
        shares: int,
        shareholder_ref: Optional[str],
        shareholder_name: Optional[str],
    ) -> None:
        if shares <= 0:
            raise ValidationException(
                f"Shares to allocate must be positive, got {shares}",
                field="shares",
                details={"shares": shares},
            )
        if capital.issued_shares + shares > capital.authorized_shares:
            logger.warning(
                f"Rejected allocation of {shares} shares for company {capital.company_id}: "
                f"{capital.issued_shares} of {capital.authorized_shares} already issued"
            )
            raise CapitalLimitExceeded(capital.issued_shares, shares, capital.authorized_shares)

        capital.issued_shares += shares
        if shareholder_ref:
            holder = await self._get_shareholder(capital.company_id, shareholder_ref)
            if holder is None:
                holder = Shareholder(
                    id=uuid.uuid4(),
                    company_id=capital.company_id,
                    shareholder_ref=shareholder_ref,
                    name=shareholder_name or shareholder_ref,
                    shares_held=0,
                    ownership_percentage=Decimal("0"),
                    is_active=True,
                    entry_date=date.today(),
                )
                self.db.add(holder)
            elif shareholder_name:
                holder.name = shareholder_name
            holder.shares_held += shares

        await self.db.flush()
        await self._recompute_ownership(capital.company_id, capital.issued_shares)
        logger.info(
            f"Allocated {shares} shares for company {capital.company_id}"
            f"{f' to {shareholder_ref}' if shareholder_ref else ''}: "
            f"{capital.issued_shares}/{capital.authorized_shares} issued"
        )

    async def _recompute_ownership(self, company_id: uuid.UUID, issued_shares: int) -> None:
        for holder in await self.list_shareholders(company_id):
            holder.ownership_percentage = percentage(holder.shares_held, issued_shares)
        await self.db.flush()

    # ===========================================
    # CONTRIBUTIONS
    # ===========================================

    def _shares_for(self, capital: CompanyCapital, amount: Decimal, shares_allocated: Optional[int]) -> int:
        if shares_allocated is not None:
            return shares_allocated
        return int((amount / capital.share_price).to_integral_value(rounding=ROUND_FLOOR))

    async def record_contribution(
        self,
        company_id: uuid.UUID,
        data: Union[ContributionCreate, Mapping[str, Any]],
        ledger_transaction_id: Optional[uuid.UUID] = None,
        commit: bool = True,
    ) -> CapitalContribution:
        """
        Store a contribution. Confirmed contributions allocate shares to the
        contributor and raise paid_up_capital by the amount.
        """
        if not isinstance(data, ContributionCreate):
            try:
                data = ContributionCreate.model_validate(dict(data))
            except PydanticValidationError as exc:
                raise _validation_error(exc, "contribution")
        if data.status == ContributionStatus.REJECTED:
            raise ValidationException(
                "A contribution cannot be recorded as rejected",
                field="status",
            )

        async with self.locks.hold(company_id):
            capital = await self._lock_capital(company_id)
            try:
                shares = self._shares_for(capital, data.amount, data.shares_allocated)
                contribution = CapitalContribution(
                    id=uuid.uuid4(),
                    company_id=company_id,
                    shareholder_ref=data.shareholder_ref,
                    shareholder_name=data.shareholder_name,
                    amount=round_money(data.amount),
                    shares_allocated=shares,
                    contribution_type=data.contribution_type,
                    contribution_date=data.contribution_date,
                    status=ContributionStatus.PENDING,
                    description=data.description,
                    ledger_transaction_id=ledger_transaction_id,
                )
                self.db.add(contribution)
                if data.status == ContributionStatus.CONFIRMED:
                    await self._apply_contribution(capital, contribution)
                if commit:
                    await self.db.commit()
            except Exception:
                if commit:
                    await self.db.rollback()
                raise
        return contribution

    async def confirm_contribution(self, company_id: uuid.UUID, contribution_id: uuid.UUID) -> CapitalContribution:
        """Apply a pending contribution."""
        async with self.locks.hold(company_id):
            capital = await self._lock_capital(company_id)
            result = await self.db.execute(
                select(CapitalContribution)
                .where(CapitalContribution.company_id == company_id)
                .where(CapitalContribution.id == contribution_id)
            )
            contribution = result.scalar_one_or_none()
            if contribution is None:
                raise NotFoundException("CapitalContribution", contribution_id)
            if contribution.status != ContributionStatus.PENDING:
                raise BusinessRuleException(
                    f"Contribution {contribution_id} is {contribution.status.value}; only pending contributions can be confirmed",
                    rule="CONTRIBUTION_PENDING",
                    details={"contribution_id": contribution_id, "status": contribution.status.value},
                )
            try:
                await self._apply_contribution(capital, contribution)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise
        return contribution

    async def _apply_contribution(self, capital: CompanyCapital, contribution: CapitalContribution) -> None:
        if contribution.shares_allocated > 0:
            await self._apply_allocation(
                capital,
                contribution.shares_allocated,
                contribution.shareholder_ref,
                contribution.shareholder_name,
            )
        capital.paid_up_capital = round_money(capital.paid_up_capital + contribution.amount)
        contribution.status = ContributionStatus.CONFIRMED
        contribution.confirmed_at = datetime.now(timezone.utc)
        await self.db.flush()

    async def list_contributions(self, company_id: uuid.UUID) -> List[CapitalContribution]:
        result = await self.db.execute(
            select(CapitalContribution)
            .where(CapitalContribution.company_id == company_id)
            .order_by(CapitalContribution.contribution_date, CapitalContribution.created_at)
        )
        return list(result.scalars().all())

    async def get_capital_summary(self, company_id: uuid.UUID) -> CapitalSummary:
        capital = await self.get_company_capital(company_id)
        contributions = await self.list_contributions(company_id)
        confirmed = [c for c in contributions if c.status == ContributionStatus.CONFIRMED]
        pending = [c for c in contributions if c.status == ContributionStatus.PENDING]
        shareholder_count = await self.db.scalar(
            select(func.count(Shareholder.id))
            .where(Shareholder.company_id == company_id)
            .where(Shareholder.is_active.is_(True))
        )
        return CapitalSummary(
            company_id=company_id,
            currency=capital.currency,
            authorized_shares=capital.authorized_shares,
            issued_shares=capital.issued_shares,
            remaining_shares=capital.remaining_shares,
            share_price=capital.share_price,
            total_authorized_capital=capital.total_authorized_capital,
            paid_up_capital=capital.paid_up_capital,
            utilization_percentage=capital.utilization_percentage,
            shareholder_count=shareholder_count or 0,
            confirmed_contributions=len(confirmed),
            pending_contributions=len(pending),
            total_contributed=sum((c.amount for c in confirmed), ZERO),
        )

    # ===========================================
    # SHAREHOLDER REGISTER
    # ===========================================

    async def _get_shareholder(self, company_id: uuid.UUID, shareholder_ref: str) -> Optional[Shareholder]:
        result = await self.db.execute(
            select(Shareholder)
            .where(Shareholder.company_id == company_id)
            .where(Shareholder.shareholder_ref == shareholder_ref)
        )
        return result.scalar_one_or_none()

    async def list_shareholders(self, company_id: uuid.UUID, active_only: bool = False) -> List[Shareholder]:
        query = select(Shareholder).where(Shareholder.company_id == company_id)
        if active_only:
            query = query.where(Shareholder.is_active.is_(True))
        result = await self.db.execute(
            query.order_by(Shareholder.created_at, Shareholder.shareholder_ref)
        )
        return list(result.scalars().all())

    async def sync_shareholder(
        self,
        company_id: uuid.UUID,
        shareholder_ref: str,
        name: str,
        is_director: Optional[bool] = None,
        is_active: Optional[bool] = None,
    ) -> Shareholder:
        """Create or update a register row's attributes. Shares are untouched."""
        async with self.locks.hold(company_id):
            holder = await self._get_shareholder(company_id, shareholder_ref)
            if holder is None:
                holder = Shareholder(
                    id=uuid.uuid4(),
                    company_id=company_id,
                    shareholder_ref=shareholder_ref,
                    name=name,
                    shares_held=0,
                    ownership_percentage=Decimal("0"),
                    is_active=True if is_active is None else is_active,
                    is_director=bool(is_director),
                    entry_date=date.today(),
                )
                self.db.add(holder)
            else:
                holder.name = name
                if is_director is not None:
                    holder.is_director = is_director
                if is_active is not None:
                    holder.is_active = is_active
            await self.db.commit()
        return holder

    # ===========================================
    # BENEFICIAL OWNERS
    # ===========================================

    async def list_beneficial_owners(self, company_id: uuid.UUID) -> List[BeneficialOwner]:
        result = await self.db.execute(
            select(BeneficialOwner)
            .where(BeneficialOwner.company_id == company_id)
            .order_by(BeneficialOwner.ownership_percentage.desc(), BeneficialOwner.full_name)
        )
        return list(result.scalars().all())

    async def _get_beneficial_owner(self, company_id: uuid.UUID, owner_id: uuid.UUID) -> BeneficialOwner:
        result = await self.db.execute(
            select(BeneficialOwner)
            .where(BeneficialOwner.company_id == company_id)
            .where(BeneficialOwner.id == owner_id)
        )
        owner = result.scalar_one_or_none()
        if owner is None:
            raise NotFoundException("BeneficialOwner", owner_id)
        return owner

    @staticmethod
    def has_significant_control(ownership: Decimal, control: Decimal) -> bool:
        threshold = settings.significant_control_threshold
        return ownership >= threshold or control >= threshold

    async def upsert_beneficial_owner(
        self,
        company_id: uuid.UUID,
        data: Union[BeneficialOwnerInput, Mapping[str, Any]],
        owner_id: Optional[uuid.UUID] = None,
    ) -> BeneficialOwner:
        """
        Add a beneficial owner, or replace the details of owner_id.

        Raises OwnershipCeilingExceeded when the company total would pass 100%.
        """
        if not isinstance(data, BeneficialOwnerInput):
            try:
                data = BeneficialOwnerInput.model_validate(dict(data))
            except PydanticValidationError as exc:
                raise _validation_error(exc, "beneficial owner")

        async with self.locks.hold(company_id):
            owner = await self._get_beneficial_owner(company_id, owner_id) if owner_id else None

            owners = await self.list_beneficial_owners(company_id)
            current_total = sum(
                (o.ownership_percentage for o in owners if owner is None or o.id != owner.id),
                ZERO,
            )
            ceiling = settings.ownership_ceiling
            if current_total + data.ownership_percentage > ceiling:
                logger.warning(
                    f"Rejected beneficial owner {data.full_name} for company {company_id}: "
                    f"{current_total}% + {data.ownership_percentage}% exceeds {ceiling}%"
                )
                raise OwnershipCeilingExceeded(current_total, data.ownership_percentage, ceiling)

            if owner is None:
                owner = BeneficialOwner(id=uuid.uuid4(), company_id=company_id)
                self.db.add(owner)

            owner.full_name = data.full_name
            owner.nationality = data.nationality
            owner.id_number = data.id_number
            owner.relationship_to_company = data.relationship_to_company
            owner.ownership_percentage = data.ownership_percentage
            owner.control_percentage = data.control_percentage
            owner.has_significant_control = self.has_significant_control(
                data.ownership_percentage, data.control_percentage,
            )
            owner.verification_status = data.verification_status
            owner.date_of_birth = data.date_of_birth
            owner.address = data.address
            await self.db.commit()
        return owner

    async def delete_beneficial_owner(self, company_id: uuid.UUID, owner_id: uuid.UUID) -> None:
        async with self.locks.hold(company_id):
            owner = await self._get_beneficial_owner(company_id, owner_id)
            await self.db.delete(owner)
            await self.db.commit()

    async def validate_ownership_percentages(self, company_id: uuid.UUID) -> OwnershipValidation:
        owners = await self.list_beneficial_owners(company_id)
        total = sum((o.ownership_percentage for o in owners), ZERO)
        violations = []
        if total > settings.ownership_ceiling:
            violations.append(
                f"Total beneficial ownership is {total}%, above {settings.ownership_ceiling}%"
            )
        if owners and not any(o.has_significant_control for o in owners):
            violations.append(
                f"No beneficial owner holds {settings.significant_control_threshold}% or more "
                f"ownership or control"
            )
        return OwnershipValidation(
            is_valid=not violations,
            total_percentage=total,
            violations=violations,
        )

    async def beneficial_ownership_register(self, company_id: uuid.UUID) -> BeneficialOwnershipRegister:
        owners = await self.list_beneficial_owners(company_id)
        return BeneficialOwnershipRegister(
            company_id=company_id,
            generated_on=date.today(),
            total_owners=len(owners),
            significant_control_count=sum(1 for o in owners if o.has_significant_control),
            total_ownership_percentage=sum((o.ownership_percentage for o in owners), ZERO),
            verified_count=sum(1 for o in owners if o.verification_status == VerificationStatus.VERIFIED),
            owners=[BeneficialOwnerResponse.model_validate(o) for o in owners],
        )


# Factory function for dependency injection
def get_capital_service(db: AsyncSession) -> CapitalService:
    """Create a new CapitalService instance."""
    return CapitalService(db)
