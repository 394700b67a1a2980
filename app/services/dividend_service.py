"""
Office Nexus Ledger - Dividend Service

Dividend lifecycle: declare (draft) -> confirm (posted) -> distribute -> pay.

Ledger postings:
- Confirmation:  Dr Retained Earnings (3002)  Cr Dividend Payable (2201)
  keyed on the declaration id
- Payment:       Dr Dividend Payable (2201)   Cr cash/bank
  keyed on the distribution id

The distributions of a declaration always sum to exactly its pool: each
holder gets round(shares × pool / total_shares) and the rounding residual
goes to the largest holder (the first listed on a tie).
"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.capital import DeclarationStatus, DividendDeclaration, DividendDistribution
from app.schemas.capital import DividendSummary, ShareholderSnapshot
from app.schemas.events import DividendDeclarationEvent, DividendPaymentEvent
from app.services.capital_service import CapitalService
from app.services.chart_of_accounts import PaymentMethod
from app.services.event_encoder import encode_event
from app.services.posting_engine import PostingEngine
from app.utils.error_handling import (
    BusinessRuleException,
    DeclarationNotConfirmed,
    NotFoundException,
    ValidationException,
    validate_amount,
)
from app.utils.money import ZERO, round_money

logger = logging.getLogger(__name__)


def allocate_pool(pool: Decimal, holdings: Sequence[int]) -> List[Decimal]:
    """
    Split pool across holdings pro rata, to the cent, summing exactly to pool.

    The residual left by rounding goes to the largest holding; on a tie the
    earliest one in the sequence wins.
    """
    total_shares = sum(holdings)
    if total_shares <= 0:
        raise ValidationException(
            "Cannot distribute a dividend over zero shares",
            field="shareholders",
        )
    amounts = [round_money(Decimal(shares) * pool / Decimal(total_shares)) for shares in holdings]
    residual = pool - sum(amounts, ZERO)
    if residual != ZERO:
        largest = max(range(len(holdings)), key=lambda i: holdings[i])
        amounts[largest] += residual
    return amounts


class DividendService:
    """Service for declaring, distributing and paying dividends."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.engine = PostingEngine(db)
        self.capital = CapitalService(db)

    # ===========================================
    # DECLARATIONS
    # ===========================================

    async def declare_dividend(
        self,
        company_id: uuid.UUID,
        profit_amount: Decimal,
        dividend_percentage: Decimal,
        approved_by: str,
        declaration_date: date,
        notes: Optional[str] = None,
    ) -> DividendDeclaration:
        """Create a draft declaration. pool = round2(profit × percentage / 100)."""
        profit = validate_amount(profit_amount, field="profit_amount")
        pct = validate_amount(dividend_percentage, field="dividend_percentage")
        if pct > 100:
            raise ValidationException(
                f"Dividend percentage must be at most 100, got {pct}",
                field="dividend_percentage",
                details={"dividend_percentage": pct},
            )
        if not approved_by:
            raise ValidationException("approved_by is required", field="approved_by")

        declaration = DividendDeclaration(
            id=uuid.uuid4(),
            company_id=company_id,
            declaration_date=declaration_date,
            profit_amount=round_money(profit),
            dividend_percentage=pct,
            dividend_pool=round_money(profit * pct / Decimal("100")),
            approved_by=approved_by,
            notes=notes,
            status=DeclarationStatus.DRAFT,
        )
        declaration.distributions = []
        self.db.add(declaration)
        await self.db.commit()
        logger.info(
            f"Declared dividend {declaration.id} for company {company_id}: pool {declaration.dividend_pool}"
        )
        return declaration

    async def get_declaration(self, company_id: uuid.UUID, declaration_id: uuid.UUID) -> DividendDeclaration:
        result = await self.db.execute(
            select(DividendDeclaration)
            .where(DividendDeclaration.company_id == company_id)
            .where(DividendDeclaration.id == declaration_id)
        )
        declaration = result.scalar_one_or_none()
        if declaration is None:
            raise NotFoundException("DividendDeclaration", declaration_id)
        return declaration

    async def list_declarations(self, company_id: uuid.UUID) -> List[DividendDeclaration]:
        result = await self.db.execute(
            select(DividendDeclaration)
            .where(DividendDeclaration.company_id == company_id)
            .order_by(DividendDeclaration.declaration_date, DividendDeclaration.created_at)
        )
        return list(result.scalars().all())

    async def confirm_declaration(self, company_id: uuid.UUID, declaration_id: uuid.UUID) -> DividendDeclaration:
        """Move a draft to confirmed and post Dr 3002 / Cr 2201 for the pool."""
        declaration = await self.get_declaration(company_id, declaration_id)
        if declaration.status != DeclarationStatus.DRAFT:
            raise BusinessRuleException(
                f"Dividend declaration {declaration_id} is '{declaration.status.value}'; only drafts can be confirmed",
                rule="DECLARATION_DRAFT",
                details={"declaration_id": declaration_id, "status": declaration.status.value},
            )

        event = DividendDeclarationEvent(
            event_date=declaration.declaration_date,
            amount=declaration.dividend_pool,
            declaration_id=declaration.id,
            source_id=str(declaration.id),
            description=f"Dividend declared ({declaration.dividend_percentage}% of {declaration.profit_amount})",
        )

        async def mark_confirmed(db: AsyncSession) -> None:
            declaration.status = DeclarationStatus.CONFIRMED

        result = await self.engine.post(company_id, encode_event(event), before_commit=mark_confirmed)

        declaration = await self.get_declaration(company_id, declaration_id)
        declaration.status = DeclarationStatus.CONFIRMED
        declaration.ledger_transaction_id = result.transaction_id
        await self.db.commit()
        return declaration

    # ===========================================
    # DISTRIBUTIONS
    # ===========================================

    async def _snapshot(
        self,
        company_id: uuid.UUID,
        shareholders: Optional[Sequence[Union[ShareholderSnapshot, Mapping[str, Any]]]],
    ) -> List[ShareholderSnapshot]:
        if shareholders is None:
            registry = await self.capital.list_shareholders(company_id, active_only=True)
            snapshot = [
                ShareholderSnapshot(shareholder_ref=h.shareholder_ref, name=h.name, shares_held=h.shares_held)
                for h in registry
            ]
        else:
            snapshot = []
            for holder in shareholders:
                if isinstance(holder, ShareholderSnapshot):
                    snapshot.append(holder)
                    continue
                try:
                    snapshot.append(ShareholderSnapshot.model_validate(dict(holder)))
                except PydanticValidationError as exc:
                    raise ValidationException(
                        f"Invalid shareholder snapshot: {exc.errors()[0]['msg']}",
                        field="shareholders",
                    )
        return [h for h in snapshot if h.shares_held > 0]

    async def distribute_dividend(
        self,
        company_id: uuid.UUID,
        declaration_id: uuid.UUID,
        shareholders: Optional[Sequence[Union[ShareholderSnapshot, Mapping[str, Any]]]] = None,
    ) -> DividendDeclaration:
        """
        Compute each holder's share of a confirmed declaration's pool.

        Existing (unpaid) distributions are replaced.
        """
        declaration = await self.get_declaration(company_id, declaration_id)
        if declaration.status != DeclarationStatus.CONFIRMED:
            raise DeclarationNotConfirmed(declaration_id, declaration.status.value)
        if any(d.is_paid for d in declaration.distributions):
            raise BusinessRuleException(
                f"Dividend declaration {declaration_id} already has paid distributions",
                rule="DISTRIBUTIONS_UNPAID",
                details={"declaration_id": declaration_id},
            )

        snapshot = await self._snapshot(company_id, shareholders)
        if not snapshot:
            raise ValidationException(
                "No shareholders with shares to distribute to",
                field="shareholders",
            )

        amounts = allocate_pool(declaration.dividend_pool, [h.shares_held for h in snapshot])
        try:
            declaration.distributions = [
                DividendDistribution(
                    id=uuid.uuid4(),
                    company_id=company_id,
                    declaration_id=declaration.id,
                    position=position,
                    shareholder_ref=holder.shareholder_ref,
                    shareholder_name=holder.name,
                    shares_held_at_time=holder.shares_held,
                    amount=amount,
                    is_paid=False,
                )
                for position, (holder, amount) in enumerate(zip(snapshot, amounts))
            ]
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"Distributed dividend {declaration_id} across {len(snapshot)} shareholders "
            f"({sum(h.shares_held for h in snapshot)} shares)"
        )
        return declaration

    async def _get_distribution(self, company_id: uuid.UUID, distribution_id: uuid.UUID) -> DividendDistribution:
        result = await self.db.execute(
            select(DividendDistribution)
            .where(DividendDistribution.company_id == company_id)
            .where(DividendDistribution.id == distribution_id)
        )
        distribution = result.scalar_one_or_none()
        if distribution is None:
            raise NotFoundException("DividendDistribution", distribution_id)
        return distribution

    async def pay_distribution(
        self,
        company_id: uuid.UUID,
        distribution_id: uuid.UUID,
        paid_on: date,
        payment_method: PaymentMethod = PaymentMethod.BANK,
        proof_url: Optional[str] = None,
    ) -> DividendDistribution:
        """
        Mark a distribution paid and post Dr 2201 / Cr cash for it.

        Paying an already paid distribution is a no-op. The declaration
        becomes 'paid' once all its distributions are.
        """
        distribution = await self._get_distribution(company_id, distribution_id)
        if distribution.is_paid:
            logger.info(f"Distribution {distribution_id} already paid; nothing to do")
            return distribution

        declaration = await self.get_declaration(company_id, distribution.declaration_id)

        async def mark_paid(db: AsyncSession) -> None:
            distribution.is_paid = True
            distribution.paid_on = paid_on
            distribution.payment_proof_url = proof_url
            if all(d.is_paid for d in declaration.distributions):
                declaration.status = DeclarationStatus.PAID

        if distribution.amount == ZERO:
            await mark_paid(self.db)
            await self.db.commit()
            return distribution

        event = DividendPaymentEvent(
            event_date=paid_on,
            amount=distribution.amount,
            shareholder_id=distribution.shareholder_ref,
            distribution_id=distribution.id,
            source_id=str(distribution.id),
            payment_method=payment_method,
            party_name=distribution.shareholder_name,
        )
        result = await self.engine.post(company_id, encode_event(event), before_commit=mark_paid)

        distribution = await self._get_distribution(company_id, distribution_id)
        if not distribution.is_paid:
            # Payment was already on the ledger; bring the distribution in line
            declaration = await self.get_declaration(company_id, distribution.declaration_id)
            await mark_paid(self.db)
        distribution.ledger_transaction_id = result.transaction_id
        await self.db.commit()
        return distribution

    # ===========================================
    # SUMMARY
    # ===========================================

    async def get_dividend_summary(self, company_id: uuid.UUID) -> DividendSummary:
        declarations = await self.list_declarations(company_id)
        by_status: Dict[str, int] = {status.value: 0 for status in DeclarationStatus}
        total_declared = total_distributed = total_paid = ZERO
        for declaration in declarations:
            by_status[declaration.status.value] += 1
            if declaration.status != DeclarationStatus.DRAFT:
                total_declared += declaration.dividend_pool
            for distribution in declaration.distributions:
                total_distributed += distribution.amount
                if distribution.is_paid:
                    total_paid += distribution.amount

        return DividendSummary(
            company_id=company_id,
            declaration_count=len(declarations),
            by_status=by_status,
            total_declared=total_declared,
            total_distributed=total_distributed,
            total_paid=total_paid,
            total_outstanding=total_declared - total_paid,
        )


# Factory function for dependency injection
def get_dividend_service(db: AsyncSession) -> DividendService:
    """Create a new DividendService instance."""
    return DividendService(db)
