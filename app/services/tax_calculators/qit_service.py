"""
Office Nexus Ledger - QIT Service

Quarterly Income Tax (QIT) prepayments.

QIT is declared from estimated income for the quarter:
    tax_amount = estimated_income × tax_rate / 100

Due dates: Q1 → 31 Mar, Q2 → 30 Jun, Q3 → 30 Sep, Q4 → 31 Dec.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.tax import QITReturn
from app.schemas.tax import QITReturnResponse
from app.utils.error_handling import validate_amount, ValidationException
from app.utils.money import ZERO, round_money
from app.utils.periods import quarter_due_date, validate_quarter

logger = logging.getLogger(__name__)


class QITCalculator:
    """QIT calculation utilities. Rates are percentages (30 = 30%)."""

    @staticmethod
    def calculate_tax(estimated_income: Decimal, tax_rate: Optional[Decimal] = None) -> Decimal:
        rate = settings.qit_default_rate if tax_rate is None else tax_rate
        if rate < 0 or rate > 100:
            raise ValidationException(
                f"QIT rate must be between 0 and 100 percent, got {rate}",
                field="tax_rate",
                details={"tax_rate": rate},
            )
        return round_money(estimated_income * rate / Decimal("100"))


class QITService:
    """Stores and reads quarterly income tax declarations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _find(self, company_id: uuid.UUID, quarter: str, year: int) -> Optional[QITReturn]:
        result = await self.db.execute(
            select(QITReturn)
            .where(QITReturn.company_id == company_id)
            .where(QITReturn.quarter == quarter)
            .where(QITReturn.year == year)
        )
        return result.scalar_one_or_none()

    async def get_qit_return(
        self,
        company_id: uuid.UUID,
        quarter: str,
        year: int,
    ) -> QITReturnResponse:
        """
        Stored QIT record, or an unsaved zero declaration at the default rate
        when nothing has been recorded for the quarter yet.
        """
        quarter = validate_quarter(quarter)
        record = await self._find(company_id, quarter, year)
        if record is not None:
            return QITReturnResponse.model_validate(record)

        return QITReturnResponse(
            company_id=company_id,
            quarter=quarter,
            year=year,
            estimated_income=ZERO,
            tax_rate=settings.qit_default_rate,
            tax_amount=ZERO,
            due_date=quarter_due_date(quarter, year),
            paid=False,
            is_stored=False,
        )

    async def record_qit(
        self,
        company_id: uuid.UUID,
        quarter: str,
        year: int,
        estimated_income: Decimal,
        tax_rate: Optional[Decimal] = None,
        paid: bool = False,
        paid_date: Optional[date] = None,
        proof_reference: Optional[str] = None,
    ) -> QITReturnResponse:
        """Create or update the QIT declaration for a quarter."""
        quarter = validate_quarter(quarter)
        income = validate_amount(estimated_income, "estimated_income", allow_zero=True)
        rate = settings.qit_default_rate if tax_rate is None else Decimal(str(tax_rate))
        tax_amount = QITCalculator.calculate_tax(income, rate)
        if paid and paid_date is None:
            paid_date = date.today()

        record = await self._find(company_id, quarter, year)
        if record is None:
            record = QITReturn(
                id=uuid.uuid4(),
                company_id=company_id,
                quarter=quarter,
                year=year,
                due_date=quarter_due_date(quarter, year),
            )
            self.db.add(record)

        record.estimated_income = income
        record.tax_rate = rate
        record.tax_amount = tax_amount
        record.paid = paid
        record.paid_date = paid_date if paid else None
        record.proof_reference = proof_reference

        await self.db.commit()
        logger.info(f"Recorded QIT {quarter} {year} for company {company_id}: {tax_amount}")
        return QITReturnResponse.model_validate(record)

    async def list_qit(self, company_id: uuid.UUID, year: int) -> List[QITReturnResponse]:
        result = await self.db.execute(
            select(QITReturn)
            .where(QITReturn.company_id == company_id)
            .where(QITReturn.year == year)
            .order_by(QITReturn.quarter)
        )
        return [QITReturnResponse.model_validate(r) for r in result.scalars().all()]
