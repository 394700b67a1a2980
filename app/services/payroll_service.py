"""
Office Nexus Ledger - Payroll Service

Monthly payroll with Rwandan statutory deductions.

Rwanda Statutory Requirements:
1. PAYE (Pay As You Earn)
   - 15% of the monthly salary above the basic exemption (RWF 30,000)

2. RSSB Pension (Rwanda Social Security Board)
   - Employee: 7.5% of gross
   - Employer: 7.5% of gross

Deductions are rounded half-up to whole francs. Each employee's salary is
posted to the ledger as its own payroll transaction, keyed
PAYROLL-{period}-{employee_id}, so re-running a month never pays twice.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.payroll import PayrollRecord
from app.schemas.events import PayrollEvent
from app.schemas.ledger import PostingResult, TransactionCreate
from app.schemas.payroll import (
    PayrollBreakdown,
    PayrollEmployeeInput,
    PayrollRecordResponse,
    PayrollRunResult,
    PayrollSummary,
)
from app.services.chart_of_accounts import PaymentMethod
from app.services.event_encoder import encode_event
from app.services.posting_engine import PostingEngine
from app.utils.error_handling import BusinessRuleException, ValidationException
from app.utils.money import ZERO, round_money, round_whole, to_decimal
from app.utils.periods import validate_period

logger = logging.getLogger(__name__)


def _account_totals(lines) -> Dict[str, Tuple[Decimal, Decimal]]:
    """(debit, credit) per account code, rounded to cents."""
    totals: Dict[str, Tuple[Decimal, Decimal]] = {}
    for line in lines:
        debit, credit = totals.get(line.account_code, (ZERO, ZERO))
        totals[line.account_code] = (debit + (line.debit or ZERO), credit + (line.credit or ZERO))
    return {code: (round_money(d), round_money(c)) for code, (d, c) in totals.items()}


# ===========================================
# CALCULATOR
# ===========================================

@dataclass(frozen=True)
class PayrollRates:
    """Statutory rates as fractions (0.15 = 15%)."""
    paye_rate: Decimal
    basic_exemption: Decimal
    rssb_employee_rate: Decimal
    rssb_employer_rate: Decimal

    @classmethod
    def from_settings(cls) -> "PayrollRates":
        return cls(
            paye_rate=settings.paye_rate,
            basic_exemption=settings.paye_basic_exemption,
            rssb_employee_rate=settings.rssb_employee_rate,
            rssb_employer_rate=settings.rssb_employer_rate,
        )


class PayrollCalculator:
    """
    Rwanda payroll deductions calculator.

    Example (gross RWF 500,000):
        PAYE          = (500,000 - 30,000) × 15% = 70,500
        RSSB employee = 500,000 × 7.5%           = 37,500
        RSSB employer = 500,000 × 7.5%           = 37,500
        Net salary    = 500,000 - 70,500 - 37,500 = 392,000
    """

    def __init__(self, rates: Optional[PayrollRates] = None):
        self.rates = rates or PayrollRates.from_settings()

    def calculate_paye(self, gross_salary: Decimal) -> Decimal:
        taxable = max(ZERO, gross_salary - self.rates.basic_exemption)
        return round_whole(taxable * self.rates.paye_rate)

    def calculate(self, gross_salary: Any) -> PayrollBreakdown:
        try:
            gross = to_decimal(gross_salary)
        except ArithmeticError:
            raise ValidationException(
                f"Gross salary '{gross_salary}' is not a number",
                field="gross_salary",
            )
        if not gross.is_finite() or gross < 0:
            raise ValidationException(
                f"Gross salary cannot be negative, got {gross_salary}",
                field="gross_salary",
                details={"gross_salary": gross_salary},
            )

        paye = self.calculate_paye(gross)
        rssb_employee = round_whole(gross * self.rates.rssb_employee_rate)
        rssb_employer = round_whole(gross * self.rates.rssb_employer_rate)

        return PayrollBreakdown(
            gross_salary=gross,
            paye=paye,
            rssb_employee=rssb_employee,
            rssb_employer=rssb_employer,
            net_salary=gross - paye - rssb_employee,
        )


# ===========================================
# SERVICE
# ===========================================

class PayrollService:
    """
    Payroll service for running monthly payroll and reading its records.
    """

    def __init__(self, db: AsyncSession, calculator: Optional[PayrollCalculator] = None):
        self.db = db
        self.calculator = calculator or PayrollCalculator()
        self.engine = PostingEngine(db)

    @staticmethod
    def payroll_source_id(period: str, employee_id: str) -> str:
        return f"PAYROLL-{period}-{employee_id}"

    async def _get_record(
        self,
        company_id: uuid.UUID,
        employee_id: str,
        period: str,
    ) -> Optional[PayrollRecord]:
        result = await self.db.execute(
            select(PayrollRecord)
            .where(PayrollRecord.company_id == company_id)
            .where(PayrollRecord.employee_id == employee_id)
            .where(PayrollRecord.period == period)
        )
        return result.scalar_one_or_none()

    async def _check_existing_posting(
        self,
        company_id: uuid.UUID,
        employee_id: str,
        period: str,
        encoded: TransactionCreate,
        result: PostingResult,
    ) -> None:
        """A record may only be linked to a posting carrying the same figures."""
        posting = await self.engine.store.get_transaction(company_id, result.transaction_id)
        posted = _account_totals(posting.entries)
        computed = _account_totals(encoded.entries)
        if posted != computed:
            raise BusinessRuleException(
                f"Payroll for employee {employee_id} in {period} is already on the ledger "
                f"as transaction {posting.id} with different figures",
                rule="PAYROLL_RECORD_MATCHES_POSTING",
                details={
                    "transaction_id": posting.id,
                    "posted": {code: {"debit": d, "credit": c} for code, (d, c) in posted.items()},
                    "computed": {code: {"debit": d, "credit": c} for code, (d, c) in computed.items()},
                },
            )

    async def run_payroll(
        self,
        company_id: uuid.UUID,
        period: str,
        employees: Sequence[Union[PayrollEmployeeInput, Mapping[str, Any]]],
        payment_date: date,
        payment_method: PaymentMethod = PaymentMethod.BANK,
    ) -> PayrollRunResult:
        """
        Pay every employee for the period.

        For each employee:
        1. Skip with a warning when a paid record already exists
        2. Compute PAYE / RSSB
        3. Post the payroll transaction (PAYROLL-{period}-{employee_id})
        4. Store the PayrollRecord linked to the posting, marked paid

        Steps 3 and 4 commit together per employee.
        """
        validate_period(period)
        if not employees:
            raise ValidationException("Payroll run needs at least one employee", field="employees")

        records: List[PayrollRecord] = []
        warnings: List[str] = []
        posted_count = 0
        skipped_count = 0

        for raw in employees:
            employee = (
                raw if isinstance(raw, PayrollEmployeeInput)
                else PayrollEmployeeInput.model_validate(dict(raw))
            )

            existing = await self._get_record(company_id, employee.employee_id, period)
            if existing is not None and existing.is_paid:
                message = f"Employee {employee.employee_id} already paid for {period}; skipped"
                logger.warning(message)
                warnings.append(message)
                records.append(existing)
                skipped_count += 1
                continue

            breakdown = self.calculator.calculate(employee.gross_salary)
            event = PayrollEvent(
                event_date=payment_date,
                description=f"Salary {period} - {employee.name or employee.employee_id}",
                source_id=self.payroll_source_id(period, employee.employee_id),
                payment_method=payment_method,
                party_id=employee.employee_id,
                party_name=employee.name,
                employee_id=employee.employee_id,
                employee_name=employee.name,
                period=period,
                gross_salary=breakdown.gross_salary,
                paye=breakdown.paye,
                rssb_employee=breakdown.rssb_employee,
                rssb_employer=breakdown.rssb_employer,
                net_salary=breakdown.net_salary,
            )
            encoded = encode_event(event)
            result = await self.engine.post(company_id, encoded, commit=False)
            if result.is_duplicate:
                await self._check_existing_posting(company_id, employee.employee_id, period, encoded, result)

            try:
                record = existing
                if record is None:
                    record = PayrollRecord(
                        id=uuid.uuid4(),
                        company_id=company_id,
                        employee_id=employee.employee_id,
                        period=period,
                    )
                    self.db.add(record)
                record.employee_name = employee.name
                record.gross_salary = breakdown.gross_salary
                record.paye = breakdown.paye
                record.rssb_employee = breakdown.rssb_employee
                record.rssb_employer = breakdown.rssb_employer
                record.net_salary = breakdown.net_salary
                record.is_paid = True
                record.ledger_transaction_id = result.transaction_id
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

            records.append(record)
            if result.is_duplicate:
                warnings.extend(result.warnings)
                skipped_count += 1
            else:
                posted_count += 1

        logger.info(
            f"Payroll {period} for company {company_id}: "
            f"{posted_count} posted, {skipped_count} skipped"
        )
        return PayrollRunResult(
            period=period,
            records=[PayrollRecordResponse.model_validate(r) for r in records],
            posted_count=posted_count,
            skipped_count=skipped_count,
            warnings=warnings,
        )

    async def get_payroll_records(self, company_id: uuid.UUID, period: str) -> List[PayrollRecord]:
        validate_period(period)
        result = await self.db.execute(
            select(PayrollRecord)
            .where(PayrollRecord.company_id == company_id)
            .where(PayrollRecord.period == period)
            .order_by(PayrollRecord.employee_id)
        )
        return list(result.scalars().all())

    async def get_payroll_summary(self, company_id: uuid.UUID, period: str) -> Optional[PayrollSummary]:
        """Totals for the period, or None when nothing was recorded."""
        records = await self.get_payroll_records(company_id, period)
        if not records:
            return None

        totals: Dict[str, Decimal] = {
            "gross": ZERO, "paye": ZERO, "rssb_employee": ZERO, "rssb_employer": ZERO, "net": ZERO,
        }
        for record in records:
            totals["gross"] += record.gross_salary
            totals["paye"] += record.paye
            totals["rssb_employee"] += record.rssb_employee
            totals["rssb_employer"] += record.rssb_employer
            totals["net"] += record.net_salary

        paid_count = sum(1 for r in records if r.is_paid)
        return PayrollSummary(
            period=period,
            employee_count=len(records),
            total_gross=totals["gross"],
            total_paye=totals["paye"],
            total_rssb_employee=totals["rssb_employee"],
            total_rssb_employer=totals["rssb_employer"],
            total_net=totals["net"],
            total_employer_cost=totals["gross"] + totals["rssb_employer"],
            paid_count=paid_count,
            unpaid_count=len(records) - paid_count,
        )


# Factory function for dependency injection
def get_payroll_service(db: AsyncSession) -> PayrollService:
    """Create a new PayrollService instance."""
    return PayrollService(db)
