"""
Office Nexus Ledger - PAYE Return Service

Monthly PAYE / RSSB return built from payroll postings.

Rwanda payroll withholding:
- PAYE: 15% of the monthly salary above the basic exemption (RWF 30,000)
- RSSB pension: 7.5% employee + 7.5% employer

Ledger totals come from PAYE Payable (2102), RSSB Payable (2103) and
Salaries and Wages (5001) lines posted from payroll. The per-employee rows
are the PayrollRecords whose ledger transaction falls inside the period.
"""

import uuid
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.ledger import LedgerTransaction, SourceType
from app.models.payroll import PayrollRecord
from app.schemas.tax import PAYEEmployeeRow, PAYEReturn
from app.services.chart_of_accounts import ACCOUNT_CODES
from app.services.ledger_store import LedgerStore
from app.utils.error_handling import ValidationException
from app.utils.money import ZERO
from app.utils.periods import monthly_filing_due_date


class PAYEService:
    """PAYE return derived from the ledger and payroll records."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = LedgerStore(db)

    async def _payroll_total(
        self,
        company_id: uuid.UUID,
        account_code: str,
        side: str,
        start_date: date,
        end_date: date,
    ):
        reverse_side = "credit" if side == "debit" else "debit"
        posted = await self.store.side_total(
            company_id, [account_code], side, start_date, end_date, SourceType.PAYROLL,
        )
        reversed_ = await self.store.reversed_side_total(
            company_id, [account_code], reverse_side, SourceType.PAYROLL, start_date, end_date,
        )
        return posted - reversed_

    async def get_paye_return(
        self,
        company_id: uuid.UUID,
        start_date: date,
        end_date: date,
    ) -> PAYEReturn:
        if end_date < start_date:
            raise ValidationException(
                f"Period end {end_date} is before period start {start_date}",
                field="end",
                details={"start": start_date, "end": end_date},
            )

        total_paye = await self._payroll_total(
            company_id, ACCOUNT_CODES["PAYE_PAYABLE"], "credit", start_date, end_date,
        )
        total_rssb = await self._payroll_total(
            company_id, ACCOUNT_CODES["RSSB_PAYABLE"], "credit", start_date, end_date,
        )
        total_salary_expense = await self._payroll_total(
            company_id, ACCOUNT_CODES["SALARIES_AND_WAGES"], "debit", start_date, end_date,
        )

        result = await self.db.execute(
            select(PayrollRecord, LedgerTransaction.id)
            .join(LedgerTransaction, LedgerTransaction.id == PayrollRecord.ledger_transaction_id)
            .where(PayrollRecord.company_id == company_id)
            .where(LedgerTransaction.company_id == company_id)
            .where(LedgerTransaction.transaction_date >= start_date)
            .where(LedgerTransaction.transaction_date <= end_date)
            .order_by(PayrollRecord.period, PayrollRecord.employee_id)
        )
        rows = result.all()
        reversed_ids = await self.store.reversed_transaction_ids(
            company_id, [tx_id for _, tx_id in rows],
        )

        employees = [
            PAYEEmployeeRow(
                employee_id=record.employee_id,
                employee_name=record.employee_name,
                period=record.period,
                gross_salary=record.gross_salary,
                paye=record.paye,
                rssb_employee=record.rssb_employee,
                rssb_employer=record.rssb_employer,
                net_salary=record.net_salary,
                ledger_transaction_id=tx_id,
            )
            for record, tx_id in rows
            if tx_id not in reversed_ids
        ]

        return PAYEReturn(
            company_id=company_id,
            period_start=start_date,
            period_end=end_date,
            total_gross_salary=sum((row.gross_salary for row in employees), ZERO),
            total_salary_expense=total_salary_expense,
            total_paye=total_paye,
            total_rssb=total_rssb,
            employee_count=len(employees),
            employees=employees,
            due_date=monthly_filing_due_date(end_date),
        )
