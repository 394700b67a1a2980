"""
Office Nexus Ledger - CIT Calculator Service

Corporate Income Tax (CIT) for Rwandan tax compliance.

CIT Rate: 30% of taxable profit (configurable)

The annual return uses the full calendar year of ledger activity:
- Turnover: net credits on Revenue accounts (4xxx)
- Expenses: net debits on Expense accounts (5xxx)
- CIT payable: 30% of profit, never negative

Filing deadline: 31 March of the following year.
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.schemas.tax import CITBreakdownRow, CITReturn
from app.services.chart_of_accounts import AccountCategory, get_account, is_known_account
from app.services.ledger_store import LedgerStore
from app.utils.error_handling import ValidationException
from app.utils.money import ZERO, round_money
from app.utils.periods import annual_filing_due_date


class CITCalculator:
    """
    Corporate Income Tax calculator.

    Losses are not taxed; there is no minimum tax.
    """

    @staticmethod
    def calculate_cit(profit: Decimal, cit_rate: Optional[Decimal] = None) -> Decimal:
        """
        CIT due on a profit figure.

        Args:
            profit: Turnover less expenses (may be negative)
            cit_rate: Fraction, defaults to settings.cit_rate (0.30)

        Returns:
            Tax due, rounded to cents, zero for a loss
        """
        rate = settings.cit_rate if cit_rate is None else cit_rate
        if profit <= 0:
            return ZERO
        return round_money(profit * rate)

    @staticmethod
    def year_range(year: int) -> Tuple[date, date]:
        if year < 1900 or year > 9999:
            raise ValidationException(
                f"Year {year} is out of range",
                field="year",
                details={"year": year},
            )
        return date(year, 1, 1), date(year, 12, 31)


class CITService:
    """CIT return derived from the ledger."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = LedgerStore(db)

    async def get_cit_return(self, company_id: uuid.UUID, year: int) -> CITReturn:
        start_date, end_date = CITCalculator.year_range(year)
        totals = await self.store.totals_by_account(company_id, start_date, end_date)

        revenue_rows: List[CITBreakdownRow] = []
        expense_rows: List[CITBreakdownRow] = []
        for code, debit, credit in totals:
            if not is_known_account(code):
                continue
            account = get_account(code)
            if account.category == AccountCategory.REVENUE:
                revenue_rows.append(CITBreakdownRow(
                    account_code=code,
                    account_name=account.name,
                    category=account.category.value,
                    amount=credit - debit,
                ))
            elif account.category == AccountCategory.EXPENSE:
                expense_rows.append(CITBreakdownRow(
                    account_code=code,
                    account_name=account.name,
                    category=account.category.value,
                    amount=debit - credit,
                ))

        turnover = sum((row.amount for row in revenue_rows), ZERO)
        total_expenses = sum((row.amount for row in expense_rows), ZERO)
        profit = turnover - total_expenses

        return CITReturn(
            company_id=company_id,
            year=year,
            turnover=turnover,
            total_expenses=total_expenses,
            profit=profit,
            cit_rate=settings.cit_rate,
            cit_payable=CITCalculator.calculate_cit(profit),
            due_date=annual_filing_due_date(year),
            revenue_breakdown=revenue_rows,
            expense_breakdown=expense_rows,
        )
