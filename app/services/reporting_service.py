"""
Office Nexus Ledger - Reporting Service

Financial and tax reporting derived from the ledger on read.

Reports:
- Trial Balance (and account balances)
- General Ledger / Audit Trail
- Financial Summary
- VAT, PAYE, CIT and QIT returns
- Tax Summary (what is due next, and when)

Nothing here writes or caches. Every figure is recomputed from
ledger_entries, so reports are always consistent with what was posted.
"""

import uuid
from datetime import date
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.ledger import SourceType
from app.schemas.ledger import (
    AccountBalanceResponse,
    FinancialSummary,
    LedgerEntryResponse,
    LedgerTransactionResponse,
    TrialBalanceReport,
    TrialBalanceRow,
)
from app.schemas.tax import (
    CITReturn, PAYEReturn, QITReturnResponse, TaxObligation, TaxSummary, VATReturn,
)
from app.services.chart_of_accounts import AccountCategory, CHART_OF_ACCOUNTS, get_account
from app.services.ledger_store import LedgerStore
from app.services.tax_calculators import CITService, PAYEService, QITService, VATService
from app.utils.money import ZERO
from app.utils.periods import (
    annual_filing_due_date,
    month_period,
    monthly_filing_due_date,
    period_of,
    quarter_of,
)


class ReportingService:
    """Service for generating financial and tax reports."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = LedgerStore(db)

    # ===========================================
    # TRIAL BALANCE
    # ===========================================

    async def get_trial_balance(
        self,
        company_id: uuid.UUID,
        as_of: Optional[date] = None,
    ) -> List[TrialBalanceRow]:
        """
        Per-account debit and credit totals for entries dated on or before as_of.

        Rows are sorted by account code. balance = debit_total - credit_total.
        """
        as_of = as_of or date.today()
        totals = await self.store.totals_by_account(company_id, end_date=as_of)
        rows = []
        for code, debit, credit in totals:
            account = CHART_OF_ACCOUNTS.get(code)
            rows.append(TrialBalanceRow(
                account_code=code,
                account_name=account.name if account else code,
                debit_total=debit,
                credit_total=credit,
                balance=debit - credit,
            ))
        return rows

    def summarize_trial_balance(
        self,
        company_id: uuid.UUID,
        as_of: date,
        rows: List[TrialBalanceRow],
    ) -> TrialBalanceReport:
        total_debits = sum((row.debit_total for row in rows), ZERO)
        total_credits = sum((row.credit_total for row in rows), ZERO)
        return TrialBalanceReport(
            company_id=company_id,
            as_of_date=as_of,
            total_debits=total_debits,
            total_credits=total_credits,
            is_balanced=abs(total_debits - total_credits) <= settings.balance_tolerance,
            rows=rows,
        )

    async def get_trial_balance_report(
        self,
        company_id: uuid.UUID,
        as_of: Optional[date] = None,
    ) -> TrialBalanceReport:
        as_of = as_of or date.today()
        rows = await self.get_trial_balance(company_id, as_of)
        return self.summarize_trial_balance(company_id, as_of, rows)

    async def get_account_balance(
        self,
        company_id: uuid.UUID,
        account_code: str,
        as_of: Optional[date] = None,
    ) -> AccountBalanceResponse:
        """Σdebit - Σcredit for one account. Unknown codes raise UnknownAccountError."""
        account = get_account(account_code)
        as_of = as_of or date.today()
        totals = await self.store.totals_by_account(
            company_id, end_date=as_of, account_codes=[account.code],
        )
        balance = sum((debit - credit for _, debit, credit in totals), ZERO)
        return AccountBalanceResponse(
            account_code=account.code,
            account_name=account.name,
            as_of_date=as_of,
            balance=balance,
        )

    # ===========================================
    # GENERAL LEDGER / AUDIT TRAIL
    # ===========================================

    async def get_general_ledger(
        self,
        company_id: uuid.UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_code: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[LedgerEntryResponse]:
        """Ledger lines, newest first."""
        account_codes = [get_account(account_code).code] if account_code else None
        entries = await self.store.list_entries(
            company_id,
            start_date=start_date,
            end_date=end_date,
            account_codes=account_codes,
            newest_first=True,
            limit=limit,
        )
        return [LedgerEntryResponse.model_validate(e) for e in entries]

    async def get_audit_trail(
        self,
        company_id: uuid.UUID,
        source_type: Optional[SourceType] = None,
        source_id: Optional[str] = None,
    ) -> List[LedgerTransactionResponse]:
        """Postings (with their lines) for a source document or source type."""
        transactions = await self.store.list_transactions(company_id, source_type, source_id)
        return [LedgerTransactionResponse.model_validate(t) for t in transactions]

    # ===========================================
    # FINANCIAL SUMMARY
    # ===========================================

    async def get_financial_summary(
        self,
        company_id: uuid.UUID,
        as_of: Optional[date] = None,
    ) -> FinancialSummary:
        """
        Headline figures from the trial balance.

        Debit-normal categories (assets, expenses) report debit - credit;
        the rest report credit - debit.
        """
        as_of = as_of or date.today()
        by_category = {category: ZERO for category in AccountCategory}
        for row in await self.get_trial_balance(company_id, as_of):
            account = CHART_OF_ACCOUNTS.get(row.account_code)
            if account is None:
                continue
            signed = row.balance if account.is_debit_normal else -row.balance
            by_category[account.category] += signed

        revenue = by_category[AccountCategory.REVENUE]
        expenses = by_category[AccountCategory.EXPENSE]
        return FinancialSummary(
            company_id=company_id,
            as_of_date=as_of,
            revenue=revenue,
            expenses=expenses,
            profit=revenue - expenses,
            assets=by_category[AccountCategory.ASSET],
            liabilities=by_category[AccountCategory.LIABILITY],
            equity=by_category[AccountCategory.EQUITY],
        )

    # ===========================================
    # TAX RETURNS
    # ===========================================

    async def get_vat_return(self, company_id: uuid.UUID, start_date: date, end_date: date) -> VATReturn:
        return await VATService(self.db).get_vat_return(company_id, start_date, end_date)

    async def get_paye_return(self, company_id: uuid.UUID, start_date: date, end_date: date) -> PAYEReturn:
        return await PAYEService(self.db).get_paye_return(company_id, start_date, end_date)

    async def get_cit_return(self, company_id: uuid.UUID, year: int) -> CITReturn:
        return await CITService(self.db).get_cit_return(company_id, year)

    async def get_qit_return(self, company_id: uuid.UUID, quarter: str, year: int) -> QITReturnResponse:
        return await QITService(self.db).get_qit_return(company_id, quarter, year)

    async def get_tax_summary(
        self,
        company_id: uuid.UUID,
        as_of: Optional[date] = None,
    ) -> TaxSummary:
        """
        Taxes due for the period containing as_of.

        - VAT and PAYE: the calendar month of as_of, due the 15th of the next month
        - CIT: the calendar year of as_of, due 31 March of the next year
        - QIT: the quarter of as_of, zero once marked paid
        """
        as_of = as_of or date.today()
        period = period_of(as_of)
        month_start, month_end = month_period(period)

        vat = await self.get_vat_return(company_id, month_start, month_end)
        paye = await self.get_paye_return(company_id, month_start, month_end)
        cit = await self.get_cit_return(company_id, as_of.year)
        quarter = quarter_of(as_of)
        qit = await self.get_qit_return(company_id, quarter, as_of.year)

        vat_due = max(ZERO, vat.net_vat_payable)
        paye_due = paye.total_paye
        cit_due = cit.cit_payable
        qit_due = ZERO if qit.paid else qit.tax_amount

        obligations = [
            TaxObligation(tax_type="VAT", period=period, amount_due=vat_due,
                          due_date=monthly_filing_due_date(month_end)),
            TaxObligation(tax_type="PAYE", period=period, amount_due=paye_due,
                          due_date=monthly_filing_due_date(month_end)),
            TaxObligation(tax_type="QIT", period=f"{quarter} {as_of.year}", amount_due=qit_due,
                          due_date=qit.due_date),
            TaxObligation(tax_type="CIT", period=str(as_of.year), amount_due=cit_due,
                          due_date=annual_filing_due_date(as_of.year)),
        ]
        obligations.sort(key=lambda o: o.due_date)

        return TaxSummary(
            company_id=company_id,
            as_of_date=as_of,
            vat_due=vat_due,
            paye_due=paye_due,
            cit_due=cit_due,
            qit_due=qit_due,
            total_due=vat_due + paye_due + cit_due + qit_due,
            obligations=obligations,
        )


# Factory function for dependency injection
def get_reporting_service(db: AsyncSession) -> ReportingService:
    """Create a new ReportingService instance."""
    return ReportingService(db)
