"""
Office Nexus Ledger - VAT Calculator Service

VAT calculation and the monthly VAT return for Rwandan VAT compliance.

Rwanda VAT Rate: 18% (standard rate, configurable)

The return is derived from the ledger:
- Output VAT: credits on VAT Payable (2101) posted from invoices
- Input VAT: debits on VAT Input (1401) posted from purchases
- Net VAT payable = output - input (negative means a credit to carry)
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.ledger import SourceType
from app.schemas.ledger import LedgerEntryResponse
from app.schemas.tax import VATReturn
from app.services.chart_of_accounts import ACCOUNT_CODES, CHART_OF_ACCOUNTS
from app.services.ledger_store import LedgerStore
from app.utils.error_handling import ValidationException
from app.utils.money import ZERO, round_money
from app.utils.periods import monthly_filing_due_date


class VATCalculator:
    """
    VAT calculation utilities.

    Rates are fractions (0.18), not percentages.
    """

    @staticmethod
    def calculate_vat(net_amount: Decimal, vat_rate: Optional[Decimal] = None) -> Decimal:
        """VAT on a VAT-exclusive amount."""
        rate = settings.vat_rate if vat_rate is None else vat_rate
        return round_money(net_amount * rate)

    @staticmethod
    def split_inclusive(gross_amount: Decimal, vat_rate: Optional[Decimal] = None) -> Tuple[Decimal, Decimal]:
        """
        Split a VAT-inclusive amount into (net, vat).

        vat = gross * rate / (1 + rate), rounded to cents; net takes the
        remainder so net + vat == gross exactly.

        Example: 118,000 at 18% -> (100,000.00, 18,000.00)
        """
        rate = settings.vat_rate if vat_rate is None else vat_rate
        vat = round_money(gross_amount * rate / (Decimal("1") + rate))
        return gross_amount - vat, vat


class VATService:
    """Builds VAT returns from posted ledger entries."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = LedgerStore(db)

    async def get_vat_return(
        self,
        company_id: uuid.UUID,
        start_date: date,
        end_date: date,
    ) -> VATReturn:
        """
        VAT return for [start_date, end_date].

        Reversals of invoices and purchases inside the period are netted
        off so a reversed document does not count.
        """
        if end_date < start_date:
            raise ValidationException(
                f"Period end {end_date} is before period start {start_date}",
                field="end",
                details={"start": start_date, "end": end_date},
            )

        vat_payable = ACCOUNT_CODES["VAT_PAYABLE"]
        vat_input = ACCOUNT_CODES["VAT_INPUT"]

        sales_vat = await self.store.side_total(
            company_id, [vat_payable], "credit", start_date, end_date, SourceType.INVOICE,
        ) - await self.store.reversed_side_total(
            company_id, [vat_payable], "debit", SourceType.INVOICE, start_date, end_date,
        )
        purchase_vat = await self.store.side_total(
            company_id, [vat_input], "debit", start_date, end_date, SourceType.PURCHASE,
        ) - await self.store.reversed_side_total(
            company_id, [vat_input], "credit", SourceType.PURCHASE, start_date, end_date,
        )

        sales_revenue = ACCOUNT_CODES["SALES_REVENUE"]
        total_sales = await self.store.side_total(
            company_id, [sales_revenue], "credit", start_date, end_date, SourceType.INVOICE,
        ) - await self.store.reversed_side_total(
            company_id, [sales_revenue], "debit", SourceType.INVOICE, start_date, end_date,
        )

        purchase_totals = await self.store.totals_by_account(
            company_id, start_date, end_date, source_type=SourceType.PURCHASE,
        )
        purchase_codes = [code for code in CHART_OF_ACCOUNTS if code != vat_input]
        total_purchases = sum(
            (debit for code, debit, _ in purchase_totals if code != vat_input), ZERO,
        ) - await self.store.reversed_side_total(
            company_id, purchase_codes, "credit", SourceType.PURCHASE, start_date, end_date,
        )

        entries = await self.store.list_entries(
            company_id, start_date, end_date, [vat_payable], SourceType.INVOICE,
        ) + await self.store.list_entries(
            company_id, start_date, end_date, [vat_input], SourceType.PURCHASE,
        )
        entries.sort(key=lambda e: (e.entry_date, e.created_at, e.line_number))

        return VATReturn(
            company_id=company_id,
            period_start=start_date,
            period_end=end_date,
            total_sales=total_sales,
            total_purchases=total_purchases,
            sales_vat=sales_vat,
            purchase_vat=purchase_vat,
            net_vat_payable=sales_vat - purchase_vat,
            due_date=monthly_filing_due_date(end_date),
            entries=[LedgerEntryResponse.model_validate(e) for e in entries],
        )
