"""
Office Nexus Ledger - Event Encoder

Turns a business event into a balanced TransactionCreate. Pure and
deterministic: the same event always encodes to the same lines, source
type and source id, which is what makes replaying events safe.

Journal templates (S = settlement account for the payment method):

    sale                  Dr S / 1101        Cr revenue (net), Cr 2101 (VAT)
    income                Dr S / 1101        Cr revenue
    purchase              Dr expense (net), Dr 1401 (VAT)   Cr S / 2001
    expense               Dr expense         Cr S / 2001
    asset_acquisition     Dr 1301            Cr S / 2001
    payroll               Dr 5001 (gross + employer RSSB)
                          Cr S (net), Cr 2102 (PAYE), Cr 2103 (both RSSB)
    capital_contribution  Dr S               Cr 3001
    capital_withdrawal    Dr 3004            Cr S
    share_issuance        Dr S               Cr 3001 (par), Cr 3003 (premium)
    dividend_declaration  Dr 3002            Cr 2201
    dividend_payment      Dr 2201            Cr S
    equity_adjustment     Dr to_account      Cr from_account (both equity)
    transfer              Dr to_account      Cr from_account
"""

import hashlib
import json
from decimal import Decimal, ROUND_FLOOR
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from app.config import settings
from app.models.ledger import SourceType
from app.schemas.events import (
    AssetAcquisitionEvent,
    BusinessEventBase,
    CapitalContributionEvent,
    CapitalWithdrawalEvent,
    DividendDeclarationEvent,
    DividendPaymentEvent,
    EquityAdjustmentEvent,
    EventType,
    ExpenseEvent,
    IncomeEvent,
    PaymentStatus,
    PayrollEvent,
    PurchaseEvent,
    SaleEvent,
    ShareIssuanceEvent,
    TransferEvent,
    business_event_adapter,
)
from app.schemas.ledger import TransactionCreate, TransactionLine
from app.services.chart_of_accounts import (
    ACCOUNT_CODES,
    AccountCategory,
    cash_account_for,
    get_account,
)
from app.services.tax_calculators.vat_service import VATCalculator
from app.utils.error_handling import (
    ImbalanceError,
    InvalidAmountException,
    ValidationException,
    validate_amount,
)
from app.utils.money import ZERO, round_money


SOURCE_TYPE_BY_EVENT: Dict[EventType, SourceType] = {
    EventType.SALE: SourceType.INVOICE,
    EventType.INCOME: SourceType.INVOICE,
    EventType.PURCHASE: SourceType.PURCHASE,
    EventType.EXPENSE: SourceType.PAYMENT,
    EventType.DIVIDEND_PAYMENT: SourceType.PAYMENT,
    EventType.PAYROLL: SourceType.PAYROLL,
    EventType.ASSET_ACQUISITION: SourceType.ASSET,
    EventType.CAPITAL_CONTRIBUTION: SourceType.MANUAL,
    EventType.CAPITAL_WITHDRAWAL: SourceType.MANUAL,
    EventType.SHARE_ISSUANCE: SourceType.MANUAL,
    EventType.DIVIDEND_DECLARATION: SourceType.MANUAL,
    EventType.EQUITY_ADJUSTMENT: SourceType.MANUAL,
    EventType.TRANSFER: SourceType.MANUAL,
}

_REFERENCE_PREFIX = {
    EventType.SALE: "INV",
    EventType.INCOME: "INC",
    EventType.PURCHASE: "PUR",
    EventType.EXPENSE: "EXP",
    EventType.PAYROLL: "PAY",
    EventType.CAPITAL_CONTRIBUTION: "CAP",
    EventType.CAPITAL_WITHDRAWAL: "WDR",
    EventType.SHARE_ISSUANCE: "SHR",
    EventType.DIVIDEND_DECLARATION: "DIV",
    EventType.DIVIDEND_PAYMENT: "DVP",
    EventType.ASSET_ACQUISITION: "AST",
    EventType.EQUITY_ADJUSTMENT: "EQA",
    EventType.TRANSFER: "TRF",
}

_LABELS = {
    EventType.SALE: "Sale",
    EventType.INCOME: "Income",
    EventType.PURCHASE: "Purchase",
    EventType.EXPENSE: "Expense",
    EventType.PAYROLL: "Salary payment",
    EventType.CAPITAL_CONTRIBUTION: "Capital contribution",
    EventType.CAPITAL_WITHDRAWAL: "Capital withdrawal",
    EventType.SHARE_ISSUANCE: "Share issuance",
    EventType.DIVIDEND_DECLARATION: "Dividend declaration",
    EventType.DIVIDEND_PAYMENT: "Dividend payment",
    EventType.ASSET_ACQUISITION: "Asset acquisition",
    EventType.EQUITY_ADJUSTMENT: "Equity adjustment",
    EventType.TRANSFER: "Transfer",
}


# ===========================================
# PARSING
# ===========================================

def parse_event(data: Union[BusinessEventBase, Mapping[str, Any]]) -> BusinessEventBase:
    """Accept an event model or a raw mapping; raw input errors become ValidationException."""
    if isinstance(data, BusinessEventBase):
        return data
    if not isinstance(data, Mapping):
        raise ValidationException("Business event must be an object", field="event")
    if not data.get("type"):
        raise ValidationException("Business event is missing 'type'", field="type")
    if not data.get("date"):
        raise ValidationException("Business event is missing 'date'", field="date")

    try:
        return business_event_adapter.validate_python(dict(data))
    except PydanticValidationError as exc:
        errors = [
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        first = errors[0] if errors else {"field": "event", "message": "invalid"}
        raise ValidationException(
            f"Invalid {data.get('type')} event: {first['field']} - {first['message']}",
            field=first["field"],
            details={"errors": errors},
        )


def derive_source_id(event: BusinessEventBase) -> str:
    """Content hash of the event, used when the caller supplies no source_id."""
    payload = event.model_dump(mode="json", exclude={"source_id"})
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return f"{event.type}-{digest[:40]}"


def split_share_proceeds(amount: Decimal, par_value: Decimal) -> Tuple[int, Decimal, Decimal]:
    """
    Split issuance proceeds into (shares, share_capital, share_premium).

    shares = floor(amount / par_value); the remainder above par is premium.
    """
    if par_value <= 0:
        raise InvalidAmountException(par_value, field="par_value", message=f"Par value must be positive, got {par_value}")
    shares = int((amount / par_value).to_integral_value(rounding=ROUND_FLOOR))
    if shares < 1:
        raise ValidationException(
            f"Amount {amount} is below the par value {par_value}; no shares would be issued",
            field="amount",
            details={"amount": amount, "par_value": par_value},
        )
    share_capital = round_money(par_value * shares)
    return shares, share_capital, amount - share_capital


# ===========================================
# ENCODER
# ===========================================

class EventEncoder:
    """Maps each business event variant to its journal template."""

    def __init__(self):
        self._handlers: Dict[EventType, Callable[[Any, Decimal], List[Optional[TransactionLine]]]] = {
            EventType.SALE: self._encode_sale,
            EventType.INCOME: self._encode_income,
            EventType.PURCHASE: self._encode_purchase,
            EventType.EXPENSE: self._encode_expense,
            EventType.ASSET_ACQUISITION: self._encode_asset_acquisition,
            EventType.PAYROLL: self._encode_payroll,
            EventType.CAPITAL_CONTRIBUTION: self._encode_capital_contribution,
            EventType.CAPITAL_WITHDRAWAL: self._encode_capital_withdrawal,
            EventType.SHARE_ISSUANCE: self._encode_share_issuance,
            EventType.DIVIDEND_DECLARATION: self._encode_dividend_declaration,
            EventType.DIVIDEND_PAYMENT: self._encode_dividend_payment,
            EventType.EQUITY_ADJUSTMENT: self._encode_equity_adjustment,
            EventType.TRANSFER: self._encode_transfer,
        }

    def encode(self, event: Union[BusinessEventBase, Mapping[str, Any]]) -> TransactionCreate:
        """Encode one event. Raises ValidationException before anything is posted."""
        event = parse_event(event)
        event_type = EventType(event.type)

        amount = self._amount(event)
        lines = [line for line in self._handlers[event_type](event, amount) if line is not None]
        if len(lines) < 2:
            raise ValidationException(
                f"{event_type.value} event produced {len(lines)} non-zero line(s); a posting needs at least two",
                field="amount",
                details={"amount": amount, "line_count": len(lines)},
            )

        source_id = event.source_id or derive_source_id(event)
        reference = event.reference_number or f"{_REFERENCE_PREFIX[event_type]}-{source_id}"
        return TransactionCreate(
            transaction_date=event.event_date,
            reference=reference[:100],
            description=(event.description or self._default_description(event, event_type))[:500],
            source_id=source_id,
            source_type=SOURCE_TYPE_BY_EVENT[event_type],
            entries=lines,
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _amount(event: BusinessEventBase) -> Decimal:
        field = "gross_salary" if isinstance(event, PayrollEvent) else "amount"
        raw = event.gross_salary if isinstance(event, PayrollEvent) else getattr(event, "amount", None)
        amount = round_money(validate_amount(raw, field=field))
        if amount <= 0:
            raise InvalidAmountException(raw, field=field, message=f"{field} {raw} rounds to zero at cent precision")
        return amount

    @staticmethod
    def _default_description(event: BusinessEventBase, event_type: EventType) -> str:
        label = _LABELS[event_type]
        party = getattr(event, "party_name", None) or getattr(event, "shareholder_name", None) \
            or getattr(event, "employee_name", None)
        return f"{label} - {party}" if party else label

    @staticmethod
    def _line(
        account_code: str,
        side: str,
        amount: Decimal,
        description: Optional[str] = None,
        party_id: Optional[str] = None,
    ) -> Optional[TransactionLine]:
        """One line, or None when the amount is zero (zero lines are never posted)."""
        if amount == ZERO:
            return None
        return TransactionLine(
            account_code=account_code,
            debit=amount if side == "debit" else ZERO,
            credit=amount if side == "credit" else ZERO,
            description=description,
            party_id=party_id,
        )

    @staticmethod
    def _require_category(code: str, field: str, *categories: AccountCategory) -> str:
        account = get_account(code)
        if account.category not in categories:
            raise ValidationException(
                f"Account {code} ({account.name}) is {account.category.value}; "
                f"expected {' or '.join(c.value for c in categories)}",
                field=field,
                details={"account_code": code, "category": account.category.value},
            )
        return code

    @staticmethod
    def _require_shareholder(event: Any) -> str:
        if not event.shareholder_id:
            raise ValidationException(
                f"{event.type} requires shareholder_id",
                field="shareholder_id",
            )
        return event.shareholder_id

    def _settlement(
        self,
        event: BusinessEventBase,
        gross: Decimal,
        counter_code: str,
        side: str,
    ) -> List[Optional[TransactionLine]]:
        """
        Split gross between the cash/bank account and the receivable/payable.

        paid -> all cash; unpaid -> all counter account;
        partially_paid -> paid_amount cash, remainder counter account.
        """
        if event.payment_status == PaymentStatus.PAID:
            paid = gross
        elif event.payment_status == PaymentStatus.UNPAID:
            paid = ZERO
        else:
            if event.paid_amount is None:
                raise ValidationException(
                    "paid_amount is required when payment_status is partially_paid",
                    field="paid_amount",
                )
            paid = round_money(validate_amount(event.paid_amount, field="paid_amount", allow_zero=True))
            if paid > gross:
                raise ValidationException(
                    f"paid_amount {paid} exceeds amount {gross}",
                    field="paid_amount",
                    details={"paid_amount": paid, "amount": gross},
                )

        cash_code = cash_account_for(event.payment_method)
        return [
            self._line(cash_code, side, paid, party_id=event.party_id),
            self._line(counter_code, side, gross - paid, party_id=event.party_id),
        ]

    @staticmethod
    def _vat_split(gross: Decimal, vat_rate: Optional[Decimal]) -> Tuple[Decimal, Decimal]:
        if vat_rate is None:
            return gross, ZERO
        if vat_rate < 0 or vat_rate >= 1:
            raise ValidationException(
                f"vat_rate must be a fraction in [0, 1), got {vat_rate}",
                field="vat_rate",
                details={"vat_rate": vat_rate},
            )
        return VATCalculator.split_inclusive(gross, vat_rate)

    # =========================================================================
    # TRADING
    # =========================================================================

    def _encode_sale(self, event: SaleEvent, amount: Decimal):
        revenue_code = self._require_category(event.revenue_account_code, "revenue_account_code", AccountCategory.REVENUE)
        net, vat = self._vat_split(amount, event.vat_rate)
        return [
            *self._settlement(event, amount, ACCOUNT_CODES["ACCOUNTS_RECEIVABLE"], "debit"),
            self._line(revenue_code, "credit", net, party_id=event.party_id),
            self._line(ACCOUNT_CODES["VAT_PAYABLE"], "credit", vat, "Output VAT"),
        ]

    def _encode_income(self, event: IncomeEvent, amount: Decimal):
        revenue_code = self._require_category(event.revenue_account_code, "revenue_account_code", AccountCategory.REVENUE)
        return [
            *self._settlement(event, amount, ACCOUNT_CODES["ACCOUNTS_RECEIVABLE"], "debit"),
            self._line(revenue_code, "credit", amount, party_id=event.party_id),
        ]

    def _encode_purchase(self, event: PurchaseEvent, amount: Decimal):
        expense_code = self._require_category(
            event.expense_account_code, "expense_account_code", AccountCategory.EXPENSE, AccountCategory.ASSET,
        )
        net, vat = self._vat_split(amount, event.vat_rate)
        return [
            self._line(expense_code, "debit", net, party_id=event.party_id),
            self._line(ACCOUNT_CODES["VAT_INPUT"], "debit", vat, "Input VAT"),
            *self._settlement(event, amount, ACCOUNT_CODES["ACCOUNTS_PAYABLE"], "credit"),
        ]

    def _encode_expense(self, event: ExpenseEvent, amount: Decimal):
        expense_code = self._require_category(
            event.expense_account_code, "expense_account_code", AccountCategory.EXPENSE, AccountCategory.ASSET,
        )
        return [
            self._line(expense_code, "debit", amount, party_id=event.party_id),
            *self._settlement(event, amount, ACCOUNT_CODES["ACCOUNTS_PAYABLE"], "credit"),
        ]

    def _encode_asset_acquisition(self, event: AssetAcquisitionEvent, amount: Decimal):
        return [
            self._line(ACCOUNT_CODES["FIXED_ASSETS"], "debit", amount, event.asset_name, event.party_id),
            *self._settlement(event, amount, ACCOUNT_CODES["ACCOUNTS_PAYABLE"], "credit"),
        ]

    # =========================================================================
    # PAYROLL
    # =========================================================================

    def _encode_payroll(self, event: PayrollEvent, gross: Decimal):
        paye = round_money(validate_amount(event.paye, field="paye", allow_zero=True))
        rssb_employee = round_money(validate_amount(event.rssb_employee, field="rssb_employee", allow_zero=True))
        rssb_employer = round_money(validate_amount(event.rssb_employer, field="rssb_employer", allow_zero=True))

        net = gross - paye - rssb_employee
        if net < 0:
            raise ValidationException(
                f"Deductions exceed gross salary: gross {gross}, PAYE {paye}, RSSB {rssb_employee}",
                field="gross_salary",
                details={"gross_salary": gross, "paye": paye, "rssb_employee": rssb_employee},
            )
        if event.net_salary is not None and round_money(event.net_salary) != net:
            raise ValidationException(
                f"net_salary {event.net_salary} does not equal gross - PAYE - employee RSSB ({net})",
                field="net_salary",
                details={"net_salary": event.net_salary, "expected": net},
            )

        expense = gross + rssb_employer
        credits = net + paye + rssb_employee + rssb_employer
        if expense != credits:
            raise ImbalanceError(expense, credits, ZERO)

        employee = event.employee_id or event.party_id
        return [
            self._line(ACCOUNT_CODES["SALARIES_AND_WAGES"], "debit", expense, "Gross salary + employer RSSB", employee),
            self._line(cash_account_for(event.payment_method), "credit", net, "Net salary", employee),
            self._line(ACCOUNT_CODES["PAYE_PAYABLE"], "credit", paye, "PAYE withheld", employee),
            self._line(ACCOUNT_CODES["RSSB_PAYABLE"], "credit", rssb_employee + rssb_employer, "RSSB contributions", employee),
        ]

    # =========================================================================
    # CAPITAL & EQUITY
    # =========================================================================

    def _encode_capital_contribution(self, event: CapitalContributionEvent, amount: Decimal):
        shareholder = self._require_shareholder(event)
        if event.shares_allocated is not None and event.shares_allocated < 0:
            raise InvalidAmountException(event.shares_allocated, field="shares_allocated")
        return [
            self._line(cash_account_for(event.payment_method), "debit", amount, party_id=shareholder),
            self._line(ACCOUNT_CODES["SHARE_CAPITAL"], "credit", amount, party_id=shareholder),
        ]

    def _encode_capital_withdrawal(self, event: CapitalWithdrawalEvent, amount: Decimal):
        shareholder = self._require_shareholder(event)
        return [
            self._line(ACCOUNT_CODES["OWNER_DRAWINGS"], "debit", amount, party_id=shareholder),
            self._line(cash_account_for(event.payment_method), "credit", amount, party_id=shareholder),
        ]

    def _encode_share_issuance(self, event: ShareIssuanceEvent, amount: Decimal):
        shareholder = self._require_shareholder(event)
        par_value = event.par_value if event.par_value is not None else settings.default_par_value
        shares, share_capital, premium = split_share_proceeds(amount, par_value)
        return [
            self._line(cash_account_for(event.payment_method), "debit", amount, party_id=shareholder),
            self._line(
                ACCOUNT_CODES["SHARE_CAPITAL"], "credit", share_capital,
                f"{shares} shares at par {par_value}", shareholder,
            ),
            self._line(ACCOUNT_CODES["SHARE_PREMIUM"], "credit", premium, "Share premium", shareholder),
        ]

    def _encode_dividend_declaration(self, event: DividendDeclarationEvent, amount: Decimal):
        return [
            self._line(ACCOUNT_CODES["RETAINED_EARNINGS"], "debit", amount),
            self._line(ACCOUNT_CODES["DIVIDEND_PAYABLE"], "credit", amount),
        ]

    def _encode_dividend_payment(self, event: DividendPaymentEvent, amount: Decimal):
        party = event.shareholder_id or event.party_id
        return [
            self._line(ACCOUNT_CODES["DIVIDEND_PAYABLE"], "debit", amount, party_id=party),
            self._line(cash_account_for(event.payment_method), "credit", amount, party_id=party),
        ]

    def _encode_equity_adjustment(self, event: EquityAdjustmentEvent, amount: Decimal):
        to_code = self._require_category(event.to_account_code, "to_account_code", AccountCategory.EQUITY)
        from_code = self._require_category(event.from_account_code, "from_account_code", AccountCategory.EQUITY)
        return self._encode_movement(to_code, from_code, amount)

    def _encode_transfer(self, event: TransferEvent, amount: Decimal):
        to_code = get_account(event.to_account_code).code
        from_code = get_account(event.from_account_code).code
        return self._encode_movement(to_code, from_code, amount)

    def _encode_movement(self, to_code: str, from_code: str, amount: Decimal):
        if to_code == from_code:
            raise ValidationException(
                f"Source and destination accounts must differ (both {to_code})",
                field="to_account_code",
                details={"from_account_code": from_code, "to_account_code": to_code},
            )
        return [
            self._line(to_code, "debit", amount),
            self._line(from_code, "credit", amount),
        ]


_encoder = EventEncoder()


def encode_event(event: Union[BusinessEventBase, Mapping[str, Any]]) -> TransactionCreate:
    """Encode a business event (model or raw mapping) into a posting request."""
    return _encoder.encode(event)
