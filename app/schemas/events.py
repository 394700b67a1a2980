"""
Office Nexus Ledger - Business Event Schemas

Tagged union of the business events the encoder understands. Each variant
carries only the fields its journal needs; `type` is the discriminator.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from app.models.ledger import SourceType
from app.schemas.ledger import TransactionLine
from app.services.chart_of_accounts import PaymentMethod


class PaymentStatus(str, Enum):
    PAID = "paid"
    UNPAID = "unpaid"
    PARTIALLY_PAID = "partially_paid"


class EventType(str, Enum):
    SALE = "sale"
    PURCHASE = "purchase"
    EXPENSE = "expense"
    INCOME = "income"
    PAYROLL = "payroll"
    CAPITAL_CONTRIBUTION = "capital_contribution"
    CAPITAL_WITHDRAWAL = "capital_withdrawal"
    SHARE_ISSUANCE = "share_issuance"
    DIVIDEND_DECLARATION = "dividend_declaration"
    DIVIDEND_PAYMENT = "dividend_payment"
    ASSET_ACQUISITION = "asset_acquisition"
    EQUITY_ADJUSTMENT = "equity_adjustment"
    TRANSFER = "transfer"


# ===========================================
# COMMON FIELDS
# ===========================================

class BusinessEventBase(BaseModel):
    """Fields shared by every business event."""
    model_config = ConfigDict(populate_by_name=True)

    event_date: date = Field(..., alias="date")
    description: Optional[str] = Field(None, max_length=500)
    reference_number: Optional[str] = Field(None, max_length=100)
    source_id: Optional[str] = Field(None, max_length=128)
    payment_method: PaymentMethod = PaymentMethod.BANK
    payment_status: PaymentStatus = PaymentStatus.PAID
    paid_amount: Optional[Decimal] = None
    party_id: Optional[str] = None
    party_name: Optional[str] = None
    additional_data: Dict[str, Any] = Field(default_factory=dict)


# ===========================================
# TRADING EVENTS
# ===========================================

class SaleEvent(BusinessEventBase):
    """Sale of goods; amount is VAT-inclusive when vat_rate is given."""
    type: Literal["sale"] = "sale"
    amount: Decimal
    vat_rate: Optional[Decimal] = None
    revenue_account_code: str = "4001"


class IncomeEvent(BusinessEventBase):
    """Non-trading income (service fees, interest, sundry)."""
    type: Literal["income"] = "income"
    amount: Decimal
    revenue_account_code: str = "4003"


class PurchaseEvent(BusinessEventBase):
    """Purchase of goods or services; amount is VAT-inclusive when vat_rate is given."""
    type: Literal["purchase"] = "purchase"
    amount: Decimal
    vat_rate: Optional[Decimal] = None
    expense_account_code: str = "5008"


class ExpenseEvent(BusinessEventBase):
    """Operating expense without recoverable VAT."""
    type: Literal["expense"] = "expense"
    amount: Decimal
    expense_account_code: str = "5008"


class AssetAcquisitionEvent(BusinessEventBase):
    type: Literal["asset_acquisition"] = "asset_acquisition"
    amount: Decimal
    asset_name: Optional[str] = None


# ===========================================
# PAYROLL
# ===========================================

class PayrollEvent(BusinessEventBase):
    """
    One employee's salary payment.

    net_salary is derived (gross - paye - rssb_employee) when omitted and
    checked against that identity when supplied.
    """
    type: Literal["payroll"] = "payroll"
    employee_id: Optional[str] = None
    employee_name: Optional[str] = None
    period: Optional[str] = None
    gross_salary: Decimal
    paye: Decimal = Decimal("0")
    rssb_employee: Decimal = Decimal("0")
    rssb_employer: Decimal = Decimal("0")
    net_salary: Optional[Decimal] = None


# ===========================================
# CAPITAL & EQUITY
# ===========================================

class CapitalContributionEvent(BusinessEventBase):
    type: Literal["capital_contribution"] = "capital_contribution"
    amount: Decimal
    shareholder_id: Optional[str] = None
    shareholder_name: Optional[str] = None
    shares_allocated: Optional[int] = None


class CapitalWithdrawalEvent(BusinessEventBase):
    type: Literal["capital_withdrawal"] = "capital_withdrawal"
    amount: Decimal
    shareholder_id: Optional[str] = None
    shareholder_name: Optional[str] = None


class ShareIssuanceEvent(BusinessEventBase):
    """Proceeds split into par-value share capital and share premium."""
    type: Literal["share_issuance"] = "share_issuance"
    amount: Decimal
    shareholder_id: Optional[str] = None
    shareholder_name: Optional[str] = None
    par_value: Optional[Decimal] = None


class DividendDeclarationEvent(BusinessEventBase):
    type: Literal["dividend_declaration"] = "dividend_declaration"
    amount: Decimal
    declaration_id: Optional[UUID] = None


class DividendPaymentEvent(BusinessEventBase):
    type: Literal["dividend_payment"] = "dividend_payment"
    amount: Decimal
    shareholder_id: Optional[str] = None
    distribution_id: Optional[UUID] = None


class EquityAdjustmentEvent(BusinessEventBase):
    """Move value between two equity accounts chosen by the caller."""
    type: Literal["equity_adjustment"] = "equity_adjustment"
    amount: Decimal
    from_account_code: str
    to_account_code: str


class TransferEvent(BusinessEventBase):
    """Move value between any two accounts chosen by the caller."""
    type: Literal["transfer"] = "transfer"
    amount: Decimal
    from_account_code: str
    to_account_code: str


BusinessEvent = Annotated[
    Union[
        SaleEvent,
        IncomeEvent,
        PurchaseEvent,
        ExpenseEvent,
        AssetAcquisitionEvent,
        PayrollEvent,
        CapitalContributionEvent,
        CapitalWithdrawalEvent,
        ShareIssuanceEvent,
        DividendDeclarationEvent,
        DividendPaymentEvent,
        EquityAdjustmentEvent,
        TransferEvent,
    ],
    Field(discriminator="type"),
]

business_event_adapter: TypeAdapter = TypeAdapter(BusinessEvent)


# ===========================================
# RESULTS
# ===========================================

class EventProcessingResult(BaseModel):
    """Outcome of encoding and posting one business event."""
    transaction_id: UUID
    status: str
    event_type: EventType
    source_type: SourceType
    source_id: str
    entries: List[TransactionLine]
    warnings: List[str] = []
