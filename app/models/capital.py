"""
Office Nexus Ledger - Capital & Ownership Models

Share capital, contributions, shareholder register, beneficial owners and
dividends.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import (
    BigInteger, Boolean, Integer, Date, DateTime, Enum as SQLEnum, ForeignKey,
    Numeric, String, Text, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel, TenantMixin
from app.utils.money import percentage


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class ContributionType(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    ASSET_IN_KIND = "asset_in_kind"
    LOAN_CONVERSION = "loan_conversion"
    OTHER = "other"


class ContributionStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class VerificationStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class DeclarationStatus(str, Enum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    PAID = "paid"


class CompanyCapital(BaseModel, TenantMixin):
    """
    Authorized and issued share capital of a company.

    issued_shares never exceeds authorized_shares; paid_up_capital only
    grows through confirmed contributions.
    """

    __tablename__ = "company_capital"
    __table_args__ = (
        UniqueConstraint("company_id", name="uq_company_capital_company_id"),
    )

    authorized_shares: Mapped[int] = mapped_column(BigInteger, nullable=False)
    share_price: Mapped[Decimal] = mapped_column(Numeric(precision=18, scale=2), nullable=False)
    issued_shares: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    paid_up_capital: Mapped[Decimal] = mapped_column(
        Numeric(precision=18, scale=2), default=Decimal("0.00"), nullable=False,
    )
    currency: Mapped[str] = mapped_column(String(3), default="RWF", nullable=False)
    capital_type: Mapped[str] = mapped_column(String(30), default="ordinary", nullable=False)

    @property
    def total_authorized_capital(self) -> Decimal:
        return Decimal(self.authorized_shares) * self.share_price

    @property
    def remaining_shares(self) -> int:
        return self.authorized_shares - self.issued_shares

    @property
    def utilization_percentage(self) -> Decimal:
        return percentage(self.issued_shares, self.authorized_shares, Decimal("0.01"))


class CapitalContribution(BaseModel, TenantMixin):
    """A shareholder's contribution towards share capital."""

    __tablename__ = "capital_contributions"

    shareholder_ref: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    shareholder_name: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=18, scale=2), nullable=False)
    shares_allocated: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    contribution_type: Mapped[ContributionType] = mapped_column(
        SQLEnum(ContributionType, native_enum=False, length=20, values_callable=_enum_values),
        default=ContributionType.CASH,
        nullable=False,
    )
    contribution_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[ContributionStatus] = mapped_column(
        SQLEnum(ContributionStatus, native_enum=False, length=20, values_callable=_enum_values),
        default=ContributionStatus.PENDING,
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    ledger_transaction_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("ledger_transactions.id"), nullable=True,
    )


class Shareholder(BaseModel, TenantMixin):
    """
    Shareholder register row.

    ownership_percentage is recomputed for the whole company whenever
    issued_shares changes.
    """

    __tablename__ = "shareholders"
    __table_args__ = (
        UniqueConstraint("company_id", "shareholder_ref", name="uq_shareholders_company_ref"),
    )

    shareholder_ref: Mapped[str] = mapped_column(String(128), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    shares_held: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    ownership_percentage: Mapped[Decimal] = mapped_column(
        Numeric(precision=9, scale=4), default=Decimal("0"), nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_director: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_beneficial_owner: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, default=date.today, nullable=False)


class BeneficialOwner(BaseModel, TenantMixin):
    """
    Beneficial ownership register row.

    has_significant_control is derived: ownership or control at or above
    the significant control threshold (25%).
    """

    __tablename__ = "beneficial_owners"

    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    nationality: Mapped[str] = mapped_column(String(100), nullable=False)
    id_number: Mapped[str] = mapped_column(String(50), nullable=False)
    relationship_to_company: Mapped[str] = mapped_column(String(100), nullable=False)
    ownership_percentage: Mapped[Decimal] = mapped_column(
        Numeric(precision=7, scale=4), default=Decimal("0"), nullable=False,
    )
    control_percentage: Mapped[Decimal] = mapped_column(
        Numeric(precision=7, scale=4), default=Decimal("0"), nullable=False,
    )
    has_significant_control: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    verification_status: Mapped[VerificationStatus] = mapped_column(
        SQLEnum(VerificationStatus, native_enum=False, length=20, values_callable=_enum_values),
        default=VerificationStatus.PENDING,
        nullable=False,
    )
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class DividendDeclaration(BaseModel, TenantMixin):
    """Declared dividend pool; draft -> confirmed -> paid."""

    __tablename__ = "dividend_declarations"

    declaration_date: Mapped[date] = mapped_column(Date, nullable=False)
    profit_amount: Mapped[Decimal] = mapped_column(Numeric(precision=18, scale=2), nullable=False)
    dividend_percentage: Mapped[Decimal] = mapped_column(Numeric(precision=7, scale=4), nullable=False)
    dividend_pool: Mapped[Decimal] = mapped_column(Numeric(precision=18, scale=2), nullable=False)
    approved_by: Mapped[str] = mapped_column(String(200), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[DeclarationStatus] = mapped_column(
        SQLEnum(DeclarationStatus, native_enum=False, length=20, values_callable=_enum_values),
        default=DeclarationStatus.DRAFT,
        nullable=False,
    )
    ledger_transaction_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("ledger_transactions.id"), nullable=True,
    )

    distributions: Mapped[List["DividendDistribution"]] = relationship(
        "DividendDistribution",
        back_populates="declaration",
        order_by="DividendDistribution.position",
        lazy="selectin",
        cascade="all, delete-orphan",
    )


class DividendDistribution(BaseModel, TenantMixin):
    """One shareholder's slice of a dividend pool."""

    __tablename__ = "dividend_distributions"

    declaration_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dividend_declarations.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    shareholder_ref: Mapped[str] = mapped_column(String(128), nullable=False)
    shareholder_name: Mapped[str] = mapped_column(String(200), nullable=False)
    shares_held_at_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=18, scale=2), nullable=False)
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    paid_on: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    payment_proof_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    ledger_transaction_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("ledger_transactions.id"), nullable=True,
    )

    declaration: Mapped["DividendDeclaration"] = relationship(
        "DividendDeclaration", back_populates="distributions",
    )
