"""
Office Nexus Ledger - Tax Models

Stored quarterly income tax (QIT) declarations. VAT, PAYE and CIT returns
are derived from the ledger on demand and have no table.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Date, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel, TenantMixin


class QITReturn(BaseModel, TenantMixin):
    """Quarterly income tax prepayment for one quarter of one year."""

    __tablename__ = "qit_returns"
    __table_args__ = (
        UniqueConstraint("company_id", "quarter", "year", name="uq_qit_returns_company_quarter_year"),
    )

    quarter: Mapped[str] = mapped_column(String(2), nullable=False)  # Q1..Q4
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    estimated_income: Mapped[Decimal] = mapped_column(Numeric(precision=18, scale=2), nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(precision=7, scale=4), nullable=False)  # percent
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(precision=18, scale=2), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    paid_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    proof_reference: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
