"""
Office Nexus Ledger - Payroll Models

Per-employee, per-period payroll records. Each record links to the ledger
transaction that posted it so PAYE returns can be traced employee by
employee.
"""

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel, TenantMixin


class PayrollRecord(BaseModel, TenantMixin):
    """
    One employee's payroll for one month.

    net_salary = gross_salary - paye - rssb_employee
    """

    __tablename__ = "payroll_records"
    __table_args__ = (
        UniqueConstraint("company_id", "employee_id", "period", name="uq_payroll_records_employee_period"),
    )

    employee_id: Mapped[str] = mapped_column(String(128), nullable=False)
    employee_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    period: Mapped[str] = mapped_column(String(7), nullable=False, index=True)  # YYYY-MM

    gross_salary: Mapped[Decimal] = mapped_column(Numeric(precision=18, scale=2), nullable=False)
    paye: Mapped[Decimal] = mapped_column(Numeric(precision=18, scale=2), nullable=False)
    rssb_employee: Mapped[Decimal] = mapped_column(Numeric(precision=18, scale=2), nullable=False)
    rssb_employer: Mapped[Decimal] = mapped_column(Numeric(precision=18, scale=2), nullable=False)
    net_salary: Mapped[Decimal] = mapped_column(Numeric(precision=18, scale=2), nullable=False)

    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ledger_transaction_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("ledger_transactions.id"), nullable=True, index=True,
    )
