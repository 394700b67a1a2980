"""
Office Nexus Ledger - SQLAlchemy Models Package

This package contains all database models for the application.
"""

from app.models.base import BaseModel, TimestampMixin, TenantMixin
from app.models.ledger import LedgerTransaction, LedgerEntry, SourceType
from app.models.capital import (
    CompanyCapital,
    CapitalContribution,
    ContributionType,
    ContributionStatus,
    Shareholder,
    BeneficialOwner,
    VerificationStatus,
    DividendDeclaration,
    DividendDistribution,
    DeclarationStatus,
)
from app.models.payroll import PayrollRecord
from app.models.tax import QITReturn

__all__ = [
    # Base
    "BaseModel",
    "TimestampMixin",
    "TenantMixin",
    # Ledger
    "LedgerTransaction",
    "LedgerEntry",
    "SourceType",
    # Capital
    "CompanyCapital",
    "CapitalContribution",
    "ContributionType",
    "ContributionStatus",
    "Shareholder",
    "BeneficialOwner",
    "VerificationStatus",
    "DividendDeclaration",
    "DividendDistribution",
    "DeclarationStatus",
    # Payroll
    "PayrollRecord",
    # Tax
    "QITReturn",
]
