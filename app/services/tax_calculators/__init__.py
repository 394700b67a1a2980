"""
Office Nexus Ledger - Tax Calculators Package

Tax calculation services for Rwandan compliance.

Modules:
- vat_service: VAT split and monthly VAT return (18% rate)
- paye_service: monthly PAYE / RSSB return from payroll postings
- cit_service: annual CIT return (30% of profit)
- qit_service: quarterly income tax declarations
"""

from decimal import Decimal

from app.services.tax_calculators.vat_service import VATCalculator, VATService
from app.services.tax_calculators.paye_service import PAYEService
from app.services.tax_calculators.cit_service import CITCalculator, CITService
from app.services.tax_calculators.qit_service import QITCalculator, QITService


# ===========================================
# CONVENIENCE FUNCTIONS
# ===========================================

def calculate_vat(amount: Decimal, is_exempt: bool = False) -> Decimal:
    """
    Calculate VAT on a VAT-exclusive amount.

    Args:
        amount: Base amount
        is_exempt: Whether item is VAT exempt

    Returns:
        VAT amount (18% or 0 if exempt)
    """
    if is_exempt:
        return Decimal("0.00")
    return VATCalculator.calculate_vat(amount)


def calculate_cit(profit: Decimal) -> Decimal:
    """Corporate Income Tax on a profit figure, zero for a loss."""
    return CITCalculator.calculate_cit(profit)


__all__ = [
    # VAT
    "VATCalculator",
    "VATService",
    # PAYE
    "PAYEService",
    # CIT
    "CITCalculator",
    "CITService",
    # QIT
    "QITCalculator",
    "QITService",
    # Convenience functions
    "calculate_vat",
    "calculate_cit",
]
