"""
Office Nexus Ledger - Chart of Accounts

Static standard chart shared by every company. The account category is
implied by the first digit of the code:

    1xxx Asset, 2xxx Liability, 3xxx Equity, 4xxx Revenue, 5xxx Expense
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping

from app.utils.error_handling import UnknownAccountError, ValidationException


class AccountCategory(str, Enum):
    """Top-level account classification."""
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK = "bank"
    MOBILE_MONEY = "mobile_money"
    CARD = "card"
    CHEQUE = "cheque"


_CATEGORY_BY_DIGIT = {
    "1": AccountCategory.ASSET,
    "2": AccountCategory.LIABILITY,
    "3": AccountCategory.EQUITY,
    "4": AccountCategory.REVENUE,
    "5": AccountCategory.EXPENSE,
}


@dataclass(frozen=True)
class Account:
    code: str
    name: str
    category: AccountCategory

    @property
    def is_debit_normal(self) -> bool:
        """Assets and expenses carry debit balances."""
        return self.category in (AccountCategory.ASSET, AccountCategory.EXPENSE)


# Rwandan SME standard chart
ACCOUNT_CODES = {
    # Assets
    "CASH_AT_BANK": "1001",
    "PETTY_CASH": "1002",
    "MOBILE_MONEY": "1003",
    "ACCOUNTS_RECEIVABLE": "1101",
    "INVENTORY": "1201",
    "FIXED_ASSETS": "1301",
    "ACCUMULATED_DEPRECIATION": "1302",
    "VAT_INPUT": "1401",

    # Liabilities
    "ACCOUNTS_PAYABLE": "2001",
    "LOANS_PAYABLE": "2004",
    "VAT_PAYABLE": "2101",
    "PAYE_PAYABLE": "2102",
    "RSSB_PAYABLE": "2103",
    "DIVIDEND_PAYABLE": "2201",
    "ACCRUED_EXPENSES": "2202",

    # Equity
    "SHARE_CAPITAL": "3001",
    "RETAINED_EARNINGS": "3002",
    "SHARE_PREMIUM": "3003",
    "OWNER_DRAWINGS": "3004",
    "EQUITY_ADJUSTMENT": "3005",

    # Revenue
    "SALES_REVENUE": "4001",
    "SERVICE_REVENUE": "4002",
    "OTHER_INCOME": "4003",

    # Expenses
    "SALARIES_AND_WAGES": "5001",
    "RENT_EXPENSE": "5002",
    "UTILITIES": "5003",
    "MARKETING": "5004",
    "OFFICE_SUPPLIES": "5005",
    "PROFESSIONAL_FEES": "5006",
    "DEPRECIATION": "5007",
    "OTHER_EXPENSES": "5008",
}

_ACCOUNT_NAMES = {
    "1001": "Cash at Bank",
    "1002": "Petty Cash",
    "1003": "Mobile Money Account",
    "1101": "Accounts Receivable",
    "1201": "Inventory",
    "1301": "Fixed Assets",
    "1302": "Accumulated Depreciation",
    "1401": "VAT Input",
    "2001": "Accounts Payable",
    "2004": "Loans Payable",
    "2101": "VAT Payable",
    "2102": "PAYE Payable",
    "2103": "RSSB Payable",
    "2201": "Dividend Payable",
    "2202": "Accrued Expenses",
    "3001": "Share Capital",
    "3002": "Retained Earnings",
    "3003": "Share Premium",
    "3004": "Owner Drawings",
    "3005": "Equity Adjustment",
    "4001": "Sales Revenue",
    "4002": "Service Revenue",
    "4003": "Other Income",
    "5001": "Salaries & Wages",
    "5002": "Rent Expense",
    "5003": "Utilities",
    "5004": "Marketing",
    "5005": "Office Supplies",
    "5006": "Professional Fees",
    "5007": "Depreciation",
    "5008": "Other Expenses",
}

_CASH_ACCOUNT_BY_METHOD = {
    PaymentMethod.CASH: ACCOUNT_CODES["PETTY_CASH"],
    PaymentMethod.BANK: ACCOUNT_CODES["CASH_AT_BANK"],
    PaymentMethod.CARD: ACCOUNT_CODES["CASH_AT_BANK"],
    PaymentMethod.CHEQUE: ACCOUNT_CODES["CASH_AT_BANK"],
    PaymentMethod.MOBILE_MONEY: ACCOUNT_CODES["MOBILE_MONEY"],
}


def category_for_code(code: str) -> AccountCategory:
    """Category implied by the leading digit of an account code."""
    if not code or code[0] not in _CATEGORY_BY_DIGIT:
        raise UnknownAccountError(code)
    return _CATEGORY_BY_DIGIT[code[0]]


def _build_chart() -> Mapping[str, Account]:
    chart = {
        code: Account(code=code, name=name, category=category_for_code(code))
        for code, name in sorted(_ACCOUNT_NAMES.items())
    }
    return MappingProxyType(chart)


CHART_OF_ACCOUNTS: Mapping[str, Account] = _build_chart()


def get_account(code: str) -> Account:
    """Look up an account, raising UnknownAccountError if it is not in the chart."""
    account = CHART_OF_ACCOUNTS.get(code)
    if account is None:
        raise UnknownAccountError(code)
    return account


def is_known_account(code: str) -> bool:
    return code in CHART_OF_ACCOUNTS


def accounts_in_category(category: AccountCategory) -> List[Account]:
    return [account for account in CHART_OF_ACCOUNTS.values() if account.category == category]


def codes_in_category(category: AccountCategory) -> List[str]:
    return [account.code for account in accounts_in_category(category)]


def cash_account_for(payment_method) -> str:
    """Settlement account for a payment method (cash -> petty cash, mobile money -> MoMo, else bank)."""
    try:
        method = PaymentMethod(payment_method)
    except ValueError:
        raise ValidationException(
            f"Unsupported payment method '{payment_method}'",
            field="payment_method",
            details={"allowed": [m.value for m in PaymentMethod]},
        )
    return _CASH_ACCOUNT_BY_METHOD[method]


def list_accounts() -> List[Dict[str, str]]:
    return [
        {"code": a.code, "name": a.name, "category": a.category.value}
        for a in CHART_OF_ACCOUNTS.values()
    ]
