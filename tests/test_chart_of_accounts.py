"""
Office Nexus Ledger - Chart of Accounts Tests
"""

import pytest

from app.services.chart_of_accounts import (
    AccountCategory,
    CHART_OF_ACCOUNTS,
    accounts_in_category,
    cash_account_for,
    category_for_code,
    get_account,
    is_known_account,
    list_accounts,
)
from app.utils.error_handling import UnknownAccountError, ValidationException


class TestAccountLookup:
    """Lookups against the standard chart."""

    def test_known_account(self):
        account = get_account("2101")
        assert account.name == "VAT Payable"
        assert account.category == AccountCategory.LIABILITY

    def test_unknown_account_raises(self):
        with pytest.raises(UnknownAccountError):
            get_account("9999")

    def test_is_known_account(self):
        assert is_known_account("1401")
        assert not is_known_account("1500")

    def test_chart_has_thirty_one_accounts(self):
        assert len(CHART_OF_ACCOUNTS) == 31
        assert len(list_accounts()) == 31

    def test_chart_is_read_only(self):
        with pytest.raises(TypeError):
            CHART_OF_ACCOUNTS["9999"] = None  # type: ignore[index]


class TestCategories:
    """Category comes from the leading digit."""

    @pytest.mark.parametrize("code,category", [
        ("1001", AccountCategory.ASSET),
        ("2201", AccountCategory.LIABILITY),
        ("3003", AccountCategory.EQUITY),
        ("4002", AccountCategory.REVENUE),
        ("5007", AccountCategory.EXPENSE),
    ])
    def test_category_for_code(self, code, category):
        assert category_for_code(code) == category
        assert get_account(code).category == category

    def test_every_account_matches_its_leading_digit(self):
        for code, account in CHART_OF_ACCOUNTS.items():
            assert account.category == category_for_code(code)

    def test_bad_leading_digit(self):
        with pytest.raises(UnknownAccountError):
            category_for_code("7001")

    def test_accounts_in_category(self):
        equity = [a.code for a in accounts_in_category(AccountCategory.EQUITY)]
        assert equity == ["3001", "3002", "3003", "3004", "3005"]

    def test_debit_normal(self):
        assert get_account("1001").is_debit_normal
        assert get_account("5001").is_debit_normal
        assert not get_account("2101").is_debit_normal
        assert not get_account("4001").is_debit_normal


class TestPaymentMethods:

    @pytest.mark.parametrize("method,code", [
        ("cash", "1002"),
        ("bank", "1001"),
        ("card", "1001"),
        ("cheque", "1001"),
        ("mobile_money", "1003"),
    ])
    def test_cash_account_for(self, method, code):
        assert cash_account_for(method) == code

    def test_unsupported_method(self):
        with pytest.raises(ValidationException):
            cash_account_for("barter")
