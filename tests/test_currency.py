"""
Tests for Currency Normalization

Verifies base-currency passthrough, rate division, and that missing or
invalid rates produce UNCONVERTIBLE rather than zero.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from decimal import Decimal

from calculators.currency import (
    UNCONVERTIBLE,
    InvalidAmountError,
    Money,
    RateTable,
    Unconvertible,
    UnsupportedCurrencyError,
    normalize_currency,
    to_base,
)


class TestMoney:
    """Money construction and invariants."""

    def test_amount_coerced_to_decimal(self):
        money = Money("10.5", "twd")
        assert money.amount == Decimal("10.5")
        assert money.currency == "TWD"

    def test_blank_currency_defaults_to_base(self):
        assert Money(Decimal(1), "").currency == "USD"

    def test_unsupported_currency_raises(self):
        with pytest.raises(UnsupportedCurrencyError, match="Unsupported"):
            Money(Decimal(1), "XYZ")

    def test_non_finite_amount_raises(self):
        with pytest.raises(InvalidAmountError):
            Money(Decimal("NaN"), "USD")
        with pytest.raises(InvalidAmountError):
            Money(float("inf"), "USD")

    def test_add_same_currency(self):
        total = Money(Decimal(1), "EUR") + Money(Decimal(2), "EUR")
        assert total == Money(Decimal(3), "EUR")

    def test_add_mixed_currency_raises(self):
        with pytest.raises(ValueError):
            Money(Decimal(1), "EUR") + Money(Decimal(2), "USD")

    def test_normalize_currency_strips_and_uppercases(self):
        assert normalize_currency(" hkd ") == "HKD"


class TestRateTable:
    """Rate lookups treat absent, zero and negative rates alike."""

    def test_text_rates_are_parsed(self):
        rates = RateTable({"twd": "32.5", "EUR": "0.92"})
        assert rates.rate_for("TWD") == Decimal("32.5")
        assert "EUR" in rates

    def test_unusable_rates(self):
        rates = RateTable({"EUR": "0", "JPY": "-150", "GBP": "abc"})
        assert rates.rate_for("EUR") is None
        assert rates.rate_for("JPY") is None
        assert rates.rate_for("GBP") is None
        assert rates.rate_for("CHF") is None

    def test_table_is_read_only(self):
        source = {"EUR": "0.9"}
        rates = RateTable(source)
        source["EUR"] = "5"
        assert rates.rate_for("EUR") == Decimal("0.9")
        with pytest.raises(TypeError):
            rates._rates["EUR"] = Decimal(1)


class TestToBase:
    """to_base conversion contract."""

    def test_base_currency_returned_unchanged(self):
        money = Money(Decimal("1234.56"), "USD")
        assert to_base(money, RateTable({"USD": "7"})) is money

    def test_divides_by_rate(self):
        result = to_base(Money(Decimal(100), "TWD"), RateTable({"TWD": "32"}))
        assert result == Money(Decimal("3.125"), "USD")

    @pytest.mark.parametrize("rates", [{}, {"EUR": "0"}, {"EUR": "-1.1"}])
    def test_unusable_rate_is_unconvertible(self, rates):
        result = to_base(Money(Decimal(100), "EUR"), RateTable(rates))
        assert result is UNCONVERTIBLE

    def test_unconvertible_is_not_zero(self):
        assert UNCONVERTIBLE != Money.zero()
        assert not UNCONVERTIBLE
        assert Unconvertible() is UNCONVERTIBLE
        assert repr(UNCONVERTIBLE) == "UNCONVERTIBLE"
