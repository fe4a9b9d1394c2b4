"""
Currency Normalization

Converts amounts held in any supported currency into the base currency
using a caller-supplied rate table.

Rates are quoted as units of foreign currency per 1 unit of base
currency, so base = foreign / rate. A missing, zero or negative rate
makes an amount UNCONVERTIBLE. That result is distinct from zero: callers
exclude it from sums and report it, they never count it as 0.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Union

from core.config import BASE_CURRENCY, SUPPORTED_CURRENCIES
from parsers.text_values import AmountInput, parse_amount
from utils.logging_config import setup_logger

logger = setup_logger(__name__)


class UnsupportedCurrencyError(ValueError):
    """Raised when a currency code is outside the supported set."""
    pass


class InvalidAmountError(ValueError):
    """Raised when an amount is NaN or infinite."""
    pass


def normalize_currency(code: Optional[str]) -> str:
    """
    Normalize a currency code, defaulting blanks to the base currency.

    Raises:
        UnsupportedCurrencyError: If the code is not supported.
    """
    if code is None or not str(code).strip():
        return BASE_CURRENCY

    normalized = str(code).strip().upper()
    if normalized not in SUPPORTED_CURRENCIES:
        raise UnsupportedCurrencyError(
            f"Unsupported currency '{code}'. "
            f"Supported: {', '.join(SUPPORTED_CURRENCIES)}"
        )
    return normalized


@dataclass(frozen=True)
class Money:
    """A finite decimal amount in one of the supported currencies."""
    amount: Decimal
    currency: str = BASE_CURRENCY

    def __post_init__(self):
        amount = self.amount
        if not isinstance(amount, Decimal):
            amount = Decimal(str(amount))
        if not amount.is_finite():
            raise InvalidAmountError(f"Amount must be finite: {self.amount}")

        object.__setattr__(self, 'amount', amount)
        object.__setattr__(self, 'currency', normalize_currency(self.currency))

    @classmethod
    def zero(cls, currency: str = BASE_CURRENCY) -> 'Money':
        return cls(Decimal(0), currency)

    @property
    def is_base(self) -> bool:
        return self.currency == BASE_CURRENCY

    def __add__(self, other: 'Money') -> 'Money':
        if not isinstance(other, Money):
            return NotImplemented
        if other.currency != self.currency:
            raise ValueError(f"Cannot add {other.currency} to {self.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __repr__(self) -> str:
        return f"Money({self.amount} {self.currency})"


class Unconvertible:
    """Result of normalizing an amount for which no usable rate exists."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNCONVERTIBLE"


UNCONVERTIBLE = Unconvertible()

ConversionResult = Union[Money, Unconvertible]


class RateTable:
    """
    Read-only mapping of currency -> rate (foreign units per 1 base unit).

    The table is supplied per calculation and never modified by the engine.
    """

    def __init__(self, rates: Optional[Mapping[str, AmountInput]] = None):
        parsed: Dict[str, Decimal] = {}
        for code, rate in (rates or {}).items():
            parsed[str(code).strip().upper()] = parse_amount(rate)
        self._rates = MappingProxyType(parsed)

    def rate_for(self, currency: str) -> Optional[Decimal]:
        """Usable rate for a currency, or None if absent, zero or negative."""
        rate = self._rates.get(currency)
        if rate is None or rate <= 0:
            return None
        return rate

    def as_dict(self) -> Dict[str, Decimal]:
        return dict(self._rates)

    def __contains__(self, currency: str) -> bool:
        return self.rate_for(currency) is not None

    def __len__(self) -> int:
        return len(self._rates)

    def __repr__(self) -> str:
        return f"RateTable({dict(self._rates)})"


def to_base(money: Money, rates: RateTable) -> ConversionResult:
    """
    Convert money into the base currency.

    Args:
        money: Amount to convert
        rates: Rate table for this calculation

    Returns:
        money unchanged when already in base currency, Money(amount / rate)
        in base currency otherwise, or UNCONVERTIBLE when the rate is
        missing, zero or negative.
    """
    if money.currency == BASE_CURRENCY:
        return money

    rate = rates.rate_for(money.currency)
    if rate is None:
        logger.debug(f"No usable {money.currency} rate, {money} is unconvertible")
        return UNCONVERTIBLE

    return Money(money.amount / rate, BASE_CURRENCY)
