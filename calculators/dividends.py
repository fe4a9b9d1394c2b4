"""
Dividend Projection

Spreads each bond's single dividend over the calendar months it pays in,
giving the 12-month projection chart and the upcoming-dividend reminders.

Amounts stay in the bond's currency; no conversion happens here.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from calculators.bonds import derive_bond_fields
from calculators.currency import Money, normalize_currency
from core.config import BASE_CURRENCY, REMINDER_HORIZON_MONTHS
from parsers.holdings import BondPosition
from utils.logging_config import setup_logger

logger = setup_logger(__name__)

MONTHS_PER_YEAR = 12


class MixedCurrencyProjectionError(ValueError):
    """Raised when an unfiltered projection would add different currencies."""
    pass


def _select(bonds: Iterable[BondPosition], currency: Optional[str]) -> List[BondPosition]:
    if currency is None:
        return list(bonds)
    return [bond for bond in bonds if bond.currency == currency]


def dividend_projection(
    bonds: Sequence[BondPosition],
    currency: Optional[str] = None
) -> List[Money]:
    """
    Project dividends per calendar month.

    Args:
        bonds: Bond positions
        currency: Only include bonds held in this currency

    Returns:
        12 Money values, index 0 = January, in the currency of the bonds.
        Bonds on the default schedule (no parseable months) have no
        calendar placement and add nothing.

    Raises:
        MixedCurrencyProjectionError: If no currency is given and the bonds
            are held in more than one currency.
    """
    if currency is not None:
        currency = normalize_currency(currency)

    selected = _select(bonds, currency)

    label = currency
    if label is None:
        held = sorted({bond.currency for bond in selected})
        if len(held) > 1:
            raise MixedCurrencyProjectionError(
                f"Bonds are held in {', '.join(held)}. "
                f"Pass a currency or use projection_by_currency()"
            )
        label = held[0] if held else BASE_CURRENCY

    buckets = [Decimal(0)] * MONTHS_PER_YEAR
    for bond in selected:
        derived = derive_bond_fields(bond)
        for month in derived.schedule.months:
            buckets[month - 1] += derived.single_dividend

    return [Money(amount, label) for amount in buckets]


def projection_by_currency(bonds: Sequence[BondPosition]) -> Dict[str, List[Money]]:
    """One 12-month projection per currency held."""
    currencies = sorted({bond.currency for bond in bonds})
    return {code: dividend_projection(bonds, code) for code in currencies}


def total_annual_dividend(bonds: Sequence[BondPosition], currency: Optional[str] = None) -> Decimal:
    """Sum of the 12-month projection (same currency rules as dividend_projection)."""
    return sum((m.amount for m in dividend_projection(bonds, currency)), start=Decimal(0))


def projection_frame(projection: Sequence[Money]) -> pd.DataFrame:
    """Monthly projection table (month 1-12, amount, currency)."""
    return pd.DataFrame({
        'month': list(range(1, len(projection) + 1)),
        'amount': [float(m.amount) for m in projection],
        'currency': [m.currency for m in projection],
    })


@dataclass(frozen=True)
class DividendReminder:
    """A dividend expected in a given month."""
    customer_name: str
    bond_name: str
    month: int
    year: int
    amount: Decimal
    currency: str


def upcoming_months(today: date, horizon: int = REMINDER_HORIZON_MONTHS) -> List[Tuple[int, int]]:
    """(month, year) for the current month and the following horizon - 1 months."""
    result = []
    for offset in range(horizon):
        index = today.month - 1 + offset
        result.append((index % MONTHS_PER_YEAR + 1, today.year + index // MONTHS_PER_YEAR))
    return result


def upcoming_dividends(
    customers: Iterable[Tuple[str, Sequence[BondPosition]]],
    today: date,
    horizon: int = REMINDER_HORIZON_MONTHS
) -> List[DividendReminder]:
    """
    Dividends due in the reminder horizon across customers.

    Args:
        customers: (customer name, bonds) pairs
        today: Reference date (reminders start at its month)
        horizon: Number of months covered, current month included

    Returns:
        Reminders sorted by (year, month)
    """
    targets = upcoming_months(today, horizon)
    reminders: List[DividendReminder] = []

    for customer_name, bonds in customers:
        for bond in bonds:
            if not bond.dividend_months.strip():
                continue

            derived = derive_bond_fields(bond)
            for month, year in targets:
                if derived.schedule.pays_in(month):
                    reminders.append(DividendReminder(
                        customer_name=customer_name,
                        bond_name=bond.bond_name,
                        month=month,
                        year=year,
                        amount=derived.single_dividend,
                        currency=bond.currency,
                    ))

    reminders.sort(key=lambda r: (r.year, r.month))
    logger.debug(f"{len(reminders)} dividend reminder(s) from {targets[0] if targets else None}")
    return reminders
