"""
Bond Computation Engine

Derives the calculated columns of a corporate bond record:

    subscription amount = subscription price x face value / 100
    transaction amount  = subscription amount + previous-hand interest
    annual dividend     = coupon rate / 100 x face value
    single dividend     = annual dividend / payments per year
    yield rate          = annual dividend / transaction amount x 100

plus the per-bond profit and return figures used by the inventory view.
All figures are in the bond's own currency.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from calculators.currency import ConversionResult, Money, RateTable, to_base
from parsers.dividend_schedule import DividendSchedule, parse_months
from parsers.holdings import BondPosition
from utils.logging_config import setup_logger

logger = setup_logger(__name__)

# Editing any of these fields invalidates the derived columns
DERIVATION_INPUTS = (
    'coupon_rate',
    'subscription_price',
    'holding_face_value',
    'previous_hand_interest',
    'dividend_months',
)


@dataclass(frozen=True)
class DerivedBondFields:
    """Calculated columns for one bond, in the bond's currency."""
    subscription_amount: Decimal
    transaction_amount: Decimal
    annual_dividend: Decimal
    single_dividend: Decimal
    yield_rate: Decimal
    schedule: DividendSchedule

    @property
    def payment_count(self) -> int:
        return self.schedule.payment_count


def derive_bond_fields(bond: BondPosition) -> DerivedBondFields:
    """
    Derive subscription/transaction amounts, dividends and yield for a bond.

    Args:
        bond: Bond record as entered

    Returns:
        DerivedBondFields. yield_rate is 0 when the transaction amount is
        not positive.
    """
    subscription_amount = bond.subscription_price * bond.holding_face_value / 100
    transaction_amount = subscription_amount + bond.previous_hand_interest
    annual_dividend = (bond.coupon_rate / 100) * bond.holding_face_value

    schedule = parse_months(bond.dividend_months)
    assert schedule.payment_count >= 1, "dividend schedule must have at least one payment"
    single_dividend = annual_dividend / schedule.payment_count

    if transaction_amount > 0:
        yield_rate = (annual_dividend / transaction_amount) * 100
    else:
        yield_rate = Decimal(0)

    return DerivedBondFields(
        subscription_amount=subscription_amount,
        transaction_amount=transaction_amount,
        annual_dividend=annual_dividend,
        single_dividend=single_dividend,
        yield_rate=yield_rate,
        schedule=schedule,
    )


def inputs_changed(before: BondPosition, after: BondPosition) -> bool:
    """True if an edit touched a field the derived columns depend on."""
    return any(getattr(before, name) != getattr(after, name) for name in DERIVATION_INPUTS)


def apply_first_save_defaults(bond: BondPosition) -> BondPosition:
    """
    Fill in the current value default when a bond is saved.

    An unset or zero current value becomes the transaction amount. This
    runs once at data entry; a value the user later sets to 0 on purpose
    is kept by effective_current_value().
    """
    if bond.current_value:
        return bond

    transaction_amount = derive_bond_fields(bond).transaction_amount
    logger.debug(f"Defaulting current value of {bond.bond_name!r} to {transaction_amount}")
    return bond.model_copy(update={'current_value': transaction_amount})


def effective_current_value(bond: BondPosition) -> Decimal:
    """
    Stored current value, 0 if never set.

    The transaction-amount default belongs to apply_first_save_defaults()
    and is never re-derived on read.
    """
    if bond.current_value is None:
        return Decimal(0)
    return bond.current_value


def profit_loss_with_interest(bond: BondPosition, derived: Optional[DerivedBondFields] = None) -> Decimal:
    """current value - transaction amount + received interest."""
    if derived is None:
        derived = derive_bond_fields(bond)
    current_value = effective_current_value(bond)
    return current_value - derived.transaction_amount + bond.received_interest


def bond_return_rate(bond: BondPosition, derived: Optional[DerivedBondFields] = None) -> Decimal:
    """
    Return rate of one bond including received interest, in percent.

    Defined as 0 when the transaction amount is not positive.
    """
    if derived is None:
        derived = derive_bond_fields(bond)
    if derived.transaction_amount <= 0:
        return Decimal(0)
    return (profit_loss_with_interest(bond, derived) / derived.transaction_amount) * 100


def converted_current_value(bond: BondPosition, rates: RateTable) -> ConversionResult:
    """Current value of a bond in base currency (or UNCONVERTIBLE)."""
    return to_base(Money(effective_current_value(bond), bond.currency), rates)
