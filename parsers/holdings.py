"""
Holding Record Models

Input records supplied by the storage collaborator:
- HoldingEntry: one position inside an asset category
- HoldingSnapshot: a customer's point-in-time totals, immutable once recorded
- BondPosition: a corporate bond as entered by the user
- BatchOverrideRecord: manually entered bond totals (batch override mode)

Every numeric field accepts free text ("100,000", "5%") and falls back to
zero for malformed input, so records can be built straight from form or
CSV values. Validation of that text is the form's job, not the engine's.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

from calculators.currency import Money, normalize_currency
from core.config import BASE_CURRENCY
from parsers.text_values import parse_amount, parse_flexible_date, parse_percent


class AssetCategory(str, Enum):
    """Asset categories reported on the dashboard."""

    CASH = "Cash"
    EQUITIES = "Equities"
    BONDS = "Bonds"
    STRUCTURED_PRODUCTS = "StructuredProducts"
    FUNDS = "Funds"
    INSURANCE = "Insurance"
    REGULAR_INVESTMENT = "RegularInvestment"


class HoldingEntry(BaseModel):
    """One position inside a category (a stock line, a fund, a policy...)."""

    model_config = ConfigDict(frozen=True)

    label: str = ""
    amount: Decimal = Decimal(0)
    currency: str = BASE_CURRENCY
    exited: bool = False  # closed structured products stay on record but stop counting

    @field_validator('amount', mode='before')
    @classmethod
    def parse_amount_text(cls, v):
        return parse_amount(v)

    @field_validator('currency', mode='before')
    @classmethod
    def check_currency(cls, v):
        return normalize_currency(v)

    @field_validator('label', mode='before')
    @classmethod
    def blank_label(cls, v):
        return "" if v is None else str(v)

    def to_money(self) -> Money:
        return Money(self.amount, self.currency)


# Categories stored as entry lists on a snapshot (bonds come from positions)
ENTRY_CATEGORIES = (
    AssetCategory.EQUITIES,
    AssetCategory.STRUCTURED_PRODUCTS,
    AssetCategory.FUNDS,
    AssetCategory.INSURANCE,
    AssetCategory.REGULAR_INVESTMENT,
)


class HoldingSnapshot(BaseModel):
    """
    A customer's holdings recorded at one point in time.

    total_assets and bonds_value are base-currency figures frozen when the
    snapshot was recorded; later rate changes never restate them.
    """

    model_config = ConfigDict(frozen=True)

    created_at: datetime
    cash: Dict[str, Decimal] = {}
    equities: Tuple[HoldingEntry, ...] = ()
    structured_products: Tuple[HoldingEntry, ...] = ()
    funds: Tuple[HoldingEntry, ...] = ()
    insurance: Tuple[HoldingEntry, ...] = ()
    regular_investment: Tuple[HoldingEntry, ...] = ()

    bonds_value: Decimal = Decimal(0)
    cumulative_net_deposits: Decimal = Decimal(0)
    total_assets: Decimal = Decimal(0)

    @field_validator('cash', mode='before')
    @classmethod
    def parse_cash(cls, v):
        if not v:
            return {}
        # "usd" and "USD" are the same balance; colliding keys add up
        cash: Dict[str, Decimal] = {}
        for code, amount in v.items():
            code = normalize_currency(code)
            cash[code] = cash.get(code, Decimal(0)) + parse_amount(amount)
        return cash

    @field_validator('bonds_value', 'cumulative_net_deposits', 'total_assets', mode='before')
    @classmethod
    def parse_totals(cls, v):
        return parse_amount(v)

    @property
    def total_pnl(self) -> Decimal:
        return self.total_assets - self.cumulative_net_deposits

    def cash_entries(self) -> List[HoldingEntry]:
        return [
            HoldingEntry(label=code, amount=amount, currency=code)
            for code, amount in self.cash.items()
        ]

    def entries_for(self, category: AssetCategory) -> Tuple[HoldingEntry, ...]:
        """Entries recorded for a category (cash included, bonds never)."""
        if category == AssetCategory.CASH:
            return tuple(self.cash_entries())
        if category == AssetCategory.BONDS:
            return ()
        return getattr(self, category_field(category))


def category_field(category: AssetCategory) -> str:
    """Snapshot attribute name for an entry category."""
    return {
        AssetCategory.EQUITIES: 'equities',
        AssetCategory.STRUCTURED_PRODUCTS: 'structured_products',
        AssetCategory.FUNDS: 'funds',
        AssetCategory.INSURANCE: 'insurance',
        AssetCategory.REGULAR_INVESTMENT: 'regular_investment',
    }[category]


class BondPosition(BaseModel):
    """
    A corporate bond as entered by the user.

    Rates and prices are percentages: coupon_rate 5 means 5% of face value
    per year, subscription_price 98.5 means 98.5% of face value.
    current_value stays None until the first save fills in its default.
    """

    model_config = ConfigDict(frozen=True)

    bond_name: str = ""
    subscription_date: Optional[date] = None
    maturity_date: Optional[date] = None
    currency: str = BASE_CURRENCY

    coupon_rate: Decimal = Decimal(0)
    subscription_price: Decimal = Decimal(0)
    holding_face_value: Decimal = Decimal(0)
    previous_hand_interest: Decimal = Decimal(0)  # accrued interest paid at purchase
    dividend_months: str = ""

    current_value: Optional[Decimal] = None
    received_interest: Decimal = Decimal(0)

    @field_validator('coupon_rate', mode='before')
    @classmethod
    def parse_coupon(cls, v):
        return parse_percent(v)

    @field_validator(
        'subscription_price', 'holding_face_value',
        'previous_hand_interest', 'received_interest',
        mode='before'
    )
    @classmethod
    def parse_amount_text(cls, v):
        return parse_amount(v)

    @field_validator('current_value', mode='before')
    @classmethod
    def parse_optional_amount(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return parse_amount(v)

    @field_validator('subscription_date', 'maturity_date', mode='before')
    @classmethod
    def parse_date_text(cls, v):
        return parse_flexible_date(v)

    @field_validator('currency', mode='before')
    @classmethod
    def check_currency(cls, v):
        return normalize_currency(v)

    @field_validator('bond_name', 'dividend_months', mode='before')
    @classmethod
    def blank_text(cls, v):
        return "" if v is None else str(v)


class BatchOverrideRecord(BaseModel):
    """Bond totals entered by hand, in base currency."""

    model_config = ConfigDict(frozen=True)

    recorded_at: datetime
    total_current_value: Decimal = Decimal(0)
    total_received_interest: Decimal = Decimal(0)

    @field_validator('total_current_value', 'total_received_interest', mode='before')
    @classmethod
    def parse_amount_text(cls, v):
        return parse_amount(v)
