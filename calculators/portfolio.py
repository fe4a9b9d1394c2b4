"""
Portfolio Aggregation

Sums a customer's holdings into base-currency totals, profit and loss,
return rate and allocation percentages.

Bond totals come from one of two sources, chosen by an explicit mode
object passed in by the caller:
- IndividualUpdate: every bond's current value and received interest,
  normalized and summed bottom-up
- BatchOverride: the most recent manually entered totals; bond cost is
  still summed bottom-up from transaction amounts

Amounts without a usable exchange rate are left out of every sum and
listed in PortfolioSummary.skipped so the caller can warn the user.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from calculators.bonds import derive_bond_fields, effective_current_value
from calculators.currency import UNCONVERTIBLE, Money, RateTable, to_base
from core.config import BASE_CURRENCY
from parsers.holdings import (
    ENTRY_CATEGORIES,
    AssetCategory,
    BatchOverrideRecord,
    BondPosition,
    HoldingEntry,
    HoldingSnapshot,
)
from utils.logging_config import customer_extra, setup_logger

logger = setup_logger(__name__)

# Order of categories in summaries and allocation tables
CATEGORY_ORDER = (
    AssetCategory.CASH,
    AssetCategory.EQUITIES,
    AssetCategory.BONDS,
    AssetCategory.STRUCTURED_PRODUCTS,
    AssetCategory.FUNDS,
    AssetCategory.INSURANCE,
    AssetCategory.REGULAR_INVESTMENT,
)


class AggregationModeFlag(str, Enum):
    """Persisted per-customer choice of bond data source."""
    INDIVIDUAL_UPDATE = "IndividualUpdate"
    BATCH_OVERRIDE = "BatchOverride"


@dataclass(frozen=True)
class IndividualUpdate:
    """Bond figures are summed from the individual positions."""
    flag: ClassVar[AggregationModeFlag] = AggregationModeFlag.INDIVIDUAL_UPDATE


@dataclass(frozen=True)
class BatchOverride:
    """Bond current value and interest come from a manual record."""
    flag: ClassVar[AggregationModeFlag] = AggregationModeFlag.BATCH_OVERRIDE

    record: Optional[BatchOverrideRecord] = None

    @classmethod
    def from_history(cls, records: Iterable[BatchOverrideRecord]) -> 'BatchOverride':
        return cls(record=latest_override(records))


AggregationMode = Union[IndividualUpdate, BatchOverride]


def latest_override(records: Iterable[BatchOverrideRecord]) -> Optional[BatchOverrideRecord]:
    """Most recent record by recorded_at; later entries win ties."""
    latest = None
    for record in records:
        if latest is None or record.recorded_at >= latest.recorded_at:
            latest = record
    return latest


def resolve_mode(
    flag: Union[AggregationModeFlag, str, None],
    override_history: Sequence[BatchOverrideRecord] = ()
) -> AggregationMode:
    """
    Build the explicit mode object from the persisted flag.

    Args:
        flag: Stored flag (None means the default, IndividualUpdate)
        override_history: All manual records for the customer

    Returns:
        IndividualUpdate() or BatchOverride carrying the latest record
    """
    if flag is None:
        return IndividualUpdate()

    flag = AggregationModeFlag(flag)
    if flag == AggregationModeFlag.BATCH_OVERRIDE:
        return BatchOverride.from_history(override_history)
    return IndividualUpdate()


@dataclass(frozen=True)
class SkippedAmount:
    """An amount left out of the totals because it could not be converted."""
    category: AssetCategory
    label: str
    money: Money
    detail: str = ""

    def describe(self) -> str:
        what = f"{self.label} {self.detail}".strip()
        return f"{self.category.value}: {what} ({self.money.amount} {self.money.currency}) has no exchange rate"


@dataclass(frozen=True)
class BondAggregate:
    """Bond totals in base currency."""
    current_value: Decimal
    received_interest: Decimal
    cost: Decimal
    source: AggregationModeFlag
    override_recorded_at: Optional[datetime] = None

    @property
    def profit_loss(self) -> Decimal:
        return self.current_value - self.cost + self.received_interest

    @property
    def return_rate(self) -> Decimal:
        """Aggregate bond return including interest (0 when cost <= 0)."""
        if self.cost <= 0:
            return Decimal(0)
        return (self.profit_loss / self.cost) * 100


@dataclass(frozen=True)
class PortfolioSummary:
    """Base-currency totals for one customer."""
    customer: str
    category_totals: Dict[AssetCategory, Decimal]
    cash_by_currency: Dict[str, Decimal]
    bonds: BondAggregate
    total_assets: Decimal
    cumulative_net_deposits: Decimal
    total_pnl: Decimal
    total_return_rate: Decimal
    skipped: Tuple[SkippedAmount, ...] = ()
    base_currency: str = BASE_CURRENCY

    @property
    def has_skipped(self) -> bool:
        return bool(self.skipped)

    def category_total(self, category: AssetCategory) -> Decimal:
        return self.category_totals.get(category, Decimal(0))

    def allocation_percentage(self, category: AssetCategory) -> Decimal:
        """Share of total assets in percent (0 when total assets <= 0)."""
        if self.total_assets <= 0:
            return Decimal(0)
        return self.category_total(category) / self.total_assets * 100

    def allocations(self) -> Dict[AssetCategory, Decimal]:
        return {category: self.allocation_percentage(category) for category in CATEGORY_ORDER}

    def to_frame(self) -> pd.DataFrame:
        """Allocation table: one row per category."""
        rows = [
            {
                'category': category.value,
                'amount': float(self.category_total(category)),
                'percentage': float(self.allocation_percentage(category)),
            }
            for category in CATEGORY_ORDER
        ]
        return pd.DataFrame(rows, columns=['category', 'amount', 'percentage'])


@dataclass
class _Accumulator:
    """Running totals for one aggregate() call."""
    rates: RateTable
    totals: Dict[AssetCategory, Decimal] = field(default_factory=lambda: defaultdict(Decimal))
    skipped: List[SkippedAmount] = field(default_factory=list)

    def convert(self, category: AssetCategory, label: str, money: Money, detail: str = "") -> Optional[Decimal]:
        result = to_base(money, self.rates)
        if result is UNCONVERTIBLE:
            self.skipped.append(SkippedAmount(category, label, money, detail))
            return None
        return result.amount

    def add(self, category: AssetCategory, label: str, money: Money) -> Optional[Decimal]:
        amount = self.convert(category, label, money)
        if amount is not None:
            self.totals[category] += amount
        return amount


def _sum_entries(acc: _Accumulator, category: AssetCategory, entries: Iterable[HoldingEntry]):
    for entry in entries:
        if entry.exited:
            continue
        acc.add(category, entry.label, entry.to_money())


def _aggregate_bonds(
    acc: _Accumulator,
    bonds: Sequence[BondPosition],
    mode: AggregationMode,
    context: Dict[str, str]
) -> BondAggregate:
    cost = Decimal(0)
    current_value = Decimal(0)
    received_interest = Decimal(0)
    bottom_up = isinstance(mode, IndividualUpdate)

    for bond in bonds:
        derived = derive_bond_fields(bond)
        label = bond.bond_name

        amount = acc.convert(AssetCategory.BONDS, label, Money(derived.transaction_amount, bond.currency), "cost")
        if amount is not None:
            cost += amount

        if not bottom_up:
            continue

        amount = acc.convert(
            AssetCategory.BONDS, label,
            Money(effective_current_value(bond), bond.currency),
            "current value"
        )
        if amount is not None:
            current_value += amount

        amount = acc.convert(AssetCategory.BONDS, label, Money(bond.received_interest, bond.currency), "received interest")
        if amount is not None:
            received_interest += amount

    if bottom_up:
        return BondAggregate(
            current_value=current_value,
            received_interest=received_interest,
            cost=cost,
            source=AggregationModeFlag.INDIVIDUAL_UPDATE,
        )

    record = mode.record
    if record is None:
        logger.warning("Batch override mode without an override record, bond value and interest set to 0", extra=context)
        return BondAggregate(
            current_value=Decimal(0),
            received_interest=Decimal(0),
            cost=cost,
            source=AggregationModeFlag.BATCH_OVERRIDE,
        )

    return BondAggregate(
        current_value=record.total_current_value,
        received_interest=record.total_received_interest,
        cost=cost,
        source=AggregationModeFlag.BATCH_OVERRIDE,
        override_recorded_at=record.recorded_at,
    )


def aggregate(
    customer: str,
    holdings: HoldingSnapshot,
    bonds: Sequence[BondPosition],
    mode: AggregationMode,
    rates: RateTable
) -> PortfolioSummary:
    """
    Aggregate one customer's holdings into a PortfolioSummary.

    Args:
        customer: Customer name or id (carried through for display)
        holdings: Latest snapshot (cash, entry categories, net deposits)
        bonds: Current bond positions
        mode: IndividualUpdate() or BatchOverride(record)
        rates: Rate table for this calculation

    Returns:
        PortfolioSummary. Inputs are never modified; identical inputs give
        identical summaries.
    """
    acc = _Accumulator(rates)
    context = customer_extra(customer)
    cash_by_currency: Dict[str, Decimal] = defaultdict(Decimal)

    for entry in holdings.cash_entries():
        amount = acc.add(AssetCategory.CASH, entry.label, entry.to_money())
        if amount is not None:
            cash_by_currency[entry.currency] += amount

    for category in ENTRY_CATEGORIES:
        _sum_entries(acc, category, holdings.entries_for(category))

    bond_aggregate = _aggregate_bonds(acc, bonds, mode, context)
    acc.totals[AssetCategory.BONDS] += bond_aggregate.current_value

    category_totals = {category: acc.totals[category] for category in CATEGORY_ORDER}
    total_assets = sum(category_totals.values(), start=Decimal(0))

    deposits = holdings.cumulative_net_deposits
    total_pnl = total_assets - deposits
    if deposits > 0:
        total_return_rate = (total_pnl / deposits) * 100
    else:
        total_return_rate = Decimal(0)

    if acc.skipped:
        logger.warning(f"{len(acc.skipped)} amount(s) excluded for missing exchange rates", extra=context)
        for item in acc.skipped:
            logger.debug(item.describe(), extra=context)

    logger.info(
        f"Total assets {total_assets:.2f} {BASE_CURRENCY}, "
        f"P&L {total_pnl:.2f}, return {total_return_rate:.2f}% "
        f"(bonds via {bond_aggregate.source.value})",
        extra=context
    )

    return PortfolioSummary(
        customer=customer,
        category_totals=category_totals,
        cash_by_currency=dict(cash_by_currency),
        bonds=bond_aggregate,
        total_assets=total_assets,
        cumulative_net_deposits=deposits,
        total_pnl=total_pnl,
        total_return_rate=total_return_rate,
        skipped=tuple(acc.skipped),
    )
