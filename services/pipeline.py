# -----------------------------------------------------------------------------
# (c) 2026 Andreas Wagner. All Rights Reserved.
#
# This code is part of the Portfolio Viewer project.
# Unauthorized usage or distribution is not permitted.
# -----------------------------------------------------------------------------

"""
Customer dashboard recomputation.

Runs every calculator over one consistent set of inputs. The caller
(storage and rate collaborators) must hand over holdings, bonds, mode and
rates read together; nothing here locks, fetches or writes.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from calculators.bonds import DerivedBondFields, bond_return_rate, derive_bond_fields
from calculators.currency import Money, RateTable
from calculators.dividends import (
    DividendReminder,
    MixedCurrencyProjectionError,
    dividend_projection,
    projection_by_currency,
    projection_frame,
    upcoming_dividends,
)
from calculators.portfolio import AggregationModeFlag, PortfolioSummary, aggregate, resolve_mode
from calculators.trends import TrendHeadline, TrendMetric, TrendSeries, TrendWindow, headline, order_snapshots, trend
from parsers.holdings import BatchOverrideRecord, BondPosition, HoldingSnapshot
from utils.logging_config import customer_extra, get_perf_logger, log_dataframe_info, setup_logger

logger = setup_logger(__name__)


@dataclass(frozen=True)
class CustomerBook:
    """Everything stored for one customer, read as one consistent snapshot."""
    customer_name: str
    snapshots: Tuple[HoldingSnapshot, ...]
    bonds: Tuple[BondPosition, ...] = ()
    mode_flag: AggregationModeFlag = AggregationModeFlag.INDIVIDUAL_UPDATE
    override_history: Tuple[BatchOverrideRecord, ...] = ()

    @property
    def latest_snapshot(self) -> Optional[HoldingSnapshot]:
        ordered = order_snapshots(self.snapshots)
        return ordered[-1] if ordered else None


@dataclass(frozen=True)
class BondRow:
    """A bond with its derived columns, as written back for display."""
    bond: BondPosition
    derived: DerivedBondFields
    return_rate: Decimal


@dataclass(frozen=True)
class CustomerDashboard:
    """All figures shown on a customer's dashboard."""
    summary: Optional[PortfolioSummary]
    bond_rows: Tuple[BondRow, ...]
    trend: TrendSeries
    headline: TrendHeadline
    projection: Optional[Tuple[Money, ...]]  # None when bonds span currencies and no filter is set
    projection_by_currency: Dict[str, List[Money]] = field(default_factory=dict)
    reminders: Tuple[DividendReminder, ...] = ()

    def allocation_frame(self) -> pd.DataFrame:
        if self.summary is None:
            return pd.DataFrame(columns=['category', 'amount', 'percentage'])
        return self.summary.to_frame()

    def projection_frame(self) -> pd.DataFrame:
        if self.projection is None:
            return pd.DataFrame(columns=['month', 'amount', 'currency'])
        return projection_frame(self.projection)


def recalculate_bonds(bonds: Sequence[BondPosition]) -> List[BondRow]:
    """Derived columns for every bond (storage may cache them for display)."""
    rows = []
    for bond in bonds:
        derived = derive_bond_fields(bond)
        rows.append(BondRow(bond=bond, derived=derived, return_rate=bond_return_rate(bond, derived)))
    return rows


def build_dashboard(
    book: CustomerBook,
    rates: RateTable,
    window: Union[TrendWindow, str] = TrendWindow.ALL,
    today: Optional[date] = None,
    metric: TrendMetric = TrendMetric.TOTAL_ASSETS,
    projection_currency: Optional[str] = None
) -> CustomerDashboard:
    """
    Recompute a customer's dashboard.

    Args:
        book: Customer inputs read together from storage
        rates: Rate table for this calculation
        window: Trend window
        today: Reference date for reminders (None skips reminders)
        metric: Figure plotted by the trend chart
        projection_currency: Restrict the dividend projection to one currency

    Returns:
        CustomerDashboard. summary is None when the customer has no snapshot
        yet; projection is None when bonds are held in several currencies
        and no projection_currency is given (see projection_by_currency).
    """
    context = customer_extra(book.customer_name)

    with get_perf_logger(logger, f"build_dashboard({book.customer_name})", threshold_ms=500):
        mode = resolve_mode(book.mode_flag, book.override_history)

        latest = book.latest_snapshot
        summary = None
        if latest is None:
            logger.info("No snapshots recorded, skipping aggregation", extra=context)
        else:
            summary = aggregate(book.customer_name, latest, book.bonds, mode, rates)

        reminders: Tuple[DividendReminder, ...] = ()
        if today is not None:
            reminders = tuple(upcoming_dividends([(book.customer_name, book.bonds)], today))

        projection = None
        try:
            projection = tuple(dividend_projection(book.bonds, projection_currency))
        except MixedCurrencyProjectionError:
            logger.info("Bonds span several currencies, projection kept per currency only", extra=context)

        dashboard = CustomerDashboard(
            summary=summary,
            bond_rows=tuple(recalculate_bonds(book.bonds)),
            trend=trend(book.snapshots, window, metric),
            headline=headline(book.snapshots),
            projection=projection,
            projection_by_currency=projection_by_currency(book.bonds),
            reminders=reminders,
        )

    log_dataframe_info(logger, dashboard.allocation_frame(), f"{book.customer_name} allocation")
    return dashboard
