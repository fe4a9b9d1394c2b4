"""
Trend Series and Period Changes

Builds the dashboard trend charts from a customer's snapshot history.

Windows are count-based: "3M" means the last 3 snapshots, not the last
90 days. Snapshots are ordered by creation time, oldest first.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from core.config import CHART_MARGIN, FLAT_CHART_POSITION, TREND_WINDOW_SIZES
from parsers.holdings import HoldingSnapshot
from utils.logging_config import setup_logger

logger = setup_logger(__name__)


class InvalidWindowError(ValueError):
    """Raised when a trend window label is not recognized."""
    pass


class TrendWindow(str, Enum):
    """Trailing-snapshot windows offered on the dashboard."""

    ALL = "ALL"
    LAST_7 = "7D"
    LAST_1 = "1M"
    LAST_3 = "3M"
    LAST_12 = "1Y"

    @property
    def size(self) -> Optional[int]:
        """Number of trailing snapshots, None for the full history."""
        return TREND_WINDOW_SIZES[self.value]

    @classmethod
    def parse(cls, value: Union['TrendWindow', str]) -> 'TrendWindow':
        if isinstance(value, TrendWindow):
            return value
        label = str(value).strip().upper()
        for window in cls:
            if window.value == label or window.name == label:
                return window
        raise InvalidWindowError(
            f"Unknown trend window '{value}'. "
            f"Available: {', '.join(w.value for w in cls)}"
        )


class TrendMetric(str, Enum):
    """Snapshot figure plotted by a trend series."""

    TOTAL_ASSETS = "TotalAssets"
    TOTAL_PNL = "TotalPnL"
    BONDS = "Bonds"
    DEPOSITS = "CumulativeNetDeposits"

    def value_of(self, snapshot: HoldingSnapshot) -> Decimal:
        if self == TrendMetric.TOTAL_PNL:
            return snapshot.total_pnl
        if self == TrendMetric.BONDS:
            return snapshot.bonds_value
        if self == TrendMetric.DEPOSITS:
            return snapshot.cumulative_net_deposits
        return snapshot.total_assets


def order_snapshots(snapshots: Sequence[HoldingSnapshot]) -> List[HoldingSnapshot]:
    """Snapshots sorted by creation time, oldest first (stable)."""
    return sorted(snapshots, key=lambda s: s.created_at)


def window_snapshots(snapshots: Sequence[HoldingSnapshot], window: TrendWindow) -> List[HoldingSnapshot]:
    """Trailing snapshots selected by the window; fewer available returns all."""
    ordered = order_snapshots(snapshots)
    size = TrendWindow.parse(window).size
    if size is None:
        return ordered
    return ordered[-size:]


def chart_positions(values: Sequence[Decimal]) -> List[float]:
    """
    Place values in [0, 1] by min-max scaling.

    All-equal values sit at FLAT_CHART_POSITION.
    """
    if not values:
        return []

    arr = np.array([float(v) for v in values], dtype=float)
    low = arr.min()
    span = arr.max() - low

    if span <= 0:
        return [FLAT_CHART_POSITION] * len(values)

    return ((arr - low) / span).tolist()


def display_positions(positions: Sequence[float], margin: float = CHART_MARGIN) -> List[float]:
    """Squeeze [0, 1] positions into [margin, 1 - margin] for plotting."""
    scale = 1 - 2 * margin
    return [p * scale + margin for p in positions]


def change_percentage(values: Sequence[Decimal]) -> Decimal:
    """
    Change from the first to the last value in percent.

    0 when there are fewer than two values or the first value is 0.
    """
    if len(values) < 2:
        return Decimal(0)

    first, last = values[0], values[-1]
    if first == 0:
        return Decimal(0)

    return (last - first) / first * 100


def relative_change(current: Decimal, previous: Decimal) -> Decimal:
    """(current - previous) / |previous| in percent, 0 when previous is 0."""
    if previous == 0:
        return Decimal(0)
    return (current - previous) / abs(previous) * 100


def period_over_period(
    snapshots: Sequence[HoldingSnapshot],
    metric: TrendMetric = TrendMetric.TOTAL_ASSETS
) -> Decimal:
    """
    Latest vs. immediately preceding snapshot, ignoring any window.

    0 when fewer than two snapshots exist.
    """
    ordered = order_snapshots(snapshots)
    if len(ordered) < 2:
        return Decimal(0)
    return relative_change(metric.value_of(ordered[-1]), metric.value_of(ordered[-2]))


@dataclass(frozen=True)
class TrendSeries:
    """Windowed values of one metric, ready for charting."""
    window: TrendWindow
    metric: TrendMetric
    timestamps: Tuple[datetime, ...]
    values: Tuple[Decimal, ...]
    positions: Tuple[float, ...]
    change_percentage: Decimal

    @property
    def is_empty(self) -> bool:
        return not self.values

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            'created_at': list(self.timestamps),
            'value': [float(v) for v in self.values],
            'position': list(self.positions),
        })


def trend(
    snapshots: Sequence[HoldingSnapshot],
    window: Union[TrendWindow, str] = TrendWindow.ALL,
    metric: TrendMetric = TrendMetric.TOTAL_ASSETS
) -> TrendSeries:
    """
    Build a trend series for the dashboard chart.

    Args:
        snapshots: Snapshot history in any order
        window: Window label or TrendWindow
        metric: Figure to plot

    Returns:
        TrendSeries with values, chart positions and window change
    """
    window = TrendWindow.parse(window)
    selected = window_snapshots(snapshots, window)
    values = tuple(metric.value_of(s) for s in selected)

    series = TrendSeries(
        window=window,
        metric=metric,
        timestamps=tuple(s.created_at for s in selected),
        values=values,
        positions=tuple(chart_positions(values)),
        change_percentage=change_percentage(values),
    )

    logger.debug(
        f"Trend {metric.value}/{window.value}: {len(values)} of {len(snapshots)} snapshots, "
        f"change {series.change_percentage:.2f}%"
    )
    return series


@dataclass(frozen=True)
class TrendHeadline:
    """Headline figures from the latest snapshot."""
    total_assets: Decimal
    cumulative_net_deposits: Decimal
    total_pnl: Decimal
    total_return_rate: Decimal
    asset_change_percentage: Decimal
    pnl_change_percentage: Decimal


def headline(snapshots: Sequence[HoldingSnapshot]) -> TrendHeadline:
    """
    Totals and changes shown above the trend chart.

    Return rate is P&L / cumulative net deposits (0 when deposits <= 0).
    """
    ordered = order_snapshots(snapshots)
    if not ordered:
        zero = Decimal(0)
        return TrendHeadline(zero, zero, zero, zero, zero, zero)

    latest = ordered[-1]
    deposits = latest.cumulative_net_deposits
    total_pnl = latest.total_pnl

    if deposits > 0:
        total_return_rate = total_pnl / deposits * 100
    else:
        total_return_rate = Decimal(0)

    return TrendHeadline(
        total_assets=latest.total_assets,
        cumulative_net_deposits=deposits,
        total_pnl=total_pnl,
        total_return_rate=total_return_rate,
        asset_change_percentage=period_over_period(ordered, TrendMetric.TOTAL_ASSETS),
        pnl_change_percentage=period_over_period(ordered, TrendMetric.TOTAL_PNL),
    )
