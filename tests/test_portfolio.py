"""
Tests for Portfolio Aggregation

Fixture portfolio (rates: TWD 32, EUR 0.8 per USD):

    Cash        10,000 USD + 320,000 TWD        = 20,000
    Equities                                    = 20,000
    Bonds       A 10,500 USD + B 352,000 TWD    = 21,500
    Structured  5,000 (+ an exited 9,999)       =  5,000
    Funds       100 EUR                         =    125
    Insurance   32,000 TWD                      =  1,000
    Regular                                     =    875
                                                  ------
    Total assets                                  68,500

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from datetime import datetime
from decimal import Decimal

from calculators.currency import Money, RateTable
from calculators.portfolio import (
    CATEGORY_ORDER,
    AggregationModeFlag,
    BatchOverride,
    IndividualUpdate,
    SkippedAmount,
    aggregate,
    latest_override,
    resolve_mode,
)
from parsers.holdings import AssetCategory, BatchOverrideRecord, BondPosition, HoldingEntry, HoldingSnapshot


@pytest.fixture
def rates():
    return RateTable({"TWD": "32", "EUR": "0.8"})


@pytest.fixture
def holdings():
    return HoldingSnapshot(
        created_at=datetime(2024, 6, 30),
        cash={"USD": "10000", "TWD": "320000"},
        equities=[HoldingEntry(label="AAPL", amount="20000")],
        structured_products=[
            HoldingEntry(label="SP-1", amount="5000"),
            HoldingEntry(label="SP-OLD", amount="9999", exited=True),
        ],
        funds=[HoldingEntry(label="World Fund", amount="100", currency="EUR")],
        insurance=[HoldingEntry(label="Life", amount="32000", currency="TWD")],
        regular_investment=[HoldingEntry(label="Monthly ETF", amount="875")],
        cumulative_net_deposits="50000",
    )


@pytest.fixture
def bonds():
    return [
        BondPosition(
            bond_name="Bond A", currency="USD", coupon_rate="5",
            subscription_price="100", holding_face_value="10000",
            current_value="10500", received_interest="300",
        ),
        BondPosition(
            bond_name="Bond B", currency="TWD", coupon_rate="3",
            subscription_price="100", holding_face_value="320000",
            current_value="352000", received_interest="6400",
        ),
    ]


@pytest.fixture
def override_record():
    return BatchOverrideRecord(
        recorded_at=datetime(2024, 6, 1),
        total_current_value="500000",
        total_received_interest="10000",
    )


class TestIndividualUpdate:
    """Bottom-up aggregation."""

    def test_totals(self, holdings, bonds, rates):
        summary = aggregate("Alice", holdings, bonds, IndividualUpdate(), rates)

        assert summary.total_assets == Decimal("68500")
        assert summary.total_pnl == Decimal("18500")
        assert summary.total_return_rate == Decimal("37")
        assert not summary.has_skipped

    def test_category_totals(self, holdings, bonds, rates):
        summary = aggregate("Alice", holdings, bonds, IndividualUpdate(), rates)

        assert summary.category_total(AssetCategory.CASH) == Decimal("20000")
        assert summary.category_total(AssetCategory.EQUITIES) == Decimal("20000")
        assert summary.category_total(AssetCategory.BONDS) == Decimal("21500")
        assert summary.category_total(AssetCategory.STRUCTURED_PRODUCTS) == Decimal("5000")
        assert summary.category_total(AssetCategory.FUNDS) == Decimal("125")
        assert summary.category_total(AssetCategory.INSURANCE) == Decimal("1000")
        assert summary.category_total(AssetCategory.REGULAR_INVESTMENT) == Decimal("875")
        assert summary.cash_by_currency == {"USD": Decimal("10000"), "TWD": Decimal("10000")}

    def test_bond_aggregate(self, holdings, bonds, rates):
        summary = aggregate("Alice", holdings, bonds, IndividualUpdate(), rates)

        assert summary.bonds.current_value == Decimal("21500")
        assert summary.bonds.cost == Decimal("20000")
        assert summary.bonds.received_interest == Decimal("500")
        assert summary.bonds.profit_loss == Decimal("2000")
        assert summary.bonds.return_rate == Decimal("10")
        assert summary.bonds.source == AggregationModeFlag.INDIVIDUAL_UPDATE

    def test_unset_current_value_counts_zero(self, holdings, bonds, rates):
        unset = [bond.model_copy(update={'current_value': None}) for bond in bonds]
        summary = aggregate("Alice", holdings, unset, IndividualUpdate(), rates)
        assert summary.bonds.current_value == Decimal(0)
        assert summary.bonds.cost == Decimal("20000")
        assert summary.total_assets == Decimal("47000")

    def test_allocations(self, holdings, bonds, rates):
        summary = aggregate("Alice", holdings, bonds, IndividualUpdate(), rates)

        allocations = summary.allocations()
        assert list(allocations) == list(CATEGORY_ORDER)
        assert allocations[AssetCategory.CASH] == Decimal("20000") / Decimal("68500") * 100
        assert float(sum(allocations.values())) == pytest.approx(100.0)

    def test_to_frame(self, holdings, bonds, rates):
        frame = aggregate("Alice", holdings, bonds, IndividualUpdate(), rates).to_frame()

        assert list(frame.columns) == ['category', 'amount', 'percentage']
        assert len(frame) == 7
        assert frame.loc[frame['category'] == 'Bonds', 'amount'].iloc[0] == pytest.approx(21500.0)
        assert frame['percentage'].sum() == pytest.approx(100.0)

    def test_inputs_untouched_and_idempotent(self, holdings, bonds, rates):
        before = [bond.model_dump() for bond in bonds]
        first = aggregate("Alice", holdings, bonds, IndividualUpdate(), rates)
        second = aggregate("Alice", holdings, bonds, IndividualUpdate(), rates)

        assert first == second
        assert [bond.model_dump() for bond in bonds] == before


class TestBatchOverride:
    """Manual bond totals."""

    def test_override_replaces_value_and_interest(self, holdings, bonds, rates, override_record):
        summary = aggregate("Alice", holdings, bonds, BatchOverride(override_record), rates)

        assert summary.bonds.current_value == Decimal("500000")
        assert summary.bonds.received_interest == Decimal("10000")
        assert summary.bonds.cost == Decimal("20000")
        assert summary.bonds.override_recorded_at == datetime(2024, 6, 1)
        assert summary.category_total(AssetCategory.BONDS) == Decimal("500000")
        assert summary.total_assets == Decimal("547000")

    def test_missing_record_counts_zero(self, holdings, bonds, rates):
        summary = aggregate("Alice", holdings, bonds, BatchOverride(), rates)

        assert summary.bonds.current_value == Decimal(0)
        assert summary.bonds.received_interest == Decimal(0)
        assert summary.bonds.cost == Decimal("20000")
        assert summary.total_assets == Decimal("47000")

    def test_override_ignores_position_rates(self, holdings, bonds, override_record):
        # Bond B has no rate but its value is not read in this mode
        summary = aggregate("Alice", holdings, bonds, BatchOverride(override_record), RateTable({"EUR": "0.8"}))
        bond_skips = [s for s in summary.skipped if s.category == AssetCategory.BONDS]
        assert [s.detail for s in bond_skips] == ["cost"]


class TestModeResolution:
    """Persisted flag to explicit mode."""

    def test_default_is_individual(self):
        assert resolve_mode(None) == IndividualUpdate()
        assert resolve_mode("IndividualUpdate") == IndividualUpdate()

    def test_batch_uses_latest_record(self, override_record):
        newer = override_record.model_copy(update={'recorded_at': datetime(2024, 7, 1)})
        mode = resolve_mode(AggregationModeFlag.BATCH_OVERRIDE, [newer, override_record])
        assert isinstance(mode, BatchOverride)
        assert mode.record == newer
        assert mode.flag == AggregationModeFlag.BATCH_OVERRIDE

    def test_batch_without_history(self):
        assert resolve_mode("BatchOverride") == BatchOverride(record=None)

    def test_unknown_flag_raises(self):
        with pytest.raises(ValueError):
            resolve_mode("Sometimes")

    def test_latest_override_tie_goes_to_later_entry(self, override_record):
        twin = override_record.model_copy(update={'total_current_value': Decimal("1")})
        assert latest_override([override_record, twin]) is twin
        assert latest_override([]) is None


class TestUnconvertibleAmounts:
    """Missing rates exclude amounts instead of counting them as zero."""

    def test_missing_eur_rate(self, holdings, bonds):
        summary = aggregate("Alice", holdings, bonds, IndividualUpdate(), RateTable({"TWD": "32"}))

        assert summary.total_assets == Decimal("68375")
        assert summary.category_total(AssetCategory.FUNDS) == Decimal(0)
        assert summary.skipped == (
            SkippedAmount(AssetCategory.FUNDS, "World Fund", Money(Decimal("100"), "EUR")),
        )
        assert "no exchange rate" in summary.skipped[0].describe()

    def test_zero_rate_is_unusable(self, holdings, bonds):
        summary = aggregate("Alice", holdings, bonds, IndividualUpdate(), RateTable({"TWD": "0", "EUR": "0.8"}))

        skipped = {(s.category, s.detail) for s in summary.skipped}
        assert (AssetCategory.CASH, "") in skipped
        assert (AssetCategory.INSURANCE, "") in skipped
        assert (AssetCategory.BONDS, "cost") in skipped
        assert (AssetCategory.BONDS, "current value") in skipped
        assert (AssetCategory.BONDS, "received interest") in skipped

        assert summary.cash_by_currency == {"USD": Decimal("10000")}
        assert summary.bonds.current_value == Decimal("10500")
        assert summary.bonds.cost == Decimal("10000")
        assert summary.total_assets == Decimal("10000") + Decimal("20000") + Decimal("10500") \
            + Decimal("5000") + Decimal("125") + Decimal("875")


class TestEdgeCases:
    """Empty portfolios and missing deposits."""

    def test_empty_portfolio(self, rates):
        summary = aggregate("Nobody", HoldingSnapshot(created_at=datetime(2024, 1, 1)), [], IndividualUpdate(), rates)

        assert summary.total_assets == Decimal(0)
        assert summary.total_return_rate == Decimal(0)
        assert all(p == Decimal(0) for p in summary.allocations().values())

    def test_zero_deposits_gives_zero_return(self, holdings, bonds, rates):
        no_deposits = holdings.model_copy(update={'cumulative_net_deposits': Decimal(0)})
        summary = aggregate("Alice", no_deposits, bonds, IndividualUpdate(), rates)

        assert summary.total_pnl == Decimal("68500")
        assert summary.total_return_rate == Decimal(0)
