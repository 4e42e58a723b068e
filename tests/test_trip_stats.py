"""
Tests for trip-level totals.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from src.services.consistency import on_customer_leaves_trip
from src.services.customer_trip_stats import get_customer_trip_stats_row
from src.services.trip_stats import recompute_trip_stats, sum_customer_stats


def _row(buy_in, cash_out, rolling="0", commission="0"):
    buy_in, cash_out = Decimal(buy_in), Decimal(cash_out)
    return SimpleNamespace(
        total_buy_in=buy_in,
        total_cash_out=cash_out,
        total_win_loss=buy_in - cash_out,
        rolling_amount=Decimal(rolling),
        total_commission_earned=Decimal(commission),
    )


class TestSumCustomerStats:
    def test_no_rows_gives_zero_totals(self):
        totals = sum_customer_stats(5, [])
        assert totals.trip_id == 5
        assert totals.customer_count == 0
        assert totals.total_win_loss == 0
        assert not totals.has_customers

    def test_sums_every_field(self):
        totals = sum_customer_stats(
            5,
            [_row("1000", "0", "20000", "280.00"), _row("0", "800", "5000", "70.00")],
        )
        assert totals.customer_count == 2
        assert totals.total_buy_in == Decimal("1000")
        assert totals.total_cash_out == Decimal("800")
        assert totals.total_win_loss == Decimal("200")
        assert totals.total_rolling == Decimal("25000")
        assert totals.total_commission_earned == Decimal("350.00")

    def test_net_profit_is_win_loss(self):
        totals = sum_customer_stats(5, [_row("300", "100", "1000", "14.00")])
        assert totals.net_profit == totals.total_win_loss == Decimal("200")


class TestRecomputeTripStats:
    @pytest.mark.asyncio
    async def test_two_customer_conservation(self, db_session, factory):
        trip = await factory.trip()
        a = await factory.customer("A")
        b = await factory.customer("B")
        await factory.join(trip, a)
        await factory.join(trip, b)
        await factory.buy_in(trip, a, 1000)
        await factory.cash_out(trip, b, 800)

        totals = await recompute_trip_stats(db_session, trip.id)

        row_a = await get_customer_trip_stats_row(db_session, trip.id, a.id)
        row_b = await get_customer_trip_stats_row(db_session, trip.id, b.id)
        assert row_a.total_win_loss == Decimal("1000")
        assert row_b.total_win_loss == Decimal("-800")
        assert totals.total_win_loss == row_a.total_win_loss + row_b.total_win_loss
        assert totals.total_win_loss == Decimal("200")

    @pytest.mark.asyncio
    async def test_trip_without_customers_totals_zero(self, db_session, factory):
        trip = await factory.trip()

        totals = await recompute_trip_stats(db_session, trip.id)

        assert totals.customer_count == 0
        assert totals.total_buy_in == 0
        assert totals.total_win_loss == 0

    @pytest.mark.asyncio
    async def test_departed_customer_no_longer_counts(self, db_session, factory):
        trip = await factory.trip()
        stays = await factory.customer("Stays")
        leaves = await factory.customer("Leaves")
        await factory.join(trip, stays)
        await factory.join(trip, leaves)
        await factory.buy_in(trip, stays, 500)
        await factory.buy_in(trip, leaves, 9000)

        await on_customer_leaves_trip(db_session, trip.id, leaves.id)
        totals = await recompute_trip_stats(db_session, trip.id)

        assert totals.customer_count == 1
        assert totals.total_buy_in == Decimal("500")
