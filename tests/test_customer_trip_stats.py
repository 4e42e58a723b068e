"""
Tests for per-customer-per-trip aggregation.

Covers:
- summarize_customer_ledger sums, sign convention and skipped kinds
- recompute_customer_trip_stats persistence and idempotence
- Cancelled / pending transactions are ignored
"""

import logging
from decimal import Decimal
from types import SimpleNamespace

import pytest

from src.models import Transaction
from src.services import ledger
from src.services.customer_trip_stats import (
    calculate_customer_trip_stats,
    get_customer_trip_stats_row,
    recompute_customer_trip_stats,
    summarize_customer_ledger,
)


def _txn(amount, kind, id=1):
    return SimpleNamespace(id=id, amount=Decimal(str(amount)), transaction_type=kind)


def _roll(amount, commission):
    return SimpleNamespace(rolling_amount=Decimal(str(amount)), commission_earned=Decimal(str(commission)))


# ── summarize_customer_ledger ─────────────────────────────


class TestSummarizeCustomerLedger:
    def test_no_facts_gives_zero_figures(self):
        figures = summarize_customer_ledger(1, 2, [], [])
        assert figures.total_buy_in == 0
        assert figures.total_cash_out == 0
        assert figures.total_win_loss == 0
        assert figures.rolling_amount == 0
        assert figures.total_commission_earned == 0
        assert figures.net_result == 0

    def test_win_loss_is_buy_in_minus_cash_out(self):
        figures = summarize_customer_ledger(
            1, 2, [_txn(1000, "buy-in"), _txn(300, "cash-out", id=2)], []
        )
        assert figures.total_buy_in == Decimal("1000")
        assert figures.total_cash_out == Decimal("300")
        assert figures.total_win_loss == Decimal("700")

    def test_customer_winning_gives_negative_win_loss(self):
        figures = summarize_customer_ledger(
            1, 2, [_txn(500, "buy-in"), _txn(1200, "cash-out", id=2)], []
        )
        assert figures.total_win_loss == Decimal("-700")
        assert figures.net_result == Decimal("-700")

    def test_net_result_subtracts_rolling_commission(self):
        figures = summarize_customer_ledger(
            1,
            2,
            [_txn(1000, "buy-in")],
            [_roll(10000, "140.00"), _roll(5000, "70.00")],
        )
        assert figures.rolling_amount == Decimal("15000")
        assert figures.total_commission_earned == Decimal("210.00")
        assert figures.net_result == Decimal("790.00")

    def test_unknown_kind_is_skipped_and_logged(self, caplog):
        with caplog.at_level(logging.WARNING):
            figures = summarize_customer_ledger(
                1, 2, [_txn(1000, "buy-in"), _txn(999, "chip-swap", id=7)], []
            )
        assert figures.total_buy_in == Decimal("1000")
        assert figures.total_cash_out == 0
        assert "chip-swap" in caplog.text

    def test_identity_holds(self):
        figures = summarize_customer_ledger(
            1,
            2,
            [_txn("1234.56", "buy-in"), _txn("234.50", "cash-out", id=2)],
            [_roll("8000", "112.00")],
        )
        assert figures.total_win_loss == figures.total_buy_in - figures.total_cash_out
        assert figures.net_result == figures.total_win_loss - figures.total_commission_earned


# ── recompute_customer_trip_stats ─────────────────────────


class TestRecomputeCustomerTripStats:
    @pytest.mark.asyncio
    async def test_persists_row(self, db_session, factory):
        trip = await factory.trip()
        customer = await factory.customer()
        await factory.join(trip, customer)
        await ledger.record_transaction(db_session, trip.id, customer.id, Decimal("1000"), "buy-in")
        await ledger.record_transaction(db_session, trip.id, customer.id, Decimal("400"), "cash-out")

        row = await recompute_customer_trip_stats(db_session, trip.id, customer.id)

        assert row.total_buy_in == Decimal("1000")
        assert row.total_cash_out == Decimal("400")
        assert row.total_win_loss == Decimal("600")
        stored = await get_customer_trip_stats_row(db_session, trip.id, customer.id)
        assert stored is row

    @pytest.mark.asyncio
    async def test_is_idempotent(self, db_session, factory):
        trip = await factory.trip()
        customer = await factory.customer()
        await factory.join(trip, customer)
        await factory.buy_in(trip, customer, 2500)
        await factory.rolling(trip, customer, 10000)

        first = await calculate_customer_trip_stats(db_session, trip.id, customer.id)
        await recompute_customer_trip_stats(db_session, trip.id, customer.id)
        second = await calculate_customer_trip_stats(db_session, trip.id, customer.id)
        await recompute_customer_trip_stats(db_session, trip.id, customer.id)

        assert first == second
        row = await get_customer_trip_stats_row(db_session, trip.id, customer.id)
        assert row.net_result == Decimal("2360.00")

    @pytest.mark.asyncio
    async def test_only_completed_transactions_count(self, db_session, factory):
        trip = await factory.trip()
        customer = await factory.customer()
        await factory.join(trip, customer)
        await ledger.record_transaction(db_session, trip.id, customer.id, Decimal("1000"), "buy-in")
        await ledger.record_transaction(
            db_session, trip.id, customer.id, Decimal("5000"), "buy-in", status="pending"
        )
        await ledger.record_transaction(
            db_session, trip.id, customer.id, Decimal("800"), "cash-out", status="cancelled"
        )

        row = await recompute_customer_trip_stats(db_session, trip.id, customer.id)

        assert row.total_buy_in == Decimal("1000")
        assert row.total_cash_out == 0

    @pytest.mark.asyncio
    async def test_refreshes_lifetime_totals(self, db_session, factory):
        trip = await factory.trip()
        customer = await factory.customer()
        await factory.join(trip, customer)
        await ledger.record_transaction(db_session, trip.id, customer.id, Decimal("750"), "buy-in")

        await recompute_customer_trip_stats(db_session, trip.id, customer.id)

        assert customer.total_buy_in == Decimal("750")
        assert customer.total_win_loss == Decimal("750")

    @pytest.mark.asyncio
    async def test_stored_unknown_kind_is_skipped(self, db_session, factory):
        """A row with a kind written by another client does not break the pass."""
        trip = await factory.trip()
        customer = await factory.customer()
        await factory.join(trip, customer)
        db_session.add(
            Transaction(
                trip_id=trip.id,
                customer_id=customer.id,
                amount=Decimal("300"),
                transaction_type="marker",
                status="completed",
            )
        )
        await db_session.flush()
        await ledger.record_transaction(db_session, trip.id, customer.id, Decimal("100"), "buy-in")

        row = await recompute_customer_trip_stats(db_session, trip.id, customer.id)

        assert row.total_buy_in == Decimal("100")
        assert row.total_win_loss == Decimal("100")
