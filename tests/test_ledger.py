"""
Tests for ledger writes and membership rules.
"""

from datetime import date
from decimal import Decimal, InvalidOperation

import pytest

from src.config import settings
from src.models import TransactionStatus
from src.services import consistency, ledger
from src.services.customer_trip_stats import get_customer_trip_stats_row
from src.utils.errors import (
    ErrorCode,
    MembershipError,
    MissingEntityError,
    UnsupportedFactError,
)
from src.utils.money import ZERO, commission_for, to_decimal


class TestCommissionFor:
    def test_exact_cents(self):
        assert commission_for(Decimal("10000"), Decimal("0.014")) == Decimal("140.00")

    def test_rounds_half_up(self):
        # 1234.56 * 0.0125 = 15.432
        assert commission_for(Decimal("1234.56"), Decimal("0.0125")) == Decimal("15.43")
        # 100.04 * 0.0125 = 1.2505
        assert commission_for(Decimal("100.04"), Decimal("0.0125")) == Decimal("1.25")
        assert commission_for(Decimal("100.40"), Decimal("0.0125")) == Decimal("1.26")


class TestToDecimal:
    def test_missing_amount_counts_as_zero(self):
        assert to_decimal(None) == ZERO
        assert to_decimal("12.50") == Decimal("12.50")

    def test_unparseable_amount_is_logged_and_raised(self, caplog):
        with caplog.at_level("WARNING", logger="src.utils.money"):
            with pytest.raises(InvalidOperation):
                to_decimal("twelve")
        assert "twelve" in caplog.text


# ── Transactions ──────────────────────────────────────────


class TestTransactions:
    @pytest.mark.asyncio
    async def test_unsupported_type_is_rejected(self, db_session, factory):
        trip = await factory.trip()
        customer = await factory.customer()
        await factory.join(trip, customer)

        with pytest.raises(UnsupportedFactError) as exc:
            await ledger.record_transaction(db_session, trip.id, customer.id, Decimal("10"), "marker")
        assert exc.value.code == ErrorCode.UNSUPPORTED_FACT.value
        assert "buy-in" in exc.value.details["allowed"]

    @pytest.mark.asyncio
    async def test_non_member_is_rejected(self, db_session, factory):
        trip = await factory.trip()
        customer = await factory.customer()

        with pytest.raises(MembershipError) as exc:
            await ledger.record_transaction(db_session, trip.id, customer.id, Decimal("10"), "buy-in")
        assert exc.value.code == ErrorCode.NOT_A_MEMBER.value

    @pytest.mark.asyncio
    async def test_unknown_trip_is_rejected(self, db_session, factory):
        customer = await factory.customer()

        with pytest.raises(MissingEntityError) as exc:
            await ledger.record_transaction(db_session, 404, customer.id, Decimal("10"), "buy-in")
        assert exc.value.code == ErrorCode.TRIP_NOT_FOUND.value

    @pytest.mark.asyncio
    async def test_agent_defaults_to_customer_agent(self, db_session, factory):
        agent = await factory.agent()
        customer = await factory.customer(agent=agent)
        trip = await factory.trip()
        await factory.join(trip, customer)

        transaction = await ledger.record_transaction(
            db_session, trip.id, customer.id, Decimal("99.999"), "buy-in"
        )

        assert transaction.agent_id == agent.id
        assert transaction.amount == Decimal("100.00")
        assert transaction.status == TransactionStatus.COMPLETED.value

    @pytest.mark.asyncio
    async def test_cancelling_removes_it_from_stats(self, db_session, factory):
        trip = await factory.trip()
        customer = await factory.customer()
        await factory.join(trip, customer)
        transaction = await ledger.record_transaction(
            db_session, trip.id, customer.id, Decimal("600"), "buy-in"
        )
        await consistency.on_transaction_changed(db_session, trip.id, customer.id)

        await ledger.update_transaction(db_session, transaction, status="cancelled")
        await consistency.on_transaction_changed(db_session, trip.id, customer.id)

        row = await get_customer_trip_stats_row(db_session, trip.id, customer.id)
        assert row.total_buy_in == 0
        assert customer.total_buy_in == 0

    @pytest.mark.asyncio
    async def test_delete_updates_stats(self, db_session, factory):
        trip = await factory.trip()
        customer = await factory.customer()
        await factory.join(trip, customer)
        await factory.buy_in(trip, customer, 100)
        transaction = await ledger.record_transaction(
            db_session, trip.id, customer.id, Decimal("200"), "cash-out"
        )
        await consistency.on_transaction_changed(db_session, trip.id, customer.id)

        await ledger.delete_transaction(db_session, transaction)
        result = await consistency.on_transaction_changed(db_session, trip.id, customer.id)

        assert result.customer_stats[0].total_cash_out == 0
        assert result.customer_stats[0].total_win_loss == Decimal("100")


# ── Rolling ───────────────────────────────────────────────


class TestRolling:
    @pytest.mark.asyncio
    async def test_configured_default_rate(self, db_session, factory):
        trip = await factory.trip()
        customer = await factory.customer()
        await factory.join(trip, customer)

        entry, _ = await factory.rolling(trip, customer, 10000)

        assert entry.commission_rate == settings.default_commission_rate
        assert entry.commission_earned == Decimal("140.00")

    @pytest.mark.asyncio
    async def test_edit_reprices_at_entry_rate(self, db_session, factory):
        trip = await factory.trip()
        customer = await factory.customer()
        await factory.join(trip, customer)
        entry, _ = await factory.rolling(trip, customer, 10000, commission_rate=Decimal("0.01"))
        await ledger.set_default_commission_rate(db_session, Decimal("0.03"))

        await ledger.update_rolling_entry(db_session, entry, rolling_amount=Decimal("20000"))
        result = await consistency.on_rolling_changed(db_session, trip.id, customer.id)

        assert entry.commission_earned == Decimal("200.00")
        assert result.sharing.total_rolling_commission == Decimal("200.00")

    @pytest.mark.asyncio
    async def test_default_rate_setting_round_trip(self, db_session):
        assert await ledger.get_default_commission_rate(db_session) == settings.default_commission_rate

        await ledger.set_default_commission_rate(db_session, Decimal("0.015"))

        assert await ledger.get_default_commission_rate(db_session) == Decimal("0.015")


# ── Expenses ──────────────────────────────────────────────


class TestExpenses:
    @pytest.mark.asyncio
    async def test_expense_edit_and_delete(self, db_session, factory):
        trip = await factory.trip()
        customer = await factory.customer()
        await factory.join(trip, customer)
        await factory.buy_in(trip, customer, 1000)
        expense = await ledger.add_expense(db_session, trip.id, "flight", Decimal("300"), date(2026, 3, 1))
        result = await consistency.on_expense_changed(db_session, trip.id)
        assert result.sharing.net_result == Decimal("700")

        await ledger.update_expense(db_session, expense, amount=Decimal("450"))
        result = await consistency.on_expense_changed(db_session, trip.id)
        assert result.sharing.net_result == Decimal("550")

        await ledger.delete_expense(db_session, expense)
        result = await consistency.on_expense_changed(db_session, trip.id)
        assert result.sharing.total_expenses == 0
        assert result.sharing.net_result == Decimal("1000")


# ── Memberships ───────────────────────────────────────────


class TestMemberships:
    @pytest.mark.asyncio
    async def test_customer_brings_their_agent(self, db_session, factory):
        agent = await factory.agent(commission_rate="35")
        customer = await factory.customer(agent=agent)
        trip = await factory.trip()

        await ledger.add_customer_to_trip(db_session, trip.id, customer.id)

        assert await ledger.get_trip_agent_ids(db_session, trip.id) == [agent.id]
        links = await ledger.get_agent_customer_links(db_session, trip.id)
        assert [(l.agent_id, l.customer_id) for l in links] == [(agent.id, customer.id)]
        assert links[0].profit_sharing_rate == Decimal("35")

    @pytest.mark.asyncio
    async def test_second_customer_reuses_agent_membership(self, db_session, factory):
        agent = await factory.agent()
        trip = await factory.trip()
        for name in ("One", "Two"):
            customer = await factory.customer(name, agent=agent)
            await ledger.add_customer_to_trip(db_session, trip.id, customer.id)

        assert await ledger.get_trip_agent_ids(db_session, trip.id) == [agent.id]
        assert len(await ledger.get_agent_customer_links(db_session, trip.id)) == 2

    @pytest.mark.asyncio
    async def test_duplicate_customer_is_rejected(self, db_session, factory):
        trip = await factory.trip()
        customer = await factory.customer()
        await ledger.add_customer_to_trip(db_session, trip.id, customer.id)

        with pytest.raises(MembershipError) as exc:
            await ledger.add_customer_to_trip(db_session, trip.id, customer.id)
        assert exc.value.code == ErrorCode.ALREADY_A_MEMBER.value

    @pytest.mark.asyncio
    async def test_duplicate_agent_is_rejected(self, db_session, factory):
        agent = await factory.agent()
        trip = await factory.trip()
        await ledger.add_agent_to_trip(db_session, trip.id, agent.id)

        with pytest.raises(MembershipError):
            await ledger.add_agent_to_trip(db_session, trip.id, agent.id)

    @pytest.mark.asyncio
    async def test_removing_absent_agent_is_rejected(self, db_session, factory):
        agent = await factory.agent()
        trip = await factory.trip()

        with pytest.raises(MembershipError) as exc:
            await ledger.remove_agent_from_trip(db_session, trip.id, agent.id)
        assert exc.value.code == ErrorCode.NOT_A_MEMBER.value

    @pytest.mark.asyncio
    async def test_profit_sharing_rate_for_some_customers(self, db_session, factory):
        agent = await factory.agent(commission_rate="40")
        trip = await factory.trip()
        customers = []
        for name in ("One", "Two"):
            customer = await factory.customer(name, agent=agent)
            await ledger.add_customer_to_trip(db_session, trip.id, customer.id)
            customers.append(customer)

        updated = await ledger.set_profit_sharing_rate(
            db_session, trip.id, agent.id, Decimal("10"), customer_ids=[customers[1].id]
        )

        assert [link.customer_id for link in updated] == [customers[1].id]
        rates = {
            link.customer_id: link.profit_sharing_rate
            for link in await ledger.get_agent_customer_links(db_session, trip.id)
        }
        assert rates == {customers[0].id: Decimal("40"), customers[1].id: Decimal("10")}

    @pytest.mark.asyncio
    async def test_profit_sharing_rate_without_customers(self, db_session, factory):
        agent = await factory.agent()
        trip = await factory.trip()
        await ledger.add_agent_to_trip(db_session, trip.id, agent.id)

        with pytest.raises(MembershipError):
            await ledger.set_profit_sharing_rate(db_session, trip.id, agent.id, Decimal("10"))
