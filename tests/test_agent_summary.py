"""
Tests for per-agent trip summaries.
"""

from decimal import Decimal

import pytest

from src.services import consistency, ledger
from src.services.agent_summary import (
    get_agent_summary,
    get_trip_agent_summaries,
    recompute_agent_trip_summary,
    sum_trip_agent_shares,
)


class TestAgentTripSummary:
    @pytest.mark.asyncio
    async def test_pool_and_share_are_separate(self, db_session, factory):
        agent = await factory.agent(commission_rate="40")
        customer = await factory.customer(agent=agent)
        trip = await factory.trip()
        await factory.join(trip, customer)
        await factory.buy_in(trip, customer, 2000)
        await factory.rolling(trip, customer, 10000, commission_rate=Decimal("0.014"))

        summary = await get_agent_summary(db_session, trip.id, agent.id)

        assert summary.customer_count == 1
        assert summary.total_win_loss == Decimal("2000")
        assert summary.total_profit == Decimal("1860.00")
        # commission the customer generated
        assert summary.total_commission == Decimal("140.00")
        # 40% of the customer's net result
        assert summary.agent_profit_share == Decimal("744.00")

    @pytest.mark.asyncio
    async def test_one_summary_per_agent(self, db_session, factory):
        first = await factory.agent("First", commission_rate="40")
        second = await factory.agent("Second", commission_rate="10")
        trip = await factory.trip()
        for agent, amount in ((first, 1000), (first, 500), (second, 3000)):
            customer = await factory.customer(agent=agent)
            await factory.join(trip, customer)
            await factory.buy_in(trip, customer, amount)

        summaries = await get_trip_agent_summaries(db_session, trip.id)

        by_agent = {s.agent_id: s for s in summaries}
        assert set(by_agent) == {first.id, second.id}
        assert by_agent[first.id].customer_count == 2
        assert by_agent[first.id].agent_profit_share == Decimal("600.00")
        assert by_agent[second.id].agent_profit_share == Decimal("300.00")
        assert await sum_trip_agent_shares(db_session, trip.id) == Decimal("900.00")

    @pytest.mark.asyncio
    async def test_agent_without_customers_is_zeroed(self, db_session, factory):
        agent = await factory.agent()
        idle = await factory.agent("Idle")
        customer = await factory.customer(agent=agent)
        trip = await factory.trip()
        await factory.join(trip, customer)
        await ledger.add_agent_to_trip(db_session, trip.id, idle.id)
        await consistency.on_agent_membership_changed(db_session, trip.id, idle.id)

        summary = await get_agent_summary(db_session, trip.id, idle.id)

        assert summary is not None
        assert summary.customer_count == 0
        assert summary.agent_profit_share == 0

    @pytest.mark.asyncio
    async def test_removed_agent_summary_is_zeroed(self, db_session, factory):
        stays = await factory.agent("Stays")
        agent = await factory.agent("Leaves")
        trip = await factory.trip()
        for owner in (stays, agent):
            customer = await factory.customer(agent=owner)
            await factory.join(trip, customer)
            await factory.buy_in(trip, customer, 1000)
        summary = await get_agent_summary(db_session, trip.id, agent.id)
        assert summary.agent_profit_share == Decimal("400.00")

        await ledger.remove_agent_from_trip(db_session, trip.id, agent.id)
        await consistency.on_agent_membership_changed(db_session, trip.id, agent.id)

        summary = await get_agent_summary(db_session, trip.id, agent.id)
        assert summary.agent_profit_share == 0
        assert summary.total_commission == 0
        assert agent.total_trips == 0
        assert agent.total_commission == 0

    @pytest.mark.asyncio
    async def test_recompute_without_breakdown(self, db_session, factory):
        agent = await factory.agent(commission_rate="50")
        customer = await factory.customer(agent=agent)
        trip = await factory.trip()
        await factory.join(trip, customer)
        await ledger.record_transaction(db_session, trip.id, customer.id, Decimal("100"), "buy-in")
        await consistency.on_transaction_changed(db_session, trip.id, customer.id)

        summaries = await recompute_agent_trip_summary(db_session, trip.id)

        assert len(summaries) == 1
        assert summaries[0].agent_profit_share == Decimal("50.00")
