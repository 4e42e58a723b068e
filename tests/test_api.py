"""
Tests for the HTTP surface.

Covers:
- Role checks on mutation endpoints
- Ledger writes returning synchronized aggregates
- Error codes mapped to HTTP statuses
- Trip lifecycle, settings and reconciliation endpoints
"""

from decimal import Decimal

import pytest

from src.models import UserRole
from src.services.customer_trip_stats import get_customer_trip_stats_row


# ── Access control ────────────────────────────────────────


class TestAccess:
    @pytest.mark.asyncio
    async def test_requires_login(self, client, factory):
        trip = await factory.trip()
        response = await client.post(
            f"/api/trips/{trip.id}/transactions",
            json={"customer_id": 1, "amount": "10", "transaction_type": "buy-in"},
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_agent_cannot_record_facts(self, client, factory, login_as):
        await login_as(UserRole.AGENT)
        trip = await factory.trip()
        customer = await factory.customer()

        response = await client.post(
            f"/api/trips/{trip.id}/customers", json={"customer_id": customer.id}
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_staff_cannot_change_profit_sharing(self, client, factory, login_as):
        await login_as(UserRole.STAFF)
        agent = await factory.agent()
        trip = await factory.trip()

        response = await client.put(
            f"/api/trips/{trip.id}/agents/{agent.id}/profit-sharing",
            json={"profit_sharing_rate": "10"},
        )

        assert response.status_code == 403


# ── Ledger flow ───────────────────────────────────────────


class TestLedgerFlow:
    @pytest.mark.asyncio
    async def test_buy_in_returns_synchronized_sharing(self, client, db_session, factory, login_as):
        await login_as(UserRole.STAFF)
        agent = await factory.agent(commission_rate="40")
        customer = await factory.customer(agent=agent)
        trip = await factory.trip()

        response = await client.post(
            f"/api/trips/{trip.id}/customers", json={"customer_id": customer.id}
        )
        assert response.status_code == 201

        response = await client.post(
            f"/api/trips/{trip.id}/transactions",
            json={"customer_id": customer.id, "amount": "1000", "transaction_type": "buy-in"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["aggregates_stale"] is False
        assert Decimal(body["sharing"]["net_result"]) == Decimal("1000")
        assert Decimal(body["sharing"]["total_agent_share"]) == Decimal("400")

        row = await get_customer_trip_stats_row(db_session, trip.id, customer.id)
        assert row.total_buy_in == Decimal("1000")

    @pytest.mark.asyncio
    async def test_rolling_edit_and_delete(self, client, factory, login_as):
        await login_as(UserRole.STAFF)
        staff = await factory.staff()
        customer = await factory.customer()
        trip = await factory.trip()
        await factory.join(trip, customer)

        response = await client.post(
            f"/api/trips/{trip.id}/rolling",
            json={
                "customer_id": customer.id,
                "staff_id": staff.id,
                "game_type": "baccarat",
                "rolling_amount": "10000",
                "commission_rate": "0.014",
            },
        )
        assert response.status_code == 201
        entry_id = response.json()["target_id"]
        assert Decimal(response.json()["sharing"]["total_rolling_commission"]) == Decimal("140")

        response = await client.put(f"/api/rolling/{entry_id}", json={"rolling_amount": "5000"})
        assert response.status_code == 200
        assert Decimal(response.json()["sharing"]["total_rolling_commission"]) == Decimal("70")

        response = await client.delete(f"/api/rolling/{entry_id}")
        assert response.status_code == 200
        assert Decimal(response.json()["sharing"]["total_rolling"]) == 0

    @pytest.mark.asyncio
    async def test_expense_endpoints(self, client, factory, login_as):
        await login_as(UserRole.STAFF)
        trip = await factory.trip()

        response = await client.post(
            f"/api/trips/{trip.id}/expenses",
            json={"expense_type": "hotel", "amount": "800", "expense_date": "2026-03-02"},
        )
        assert response.status_code == 201
        assert Decimal(response.json()["sharing"]["net_result"]) == Decimal("-800")
        expense_id = response.json()["target_id"]

        response = await client.put(f"/api/expenses/{expense_id}", json={"amount": "500"})
        assert Decimal(response.json()["sharing"]["net_result"]) == Decimal("-500")

        response = await client.delete(f"/api/expenses/{expense_id}")
        assert Decimal(response.json()["sharing"]["total_expenses"]) == 0

    @pytest.mark.asyncio
    async def test_unknown_transaction_type_is_rejected(self, client, factory, login_as):
        await login_as(UserRole.STAFF)
        customer = await factory.customer()
        trip = await factory.trip()
        await factory.join(trip, customer)

        response = await client.post(
            f"/api/trips/{trip.id}/transactions",
            json={"customer_id": customer.id, "amount": "10", "transaction_type": "marker"},
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_non_member_maps_to_conflict(self, client, factory, login_as):
        await login_as(UserRole.STAFF)
        customer = await factory.customer()
        trip = await factory.trip()

        response = await client.post(
            f"/api/trips/{trip.id}/transactions",
            json={"customer_id": customer.id, "amount": "10", "transaction_type": "buy-in"},
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "NOT_A_MEMBER"

    @pytest.mark.asyncio
    async def test_unknown_trip_maps_to_not_found(self, client, factory, login_as):
        await login_as(UserRole.STAFF)
        customer = await factory.customer()

        response = await client.post("/api/trips/999/customers", json={"customer_id": customer.id})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "TRIP_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_missing_transaction(self, client, login_as):
        await login_as(UserRole.STAFF)

        response = await client.delete("/api/transactions/31337")

        assert response.status_code == 404


# ── Trips ─────────────────────────────────────────────────


class TestTripEndpoints:
    @pytest.mark.asyncio
    async def test_sharing_not_calculated_yet(self, client, factory, login_as):
        await login_as(UserRole.BOSS)
        trip = await factory.trip()

        response = await client.get(f"/api/trips/{trip.id}/sharing")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_reads_after_join(self, client, factory, login_as):
        await login_as(UserRole.BOSS)
        agent = await factory.agent()
        customer = await factory.customer(agent=agent)
        trip = await factory.trip()
        await factory.join(trip, customer)
        await factory.buy_in(trip, customer, 250)

        sharing = await client.get(f"/api/trips/{trip.id}/sharing")
        summaries = await client.get(f"/api/trips/{trip.id}/agent-summary")
        stats = await client.get(f"/api/trips/{trip.id}/customer-stats")

        assert sharing.status_code == 200
        assert sharing.json()["agent_breakdown"][0]["agent_id"] == agent.id
        assert [s["agent_id"] for s in summaries.json()] == [agent.id]
        assert Decimal(summaries.json()[0]["agent_profit_share"]) == Decimal("100")
        assert [s["customer_id"] for s in stats.json()] == [customer.id]

    @pytest.mark.asyncio
    async def test_profit_sharing_update(self, client, factory, login_as):
        await login_as(UserRole.ADMIN)
        agent = await factory.agent(commission_rate="40")
        customer = await factory.customer(agent=agent)
        trip = await factory.trip()
        await factory.join(trip, customer)
        await factory.buy_in(trip, customer, 1000)

        response = await client.put(
            f"/api/trips/{trip.id}/agents/{agent.id}/profit-sharing",
            json={"profit_sharing_rate": "15"},
        )

        assert response.status_code == 200
        assert Decimal(response.json()["sharing"]["total_agent_share"]) == Decimal("150")

    @pytest.mark.asyncio
    async def test_remove_customer(self, client, factory, login_as):
        await login_as(UserRole.STAFF)
        customer = await factory.customer()
        trip = await factory.trip()
        await factory.join(trip, customer)
        await factory.buy_in(trip, customer, 1000)

        response = await client.delete(f"/api/trips/{trip.id}/customers/{customer.id}")

        assert response.status_code == 200
        assert Decimal(response.json()["sharing"]["total_win_loss"]) == 0
        assert customer.total_win_loss == 0

        response = await client.delete(f"/api/trips/{trip.id}/customers/{customer.id}")
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_agent_membership(self, client, factory, login_as):
        await login_as(UserRole.STAFF)
        agent = await factory.agent()
        trip = await factory.trip()

        response = await client.post(f"/api/trips/{trip.id}/agents", json={"agent_id": agent.id})
        assert response.status_code == 201
        assert agent.total_trips == 1

        response = await client.post(f"/api/trips/{trip.id}/agents", json={"agent_id": agent.id})
        assert response.status_code == 409

        response = await client.delete(f"/api/trips/{trip.id}/agents/{agent.id}")
        assert response.status_code == 200
        assert agent.total_trips == 0

    @pytest.mark.asyncio
    async def test_check_out(self, client, factory, login_as):
        await login_as(UserRole.STAFF)
        customer = await factory.customer()
        trip = await factory.trip()
        await factory.join(trip, customer)

        response = await client.post(f"/api/trips/{trip.id}/check-out", json={"notes": "done"})
        assert response.status_code == 200
        assert trip.status.value == "completed"

        response = await client.post(f"/api/trips/{trip.id}/check-out", json={})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_recalculate(self, client, factory, login_as):
        await login_as(UserRole.STAFF)
        trip = await factory.trip()

        response = await client.post(f"/api/trips/{trip.id}/recalculate")

        assert response.status_code == 200
        assert response.json()["failures"] == []


# ── System ────────────────────────────────────────────────


class TestSystemEndpoints:
    @pytest.mark.asyncio
    async def test_commission_rate_round_trip(self, client, login_as):
        await login_as(UserRole.ADMIN)

        response = await client.get("/api/settings/commission-rate")
        assert Decimal(response.json()["default_commission_rate"]) == Decimal("0.014")

        response = await client.put(
            "/api/settings/commission-rate", json={"default_commission_rate": "0.0125"}
        )
        assert response.status_code == 200

        response = await client.get("/api/settings/commission-rate")
        assert Decimal(response.json()["default_commission_rate"]) == Decimal("0.0125")

    @pytest.mark.asyncio
    async def test_reconcile(self, client, factory, login_as):
        await login_as(UserRole.ADMIN)
        customer = await factory.customer()
        trip = await factory.trip()
        await factory.join(trip, customer)

        response = await client.post("/api/reconcile")

        assert response.status_code == 200
        body = response.json()
        assert body["trips"] == 1
        assert body["customers_reconciled"] == 1
        assert body["failures"] == []
