"""
Lifetime totals on Customer and Agent.

The recompute functions are authoritative: they re-derive the totals from
every per-trip aggregate of the entity. The add/deduct pair is the
incremental path used only when a customer joins or leaves a trip.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models import Agent, Customer, TripAgent, TripAgentSummary, TripCustomerStats
from src.utils.errors import AggregateError, ErrorCode, MissingEntityError, ledger_operation
from src.utils.money import ZERO, to_decimal

logger = logging.getLogger(__name__)

# Customer lifetime field -> TripCustomerStats field
CUSTOMER_TOTAL_FIELDS = (
    ("total_rolling", "rolling_amount"),
    ("total_win_loss", "total_win_loss"),
    ("total_buy_in", "total_buy_in"),
    ("total_buy_out", "total_cash_out"),
)


@dataclass
class RollupReport:
    """Outcome of a batch rollup. Failures are keyed by entity id."""

    succeeded: List[int] = field(default_factory=list)
    failed: Dict[int, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    def merge(self, other: "RollupReport") -> "RollupReport":
        self.succeeded.extend(other.succeeded)
        self.failed.update(other.failed)
        return self


# ── Customers ───────────────────────────────────────────────────


@ledger_operation("recompute_customer_global_totals")
async def recompute_customer_global_totals(db: AsyncSession, customer_id: int) -> Customer:
    """Re-derive a customer's lifetime totals from all of their trip stats rows."""
    customer = await db.get(Customer, customer_id)
    if not customer:
        raise MissingEntityError(ErrorCode.CUSTOMER_NOT_FOUND, customer_id)

    columns = [
        func.coalesce(func.sum(getattr(TripCustomerStats, stats_field)), 0)
        for _, stats_field in CUSTOMER_TOTAL_FIELDS
    ]
    result = await db.execute(
        select(*columns).where(TripCustomerStats.customer_id == customer_id)
    )
    sums = result.one()

    for (customer_field, _), value in zip(CUSTOMER_TOTAL_FIELDS, sums):
        setattr(customer, customer_field, to_decimal(value))
    await db.flush()

    logger.debug(
        f"Customer {customer_id} lifetime: rolling {customer.total_rolling}, "
        f"win/loss {customer.total_win_loss}"
    )
    return customer


async def _apply_trip_contribution(
    db: AsyncSession, trip_id: int, customer_id: int, sign: int
) -> Customer:
    customer = await db.get(Customer, customer_id)
    if not customer:
        raise MissingEntityError(ErrorCode.CUSTOMER_NOT_FOUND, customer_id)

    result = await db.execute(
        select(TripCustomerStats).where(
            and_(
                TripCustomerStats.trip_id == trip_id,
                TripCustomerStats.customer_id == customer_id,
            )
        )
    )
    stats = result.scalar_one_or_none()
    if stats is None:
        logger.info(
            f"No stats for customer {customer_id} in trip {trip_id}, lifetime totals unchanged"
        )
        return customer

    for customer_field, stats_field in CUSTOMER_TOTAL_FIELDS:
        current = to_decimal(getattr(customer, customer_field))
        delta = to_decimal(getattr(stats, stats_field))
        setattr(customer, customer_field, current + sign * delta)
    await db.flush()
    return customer


@ledger_operation("add_trip_to_customer_totals")
async def add_trip_to_customer_totals(db: AsyncSession, trip_id: int, customer_id: int) -> Customer:
    """Add the customer's stats for one trip to their lifetime totals."""
    return await _apply_trip_contribution(db, trip_id, customer_id, 1)


@ledger_operation("deduct_trip_from_customer_totals")
async def deduct_trip_from_customer_totals(
    db: AsyncSession, trip_id: int, customer_id: int
) -> Customer:
    """
    Subtract the customer's stats for one trip from their lifetime totals.

    Must run before the stats row is deleted; without it there is nothing
    left to subtract.
    """
    return await _apply_trip_contribution(db, trip_id, customer_id, -1)


async def recompute_customers_global_totals(
    db: AsyncSession, customer_ids: Iterable[int]
) -> RollupReport:
    report = RollupReport()
    for customer_id in customer_ids:
        try:
            await recompute_customer_global_totals(db, customer_id)
            report.succeeded.append(customer_id)
        except AggregateError as e:
            logger.error(f"Lifetime totals rollup failed for customer {customer_id}: {e.message}")
            report.failed[customer_id] = e.message
    return report


# ── Agents ──────────────────────────────────────────────────────


@ledger_operation("recompute_agent_global_totals")
async def recompute_agent_global_totals(db: AsyncSession, agent_id: int) -> Agent:
    """
    Re-derive an agent's lifetime totals.

    total_trips counts the trips the agent is a member of; total_commission
    sums the agent's profit share over those trips.
    """
    agent = await db.get(Agent, agent_id)
    if not agent:
        raise MissingEntityError(ErrorCode.AGENT_NOT_FOUND, agent_id)

    trip_ids = select(TripAgent.trip_id).where(TripAgent.agent_id == agent_id)
    trip_count = await db.scalar(
        select(func.count(TripAgent.id)).where(TripAgent.agent_id == agent_id)
    )
    share_total = await db.scalar(
        select(func.coalesce(func.sum(TripAgentSummary.agent_profit_share), 0)).where(
            and_(
                TripAgentSummary.agent_id == agent_id,
                TripAgentSummary.trip_id.in_(trip_ids),
            )
        )
    )

    agent.total_trips = trip_count or 0
    agent.total_commission = to_decimal(share_total) if share_total is not None else ZERO
    await db.flush()

    logger.debug(
        f"Agent {agent_id} lifetime: {agent.total_trips} trips, "
        f"commission {agent.total_commission}"
    )
    return agent


async def recompute_agents_global_totals(
    db: AsyncSession, agent_ids: Iterable[int]
) -> RollupReport:
    report = RollupReport()
    for agent_id in agent_ids:
        try:
            await recompute_agent_global_totals(db, agent_id)
            report.succeeded.append(agent_id)
        except AggregateError as e:
            logger.error(f"Lifetime totals rollup failed for agent {agent_id}: {e.message}")
            report.failed[agent_id] = e.message
    return report
