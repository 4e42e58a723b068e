"""
Per-agent trip summaries, written from the profit-sharing breakdown.

total_commission is the rolling commission the agent's customers generated
in the trip (the pool). agent_profit_share is the agent's signed share of
those customers' net results, copied from the breakdown.
"""

import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models import TripAgentSummary, TripCustomerStats
from src.services.ledger import get_trip_agent_ids
from src.services.trip_stats import get_member_customer_stats
from src.utils.errors import ledger_operation
from src.utils.money import ZERO, sum_money, to_decimal

if TYPE_CHECKING:
    from src.services.profit_sharing import AgentBreakdown

logger = logging.getLogger(__name__)


async def get_trip_agent_summaries(db: AsyncSession, trip_id: int) -> List[TripAgentSummary]:
    result = await db.execute(
        select(TripAgentSummary)
        .where(TripAgentSummary.trip_id == trip_id)
        .order_by(TripAgentSummary.agent_id)
    )
    return list(result.scalars().all())


async def get_agent_summary(
    db: AsyncSession, trip_id: int, agent_id: int
) -> Optional[TripAgentSummary]:
    result = await db.execute(
        select(TripAgentSummary).where(
            and_(TripAgentSummary.trip_id == trip_id, TripAgentSummary.agent_id == agent_id)
        )
    )
    return result.scalar_one_or_none()


@ledger_operation("sum_trip_agent_shares")
async def sum_trip_agent_shares(db: AsyncSession, trip_id: int):
    """Sum of agent_profit_share over the trip's persisted summaries."""
    result = await db.execute(
        select(func.coalesce(func.sum(TripAgentSummary.agent_profit_share), 0)).where(
            TripAgentSummary.trip_id == trip_id
        )
    )
    return to_decimal(result.scalar_one())


@ledger_operation("store_agent_summaries")
async def store_agent_summaries(
    db: AsyncSession,
    trip_id: int,
    breakdown: "AgentBreakdown",
    stats_rows: Sequence[TripCustomerStats],
) -> List[TripAgentSummary]:
    """
    Upsert one summary per agent in the breakdown.

    Trip agents (or agents with an old summary) missing from the breakdown
    are zeroed rather than deleted.
    """
    stats_by_customer: Dict[int, TripCustomerStats] = {row.customer_id: row for row in stats_rows}
    existing = {row.agent_id: row for row in await get_trip_agent_summaries(db, trip_id)}

    summaries = []
    for share in breakdown.shares:
        managed = [stats_by_customer[c] for c in share.customer_ids if c in stats_by_customer]
        summary = existing.pop(share.agent_id, None)
        if summary is None:
            summary = TripAgentSummary(trip_id=trip_id, agent_id=share.agent_id)
            db.add(summary)
        summary.customer_count = len(managed)
        summary.total_win_loss = sum_money(row.total_win_loss for row in managed)
        summary.total_profit = sum_money(row.net_result for row in managed)
        summary.total_commission = sum_money(row.total_commission_earned for row in managed)
        summary.agent_profit_share = share.share_amount
        summaries.append(summary)

    trip_agent_ids = set(await get_trip_agent_ids(db, trip_id))
    stale_agent_ids = set(existing) | (trip_agent_ids - set(breakdown.agent_ids))
    for agent_id in sorted(stale_agent_ids):
        summary = existing.get(agent_id)
        if summary is None:
            summary = TripAgentSummary(trip_id=trip_id, agent_id=agent_id)
            db.add(summary)
        summary.customer_count = 0
        summary.total_win_loss = ZERO
        summary.total_profit = ZERO
        summary.total_commission = ZERO
        summary.agent_profit_share = ZERO
        summaries.append(summary)

    await db.flush()
    logger.debug(
        f"Trip {trip_id}: {len(breakdown.shares)} agent summaries written, "
        f"{len(stale_agent_ids)} zeroed"
    )
    return summaries


async def recompute_agent_trip_summary(
    db: AsyncSession, trip_id: int, breakdown: Optional["AgentBreakdown"] = None
) -> List[TripAgentSummary]:
    """
    Recompute every agent summary of the trip.

    Without a breakdown from a preceding sharing pass, the breakdown is
    rebuilt from the trip's current stats rows and links.
    """
    from src.services.profit_sharing import compute_agent_breakdown

    stats_rows = await get_member_customer_stats(db, trip_id)
    if breakdown is None:
        breakdown = await compute_agent_breakdown(db, trip_id, stats_rows)
    return await store_agent_summaries(db, trip_id, breakdown, stats_rows)
