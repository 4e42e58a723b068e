"""
Profit-sharing between agents and the company for one trip.

Flow of a sharing pass:
1. Trip result: expenses and rolling commission come off the trip's win/loss
2. Agent breakdown: each agent's signed share of their customers' net results
3. Agent summaries are written from the breakdown (src.services.agent_summary)
4. total_agent_share is read back from those summaries and checked against
   the breakdown, then the company share and percentages are derived
"""

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from src.models import Agent, Customer, TripAgentSummary, TripCustomerStats, TripSharing
from src.services.agent_summary import store_agent_summaries, sum_trip_agent_shares
from src.services.ledger import (
    get_agent_customer_links,
    get_rolling_entries,
    get_trip_agent_ids,
    get_trip_expenses,
)
from src.services.trip_stats import TripTotals, get_member_customer_stats, sum_customer_stats
from src.utils.errors import ledger_operation
from src.utils.money import CENT, HUNDRED, ZERO, quantize_money, sum_money, to_decimal

logger = logging.getLogger(__name__)


# ── Value types ─────────────────────────────────────────────────


@dataclass(frozen=True)
class AgentLink:
    """One agent x customer membership with the rate the agent earns on that customer."""

    agent_id: int
    customer_id: int
    profit_sharing_rate: Decimal


@dataclass
class AgentShare:
    agent_id: int
    profit_sharing_rate: Decimal
    share_amount: Decimal = ZERO
    customer_ids: List[int] = field(default_factory=list)

    def to_json(self) -> dict:
        return {
            "agent_id": self.agent_id,
            "profit_sharing_rate": str(quantize_money(self.profit_sharing_rate)),
            "share_amount": str(self.share_amount),
            "customer_ids": list(self.customer_ids),
        }


@dataclass
class AgentBreakdown:
    """Per-agent shares of one trip, in the order agents were first seen."""

    shares: List[AgentShare] = field(default_factory=list)
    from_fallback: bool = False

    @property
    def total(self) -> Decimal:
        return sum_money(share.share_amount for share in self.shares)

    @property
    def agent_ids(self) -> List[int]:
        return [share.agent_id for share in self.shares]

    def for_agent(self, agent_id: int) -> Optional[AgentShare]:
        for share in self.shares:
            if share.agent_id == agent_id:
                return share
        return None

    def to_json(self) -> list:
        return [share.to_json() for share in self.shares]


@dataclass(frozen=True)
class TripResult:
    total_expenses: Decimal
    total_rolling_commission: Decimal
    net_cash_flow: Decimal
    net_result: Decimal


@dataclass(frozen=True)
class ShareSplit:
    total_agent_share: Decimal
    company_share: Decimal
    agent_share_percentage: Decimal
    company_share_percentage: Decimal


@dataclass
class SharingPass:
    """Everything one sharing pass persisted."""

    sharing: TripSharing
    breakdown: AgentBreakdown
    summaries: List[TripAgentSummary]
    # summaries total minus breakdown total, set only when beyond one cent
    mismatch: Optional[Decimal] = None


# ── Pure calculations ───────────────────────────────────────────


def agent_share_for(net_result, rate) -> Decimal:
    """
    Signed agent share of one customer's net result at a percent rate.

    A customer who lost money to the house gives the agent a positive share;
    a customer who won gives a negative one.
    """
    return quantize_money(to_decimal(net_result) * to_decimal(rate) / HUNDRED)


def build_agent_breakdown(
    links: Iterable[AgentLink],
    net_results: Mapping[int, Decimal],
    from_fallback: bool = False,
) -> AgentBreakdown:
    """
    Group customer shares by agent.

    Links to customers absent from net_results are ignored. The rate shown
    for an agent is the rate of the last customer processed for them.
    """
    shares: Dict[int, AgentShare] = {}
    for link in links:
        if link.customer_id not in net_results:
            continue
        rate = to_decimal(link.profit_sharing_rate)
        share = shares.get(link.agent_id)
        if share is None:
            share = AgentShare(agent_id=link.agent_id, profit_sharing_rate=rate)
            shares[link.agent_id] = share
        share.profit_sharing_rate = rate
        share.share_amount += agent_share_for(net_results[link.customer_id], rate)
        share.customer_ids.append(link.customer_id)
    return AgentBreakdown(shares=list(shares.values()), from_fallback=from_fallback)


def calculate_trip_result(
    totals: TripTotals, total_expenses, total_rolling_commission
) -> TripResult:
    total_expenses = to_decimal(total_expenses)
    total_rolling_commission = to_decimal(total_rolling_commission)
    if not totals.has_customers:
        # Expenses are still incurred by a trip nobody has joined yet
        return TripResult(
            total_expenses=total_expenses,
            total_rolling_commission=total_rolling_commission,
            net_cash_flow=ZERO,
            net_result=-total_expenses,
        )
    return TripResult(
        total_expenses=total_expenses,
        total_rolling_commission=total_rolling_commission,
        net_cash_flow=totals.total_cash_out - totals.total_buy_in,
        net_result=totals.net_profit - total_expenses - total_rolling_commission,
    )


def percentage_of(part, total) -> Decimal:
    total = to_decimal(total)
    if total == 0:
        return ZERO
    return (abs(to_decimal(part)) / total * HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)


def split_shares(net_result, total_agent_share) -> ShareSplit:
    """
    Company share and the magnitude split between agents and the company.

    Percentages describe sizes, not direction, so each lies in [0, 100].
    """
    net_result = to_decimal(net_result)
    total_agent_share = to_decimal(total_agent_share)
    company_share = net_result - total_agent_share
    total_amount = abs(total_agent_share) + abs(company_share)
    return ShareSplit(
        total_agent_share=total_agent_share,
        company_share=company_share,
        agent_share_percentage=percentage_of(total_agent_share, total_amount),
        company_share_percentage=percentage_of(company_share, total_amount),
    )


# ── Ledger-backed steps ─────────────────────────────────────────


async def resolve_agent_links(
    db: AsyncSession, trip_id: int, customer_ids: Sequence[int]
) -> Tuple[List[AgentLink], bool]:
    """
    Agent x customer links of the trip.

    When the trip has none, they are derived from each customer's assigned
    agent at that agent's global commission rate, as long as that agent is
    still a member of the trip. Returns (links, from_fallback).
    """
    rows = await get_agent_customer_links(db, trip_id)
    if rows:
        return [
            AgentLink(
                agent_id=row.agent_id,
                customer_id=row.customer_id,
                profit_sharing_rate=to_decimal(row.profit_sharing_rate),
            )
            for row in rows
        ], False

    member_agent_ids = set(await get_trip_agent_ids(db, trip_id))
    links = []
    for customer_id in customer_ids:
        customer = await db.get(Customer, customer_id)
        if not customer or customer.agent_id not in member_agent_ids:
            continue
        agent = await db.get(Agent, customer.agent_id)
        if not agent:
            logger.warning(f"Customer {customer_id} points at missing agent {customer.agent_id}")
            continue
        links.append(
            AgentLink(
                agent_id=agent.id,
                customer_id=customer_id,
                profit_sharing_rate=to_decimal(agent.commission_rate),
            )
        )
    if links:
        logger.info(f"Trip {trip_id} has no agent links, using customers' assigned agents")
    return links, True


@ledger_operation("compute_agent_breakdown")
async def compute_agent_breakdown(
    db: AsyncSession, trip_id: int, stats_rows: Sequence[TripCustomerStats]
) -> AgentBreakdown:
    net_results = {row.customer_id: to_decimal(row.net_result) for row in stats_rows}
    links, from_fallback = await resolve_agent_links(db, trip_id, list(net_results))
    return build_agent_breakdown(links, net_results, from_fallback=from_fallback)


async def get_trip_sharing(db: AsyncSession, trip_id: int) -> Optional[TripSharing]:
    return await db.get(TripSharing, trip_id)


@ledger_operation("recompute_trip_sharing")
async def run_sharing_pass(
    db: AsyncSession, trip_id: int, totals: Optional[TripTotals] = None
) -> SharingPass:
    """
    Recompute the trip's sharing row and the agent summaries it depends on.

    Args:
        db: Database session
        trip_id: Trip to recompute
        totals: Trip totals from the preceding stage; recomputed when omitted

    Returns:
        SharingPass with the persisted rows and any agent-share mismatch
    """
    stats_rows = await get_member_customer_stats(db, trip_id)
    if totals is None:
        totals = sum_customer_stats(trip_id, stats_rows)

    expenses = await get_trip_expenses(db, trip_id)
    rolling_entries = await get_rolling_entries(db, trip_id)
    result = calculate_trip_result(
        totals,
        total_expenses=sum_money(e.amount for e in expenses),
        total_rolling_commission=sum_money(r.commission_earned for r in rolling_entries),
    )

    if totals.has_customers:
        breakdown = await compute_agent_breakdown(db, trip_id, stats_rows)
    else:
        breakdown = AgentBreakdown()

    summaries = await store_agent_summaries(db, trip_id, breakdown, stats_rows)
    total_agent_share = await sum_trip_agent_shares(db, trip_id)

    mismatch = None
    difference = total_agent_share - breakdown.total
    if abs(difference) > CENT:
        mismatch = difference
        logger.error(
            f"Trip {trip_id}: agent summaries total {total_agent_share} but breakdown "
            f"totals {breakdown.total}"
        )

    split = split_shares(result.net_result, total_agent_share)

    sharing = await get_trip_sharing(db, trip_id)
    if sharing is None:
        sharing = TripSharing(trip_id=trip_id)
        db.add(sharing)
    sharing.total_win_loss = totals.total_win_loss
    sharing.total_buy_in = totals.total_buy_in
    sharing.total_buy_out = totals.total_cash_out
    sharing.total_rolling = totals.total_rolling
    sharing.total_expenses = result.total_expenses
    sharing.total_rolling_commission = result.total_rolling_commission
    sharing.net_cash_flow = result.net_cash_flow
    sharing.net_result = result.net_result
    sharing.total_agent_share = split.total_agent_share
    sharing.company_share = split.company_share
    sharing.agent_share_percentage = split.agent_share_percentage
    sharing.company_share_percentage = split.company_share_percentage
    sharing.agent_breakdown = breakdown.to_json()
    await db.flush()

    logger.info(
        f"Trip {trip_id} sharing: net {result.net_result}, agents {split.total_agent_share}, "
        f"company {split.company_share}"
    )
    return SharingPass(sharing=sharing, breakdown=breakdown, summaries=summaries, mismatch=mismatch)


async def recompute_trip_sharing(
    db: AsyncSession, trip_id: int, totals: Optional[TripTotals] = None
) -> TripSharing:
    """Recompute and return the trip's persisted sharing row."""
    sharing_pass = await run_sharing_pass(db, trip_id, totals)
    return sharing_pass.sharing
