"""
Consistency orchestration for derived aggregates.

Every ledger mutation is followed by one of the hooks below. Each hook runs
a TripPipeline: a fixed sequence of stages where every stage reads only what
the previous stages have already flushed:

    customer stats -> trip totals -> sharing + agent summaries -> rollups

Stages either complete or raise. Data-access failures (LedgerAccessError)
propagate to the caller; per-entity failures in the customer and rollup
stages are logged, collected as StageFailure entries and do not stop
sibling entities.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models import Agent, Customer, Trip, TripAgentSummary, TripCustomerStats, TripSharing
from src.services.customer_trip_stats import (
    create_zeroed_customer_trip_stats,
    get_customer_trip_stats_row,
    recompute_customer_trip_stats,
)
from src.services.ledger import (
    get_trip_agent_ids,
    get_trip_customer,
    get_trip_customer_ids,
    remove_customer_membership,
    require_trip,
)
from src.services.profit_sharing import SharingPass, run_sharing_pass
from src.services.rollups import (
    RollupReport,
    add_trip_to_customer_totals,
    deduct_trip_from_customer_totals,
    recompute_agents_global_totals,
    recompute_customers_global_totals,
)
from src.services.trip_stats import TripTotals, recompute_trip_stats
from src.utils.errors import AggregateError, ErrorCode, LedgerAccessError, MembershipError

logger = logging.getLogger(__name__)


@dataclass
class StageFailure:
    stage: str
    code: str
    message: str
    entity_id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "stage": self.stage,
            "code": self.code,
            "message": self.message,
            "entity_id": self.entity_id,
        }


@dataclass
class PipelineResult:
    """Aggregates persisted by one pipeline run."""

    trip_id: int
    customer_stats: List[TripCustomerStats] = field(default_factory=list)
    totals: Optional[TripTotals] = None
    sharing: Optional[TripSharing] = None
    agent_summaries: List[TripAgentSummary] = field(default_factory=list)
    customer_rollups: RollupReport = field(default_factory=RollupReport)
    agent_rollups: RollupReport = field(default_factory=RollupReport)
    failures: List[StageFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class TripPipeline:
    """Runs the aggregate stages for one trip in dependency order."""

    def __init__(self, db: AsyncSession, trip_id: int):
        self.db = db
        self.trip_id = trip_id
        self.result = PipelineResult(trip_id=trip_id)

    def record_failure(self, stage: str, code: str, message: str, entity_id: Optional[int] = None):
        self.result.failures.append(
            StageFailure(stage=stage, code=code, message=message, entity_id=entity_id)
        )

    async def refresh_customers(self, customer_ids: Iterable[int]) -> List[TripCustomerStats]:
        """Stage 1: per-customer stats plus each customer's lifetime totals."""
        rows = []
        for customer_id in customer_ids:
            try:
                row = await recompute_customer_trip_stats(self.db, self.trip_id, customer_id)
            except LedgerAccessError:
                raise
            except AggregateError as e:
                logger.error(
                    f"Customer stats failed for customer {customer_id} in trip {self.trip_id}: "
                    f"{e.message}"
                )
                self.record_failure("customer_stats", e.code, e.message, customer_id)
                continue
            rows.append(row)
            self.result.customer_rollups.succeeded.append(customer_id)
        self.result.customer_stats.extend(rows)
        return rows

    async def refresh_trip(self) -> TripTotals:
        """Stage 2: trip totals."""
        self.result.totals = await recompute_trip_stats(self.db, self.trip_id)
        return self.result.totals

    async def refresh_sharing(self, totals: TripTotals) -> SharingPass:
        """Stage 3: sharing row and agent summaries, from one breakdown."""
        sharing_pass = await run_sharing_pass(self.db, self.trip_id, totals)
        self.result.sharing = sharing_pass.sharing
        self.result.agent_summaries = sharing_pass.summaries
        if sharing_pass.mismatch is not None:
            self.record_failure(
                "trip_sharing",
                ErrorCode.AGENT_SHARE_MISMATCH.value,
                f"Agent summaries differ from the breakdown by {sharing_pass.mismatch}",
            )
        return sharing_pass

    async def refresh_agents(self, agent_ids: Iterable[int]) -> RollupReport:
        """Stage 4: lifetime totals of the trip's agents."""
        report = await recompute_agents_global_totals(self.db, agent_ids)
        for agent_id, message in report.failed.items():
            self.record_failure("agent_rollup", ErrorCode.ROLLUP_FAILED.value, message, agent_id)
        self.result.agent_rollups.merge(report)
        return report

    async def run(
        self,
        customer_ids: Iterable[int] = (),
        extra_agent_ids: Iterable[int] = (),
    ) -> PipelineResult:
        """
        Run all stages.

        Args:
            customer_ids: Customers whose trip stats must be recomputed first
            extra_agent_ids: Agents to roll up besides the trip's current agents,
                e.g. one who just left the trip

        Returns:
            PipelineResult with everything that was persisted
        """
        await self.refresh_customers(customer_ids)
        totals = await self.refresh_trip()
        sharing_pass = await self.refresh_sharing(totals)

        agent_ids = list(await get_trip_agent_ids(self.db, self.trip_id))
        for agent_id in list(extra_agent_ids) + sharing_pass.breakdown.agent_ids:
            if agent_id not in agent_ids:
                agent_ids.append(agent_id)
        await self.refresh_agents(agent_ids)

        if self.result.failures:
            logger.warning(
                f"Trip {self.trip_id} pipeline finished with {len(self.result.failures)} failures"
            )
        else:
            logger.info(f"Trip {self.trip_id} aggregates synchronized")
        return self.result


# ── Mutation hooks ──────────────────────────────────────────────


async def on_transaction_changed(db: AsyncSession, trip_id: int, customer_id: int) -> PipelineResult:
    """A buy-in or cash-out of the customer was added, edited or removed."""
    return await TripPipeline(db, trip_id).run(customer_ids=[customer_id])


async def on_rolling_changed(db: AsyncSession, trip_id: int, customer_id: int) -> PipelineResult:
    """A rolling entry of the customer was added, edited or removed."""
    return await TripPipeline(db, trip_id).run(customer_ids=[customer_id])


async def on_expense_changed(db: AsyncSession, trip_id: int) -> PipelineResult:
    return await TripPipeline(db, trip_id).run()


async def on_profit_sharing_rate_changed(db: AsyncSession, trip_id: int) -> PipelineResult:
    return await TripPipeline(db, trip_id).run()


async def on_agent_membership_changed(db: AsyncSession, trip_id: int, agent_id: int) -> PipelineResult:
    """An agent joined or left the trip; their own rollup runs either way."""
    return await TripPipeline(db, trip_id).run(extra_agent_ids=[agent_id])


async def on_customer_joins_trip(db: AsyncSession, trip_id: int, customer_id: int) -> PipelineResult:
    """
    Create the customer's zeroed stats row and add it to their lifetime
    totals, then run the full pipeline for the customer.

    A customer who rejoins still has the facts recorded before they left,
    so the zeroed row is recomputed from the ledger in the first stage.
    """
    if await get_customer_trip_stats_row(db, trip_id, customer_id) is None:
        await create_zeroed_customer_trip_stats(db, trip_id, customer_id)
        await add_trip_to_customer_totals(db, trip_id, customer_id)
    return await TripPipeline(db, trip_id).run(customer_ids=[customer_id])


async def on_customer_leaves_trip(db: AsyncSession, trip_id: int, customer_id: int) -> PipelineResult:
    """
    Remove a customer from a trip.

    Order matters: the trip's stats are subtracted from the customer's
    lifetime totals while the stats row still exists, then the row and the
    membership are deleted, then the trip-level aggregates are refreshed.
    """
    if not await get_trip_customer(db, trip_id, customer_id):
        raise MembershipError(
            ErrorCode.NOT_A_MEMBER,
            f"Customer {customer_id} is not part of trip {trip_id}",
            {"trip_id": trip_id, "customer_id": customer_id},
        )
    agent_ids = list(await get_trip_agent_ids(db, trip_id))

    await deduct_trip_from_customer_totals(db, trip_id, customer_id)
    row = await get_customer_trip_stats_row(db, trip_id, customer_id)
    if row is not None:
        await db.delete(row)
        await db.flush()
    await remove_customer_membership(db, trip_id, customer_id)
    logger.info(f"Customer {customer_id} left trip {trip_id}")

    return await TripPipeline(db, trip_id).run(extra_agent_ids=agent_ids)


async def on_trip_completed(db: AsyncSession, trip_id: int) -> PipelineResult:
    """Recompute every member customer, then the trip. Customer failures are isolated."""
    await require_trip(db, trip_id)
    customer_ids = await get_trip_customer_ids(db, trip_id)
    logger.info(f"Synchronizing {len(customer_ids)} customers for completed trip {trip_id}")
    return await TripPipeline(db, trip_id).run(customer_ids=customer_ids)


async def recalculate_trip(db: AsyncSession, trip_id: int) -> PipelineResult:
    """Manual full recalculation of one trip without touching its status."""
    await require_trip(db, trip_id)
    customer_ids = await get_trip_customer_ids(db, trip_id)
    return await TripPipeline(db, trip_id).run(customer_ids=customer_ids)


# ── Reconciliation ──────────────────────────────────────────────


@dataclass
class ReconciliationReport:
    trips: int = 0
    customers: RollupReport = field(default_factory=RollupReport)
    agents: RollupReport = field(default_factory=RollupReport)
    failures: List[StageFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures and self.customers.ok and self.agents.ok


async def reconcile_all(db: AsyncSession) -> ReconciliationReport:
    """
    Re-derive every aggregate from the ledger.

    Trip stats are recomputed without per-customer rollups; lifetime totals
    of every customer and agent are re-derived once at the end.
    """
    report = ReconciliationReport()
    trip_ids = list((await db.execute(select(Trip.id).order_by(Trip.id))).scalars().all())

    for trip_id in trip_ids:
        pipeline = TripPipeline(db, trip_id)
        for customer_id in await get_trip_customer_ids(db, trip_id):
            try:
                await recompute_customer_trip_stats(db, trip_id, customer_id, rollup=False)
            except LedgerAccessError:
                raise
            except AggregateError as e:
                logger.error(f"Reconciliation of customer {customer_id} in trip {trip_id} failed: {e}")
                pipeline.record_failure("customer_stats", e.code, e.message, customer_id)
        totals = await pipeline.refresh_trip()
        await pipeline.refresh_sharing(totals)
        report.failures.extend(pipeline.result.failures)
        report.trips += 1

    customer_ids = (await db.execute(select(Customer.id).order_by(Customer.id))).scalars().all()
    agent_ids = (await db.execute(select(Agent.id).order_by(Agent.id))).scalars().all()
    report.customers = await recompute_customers_global_totals(db, customer_ids)
    report.agents = await recompute_agents_global_totals(db, agent_ids)

    logger.info(
        f"Reconciled {report.trips} trips, {len(report.customers.succeeded)} customers, "
        f"{len(report.agents.succeeded)} agents"
    )
    return report
