"""
Trip-level totals over the stats rows of the trip's current customers.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models import TripCustomer, TripCustomerStats
from src.utils.errors import ledger_operation
from src.utils.money import ZERO, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TripTotals:
    """In-memory trip totals. Not persisted on the trip."""

    trip_id: int
    customer_count: int = 0
    total_buy_in: Decimal = ZERO
    total_cash_out: Decimal = ZERO
    total_win_loss: Decimal = ZERO
    total_rolling: Decimal = ZERO
    total_commission_earned: Decimal = ZERO

    @property
    def net_profit(self) -> Decimal:
        return self.total_win_loss

    @property
    def has_customers(self) -> bool:
        return self.customer_count > 0


def sum_customer_stats(trip_id: int, rows: Iterable[TripCustomerStats]) -> TripTotals:
    rows = list(rows)
    if not rows:
        return TripTotals(trip_id=trip_id)

    buy_in = cash_out = win_loss = rolling = commission = ZERO
    for row in rows:
        buy_in += to_decimal(row.total_buy_in)
        cash_out += to_decimal(row.total_cash_out)
        win_loss += to_decimal(row.total_win_loss)
        rolling += to_decimal(row.rolling_amount)
        commission += to_decimal(row.total_commission_earned)

    return TripTotals(
        trip_id=trip_id,
        customer_count=len(rows),
        total_buy_in=buy_in,
        total_cash_out=cash_out,
        total_win_loss=win_loss,
        total_rolling=rolling,
        total_commission_earned=commission,
    )


@ledger_operation("get_member_customer_stats")
async def get_member_customer_stats(db: AsyncSession, trip_id: int) -> List[TripCustomerStats]:
    """Stats rows of customers who are currently members of the trip."""
    result = await db.execute(
        select(TripCustomerStats)
        .join(
            TripCustomer,
            and_(
                TripCustomer.trip_id == TripCustomerStats.trip_id,
                TripCustomer.customer_id == TripCustomerStats.customer_id,
            ),
        )
        .where(TripCustomerStats.trip_id == trip_id)
        .order_by(TripCustomer.id)
    )
    return list(result.scalars().all())


async def recompute_trip_stats(db: AsyncSession, trip_id: int) -> TripTotals:
    """Sum the trip's member stats rows. A trip without customers totals zero."""
    rows = await get_member_customer_stats(db, trip_id)
    totals = sum_customer_stats(trip_id, rows)
    logger.debug(
        f"Trip {trip_id} totals: {totals.customer_count} customers, "
        f"buy-in {totals.total_buy_in}, cash-out {totals.total_cash_out}, "
        f"win/loss {totals.total_win_loss}"
    )
    return totals
