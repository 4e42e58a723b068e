"""
Customer-trip aggregation.

Folds one customer's completed transactions and rolling entries in one
trip into a TripCustomerStats row.
"""

import logging
from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models import RollingEntry, Transaction, TransactionType, TripCustomerStats
from src.services.ledger import get_completed_transactions, get_rolling_entries
from src.services.rollups import recompute_customer_global_totals
from src.utils.errors import ledger_operation
from src.utils.money import ZERO, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CustomerTripFigures:
    """Computed per-customer-per-trip figures, before they are persisted."""

    trip_id: int
    customer_id: int
    total_buy_in: Decimal = ZERO
    total_cash_out: Decimal = ZERO
    total_win_loss: Decimal = ZERO
    rolling_amount: Decimal = ZERO
    total_commission_earned: Decimal = ZERO
    net_result: Decimal = ZERO

    def apply_to(self, row: TripCustomerStats) -> TripCustomerStats:
        for f in fields(self):
            if f.name in ("trip_id", "customer_id"):
                continue
            setattr(row, f.name, getattr(self, f.name))
        return row


def summarize_customer_ledger(
    trip_id: int,
    customer_id: int,
    transactions: Iterable[Transaction],
    rolling_entries: Iterable[RollingEntry],
) -> CustomerTripFigures:
    """
    Sum completed transactions and rolling entries.

    win/loss is from the house's perspective: buy-ins minus cash-outs.
    Transactions of an unknown type are logged and skipped.
    """
    buy_in = ZERO
    cash_out = ZERO
    for transaction in transactions:
        amount = to_decimal(transaction.amount)
        if transaction.transaction_type == TransactionType.BUY_IN.value:
            buy_in += amount
        elif transaction.transaction_type == TransactionType.CASH_OUT.value:
            cash_out += amount
        else:
            logger.warning(
                f"Skipping transaction {transaction.id} with unsupported type "
                f"'{transaction.transaction_type}' (trip {trip_id}, customer {customer_id})"
            )

    rolling = ZERO
    commission = ZERO
    for entry in rolling_entries:
        rolling += to_decimal(entry.rolling_amount)
        commission += to_decimal(entry.commission_earned)

    win_loss = buy_in - cash_out
    return CustomerTripFigures(
        trip_id=trip_id,
        customer_id=customer_id,
        total_buy_in=buy_in,
        total_cash_out=cash_out,
        total_win_loss=win_loss,
        rolling_amount=rolling,
        total_commission_earned=commission,
        net_result=win_loss - commission,
    )


async def calculate_customer_trip_stats(
    db: AsyncSession, trip_id: int, customer_id: int
) -> CustomerTripFigures:
    """Read the pair's ledger facts and sum them without writing anything."""
    transactions = await get_completed_transactions(db, trip_id, customer_id)
    rolling_entries = await get_rolling_entries(db, trip_id, customer_id)
    return summarize_customer_ledger(trip_id, customer_id, transactions, rolling_entries)


async def get_customer_trip_stats_row(
    db: AsyncSession, trip_id: int, customer_id: int
) -> Optional[TripCustomerStats]:
    result = await db.execute(
        select(TripCustomerStats).where(
            and_(
                TripCustomerStats.trip_id == trip_id,
                TripCustomerStats.customer_id == customer_id,
            )
        )
    )
    return result.scalar_one_or_none()


@ledger_operation("store_customer_trip_stats")
async def store_customer_trip_stats(
    db: AsyncSession, figures: CustomerTripFigures
) -> TripCustomerStats:
    """Upsert the stats row for (trip, customer)."""
    row = await get_customer_trip_stats_row(db, figures.trip_id, figures.customer_id)
    if row is None:
        row = TripCustomerStats(trip_id=figures.trip_id, customer_id=figures.customer_id)
        db.add(row)
    figures.apply_to(row)
    await db.flush()
    return row


async def create_zeroed_customer_trip_stats(
    db: AsyncSession, trip_id: int, customer_id: int
) -> TripCustomerStats:
    """Stats row for a customer who just joined and has no facts yet."""
    return await store_customer_trip_stats(
        db, CustomerTripFigures(trip_id=trip_id, customer_id=customer_id)
    )


@ledger_operation("recompute_customer_trip_stats")
async def recompute_customer_trip_stats(
    db: AsyncSession,
    trip_id: int,
    customer_id: int,
    rollup: bool = True,
) -> TripCustomerStats:
    """
    Recompute and persist one customer's stats for one trip.

    Args:
        db: Database session
        trip_id: Trip the facts belong to
        customer_id: Customer whose facts are summed
        rollup: Also recompute the customer's lifetime totals afterwards

    Returns:
        The persisted TripCustomerStats row
    """
    figures = await calculate_customer_trip_stats(db, trip_id, customer_id)
    row = await store_customer_trip_stats(db, figures)
    logger.debug(
        f"Customer {customer_id} in trip {trip_id}: win/loss {row.total_win_loss}, "
        f"commission {row.total_commission_earned}, net {row.net_result}"
    )

    if rollup:
        await recompute_customer_global_totals(db, customer_id)
    return row
