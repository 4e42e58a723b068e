"""
Ledger store: reads of base facts and the writes the HTTP surface performs.

Nothing here touches derived aggregates. Callers run the matching hook in
src.services.consistency after a write has been flushed.
"""

import logging
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.models import (
    Agent,
    Customer,
    RollingEntry,
    SystemSetting,
    Transaction,
    TransactionStatus,
    TransactionType,
    Trip,
    TripAgent,
    TripAgentCustomer,
    TripCustomer,
    TripExpense,
)
from src.utils.errors import (
    ErrorCode,
    MembershipError,
    MissingEntityError,
    UnsupportedFactError,
    ledger_operation,
)
from src.utils.money import commission_for, quantize_money, to_decimal

logger = logging.getLogger(__name__)

DEFAULT_COMMISSION_RATE_KEY = "default_commission_rate"


# ── Entity lookups ──────────────────────────────────────────────


async def require_trip(db: AsyncSession, trip_id: int) -> Trip:
    trip = await db.get(Trip, trip_id)
    if not trip:
        raise MissingEntityError(ErrorCode.TRIP_NOT_FOUND, trip_id)
    return trip


async def require_customer(db: AsyncSession, customer_id: int) -> Customer:
    customer = await db.get(Customer, customer_id)
    if not customer:
        raise MissingEntityError(ErrorCode.CUSTOMER_NOT_FOUND, customer_id)
    return customer


async def require_agent(db: AsyncSession, agent_id: int) -> Agent:
    agent = await db.get(Agent, agent_id)
    if not agent:
        raise MissingEntityError(ErrorCode.AGENT_NOT_FOUND, agent_id)
    return agent


# ── Queries ─────────────────────────────────────────────────────


@ledger_operation("get_completed_transactions")
async def get_completed_transactions(
    db: AsyncSession, trip_id: int, customer_id: int
) -> List[Transaction]:
    """Completed buy-in / cash-out rows for one customer in one trip."""
    result = await db.execute(
        select(Transaction)
        .where(
            and_(
                Transaction.trip_id == trip_id,
                Transaction.customer_id == customer_id,
                Transaction.status == TransactionStatus.COMPLETED.value,
            )
        )
        .order_by(Transaction.id)
    )
    return list(result.scalars().all())


@ledger_operation("get_rolling_entries")
async def get_rolling_entries(
    db: AsyncSession, trip_id: int, customer_id: Optional[int] = None
) -> List[RollingEntry]:
    query = select(RollingEntry).where(RollingEntry.trip_id == trip_id)
    if customer_id is not None:
        query = query.where(RollingEntry.customer_id == customer_id)
    result = await db.execute(query.order_by(RollingEntry.id))
    return list(result.scalars().all())


@ledger_operation("get_trip_expenses")
async def get_trip_expenses(db: AsyncSession, trip_id: int) -> List[TripExpense]:
    result = await db.execute(
        select(TripExpense).where(TripExpense.trip_id == trip_id).order_by(TripExpense.id)
    )
    return list(result.scalars().all())


@ledger_operation("get_agent_customer_links")
async def get_agent_customer_links(
    db: AsyncSession,
    trip_id: int,
    agent_id: Optional[int] = None,
    customer_id: Optional[int] = None,
) -> List[TripAgentCustomer]:
    """Agent x customer links of a trip, in insertion order."""
    query = select(TripAgentCustomer).where(TripAgentCustomer.trip_id == trip_id)
    if agent_id is not None:
        query = query.where(TripAgentCustomer.agent_id == agent_id)
    if customer_id is not None:
        query = query.where(TripAgentCustomer.customer_id == customer_id)
    result = await db.execute(query.order_by(TripAgentCustomer.id))
    return list(result.scalars().all())


@ledger_operation("get_trip_customer_ids")
async def get_trip_customer_ids(db: AsyncSession, trip_id: int) -> List[int]:
    result = await db.execute(
        select(TripCustomer.customer_id)
        .where(TripCustomer.trip_id == trip_id)
        .order_by(TripCustomer.id)
    )
    return list(result.scalars().all())


@ledger_operation("get_trip_agent_ids")
async def get_trip_agent_ids(db: AsyncSession, trip_id: int) -> List[int]:
    result = await db.execute(
        select(TripAgent.agent_id).where(TripAgent.trip_id == trip_id).order_by(TripAgent.id)
    )
    return list(result.scalars().all())


@ledger_operation("get_agent_trip_ids")
async def get_agent_trip_ids(db: AsyncSession, agent_id: int) -> List[int]:
    result = await db.execute(
        select(TripAgent.trip_id).where(TripAgent.agent_id == agent_id).order_by(TripAgent.id)
    )
    return list(result.scalars().all())


async def get_trip_customer(
    db: AsyncSession, trip_id: int, customer_id: int
) -> Optional[TripCustomer]:
    result = await db.execute(
        select(TripCustomer).where(
            and_(TripCustomer.trip_id == trip_id, TripCustomer.customer_id == customer_id)
        )
    )
    return result.scalar_one_or_none()


async def get_trip_agent(db: AsyncSession, trip_id: int, agent_id: int) -> Optional[TripAgent]:
    result = await db.execute(
        select(TripAgent).where(and_(TripAgent.trip_id == trip_id, TripAgent.agent_id == agent_id))
    )
    return result.scalar_one_or_none()


# ── Settings ────────────────────────────────────────────────────


async def get_setting(db: AsyncSession, key: str, default=None):
    """Get a system setting value."""
    setting = await db.get(SystemSetting, key)
    if setting:
        return setting.get_value()
    return default


async def get_default_commission_rate(db: AsyncSession) -> Decimal:
    """
    Rolling commission rate applied to new entries that carry no rate.

    The runtime override in system_settings wins over the configured default.
    """
    value = await get_setting(db, DEFAULT_COMMISSION_RATE_KEY)
    if value is None:
        return settings.default_commission_rate
    return to_decimal(value)


async def set_default_commission_rate(db: AsyncSession, rate: Decimal) -> Decimal:
    """Store a new default rate. Existing rolling entries keep their own rate."""
    rate = to_decimal(rate)
    setting = await db.get(SystemSetting, DEFAULT_COMMISSION_RATE_KEY)
    if setting:
        setting.set_value(str(rate))
    else:
        setting = SystemSetting(key=DEFAULT_COMMISSION_RATE_KEY, value={"v": str(rate)})
        db.add(setting)
    await db.flush()
    logger.info(f"Default rolling commission rate set to {rate}")
    return rate


# ── Transactions ────────────────────────────────────────────────


def _check_transaction_type(transaction_type: str) -> str:
    allowed = [t.value for t in TransactionType]
    if transaction_type not in allowed:
        raise UnsupportedFactError(transaction_type, allowed)
    return transaction_type


def _check_transaction_status(status: str) -> str:
    allowed = [s.value for s in TransactionStatus]
    if status not in allowed:
        raise UnsupportedFactError(status, allowed)
    return status


async def _require_member(db: AsyncSession, trip_id: int, customer_id: int) -> TripCustomer:
    membership = await get_trip_customer(db, trip_id, customer_id)
    if not membership:
        raise MembershipError(
            ErrorCode.NOT_A_MEMBER,
            f"Customer {customer_id} is not part of trip {trip_id}",
            {"trip_id": trip_id, "customer_id": customer_id},
        )
    return membership


async def record_transaction(
    db: AsyncSession,
    trip_id: int,
    customer_id: int,
    amount,
    transaction_type: str,
    status: str = TransactionStatus.COMPLETED.value,
    agent_id: Optional[int] = None,
    venue: Optional[str] = None,
    notes: Optional[str] = None,
    recorded_by_staff_id: Optional[int] = None,
) -> Transaction:
    """Record a buy-in or cash-out for a customer who is on the trip."""
    _check_transaction_type(transaction_type)
    _check_transaction_status(status)
    await require_trip(db, trip_id)
    customer = await require_customer(db, customer_id)
    await _require_member(db, trip_id, customer_id)

    transaction = Transaction(
        trip_id=trip_id,
        customer_id=customer_id,
        agent_id=agent_id if agent_id is not None else customer.agent_id,
        amount=quantize_money(amount),
        transaction_type=transaction_type,
        status=status,
        venue=venue,
        notes=notes,
        recorded_by_staff_id=recorded_by_staff_id,
    )
    db.add(transaction)
    await db.flush()
    logger.info(
        f"Recorded {transaction_type} of {transaction.amount} for customer {customer_id} "
        f"in trip {trip_id}"
    )
    return transaction


async def get_transaction(db: AsyncSession, transaction_id: int) -> Optional[Transaction]:
    return await db.get(Transaction, transaction_id)


async def update_transaction(db: AsyncSession, transaction: Transaction, **changes) -> Transaction:
    """Apply field changes; None values are ignored."""
    if changes.get("transaction_type") is not None:
        _check_transaction_type(changes["transaction_type"])
    if changes.get("status") is not None:
        _check_transaction_status(changes["status"])
    for field in ("amount", "transaction_type", "status", "venue", "notes"):
        value = changes.get(field)
        if value is None:
            continue
        if field == "amount":
            value = quantize_money(value)
        setattr(transaction, field, value)
    await db.flush()
    return transaction


async def delete_transaction(db: AsyncSession, transaction: Transaction) -> None:
    await db.delete(transaction)
    await db.flush()


# ── Rolling ─────────────────────────────────────────────────────


async def record_rolling_entry(
    db: AsyncSession,
    trip_id: int,
    customer_id: int,
    staff_id: int,
    game_type: str,
    rolling_amount,
    commission_rate=None,
    venue: Optional[str] = None,
    notes: Optional[str] = None,
) -> RollingEntry:
    """
    Record rolling play. The commission is fixed at write time from the
    entry's rate, so later default-rate changes leave it untouched.
    """
    await require_trip(db, trip_id)
    await require_customer(db, customer_id)
    await _require_member(db, trip_id, customer_id)

    if commission_rate is None:
        commission_rate = await get_default_commission_rate(db)
    rate = to_decimal(commission_rate)
    amount = quantize_money(rolling_amount)

    entry = RollingEntry(
        trip_id=trip_id,
        customer_id=customer_id,
        staff_id=staff_id,
        game_type=game_type,
        rolling_amount=amount,
        commission_rate=rate,
        commission_earned=commission_for(amount, rate),
        venue=venue,
        notes=notes,
    )
    db.add(entry)
    await db.flush()
    logger.info(
        f"Recorded rolling {amount} at {rate} for customer {customer_id} in trip {trip_id}"
    )
    return entry


async def get_rolling_entry(db: AsyncSession, entry_id: int) -> Optional[RollingEntry]:
    return await db.get(RollingEntry, entry_id)


async def update_rolling_entry(db: AsyncSession, entry: RollingEntry, **changes) -> RollingEntry:
    """Apply field changes; a new amount is re-priced at the entry's own rate."""
    for field in ("game_type", "venue", "notes"):
        if changes.get(field) is not None:
            setattr(entry, field, changes[field])
    if changes.get("rolling_amount") is not None:
        entry.rolling_amount = quantize_money(changes["rolling_amount"])
        entry.commission_earned = commission_for(entry.rolling_amount, entry.commission_rate)
    await db.flush()
    return entry


async def delete_rolling_entry(db: AsyncSession, entry: RollingEntry) -> None:
    await db.delete(entry)
    await db.flush()


# ── Expenses ────────────────────────────────────────────────────


async def add_expense(
    db: AsyncSession,
    trip_id: int,
    expense_type: str,
    amount,
    expense_date,
    description: Optional[str] = None,
) -> TripExpense:
    await require_trip(db, trip_id)
    expense = TripExpense(
        trip_id=trip_id,
        expense_type=expense_type,
        amount=quantize_money(amount),
        description=description,
        expense_date=expense_date,
    )
    db.add(expense)
    await db.flush()
    logger.info(f"Added {expense_type} expense of {expense.amount} to trip {trip_id}")
    return expense


async def get_expense(db: AsyncSession, expense_id: int) -> Optional[TripExpense]:
    return await db.get(TripExpense, expense_id)


async def update_expense(db: AsyncSession, expense: TripExpense, **changes) -> TripExpense:
    for field in ("expense_type", "amount", "description", "expense_date"):
        value = changes.get(field)
        if value is None:
            continue
        if field == "amount":
            value = quantize_money(value)
        setattr(expense, field, value)
    await db.flush()
    return expense


async def delete_expense(db: AsyncSession, expense: TripExpense) -> None:
    await db.delete(expense)
    await db.flush()


# ── Memberships ─────────────────────────────────────────────────


async def add_agent_to_trip(db: AsyncSession, trip_id: int, agent_id: int) -> TripAgent:
    await require_trip(db, trip_id)
    await require_agent(db, agent_id)
    if await get_trip_agent(db, trip_id, agent_id):
        raise MembershipError(
            ErrorCode.ALREADY_A_MEMBER,
            f"Agent {agent_id} is already part of trip {trip_id}",
            {"trip_id": trip_id, "agent_id": agent_id},
        )
    membership = TripAgent(trip_id=trip_id, agent_id=agent_id)
    db.add(membership)
    await db.flush()
    logger.info(f"Agent {agent_id} added to trip {trip_id}")
    return membership


async def remove_agent_from_trip(db: AsyncSession, trip_id: int, agent_id: int) -> None:
    """Remove an agent and every agent x customer link they hold in the trip."""
    membership = await get_trip_agent(db, trip_id, agent_id)
    if not membership:
        raise MembershipError(
            ErrorCode.NOT_A_MEMBER,
            f"Agent {agent_id} is not part of trip {trip_id}",
            {"trip_id": trip_id, "agent_id": agent_id},
        )
    for link in await get_agent_customer_links(db, trip_id, agent_id=agent_id):
        await db.delete(link)
    await db.delete(membership)
    await db.flush()
    logger.info(f"Agent {agent_id} removed from trip {trip_id}")


async def link_agent_customer(
    db: AsyncSession,
    trip_id: int,
    agent_id: int,
    customer_id: int,
    profit_sharing_rate=None,
) -> TripAgentCustomer:
    """Link a customer to an agent in a trip; the rate defaults to the agent's commission rate."""
    agent = await require_agent(db, agent_id)
    if profit_sharing_rate is None:
        profit_sharing_rate = agent.commission_rate
    link = TripAgentCustomer(
        trip_id=trip_id,
        agent_id=agent_id,
        customer_id=customer_id,
        profit_sharing_rate=to_decimal(profit_sharing_rate),
    )
    db.add(link)
    await db.flush()
    return link


async def add_customer_to_trip(db: AsyncSession, trip_id: int, customer_id: int) -> TripCustomer:
    """
    Add a customer to a trip.

    When the customer has an assigned agent, that agent joins the trip if
    needed and the customer is linked to them at the agent's commission rate.
    The zeroed stats row is created by the on_customer_joins_trip hook.
    """
    await require_trip(db, trip_id)
    customer = await require_customer(db, customer_id)
    if await get_trip_customer(db, trip_id, customer_id):
        raise MembershipError(
            ErrorCode.ALREADY_A_MEMBER,
            f"Customer {customer_id} is already part of trip {trip_id}",
            {"trip_id": trip_id, "customer_id": customer_id},
        )

    membership = TripCustomer(trip_id=trip_id, customer_id=customer_id)
    db.add(membership)
    await db.flush()

    if customer.agent_id is not None:
        if not await get_trip_agent(db, trip_id, customer.agent_id):
            db.add(TripAgent(trip_id=trip_id, agent_id=customer.agent_id))
            await db.flush()
            logger.info(f"Agent {customer.agent_id} auto-added to trip {trip_id}")
        existing = await get_agent_customer_links(
            db, trip_id, agent_id=customer.agent_id, customer_id=customer_id
        )
        if not existing:
            await link_agent_customer(db, trip_id, customer.agent_id, customer_id)

    logger.info(f"Customer {customer_id} added to trip {trip_id}")
    return membership


async def remove_customer_membership(db: AsyncSession, trip_id: int, customer_id: int) -> None:
    """Delete the customer's trip membership and agent links. Stats are handled by the caller."""
    membership = await _require_member(db, trip_id, customer_id)
    for link in await get_agent_customer_links(db, trip_id, customer_id=customer_id):
        await db.delete(link)
    await db.delete(membership)
    await db.flush()


async def set_profit_sharing_rate(
    db: AsyncSession,
    trip_id: int,
    agent_id: int,
    rate,
    customer_ids: Optional[Iterable[int]] = None,
) -> List[TripAgentCustomer]:
    """
    Set the agent's profit-sharing rate (percent) for some or all of the
    customers they manage in the trip.
    """
    links = await get_agent_customer_links(db, trip_id, agent_id=agent_id)
    if customer_ids is not None:
        wanted = set(customer_ids)
        links = [link for link in links if link.customer_id in wanted]
    if not links:
        raise MembershipError(
            ErrorCode.NOT_A_MEMBER,
            f"Agent {agent_id} manages no matching customers in trip {trip_id}",
            {"trip_id": trip_id, "agent_id": agent_id},
        )
    rate = to_decimal(rate)
    for link in links:
        link.profit_sharing_rate = rate
    await db.flush()
    logger.info(f"Profit-sharing rate for agent {agent_id} in trip {trip_id} set to {rate}%")
    return links
