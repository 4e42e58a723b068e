"""
Ledger API endpoints: transactions, rolling entries and expenses.

Each write is committed on its own, then the aggregates of the affected
trip are synchronized.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.sync import sync_aggregates
from src.auth.dependencies import require_staff
from src.db import get_db
from src.models import AuditAction, User
from src.schemas.aggregates import SyncResponse
from src.schemas.ledger import (
    ExpenseCreate,
    ExpenseUpdate,
    RollingCreate,
    RollingUpdate,
    TransactionCreate,
    TransactionUpdate,
)
from src.services import consistency, ledger
from src.utils.audit import get_client_ip, jsonable_metadata, log_action

router = APIRouter(tags=["Ledger"])


def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")


# ── Transactions ────────────────────────────────────────────────


@router.post(
    "/trips/{trip_id}/transactions",
    response_model=SyncResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_transaction(
    trip_id: int,
    data: TransactionCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Record a buy-in or cash-out."""
    transaction = await ledger.record_transaction(
        db,
        trip_id=trip_id,
        customer_id=data.customer_id,
        amount=data.amount,
        transaction_type=data.transaction_type.value,
        status=data.status.value,
        agent_id=data.agent_id,
        venue=data.venue,
        notes=data.notes,
        recorded_by_staff_id=current_user.staff_id,
    )
    await log_action(
        db=db,
        user_id=current_user.id,
        action=AuditAction.ADD_TRANSACTION,
        target_type="transaction",
        target_id=transaction.id,
        action_metadata=jsonable_metadata(
            trip_id=trip_id,
            customer_id=data.customer_id,
            transaction_type=data.transaction_type.value,
            amount=transaction.amount,
        ),
        ip_address=get_client_ip(request),
    )
    return await sync_aggregates(
        db,
        consistency.on_transaction_changed,
        trip_id,
        data.customer_id,
        message="Transaction recorded",
        target_id=transaction.id,
    )


@router.put("/transactions/{transaction_id}", response_model=SyncResponse)
async def update_transaction(
    transaction_id: int,
    data: TransactionUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    transaction = await ledger.get_transaction(db, transaction_id)
    if not transaction:
        raise _not_found("Transaction")

    changes = data.model_dump(exclude_unset=True)
    if data.transaction_type is not None:
        changes["transaction_type"] = data.transaction_type.value
    if data.status is not None:
        changes["status"] = data.status.value
    await ledger.update_transaction(db, transaction, **changes)
    trip_id, customer_id = transaction.trip_id, transaction.customer_id

    await log_action(
        db=db,
        user_id=current_user.id,
        action=AuditAction.UPDATE_TRANSACTION,
        target_type="transaction",
        target_id=transaction_id,
        action_metadata=jsonable_metadata(**changes),
        ip_address=get_client_ip(request),
    )
    return await sync_aggregates(
        db,
        consistency.on_transaction_changed,
        trip_id,
        customer_id,
        message="Transaction updated",
        target_id=transaction_id,
    )


@router.delete("/transactions/{transaction_id}", response_model=SyncResponse)
async def delete_transaction(
    transaction_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    transaction = await ledger.get_transaction(db, transaction_id)
    if not transaction:
        raise _not_found("Transaction")

    trip_id, customer_id = transaction.trip_id, transaction.customer_id
    await ledger.delete_transaction(db, transaction)
    await log_action(
        db=db,
        user_id=current_user.id,
        action=AuditAction.DELETE_TRANSACTION,
        target_type="transaction",
        target_id=transaction_id,
        action_metadata={"trip_id": trip_id, "customer_id": customer_id},
        ip_address=get_client_ip(request),
    )
    return await sync_aggregates(
        db,
        consistency.on_transaction_changed,
        trip_id,
        customer_id,
        message="Transaction deleted",
        target_id=transaction_id,
    )


# ── Rolling ─────────────────────────────────────────────────────


@router.post(
    "/trips/{trip_id}/rolling",
    response_model=SyncResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_rolling_entry(
    trip_id: int,
    data: RollingCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Record rolling play; commission is priced at the entry's rate."""
    entry = await ledger.record_rolling_entry(
        db,
        trip_id=trip_id,
        customer_id=data.customer_id,
        staff_id=data.staff_id,
        game_type=data.game_type,
        rolling_amount=data.rolling_amount,
        commission_rate=data.commission_rate,
        venue=data.venue,
        notes=data.notes,
    )
    await log_action(
        db=db,
        user_id=current_user.id,
        action=AuditAction.ADD_ROLLING,
        target_type="rolling",
        target_id=entry.id,
        action_metadata=jsonable_metadata(
            trip_id=trip_id,
            customer_id=data.customer_id,
            rolling_amount=entry.rolling_amount,
            commission_rate=entry.commission_rate,
        ),
        ip_address=get_client_ip(request),
    )
    return await sync_aggregates(
        db,
        consistency.on_rolling_changed,
        trip_id,
        data.customer_id,
        message="Rolling recorded",
        target_id=entry.id,
    )


@router.put("/rolling/{entry_id}", response_model=SyncResponse)
async def update_rolling_entry(
    entry_id: int,
    data: RollingUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    entry = await ledger.get_rolling_entry(db, entry_id)
    if not entry:
        raise _not_found("Rolling entry")

    changes = data.model_dump(exclude_unset=True)
    await ledger.update_rolling_entry(db, entry, **changes)
    trip_id, customer_id = entry.trip_id, entry.customer_id

    await log_action(
        db=db,
        user_id=current_user.id,
        action=AuditAction.UPDATE_ROLLING,
        target_type="rolling",
        target_id=entry_id,
        action_metadata=jsonable_metadata(**changes),
        ip_address=get_client_ip(request),
    )
    return await sync_aggregates(
        db,
        consistency.on_rolling_changed,
        trip_id,
        customer_id,
        message="Rolling updated",
        target_id=entry_id,
    )


@router.delete("/rolling/{entry_id}", response_model=SyncResponse)
async def delete_rolling_entry(
    entry_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    entry = await ledger.get_rolling_entry(db, entry_id)
    if not entry:
        raise _not_found("Rolling entry")

    trip_id, customer_id = entry.trip_id, entry.customer_id
    await ledger.delete_rolling_entry(db, entry)
    await log_action(
        db=db,
        user_id=current_user.id,
        action=AuditAction.DELETE_ROLLING,
        target_type="rolling",
        target_id=entry_id,
        action_metadata={"trip_id": trip_id, "customer_id": customer_id},
        ip_address=get_client_ip(request),
    )
    return await sync_aggregates(
        db,
        consistency.on_rolling_changed,
        trip_id,
        customer_id,
        message="Rolling deleted",
        target_id=entry_id,
    )


# ── Expenses ────────────────────────────────────────────────────


@router.post(
    "/trips/{trip_id}/expenses",
    response_model=SyncResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_expense(
    trip_id: int,
    data: ExpenseCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    expense = await ledger.add_expense(
        db,
        trip_id=trip_id,
        expense_type=data.expense_type,
        amount=data.amount,
        expense_date=data.expense_date,
        description=data.description,
    )
    await log_action(
        db=db,
        user_id=current_user.id,
        action=AuditAction.ADD_EXPENSE,
        target_type="expense",
        target_id=expense.id,
        action_metadata=jsonable_metadata(
            trip_id=trip_id, expense_type=data.expense_type, amount=expense.amount
        ),
        ip_address=get_client_ip(request),
    )
    return await sync_aggregates(
        db,
        consistency.on_expense_changed,
        trip_id,
        message="Expense added",
        target_id=expense.id,
    )


@router.put("/expenses/{expense_id}", response_model=SyncResponse)
async def update_expense(
    expense_id: int,
    data: ExpenseUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    expense = await ledger.get_expense(db, expense_id)
    if not expense:
        raise _not_found("Expense")

    changes = data.model_dump(exclude_unset=True)
    await ledger.update_expense(db, expense, **changes)
    trip_id = expense.trip_id

    await log_action(
        db=db,
        user_id=current_user.id,
        action=AuditAction.UPDATE_EXPENSE,
        target_type="expense",
        target_id=expense_id,
        action_metadata=jsonable_metadata(**changes),
        ip_address=get_client_ip(request),
    )
    return await sync_aggregates(
        db,
        consistency.on_expense_changed,
        trip_id,
        message="Expense updated",
        target_id=expense_id,
    )


@router.delete("/expenses/{expense_id}", response_model=SyncResponse)
async def delete_expense(
    expense_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    expense = await ledger.get_expense(db, expense_id)
    if not expense:
        raise _not_found("Expense")

    trip_id = expense.trip_id
    await ledger.delete_expense(db, expense)
    await log_action(
        db=db,
        user_id=current_user.id,
        action=AuditAction.DELETE_EXPENSE,
        target_type="expense",
        target_id=expense_id,
        action_metadata={"trip_id": trip_id},
        ip_address=get_client_ip(request),
    )
    return await sync_aggregates(
        db,
        consistency.on_expense_changed,
        trip_id,
        message="Expense deleted",
        target_id=expense_id,
    )
