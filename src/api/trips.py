"""
Trip API endpoints: memberships, profit-sharing rates, check-out and
read access to the trip's aggregates.
"""

import logging
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.sync import pipeline_response, sync_aggregates
from src.auth.dependencies import get_current_user, require_admin, require_staff
from src.db import get_db
from src.models import AuditAction, TripStatus, User
from src.schemas.aggregates import (
    AgentSummaryResponse,
    CustomerTripStatsResponse,
    SyncResponse,
    TripSharingResponse,
)
from src.schemas.trip import CheckOutRequest, ProfitSharingUpdate, TripAgentAdd, TripCustomerAdd
from src.services import consistency, ledger
from src.services.agent_summary import get_trip_agent_summaries
from src.services.profit_sharing import get_trip_sharing
from src.services.trip_stats import get_member_customer_stats
from src.utils.audit import get_client_ip, jsonable_metadata, log_action

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trips", tags=["Trips"])


# ── Customers ───────────────────────────────────────────────────


@router.post("/{trip_id}/customers", response_model=SyncResponse, status_code=status.HTTP_201_CREATED)
async def add_trip_customer(
    trip_id: int,
    data: TripCustomerAdd,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Add a customer (and their agent, if any) to the trip."""
    membership = await ledger.add_customer_to_trip(db, trip_id, data.customer_id)
    await log_action(
        db=db,
        user_id=current_user.id,
        action=AuditAction.ADD_TRIP_CUSTOMER,
        target_type="trip",
        target_id=trip_id,
        action_metadata={"customer_id": data.customer_id},
        ip_address=get_client_ip(request),
    )
    return await sync_aggregates(
        db,
        consistency.on_customer_joins_trip,
        trip_id,
        data.customer_id,
        message="Customer added to trip",
        target_id=membership.id,
    )


@router.delete("/{trip_id}/customers/{customer_id}", response_model=SyncResponse)
async def remove_trip_customer(
    trip_id: int,
    customer_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """
    Remove a customer from the trip.

    The customer's trip figures are taken off their lifetime totals before
    the membership goes, so this runs as one transaction.
    """
    await ledger.require_trip(db, trip_id)
    result = await consistency.on_customer_leaves_trip(db, trip_id, customer_id)
    await log_action(
        db=db,
        user_id=current_user.id,
        action=AuditAction.REMOVE_TRIP_CUSTOMER,
        target_type="trip",
        target_id=trip_id,
        action_metadata={"customer_id": customer_id},
        ip_address=get_client_ip(request),
    )
    response = pipeline_response(result, "Customer removed from trip", trip_id)
    await db.commit()
    return response


# ── Agents ──────────────────────────────────────────────────────


@router.post("/{trip_id}/agents", response_model=SyncResponse, status_code=status.HTTP_201_CREATED)
async def add_trip_agent(
    trip_id: int,
    data: TripAgentAdd,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    membership = await ledger.add_agent_to_trip(db, trip_id, data.agent_id)
    await log_action(
        db=db,
        user_id=current_user.id,
        action=AuditAction.ADD_TRIP_AGENT,
        target_type="trip",
        target_id=trip_id,
        action_metadata={"agent_id": data.agent_id},
        ip_address=get_client_ip(request),
    )
    return await sync_aggregates(
        db,
        consistency.on_agent_membership_changed,
        trip_id,
        data.agent_id,
        message="Agent added to trip",
        target_id=membership.id,
    )


@router.delete("/{trip_id}/agents/{agent_id}", response_model=SyncResponse)
async def remove_trip_agent(
    trip_id: int,
    agent_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    await ledger.remove_agent_from_trip(db, trip_id, agent_id)
    await log_action(
        db=db,
        user_id=current_user.id,
        action=AuditAction.REMOVE_TRIP_AGENT,
        target_type="trip",
        target_id=trip_id,
        action_metadata={"agent_id": agent_id},
        ip_address=get_client_ip(request),
    )
    return await sync_aggregates(
        db,
        consistency.on_agent_membership_changed,
        trip_id,
        agent_id,
        message="Agent removed from trip",
        target_id=trip_id,
    )


@router.put("/{trip_id}/agents/{agent_id}/profit-sharing", response_model=SyncResponse)
async def update_profit_sharing(
    trip_id: int,
    agent_id: int,
    data: ProfitSharingUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Change the agent's profit-sharing rate (percent) in this trip."""
    links = await ledger.set_profit_sharing_rate(
        db, trip_id, agent_id, data.profit_sharing_rate, data.customer_ids
    )
    await log_action(
        db=db,
        user_id=current_user.id,
        action=AuditAction.UPDATE_PROFIT_SHARING,
        target_type="trip",
        target_id=trip_id,
        action_metadata=jsonable_metadata(
            agent_id=agent_id,
            profit_sharing_rate=data.profit_sharing_rate,
            customers=len(links),
        ),
        ip_address=get_client_ip(request),
    )
    return await sync_aggregates(
        db,
        consistency.on_profit_sharing_rate_changed,
        trip_id,
        message="Profit-sharing rate updated",
        target_id=trip_id,
    )


# ── Lifecycle ───────────────────────────────────────────────────


@router.post("/{trip_id}/check-out", response_model=SyncResponse)
async def check_out_trip(
    trip_id: int,
    data: CheckOutRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Complete the trip and bring every aggregate up to date."""
    trip = await ledger.require_trip(db, trip_id)
    if trip.status == TripStatus.COMPLETED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Trip is already checked out",
        )

    trip.status = TripStatus.COMPLETED
    trip.check_out_time = datetime.now(timezone.utc)
    trip.check_out_notes = data.notes
    await log_action(
        db=db,
        user_id=current_user.id,
        action=AuditAction.COMPLETE_TRIP,
        target_type="trip",
        target_id=trip_id,
        ip_address=get_client_ip(request),
    )
    logger.info(f"Trip {trip_id} checked out by user {current_user.id}")
    return await sync_aggregates(
        db,
        consistency.on_trip_completed,
        trip_id,
        message="Trip checked out",
        target_id=trip_id,
    )


@router.post("/{trip_id}/recalculate", response_model=SyncResponse)
async def recalculate_trip(
    trip_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Re-derive every aggregate of the trip from its ledger."""
    await ledger.require_trip(db, trip_id)
    await log_action(
        db=db,
        user_id=current_user.id,
        action=AuditAction.RECALCULATE,
        target_type="trip",
        target_id=trip_id,
        ip_address=get_client_ip(request),
    )
    return await sync_aggregates(
        db,
        consistency.recalculate_trip,
        trip_id,
        message="Trip recalculated",
        target_id=trip_id,
    )


# ── Reads ───────────────────────────────────────────────────────


@router.get("/{trip_id}/sharing", response_model=TripSharingResponse)
async def get_sharing(
    trip_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await ledger.require_trip(db, trip_id)
    sharing = await get_trip_sharing(db, trip_id)
    if not sharing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Sharing has not been calculated for this trip",
        )
    return TripSharingResponse.model_validate(sharing)


@router.get("/{trip_id}/agent-summary", response_model=List[AgentSummaryResponse])
async def get_agent_summary(
    trip_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await ledger.require_trip(db, trip_id)
    summaries = await get_trip_agent_summaries(db, trip_id)
    return [AgentSummaryResponse.model_validate(s) for s in summaries]


@router.get("/{trip_id}/customer-stats", response_model=List[CustomerTripStatsResponse])
async def get_customer_stats(
    trip_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await ledger.require_trip(db, trip_id)
    rows = await get_member_customer_stats(db, trip_id)
    return [CustomerTripStatsResponse.model_validate(row) for row in rows]
