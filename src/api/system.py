"""
System endpoints: default rolling commission rate and full reconciliation.
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.dependencies import get_current_user, require_admin
from src.db import get_db
from src.models import AuditAction, User
from src.schemas.aggregates import ReconcileResponse, StageFailureResponse
from src.schemas.settings import CommissionRateResponse, CommissionRateUpdate
from src.services.consistency import reconcile_all
from src.services.ledger import get_default_commission_rate, set_default_commission_rate
from src.utils.audit import get_client_ip, log_action

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])


@router.get("/settings/commission-rate", response_model=CommissionRateResponse)
async def get_commission_rate(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rate = await get_default_commission_rate(db)
    return CommissionRateResponse(default_commission_rate=rate)


@router.put("/settings/commission-rate", response_model=CommissionRateResponse)
async def update_commission_rate(
    data: CommissionRateUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """
    Change the rate used for new rolling entries.

    Existing entries keep the rate they were recorded with, so no
    aggregates change.
    """
    previous = await get_default_commission_rate(db)
    rate = await set_default_commission_rate(db, data.default_commission_rate)
    await log_action(
        db=db,
        user_id=current_user.id,
        action=AuditAction.UPDATE_SETTINGS,
        target_type="setting",
        action_metadata={
            "key": "default_commission_rate",
            "old": str(previous),
            "new": str(rate),
        },
        ip_address=get_client_ip(request),
    )
    await db.commit()
    return CommissionRateResponse(default_commission_rate=rate)


@router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Re-derive every aggregate from the ledger."""
    await log_action(
        db=db,
        user_id=current_user.id,
        action=AuditAction.RECALCULATE,
        target_type="system",
        ip_address=get_client_ip(request),
    )
    report = await reconcile_all(db)
    await db.commit()

    failures = [StageFailureResponse(**f.to_dict()) for f in report.failures]
    for entity, rollup in (("customer", report.customers), ("agent", report.agents)):
        for entity_id, message in rollup.failed.items():
            failures.append(
                StageFailureResponse(
                    stage=f"{entity}_rollup",
                    code="ROLLUP_FAILED",
                    message=message,
                    entity_id=entity_id,
                )
            )
    logger.info(f"Manual reconciliation by user {current_user.id}: {report.trips} trips")
    return ReconcileResponse(
        trips=report.trips,
        customers_reconciled=len(report.customers.succeeded),
        agents_reconciled=len(report.agents.succeeded),
        failures=failures,
    )
