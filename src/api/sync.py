"""
Shared plumbing for mutation endpoints.

A mutation endpoint writes ledger facts, commits them, then runs the
matching consistency hook in a second transaction. When that second pass
fails it is rolled back and the response reports stale aggregates; the
reconciliation job repairs them later.
"""

import logging
from typing import Awaitable, Callable, Optional

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from src.models import TripSharing
from src.schemas.aggregates import StageFailureResponse, SyncResponse, TripSharingResponse
from src.services.consistency import PipelineResult
from src.utils.errors import AggregateError, ErrorCode

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorCode.TRIP_NOT_FOUND.value: status.HTTP_404_NOT_FOUND,
    ErrorCode.CUSTOMER_NOT_FOUND.value: status.HTTP_404_NOT_FOUND,
    ErrorCode.AGENT_NOT_FOUND.value: status.HTTP_404_NOT_FOUND,
    ErrorCode.NOT_A_MEMBER.value: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_A_MEMBER.value: status.HTTP_409_CONFLICT,
    ErrorCode.UNSUPPORTED_FACT.value: status.HTTP_400_BAD_REQUEST,
}


def status_for_error(error: AggregateError) -> int:
    return ERROR_STATUS.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def sharing_response(sharing: Optional[TripSharing]) -> Optional[TripSharingResponse]:
    if sharing is None:
        return None
    return TripSharingResponse.model_validate(sharing)


def pipeline_response(
    result: PipelineResult, message: str, target_id: Optional[int] = None
) -> SyncResponse:
    return SyncResponse(
        message=message,
        target_id=target_id,
        failures=[StageFailureResponse(**f.to_dict()) for f in result.failures],
        sharing=sharing_response(result.sharing),
    )


async def sync_aggregates(
    db: AsyncSession,
    hook: Callable[..., Awaitable[PipelineResult]],
    *args,
    message: str,
    target_id: Optional[int] = None,
) -> SyncResponse:
    """
    Commit the pending ledger change, then run hook(db, *args) and commit
    the aggregates it produced.
    """
    await db.commit()
    try:
        result = await hook(db, *args)
        response = pipeline_response(result, message, target_id)
        await db.commit()
    except AggregateError as e:
        await db.rollback()
        logger.error(f"Aggregate sync after '{message}' failed, aggregates are stale: {e.message}")
        return SyncResponse(
            message=message,
            target_id=target_id,
            aggregates_stale=True,
            failures=[StageFailureResponse(stage="pipeline", code=e.code, message=e.message)],
        )
    return response
