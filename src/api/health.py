"""
Health check endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.db import get_db

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """Returns 200 while the process is up."""
    return {"status": "healthy", "service": "junket-ledger"}


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """
    Readiness check with database connectivity.

    Aggregates cannot be synchronized without the database, so the service
    reports not_ready until a trivial query succeeds.
    """
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        return {
            "status": "not_ready",
            "database": f"error: {e}",
        }

    return {
        "status": "ready",
        "database": "connected",
    }


@router.get("/live")
async def liveness_check():
    """Liveness probe for the container orchestrator."""
    return {"status": "alive"}
