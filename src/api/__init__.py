"""API router aggregation."""

from fastapi import APIRouter

from src.api.auth import router as auth_router
from src.api.health import router as health_router
from src.api.ledger import router as ledger_router
from src.api.system import router as system_router
from src.api.trips import router as trips_router

# Main API router (for /api/* endpoints)
api_router = APIRouter(prefix="/api")

api_router.include_router(health_router)
api_router.include_router(auth_router)
api_router.include_router(trips_router)
api_router.include_router(ledger_router)
api_router.include_router(system_router)

__all__ = ["api_router"]
