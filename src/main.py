"""
Junket Ledger - trip ledger and aggregate consistency service

Main FastAPI application with:
- Ledger endpoints for transactions, rolling, expenses and memberships
- Synchronous aggregate recomputation after every ledger mutation
- Periodic reconciliation of all aggregates
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import select

from src.api import api_router
from src.api.sync import status_for_error
from src.config import settings
from src.db import get_db_context
from src.models import SystemSetting, User, UserRole
from src.scheduler.jobs import scheduler, setup_scheduler
from src.services.ledger import DEFAULT_COMMISSION_RATE_KEY
from src.utils.errors import AggregateError
from src.utils.password import hash_password

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
    - Creates the admin account if none exists
    - Initializes default system settings
    - Starts the reconciliation scheduler

    Shutdown:
    - Stops the scheduler
    """
    logger.info("Starting Junket Ledger...")

    async with get_db_context() as db:
        result = await db.execute(
            select(User).where(User.role == UserRole.ADMIN)
        )
        admin = result.scalars().first()

        if not admin:
            logger.info("Creating admin account...")
            admin = User(
                username=settings.admin_username,
                password_hash=hash_password(settings.admin_password),
                role=UserRole.ADMIN,
                display_name="Admin",
                is_active=True,
            )
            db.add(admin)
            logger.info(f"Admin account created: {settings.admin_username}")

        default_settings = {
            DEFAULT_COMMISSION_RATE_KEY: str(settings.default_commission_rate),
        }

        for key, value in default_settings.items():
            existing = await db.get(SystemSetting, key)
            if not existing:
                db.add(SystemSetting(key=key, value={"v": value}))
                logger.info(f"Created default setting: {key}")

        await db.commit()

    if settings.reconciliation_enabled:
        setup_scheduler()
        scheduler.start()

    logger.info("Junket Ledger started successfully!")

    yield

    logger.info("Shutting down Junket Ledger...")
    if scheduler.running:
        scheduler.shutdown(wait=False)


app = FastAPI(
    title="Junket Ledger",
    description="Trip ledger with consistent profit-sharing aggregates",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)


@app.exception_handler(AggregateError)
async def aggregate_error_handler(request: Request, exc: AggregateError) -> JSONResponse:
    """Turn ledger and aggregate errors into JSON responses."""
    status_code = status_for_error(exc)
    if status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": exc.to_dict()},
    )


app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=not settings.is_production,
    )
