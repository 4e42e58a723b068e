"""
Background job definitions using APScheduler.

Jobs:
- Aggregate reconciliation: re-derives every trip aggregate and lifetime
  total from the ledger, repairing anything a failed synchronization
  left stale
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.config import settings
from src.db import get_db_context
from src.services.consistency import reconcile_all

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def reconciliation_job():
    """Reconcile all aggregates with the ledger."""
    logger.debug("Running reconciliation job")
    try:
        async with get_db_context() as db:
            report = await reconcile_all(db)
            if not report.ok:
                logger.warning(
                    f"Reconciliation job: {len(report.failures)} stage failures, "
                    f"{len(report.customers.failed)} customer and "
                    f"{len(report.agents.failed)} agent rollup failures"
                )
    except Exception as e:
        logger.error(f"Reconciliation job error: {e}")


def setup_scheduler():
    """
    Configure and add all scheduled jobs.

    Called during application startup.
    """
    scheduler.add_job(
        reconciliation_job,
        trigger=IntervalTrigger(minutes=settings.reconciliation_interval_minutes),
        id="aggregate_reconciliation",
        name="Reconcile trip aggregates",
        replace_existing=True,
    )

    logger.info(
        f"Scheduler configured: reconciliation every "
        f"{settings.reconciliation_interval_minutes} minutes"
    )
