"""
Run a full aggregate reconciliation once, outside the scheduler.

Usage:
    python scripts/reconcile.py

Uses DATABASE_URL from the environment or .env, like the app.
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.db import engine, get_db_context
from src.services.consistency import reconcile_all


async def main() -> int:
    async with get_db_context() as db:
        report = await reconcile_all(db)

    print(f"Trips reconciled: {report.trips}")
    print(f"Customers: {len(report.customers.succeeded)} ok, {len(report.customers.failed)} failed")
    print(f"Agents: {len(report.agents.succeeded)} ok, {len(report.agents.failed)} failed")
    for failure in report.failures:
        print(f"  - {failure.stage} {failure.code} (entity {failure.entity_id}): {failure.message}")
    for entity_id, message in {**report.customers.failed, **report.agents.failed}.items():
        print(f"  - rollup {entity_id}: {message}")

    await engine.dispose()
    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
