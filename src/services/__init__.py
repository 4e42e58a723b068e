"""Aggregate services and the ledger store they read from."""

from src.services.agent_summary import recompute_agent_trip_summary
from src.services.consistency import (
    PipelineResult,
    StageFailure,
    TripPipeline,
    on_agent_membership_changed,
    on_customer_joins_trip,
    on_customer_leaves_trip,
    on_expense_changed,
    on_profit_sharing_rate_changed,
    on_rolling_changed,
    on_transaction_changed,
    on_trip_completed,
    recalculate_trip,
    reconcile_all,
)
from src.services.customer_trip_stats import recompute_customer_trip_stats
from src.services.profit_sharing import recompute_trip_sharing
from src.services.rollups import recompute_agent_global_totals, recompute_customer_global_totals
from src.services.trip_stats import recompute_trip_stats

__all__ = [
    "recompute_customer_trip_stats",
    "recompute_trip_stats",
    "recompute_trip_sharing",
    "recompute_agent_trip_summary",
    "recompute_customer_global_totals",
    "recompute_agent_global_totals",
    "on_customer_leaves_trip",
    "on_customer_joins_trip",
    "on_transaction_changed",
    "on_rolling_changed",
    "on_expense_changed",
    "on_profit_sharing_rate_changed",
    "on_agent_membership_changed",
    "on_trip_completed",
    "recalculate_trip",
    "reconcile_all",
    "TripPipeline",
    "PipelineResult",
    "StageFailure",
]
