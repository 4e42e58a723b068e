"""Read models for derived aggregates and pipeline outcomes."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class CustomerTripStatsResponse(BaseModel):
    trip_id: int
    customer_id: int
    total_buy_in: Decimal
    total_cash_out: Decimal
    total_win_loss: Decimal
    rolling_amount: Decimal
    total_commission_earned: Decimal
    net_result: Decimal

    model_config = {"from_attributes": True}


class AgentShareItem(BaseModel):
    agent_id: int
    profit_sharing_rate: Decimal
    share_amount: Decimal
    customer_ids: List[int] = Field(default_factory=list)


class TripSharingResponse(BaseModel):
    trip_id: int
    total_win_loss: Decimal
    total_buy_in: Decimal
    total_buy_out: Decimal
    total_rolling: Decimal
    total_expenses: Decimal
    total_rolling_commission: Decimal
    net_cash_flow: Decimal
    net_result: Decimal
    total_agent_share: Decimal
    company_share: Decimal
    agent_share_percentage: Decimal
    company_share_percentage: Decimal
    agent_breakdown: List[AgentShareItem] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class AgentSummaryResponse(BaseModel):
    trip_id: int
    agent_id: int
    customer_count: int
    total_win_loss: Decimal
    total_profit: Decimal
    total_commission: Decimal
    agent_profit_share: Decimal

    model_config = {"from_attributes": True}


class StageFailureResponse(BaseModel):
    stage: str
    code: str
    message: str
    entity_id: Optional[int] = None


class SyncResponse(BaseModel):
    """
    Outcome of a mutation endpoint.

    The ledger change is committed either way; aggregates_stale is set when
    the aggregate pass failed and was rolled back.
    """

    success: bool = True
    message: str
    target_id: Optional[int] = None
    aggregates_stale: bool = False
    failures: List[StageFailureResponse] = Field(default_factory=list)
    sharing: Optional[TripSharingResponse] = None


class ReconcileResponse(BaseModel):
    trips: int
    customers_reconciled: int
    agents_reconciled: int
    failures: List[StageFailureResponse] = Field(default_factory=list)
