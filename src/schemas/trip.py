"""Trip membership and trip lifecycle schemas."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class TripCustomerAdd(BaseModel):
    customer_id: int


class TripAgentAdd(BaseModel):
    agent_id: int


class ProfitSharingUpdate(BaseModel):
    """
    New profit-sharing rate in percent.

    Applies to every customer the agent manages in the trip unless
    customer_ids narrows it down.
    """

    profit_sharing_rate: Decimal = Field(..., ge=0, le=100, max_digits=5, decimal_places=2)
    customer_ids: Optional[List[int]] = None


class CheckOutRequest(BaseModel):
    notes: Optional[str] = None
