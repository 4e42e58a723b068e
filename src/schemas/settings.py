"""System settings schemas."""

from decimal import Decimal

from pydantic import BaseModel, Field


class CommissionRateResponse(BaseModel):
    """Default rolling commission rate as a fraction (0.014 = 1.4%)."""

    default_commission_rate: Decimal


class CommissionRateUpdate(BaseModel):
    default_commission_rate: Decimal = Field(..., ge=0, le=1, max_digits=6, decimal_places=4)
