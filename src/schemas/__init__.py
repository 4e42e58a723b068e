"""Pydantic schemas for request/response validation."""

from src.schemas.aggregates import (
    AgentShareItem,
    AgentSummaryResponse,
    CustomerTripStatsResponse,
    ReconcileResponse,
    StageFailureResponse,
    SyncResponse,
    TripSharingResponse,
)
from src.schemas.auth import CurrentUserResponse, LoginRequest, LoginResponse
from src.schemas.ledger import (
    ExpenseCreate,
    ExpenseResponse,
    ExpenseUpdate,
    RollingCreate,
    RollingResponse,
    RollingUpdate,
    TransactionCreate,
    TransactionResponse,
    TransactionUpdate,
)
from src.schemas.settings import CommissionRateResponse, CommissionRateUpdate
from src.schemas.trip import CheckOutRequest, ProfitSharingUpdate, TripAgentAdd, TripCustomerAdd

__all__ = [
    # Auth
    "LoginRequest",
    "LoginResponse",
    "CurrentUserResponse",
    # Ledger
    "TransactionCreate",
    "TransactionUpdate",
    "TransactionResponse",
    "RollingCreate",
    "RollingUpdate",
    "RollingResponse",
    "ExpenseCreate",
    "ExpenseUpdate",
    "ExpenseResponse",
    # Trip
    "TripCustomerAdd",
    "TripAgentAdd",
    "ProfitSharingUpdate",
    "CheckOutRequest",
    # Aggregates
    "CustomerTripStatsResponse",
    "TripSharingResponse",
    "AgentShareItem",
    "AgentSummaryResponse",
    "StageFailureResponse",
    "SyncResponse",
    "ReconcileResponse",
    # Settings
    "CommissionRateResponse",
    "CommissionRateUpdate",
]
