"""Ledger fact schemas: transactions, rolling entries, expenses."""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from src.models.ledger import TransactionStatus, TransactionType


class TransactionCreate(BaseModel):
    """Record a buy-in or cash-out."""

    customer_id: int
    amount: Decimal = Field(..., ge=0, max_digits=15, decimal_places=2)
    transaction_type: TransactionType
    status: TransactionStatus = TransactionStatus.COMPLETED
    agent_id: Optional[int] = None
    venue: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class TransactionUpdate(BaseModel):
    amount: Optional[Decimal] = Field(None, ge=0, max_digits=15, decimal_places=2)
    transaction_type: Optional[TransactionType] = None
    status: Optional[TransactionStatus] = None
    venue: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class TransactionResponse(BaseModel):
    id: int
    trip_id: int
    customer_id: int
    agent_id: Optional[int]
    amount: Decimal
    transaction_type: str
    status: str
    venue: Optional[str]
    notes: Optional[str]
    recorded_by_staff_id: Optional[int]

    model_config = {"from_attributes": True}


class RollingCreate(BaseModel):
    """
    Record rolling play.

    commission_rate is a fraction (0.014 = 1.4%); the current default
    rate applies when it is omitted.
    """

    customer_id: int
    staff_id: int
    game_type: str = Field(..., min_length=1, max_length=100)
    rolling_amount: Decimal = Field(..., ge=0, max_digits=15, decimal_places=2)
    commission_rate: Optional[Decimal] = Field(None, ge=0, le=1)
    venue: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class RollingUpdate(BaseModel):
    game_type: Optional[str] = Field(None, min_length=1, max_length=100)
    rolling_amount: Optional[Decimal] = Field(None, ge=0, max_digits=15, decimal_places=2)
    venue: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class RollingResponse(BaseModel):
    id: int
    trip_id: int
    customer_id: int
    staff_id: int
    game_type: str
    rolling_amount: Decimal
    commission_rate: Decimal
    commission_earned: Decimal
    venue: Optional[str]
    notes: Optional[str]

    model_config = {"from_attributes": True}


class ExpenseCreate(BaseModel):
    expense_type: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., ge=0, max_digits=15, decimal_places=2)
    expense_date: date
    description: Optional[str] = None


class ExpenseUpdate(BaseModel):
    expense_type: Optional[str] = Field(None, min_length=1, max_length=100)
    amount: Optional[Decimal] = Field(None, ge=0, max_digits=15, decimal_places=2)
    expense_date: Optional[date] = None
    description: Optional[str] = None


class ExpenseResponse(BaseModel):
    id: int
    trip_id: int
    expense_type: str
    amount: Decimal
    description: Optional[str]
    expense_date: date

    model_config = {"from_attributes": True}
