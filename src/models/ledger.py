"""
Ledger models for buy-in/cash-out transactions and rolling play.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import BaseModel


class TransactionType(str, Enum):
    """Kinds of customer fund movement."""
    BUY_IN = "buy-in"
    CASH_OUT = "cash-out"


class TransactionStatus(str, Enum):
    """Only completed transactions count toward stats."""
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Transaction(BaseModel):
    """
    Buy-in or cash-out recorded for a customer on a trip.

    transaction_type is a plain string column: rows written by older or
    newer clients may carry kinds this service does not know about.
    """

    __tablename__ = "transactions"

    trip_id: Mapped[int] = mapped_column(
        ForeignKey("trips.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_id: Mapped[int] = mapped_column(
        ForeignKey("customers.id"),
        nullable=False,
        index=True,
    )
    agent_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("agents.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
    )
    transaction_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=TransactionStatus.COMPLETED.value,
        server_default=TransactionStatus.COMPLETED.value,
        nullable=False,
        index=True,
    )
    venue: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    recorded_by_staff_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("staff.id", ondelete="SET NULL"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<Transaction(id={self.id}, trip_id={self.trip_id}, "
            f"type={self.transaction_type}, amount={self.amount})>"
        )


class RollingEntry(BaseModel):
    """
    Rolling play recorded for a customer on a trip.

    commission_earned is fixed when the entry is written, using the rate
    in force at that moment. Later changes to the default rate never
    touch existing entries.
    """

    __tablename__ = "trip_rolling"

    trip_id: Mapped[int] = mapped_column(
        ForeignKey("trips.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_id: Mapped[int] = mapped_column(
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    staff_id: Mapped[int] = mapped_column(
        ForeignKey("staff.id"),
        nullable=False,
    )
    game_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    rolling_amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        default=Decimal("0"),
        nullable=False,
    )
    commission_rate: Mapped[Decimal] = mapped_column(
        Numeric(6, 4),
        nullable=False,
        comment="Commission rate applied to this entry (fraction)",
    )
    commission_earned: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
    )
    venue: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<RollingEntry(id={self.id}, trip_id={self.trip_id}, "
            f"rolling_amount={self.rolling_amount}, commission_earned={self.commission_earned})>"
        )
