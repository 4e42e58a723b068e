"""
Trip model and trip membership links.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import BaseModel


class TripStatus(str, Enum):
    """Lifecycle of a junket trip."""
    ACTIVE = "active"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Trip(BaseModel):
    """
    A time-boxed junket event.

    Financial figures are not stored here; see TripSharing.
    """

    __tablename__ = "trips"

    trip_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    destination: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    start_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )
    end_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )
    status: Mapped[TripStatus] = mapped_column(
        SQLAlchemyEnum(
            TripStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=TripStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    currency: Mapped[str] = mapped_column(
        String(10),
        default="HKD",
        server_default="HKD",
        nullable=False,
    )
    check_out_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    check_out_notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Trip(id={self.id}, trip_name='{self.trip_name}', status={self.status})>"


class TripCustomer(BaseModel):
    """Customer membership in a trip."""

    __tablename__ = "trip_customers"
    __table_args__ = (
        UniqueConstraint("trip_id", "customer_id", name="uq_trip_customers_trip_customer"),
    )

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


class TripAgent(BaseModel):
    """Agent membership in a trip."""

    __tablename__ = "trip_agents"
    __table_args__ = (
        UniqueConstraint("trip_id", "agent_id", name="uq_trip_agents_trip_agent"),
    )

    trip_id: Mapped[int] = mapped_column(
        ForeignKey("trips.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    agent_id: Mapped[int] = mapped_column(
        ForeignKey("agents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class TripAgentCustomer(BaseModel):
    """
    Which agent manages which customer on a trip, and at what rate.

    profit_sharing_rate is a percentage of the customer's net result.
    It is copied from Agent.commission_rate when the link is created and
    can be edited per trip afterwards.
    """

    __tablename__ = "trip_agent_customers"
    __table_args__ = (
        UniqueConstraint(
            "trip_id", "agent_id", "customer_id",
            name="uq_trip_agent_customers_trip_agent_customer",
        ),
    )

    trip_id: Mapped[int] = mapped_column(
        ForeignKey("trips.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    agent_id: Mapped[int] = mapped_column(
        ForeignKey("agents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_id: Mapped[int] = mapped_column(
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    profit_sharing_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        default=Decimal("0"),
        server_default="0",
        nullable=False,
    )


class TripExpense(BaseModel):
    """Trip-wide expense, not attributed to any customer."""

    __tablename__ = "trip_expenses"

    trip_id: Mapped[int] = mapped_column(
        ForeignKey("trips.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    expense_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    expense_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<TripExpense(id={self.id}, trip_id={self.trip_id}, amount={self.amount})>"
