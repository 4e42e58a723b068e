"""
Derived aggregate models.

Every row here is recomputed from ledger facts by src.services and is
never edited by hand.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import JSON, ForeignKey, Integer, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, BaseModel, TimestampMixin


def _money(**kwargs):
    return mapped_column(
        Numeric(15, 2),
        default=Decimal("0"),
        server_default="0",
        nullable=False,
        **kwargs,
    )


class TripCustomerStats(BaseModel):
    """
    One customer's financial summary within one trip.

    Created zeroed when the customer joins, recomputed on every ledger
    mutation, deleted when the customer leaves the trip.
    """

    __tablename__ = "trip_customer_stats"
    __table_args__ = (
        UniqueConstraint("trip_id", "customer_id", name="uq_trip_customer_stats_trip_customer"),
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
    total_buy_in: Mapped[Decimal] = _money()
    total_cash_out: Mapped[Decimal] = _money()
    # Positive = house won from the customer
    total_win_loss: Mapped[Decimal] = _money()
    rolling_amount: Mapped[Decimal] = _money()
    total_commission_earned: Mapped[Decimal] = _money()
    net_result: Mapped[Decimal] = _money(
        comment="total_win_loss - total_commission_earned",
    )

    def __repr__(self) -> str:
        return (
            f"<TripCustomerStats(trip_id={self.trip_id}, customer_id={self.customer_id}, "
            f"net_result={self.net_result})>"
        )


class TripSharing(Base, TimestampMixin):
    """
    Trip-wide profit split between agents and the company.
    """

    __tablename__ = "trip_sharing"

    trip_id: Mapped[int] = mapped_column(
        ForeignKey("trips.id", ondelete="CASCADE"),
        primary_key=True,
    )
    total_win_loss: Mapped[Decimal] = _money()
    total_buy_in: Mapped[Decimal] = _money()
    total_buy_out: Mapped[Decimal] = _money()
    total_rolling: Mapped[Decimal] = _money()
    total_expenses: Mapped[Decimal] = _money()
    total_rolling_commission: Mapped[Decimal] = _money()
    net_cash_flow: Mapped[Decimal] = _money()
    net_result: Mapped[Decimal] = _money()
    total_agent_share: Mapped[Decimal] = _money()
    company_share: Mapped[Decimal] = _money()
    agent_share_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        default=Decimal("0"),
        server_default="0",
        nullable=False,
    )
    company_share_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        default=Decimal("0"),
        server_default="0",
        nullable=False,
    )
    agent_breakdown: Mapped[Optional[list]] = mapped_column(
        JSON,
        nullable=True,
        comment="[{agent_id, profit_sharing_rate, share_amount}]",
    )

    def __repr__(self) -> str:
        return (
            f"<TripSharing(trip_id={self.trip_id}, net_result={self.net_result}, "
            f"company_share={self.company_share})>"
        )


class TripAgentSummary(BaseModel):
    """
    Per-agent view of one trip, restricted to the customers the agent manages.
    """

    __tablename__ = "trip_agent_summary"
    __table_args__ = (
        UniqueConstraint("trip_id", "agent_id", name="uq_trip_agent_summary_trip_agent"),
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
    customer_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        server_default="0",
        nullable=False,
    )
    total_win_loss: Mapped[Decimal] = _money()
    total_profit: Mapped[Decimal] = _money(
        comment="Sum of managed customers' net_result",
    )
    total_commission: Mapped[Decimal] = _money(
        comment="Rolling commission generated by managed customers",
    )
    agent_profit_share: Mapped[Decimal] = _money(
        comment="Agent's signed share of managed customers' net result",
    )

    def __repr__(self) -> str:
        return (
            f"<TripAgentSummary(trip_id={self.trip_id}, agent_id={self.agent_id}, "
            f"agent_profit_share={self.agent_profit_share})>"
        )
