"""
Customer model with lifetime financial totals.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import BaseModel


class Customer(BaseModel):
    """
    A junket customer.

    The total_* columns are a projection of every TripCustomerStats row
    the customer has. They are written only by the rollup service.
    """

    __tablename__ = "customers"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    agent_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("agents.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Agent who manages this customer by default",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default="active",
        server_default="active",
        nullable=False,
    )

    # Lifetime totals (derived)
    total_rolling: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        default=Decimal("0"),
        server_default="0",
        nullable=False,
    )
    total_win_loss: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        default=Decimal("0"),
        server_default="0",
        nullable=False,
    )
    total_buy_in: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        default=Decimal("0"),
        server_default="0",
        nullable=False,
    )
    total_buy_out: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        default=Decimal("0"),
        server_default="0",
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, name='{self.name}', agent_id={self.agent_id})>"
