"""
Agent model.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import BaseModel


class Agent(BaseModel):
    """
    A junket agent who brings customers and shares in their results.

    commission_rate is a percentage (e.g. 40 = 40%) and is only the default
    profit-sharing rate copied onto new trip agent/customer links.
    """

    __tablename__ = "agents"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )
    commission_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        default=Decimal("0"),
        server_default="0",
        nullable=False,
        comment="Default profit-sharing rate in percent",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default="active",
        server_default="active",
        nullable=False,
    )

    # Lifetime totals (derived)
    total_commission: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        default=Decimal("0"),
        server_default="0",
        nullable=False,
    )
    total_trips: Mapped[int] = mapped_column(
        Integer,
        default=0,
        server_default="0",
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Agent(id={self.id}, name='{self.name}', commission_rate={self.commission_rate})>"
