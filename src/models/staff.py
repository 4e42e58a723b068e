"""
Staff model.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import BaseModel


class Staff(BaseModel):
    """Floor staff who record rolling play on trips."""

    __tablename__ = "staff"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    position: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default="active",
        server_default="active",
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Staff(id={self.id}, name='{self.name}')>"
