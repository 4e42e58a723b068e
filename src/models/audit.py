"""
AuditLog model for tracking ledger mutations.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, JSON, String, func
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base


class AuditAction(str, Enum):
    """Types of auditable actions."""
    LOGIN = "login"
    LOGOUT = "logout"
    ADD_TRANSACTION = "add_transaction"
    UPDATE_TRANSACTION = "update_transaction"
    DELETE_TRANSACTION = "delete_transaction"
    ADD_ROLLING = "add_rolling"
    UPDATE_ROLLING = "update_rolling"
    DELETE_ROLLING = "delete_rolling"
    ADD_EXPENSE = "add_expense"
    UPDATE_EXPENSE = "update_expense"
    DELETE_EXPENSE = "delete_expense"
    ADD_TRIP_CUSTOMER = "add_trip_customer"
    REMOVE_TRIP_CUSTOMER = "remove_trip_customer"
    ADD_TRIP_AGENT = "add_trip_agent"
    REMOVE_TRIP_AGENT = "remove_trip_agent"
    UPDATE_PROFIT_SHARING = "update_profit_sharing"
    COMPLETE_TRIP = "complete_trip"
    RECALCULATE = "recalculate"
    UPDATE_SETTINGS = "update_settings"


class AuditLog(Base):
    """
    Audit log of every ledger mutation.

    Aggregates can always be re-derived; this table records who changed
    the facts they are derived from.
    """

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    action: Mapped[AuditAction] = mapped_column(
        SQLAlchemyEnum(
            AuditAction,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        index=True,
    )
    target_type: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="Type of entity affected (trip, transaction, rolling, etc)",
    )
    target_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="ID of the affected entity",
    )
    action_metadata: Mapped[Optional[dict]] = mapped_column(
        JSON,
        nullable=True,
        comment="Additional context about the action",
    )
    ip_address: Mapped[Optional[str]] = mapped_column(
        String(45),
        nullable=True,
        comment="IPv4 or IPv6 address",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, user_id={self.user_id}, action={self.action})>"
