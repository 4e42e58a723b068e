"""
Database models for the junket ledger.

All models are exported here for convenient imports:
    from src.models import Trip, Customer, TripCustomerStats, etc.
"""

from src.models.agent import Agent
from src.models.audit import AuditAction, AuditLog
from src.models.base import Base, BaseModel, TimestampMixin
from src.models.customer import Customer
from src.models.ledger import RollingEntry, Transaction, TransactionStatus, TransactionType
from src.models.settings import SystemSetting
from src.models.staff import Staff
from src.models.stats import TripAgentSummary, TripCustomerStats, TripSharing
from src.models.trip import (
    Trip,
    TripAgent,
    TripAgentCustomer,
    TripCustomer,
    TripExpense,
    TripStatus,
)
from src.models.user import User, UserRole

__all__ = [
    # Base
    "Base",
    "BaseModel",
    "TimestampMixin",
    # User
    "User",
    "UserRole",
    # People
    "Agent",
    "Customer",
    "Staff",
    # Trip
    "Trip",
    "TripStatus",
    "TripCustomer",
    "TripAgent",
    "TripAgentCustomer",
    "TripExpense",
    # Ledger
    "Transaction",
    "TransactionType",
    "TransactionStatus",
    "RollingEntry",
    # Aggregates
    "TripCustomerStats",
    "TripSharing",
    "TripAgentSummary",
    # Settings
    "SystemSetting",
    # Audit
    "AuditLog",
    "AuditAction",
]
