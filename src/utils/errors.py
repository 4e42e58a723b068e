"""
Structured errors for the aggregate pipeline.

Aggregate operations either return the freshly persisted rows or raise
one of these; orchestration code turns them into StageFailure records.
"""

import functools
import logging
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Error codes for programmatic handling."""

    LEDGER_ACCESS = "LEDGER_ACCESS"
    TRIP_NOT_FOUND = "TRIP_NOT_FOUND"
    CUSTOMER_NOT_FOUND = "CUSTOMER_NOT_FOUND"
    AGENT_NOT_FOUND = "AGENT_NOT_FOUND"
    NOT_A_MEMBER = "NOT_A_MEMBER"
    ALREADY_A_MEMBER = "ALREADY_A_MEMBER"
    UNSUPPORTED_FACT = "UNSUPPORTED_FACT"
    AGENT_SHARE_MISMATCH = "AGENT_SHARE_MISMATCH"
    ROLLUP_FAILED = "ROLLUP_FAILED"


class AggregateError(Exception):
    """
    Base exception for aggregate and ledger errors.

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable error message
        details: Additional error details
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code.value
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class LedgerAccessError(AggregateError):
    """The ledger store could not be read or written."""

    def __init__(self, operation: str, cause: Exception):
        super().__init__(
            code=ErrorCode.LEDGER_ACCESS,
            message=f"Ledger access failed during {operation}: {cause}",
            details={"operation": operation},
        )


class MissingEntityError(AggregateError):
    """A trip, customer or agent referenced by an operation does not exist."""

    def __init__(self, code: ErrorCode, entity_id: int):
        entity = code.value.split("_")[0].lower()
        super().__init__(
            code=code,
            message=f"{entity.capitalize()} not found: {entity_id}",
            details={f"{entity}_id": entity_id},
        )


class MembershipError(AggregateError):
    """A membership change conflicts with the current trip roster."""


class UnsupportedFactError(AggregateError):
    """A ledger write carries a kind this service does not handle."""

    def __init__(self, kind: str, allowed: list):
        super().__init__(
            code=ErrorCode.UNSUPPORTED_FACT,
            message=f"Unsupported transaction type: {kind}",
            details={"kind": kind, "allowed": allowed},
        )


def ledger_operation(operation: str):
    """
    Wrap an async data-access function so SQLAlchemy failures surface as
    LedgerAccessError carrying the operation name.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except SQLAlchemyError as e:
                logger.error(f"Ledger access failed during {operation}: {e}")
                raise LedgerAccessError(operation, e) from e

        return wrapper

    return decorator
