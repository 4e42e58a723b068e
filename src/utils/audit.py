"""
Audit logging utilities.

Every ledger mutation is recorded with the acting user. Aggregates are not
audited: they are re-derived from the audited facts.
"""

from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.models.audit import AuditAction, AuditLog


async def log_action(
    db: AsyncSession,
    user_id: int,
    action: AuditAction,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    action_metadata: Optional[dict[str, Any]] = None,
    ip_address: Optional[str] = None,
) -> AuditLog:
    """
    Log an auditable action.

    Args:
        db: Database session
        user_id: ID of the user performing the action
        action: Type of action being performed
        target_type: Type of entity affected (e.g. "transaction", "trip")
        target_id: ID of the affected entity
        action_metadata: Additional context, JSON-serializable
        ip_address: Client IP address

    Returns:
        Created AuditLog entry (committed by the caller)
    """
    log_entry = AuditLog(
        user_id=user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        action_metadata=action_metadata,
        ip_address=ip_address,
    )
    db.add(log_entry)
    return log_entry


def get_client_ip(request) -> Optional[str]:
    """Client IP, honouring X-Forwarded-For behind a reverse proxy."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    if hasattr(request, "client") and request.client:
        return request.client.host

    return None


def jsonable_metadata(**values) -> dict[str, Any]:
    """Audit metadata with Decimal and date values turned into strings."""
    metadata = {}
    for key, value in values.items():
        if value is None or isinstance(value, (str, int, float, bool)):
            metadata[key] = value
        else:
            metadata[key] = str(value)
    return metadata
