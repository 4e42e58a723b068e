"""
FastAPI dependencies for authentication and role checks.

- admin: everything, including profit-sharing rates, settings and reconciliation
- staff: records ledger facts and memberships
- agent / boss: read-only access to trip aggregates
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.jwt import get_token_from_request, verify_token
from src.db import get_db
from src.models import User, UserRole


async def _user_from_request(request: Request, db: AsyncSession) -> Optional[User]:
    token = get_token_from_request(request)
    if not token:
        return None
    payload = verify_token(token)
    if not payload:
        return None
    return await db.get(User, payload.user_id)


async def get_current_user_optional(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Current active user, or None. Never raises."""
    user = await _user_from_request(request, db)
    if not user or not user.is_active:
        return None
    return user


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Current authenticated user.

    Raises 401 without a valid token and 403 for a disabled account.
    """
    if not get_token_from_request(request):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    user = await _user_from_request(request, db)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )
    return user


def require_roles(*roles: UserRole, detail: str = "Access denied"):
    """Build a dependency that lets only the given roles through."""

    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return current_user

    return dependency


require_admin = require_roles(UserRole.ADMIN, detail="Admin access required")
require_staff = require_roles(UserRole.ADMIN, UserRole.STAFF)
