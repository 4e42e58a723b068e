"""
Authentication API endpoints.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.dependencies import get_current_user, get_current_user_optional
from src.auth.jwt import COOKIE_NAME, create_access_token
from src.config import settings
from src.db import get_db
from src.models import AuditAction, User
from src.schemas.auth import CurrentUserResponse, LoginRequest, LoginResponse
from src.utils.audit import get_client_ip, log_action
from src.utils.password import verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _set_token_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=settings.jwt_expire_hours * 3600,
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    request: Request,
    response: Response,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Check credentials, then issue the token as a cookie and in the body."""
    result = await db.execute(select(User).where(User.username == credentials.username))
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.password_hash):
        logger.warning(f"Failed login for '{credentials.username}' from {get_client_ip(request)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled",
        )

    token = create_access_token(user.id, user.role.value)
    _set_token_cookie(response, token)

    user.last_active_at = datetime.now(timezone.utc)
    await log_action(
        db=db,
        user_id=user.id,
        action=AuditAction.LOGIN,
        ip_address=get_client_ip(request),
    )
    return LoginResponse(
        success=True,
        message="Login successful",
        role=user.role.value,
        access_token=token,
    )


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user_optional),
):
    if current_user:
        await log_action(
            db=db,
            user_id=current_user.id,
            action=AuditAction.LOGOUT,
            ip_address=get_client_ip(request),
        )
    response.delete_cookie(
        key=COOKIE_NAME,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return {"success": True, "message": "Logged out"}


@router.get("/me", response_model=CurrentUserResponse)
async def me(current_user: User = Depends(get_current_user)):
    return CurrentUserResponse(
        id=current_user.id,
        username=current_user.username,
        display_name=current_user.display_name,
        role=current_user.role.value,
        agent_id=current_user.agent_id,
        staff_id=current_user.staff_id,
    )
