"""
JWT access tokens for panel users.

The browser panel keeps the token in an httpOnly cookie; scripts and
other services send it as a Bearer header instead.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from src.config import settings

ALGORITHM = "HS256"
TOKEN_TYPE = "access"
COOKIE_NAME = "access_token"


@dataclass(frozen=True)
class TokenPayload:
    user_id: int
    role: str


def create_access_token(
    user_id: int,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Sign a token for a user.

    Args:
        user_id: User's database ID
        role: admin, staff, agent or boss
        expires_delta: Lifetime; defaults to settings.jwt_expire_hours
    """
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(hours=settings.jwt_expire_hours)
    claims = {
        "sub": str(user_id),
        "role": role,
        "type": TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def verify_token(token: str) -> Optional[TokenPayload]:
    """Decode a token; None when it is expired, forged or malformed."""
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None

    if claims.get("type") != TOKEN_TYPE:
        return None
    subject, role = claims.get("sub"), claims.get("role")
    if not subject or not role:
        return None
    try:
        return TokenPayload(user_id=int(subject), role=role)
    except ValueError:
        return None


def get_token_from_request(request) -> Optional[str]:
    """Token from the panel cookie, or from an Authorization: Bearer header."""
    token = request.cookies.get(COOKIE_NAME)
    if token:
        return token

    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None
