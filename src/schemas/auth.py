"""Authentication schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    """
    Login outcome.

    The token is also set as an httpOnly cookie; access_token is returned
    for clients that send it as a Bearer header.
    """

    success: bool
    message: str
    role: str = ""
    access_token: Optional[str] = None


class CurrentUserResponse(BaseModel):
    id: int
    username: str
    display_name: str
    role: str
    agent_id: Optional[int] = None
    staff_id: Optional[int] = None
