from typing import Optional

from pydantic import BaseModel


class LoginRequest(BaseModel):
    username: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    expires_in: int
    refresh_token: str
    refresh_expires_in: int
    token_type: str = "bearer"
    user_id: int
    is_admin: bool = False
    agent_id: Optional[int] = None
    scope: Optional[str] = None


__all__ = [
    "LoginRequest",
    "RefreshRequest",
    "TokenResponse",
]
