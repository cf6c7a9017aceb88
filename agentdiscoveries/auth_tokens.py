from __future__ import annotations

import logging
import os
import time
from typing import Dict, Optional, Tuple

import jwt

log = logging.getLogger("uvicorn.error")

ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
DEFAULT_ACCESS_TTL = int(os.environ.get("JWT_ACCESS_TTL", "3600"))
DEFAULT_REFRESH_TTL = int(os.environ.get("JWT_REFRESH_TTL", str(60 * 60 * 24 * 7)))

_warned_insecure = False


class TokenError(Exception):
    """Raised when a JWT token cannot be validated."""


def _now() -> int:
    return int(time.time())


def _secret() -> str:
    global _warned_insecure
    secret = os.environ.get("JWT_SECRET")
    if secret:
        return secret
    if not _warned_insecure:
        log.warning("JWT_SECRET not set; using insecure default. Set JWT_SECRET in production.")
        _warned_insecure = True
    return "dev-secret-key"


def _encode(payload: Dict[str, object]) -> str:
    token = jwt.encode(payload, _secret(), algorithm=ALGORITHM)
    if isinstance(token, bytes):
        return token.decode("utf-8")
    return token


def _decode(token: str) -> Dict[str, object]:
    try:
        return jwt.decode(token, _secret(), algorithms=[ALGORITHM])
    except jwt.PyJWTError as exc:
        raise TokenError(str(exc)) from exc


def _create_token(
    token_type: str,
    *,
    user_id: int,
    username: str,
    scope: Optional[str],
    lifetime: int,
) -> Tuple[str, int]:
    issued_at = _now()
    payload: Dict[str, object] = {
        "sub": username,
        "uid": user_id,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "typ": token_type,
    }
    if scope:
        payload["scope"] = scope
    return _encode(payload), issued_at + lifetime


def create_access_token(
    *,
    user_id: int,
    username: str,
    scope: Optional[str] = None,
    ttl: Optional[int] = None,
) -> Tuple[str, int]:
    return _create_token("access", user_id=user_id, username=username, scope=scope, lifetime=ttl or DEFAULT_ACCESS_TTL)


def create_refresh_token(
    *,
    user_id: int,
    username: str,
    scope: Optional[str] = None,
    ttl: Optional[int] = None,
) -> Tuple[str, int]:
    return _create_token("refresh", user_id=user_id, username=username, scope=scope, lifetime=ttl or DEFAULT_REFRESH_TTL)


def _require_user_id(payload: Dict[str, object]) -> Dict[str, object]:
    user_id = payload.get("uid")
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise TokenError("Token does not carry a user id")
    return payload


def decode_access_token(token: str) -> Dict[str, object]:
    payload = _decode(token)
    if payload.get("typ") != "access":
        raise TokenError("Invalid token type for access token")
    return _require_user_id(payload)


def decode_refresh_token(token: str) -> Dict[str, object]:
    payload = _decode(token)
    if payload.get("typ") != "refresh":
        raise TokenError("Invalid token type for refresh token")
    return _require_user_id(payload)


__all__ = [
    "TokenError",
    "create_access_token",
    "create_refresh_token",
    "decode_access_token",
    "decode_refresh_token",
]
