from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from typing import Any, Dict, List, Optional

from agentdiscoveries.db import get_conn, id_column
from agentdiscoveries.models import User
from agentdiscoveries.timestamps import to_storage, utc_now

log = logging.getLogger("uvicorn.error")

PBKDF_ITERATIONS = 120_000


def _now() -> str:
    return to_storage(utc_now())


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "t", "yes", "y", "on"}
    return bool(value)


# ---------------------------------------------------------------------------
# Password helpers
# ---------------------------------------------------------------------------


def _hash_password(password: str, *, salt: bytes) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF_ITERATIONS)


def hash_password_hex(password: str, *, salt: bytes) -> str:
    return _hash_password(password, salt=salt).hex()


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


def init_db() -> None:
    with get_conn() as conn:
        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS users (
                id {id_column()},
                username TEXT NOT NULL UNIQUE,
                salt TEXT NOT NULL,
                password_hash TEXT NOT NULL,
                agent_id INTEGER,
                is_admin BOOLEAN NOT NULL DEFAULT FALSE,
                is_user BOOLEAN NOT NULL DEFAULT TRUE,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_users_username ON users(username)")


def _row_to_user(row: Any) -> User:
    return User(
        user_id=row["id"],
        username=row["username"],
        salt=row["salt"],
        password_hash=row["password_hash"],
        agent_id=row["agent_id"],
        is_admin=_coerce_bool(row["is_admin"]),
        is_user=_coerce_bool(row["is_user"]),
    )


# ---------------------------------------------------------------------------
# User CRUD operations
# ---------------------------------------------------------------------------


def list_users() -> List[User]:
    with get_conn() as conn:
        rows = conn.execute("SELECT * FROM users ORDER BY username ASC").fetchall()
    return [_row_to_user(row) for row in rows]


def get_user(user_id: int) -> Optional[User]:
    with get_conn() as conn:
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    return _row_to_user(row) if row else None


def get_user_by_username(username: str) -> Optional[User]:
    with get_conn() as conn:
        row = conn.execute("SELECT * FROM users WHERE username = ?", (username,)).fetchone()
    return _row_to_user(row) if row else None


def create_user(
    *,
    username: str,
    password: str,
    agent_id: Optional[int] = None,
    is_admin: bool = False,
    is_user: bool = True,
) -> User:
    salt = secrets.token_bytes(16)
    password_hash = hash_password_hex(password, salt=salt)
    now = _now()
    with get_conn() as conn:
        cursor = conn.execute(
            """
            INSERT INTO users (username, salt, password_hash, agent_id, is_admin, is_user, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                username,
                salt.hex(),
                password_hash,
                agent_id,
                _coerce_bool(is_admin),
                _coerce_bool(is_user),
                now,
                now,
            ),
        )
        user_id = cursor.lastrowid
    record = get_user(int(user_id)) if user_id is not None else None
    if not record:
        record = get_user_by_username(username)
    if not record:
        raise RuntimeError("Failed to create user record")
    log.info("Created user '%s' (id=%s admin=%s)", record.username, record.user_id, record.is_admin)
    return record


def update_user(user_id: int, **fields: Any) -> None:
    allowed = {"username", "agent_id", "is_admin", "is_user"}
    updates: Dict[str, Any] = {}
    for key, value in fields.items():
        if key not in allowed:
            continue
        if key in {"is_admin", "is_user"}:
            updates[key] = _coerce_bool(value)
        else:
            updates[key] = value
    if not updates:
        return
    updates["updated_at"] = _now()
    columns = ", ".join(f"{key} = ?" for key in updates.keys())
    values: List[Any] = list(updates.values())
    values.append(user_id)
    with get_conn() as conn:
        conn.execute(f"UPDATE users SET {columns} WHERE id = ?", values)


def set_password(user_id: int, password: str) -> None:
    salt = secrets.token_bytes(16)
    password_hash = hash_password_hex(password, salt=salt)
    with get_conn() as conn:
        conn.execute(
            "UPDATE users SET salt = ?, password_hash = ?, updated_at = ? WHERE id = ?",
            (salt.hex(), password_hash, _now(), user_id),
        )


def delete_user(user_id: int) -> bool:
    with get_conn() as conn:
        cursor = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
        return cursor.rowcount > 0


def verify_credentials(username: str, password: str) -> Optional[User]:
    user = get_user_by_username(username)
    if not user:
        return None
    try:
        salt = bytes.fromhex(user.salt)
        expected = bytes.fromhex(user.password_hash)
    except ValueError:
        return None
    candidate = _hash_password(password, salt=salt)
    if not hmac.compare_digest(candidate, expected):
        return None
    return user


__all__ = [
    "init_db",
    "list_users",
    "get_user",
    "get_user_by_username",
    "create_user",
    "update_user",
    "set_password",
    "delete_user",
    "verify_credentials",
    "hash_password_hex",
    "PBKDF_ITERATIONS",
]
