from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_storage(moment: datetime) -> str:
    """Render an aware datetime as the UTC text stored in report tables.

    Fixed width with second precision, so string comparison in SQL orders
    the same way as the instants themselves.
    """
    if moment.tzinfo is None:
        raise ValueError("Refusing to store a naive datetime")
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def from_storage(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        moment = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def parse_zoned(value: str) -> datetime:
    """Parse an ISO-8601 timestamp that carries an offset ("Z" allowed).

    Raises ValueError for malformed text or a missing offset.
    """
    text = (value or "").strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        raise ValueError(f"'{value}' has no UTC offset")
    return moment


def load_zone(name: str) -> ZoneInfo:
    """Resolve an IANA zone id; ValueError when it is unknown."""
    if not name or not str(name).strip():
        raise ValueError("Time zone is required")
    try:
        return ZoneInfo(str(name).strip())
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown time zone '{name}'") from exc


def is_valid_zone(name: Optional[str]) -> bool:
    try:
        load_zone(name or "")
    except ValueError:
        return False
    return True


__all__ = ["utc_now", "to_storage", "from_storage", "parse_zoned", "load_zone", "is_valid_zone"]
