from __future__ import annotations

from typing import Any, List, Optional

from agentdiscoveries.db import get_conn, id_column
from agentdiscoveries.models import Region


def init_db() -> None:
    with get_conn() as conn:
        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS regions (
                id {id_column()},
                name TEXT NOT NULL UNIQUE
            )
            """
        )


def _row_to_region(row: Any) -> Region:
    return Region(region_id=row["id"], name=row["name"])


def list_regions() -> List[Region]:
    with get_conn() as conn:
        rows = conn.execute("SELECT id, name FROM regions ORDER BY name ASC").fetchall()
    return [_row_to_region(row) for row in rows]


def get_region(region_id: int) -> Optional[Region]:
    with get_conn() as conn:
        row = conn.execute("SELECT id, name FROM regions WHERE id = ?", (region_id,)).fetchone()
    return _row_to_region(row) if row else None


def create_region(region: Region) -> int:
    with get_conn() as conn:
        cursor = conn.execute("INSERT INTO regions (name) VALUES (?)", (region.name,))
        return int(cursor.lastrowid)


def update_region(region: Region) -> bool:
    with get_conn() as conn:
        cursor = conn.execute("UPDATE regions SET name = ? WHERE id = ?", (region.name, region.region_id))
        return cursor.rowcount > 0


def delete_region(region_id: int) -> bool:
    with get_conn() as conn:
        cursor = conn.execute("DELETE FROM regions WHERE id = ?", (region_id,))
        return cursor.rowcount > 0


__all__ = ["init_db", "list_regions", "get_region", "create_region", "update_region", "delete_region"]
