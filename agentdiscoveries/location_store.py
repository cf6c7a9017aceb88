from __future__ import annotations

from typing import Any, List, Optional

from agentdiscoveries.db import USE_POSTGRES, get_conn, id_column
from agentdiscoveries.models import Location

_COLUMNS = "id, site_name, location, time_zone, region_id, latitude, longitude"


def init_db() -> None:
    real = "DOUBLE PRECISION" if USE_POSTGRES else "REAL"
    with get_conn() as conn:
        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS locations (
                id {id_column()},
                site_name TEXT NOT NULL,
                location TEXT NOT NULL DEFAULT '',
                time_zone TEXT NOT NULL,
                region_id INTEGER,
                latitude {real},
                longitude {real}
            )
            """
        )


def _row_to_location(row: Any) -> Location:
    return Location(
        location_id=row["id"],
        site_name=row["site_name"],
        location=row["location"] or "",
        time_zone=row["time_zone"],
        region_id=row["region_id"],
        latitude=row["latitude"],
        longitude=row["longitude"],
    )


def list_locations(*, region_id: Optional[int] = None) -> List[Location]:
    sql = f"SELECT {_COLUMNS} FROM locations"
    params: List[Any] = []
    if region_id is not None:
        sql += " WHERE region_id = ?"
        params.append(region_id)
    sql += " ORDER BY site_name ASC"
    with get_conn() as conn:
        rows = conn.execute(sql, params).fetchall()
    return [_row_to_location(row) for row in rows]


def get_location(location_id: int) -> Optional[Location]:
    with get_conn() as conn:
        row = conn.execute(f"SELECT {_COLUMNS} FROM locations WHERE id = ?", (location_id,)).fetchone()
    return _row_to_location(row) if row else None


def create_location(location: Location) -> int:
    with get_conn() as conn:
        cursor = conn.execute(
            """
            INSERT INTO locations (site_name, location, time_zone, region_id, latitude, longitude)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                location.site_name,
                location.location,
                location.time_zone,
                location.region_id,
                location.latitude,
                location.longitude,
            ),
        )
        return int(cursor.lastrowid)


def update_location(location: Location) -> bool:
    with get_conn() as conn:
        cursor = conn.execute(
            """
            UPDATE locations
            SET site_name = ?, location = ?, time_zone = ?, region_id = ?, latitude = ?, longitude = ?
            WHERE id = ?
            """,
            (
                location.site_name,
                location.location,
                location.time_zone,
                location.region_id,
                location.latitude,
                location.longitude,
                location.location_id,
            ),
        )
        return cursor.rowcount > 0


def delete_location(location_id: int) -> bool:
    with get_conn() as conn:
        cursor = conn.execute("DELETE FROM locations WHERE id = ?", (location_id,))
        return cursor.rowcount > 0


__all__ = [
    "init_db",
    "list_locations",
    "get_location",
    "create_location",
    "update_location",
    "delete_location",
]
