from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

from agentdiscoveries.db import get_conn, id_column
from agentdiscoveries.models import LocationStatusReport
from agentdiscoveries.search_criteria import ReportSearchCriterion, build_where_clause
from agentdiscoveries.timestamps import from_storage, to_storage

log = logging.getLogger("uvicorn.error")

_COLUMNS = "id, agent_id, location_id, status, report_time, report_title, report_body"


def init_db() -> None:
    with get_conn() as conn:
        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS location_reports (
                id {id_column()},
                agent_id INTEGER NOT NULL,
                location_id INTEGER NOT NULL,
                status INTEGER NOT NULL,
                report_time TEXT NOT NULL,
                report_title TEXT NOT NULL DEFAULT '',
                report_body TEXT NOT NULL DEFAULT ''
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_location_reports_time ON location_reports(report_time)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_location_reports_location ON location_reports(location_id)")


def _row_to_report(row: Any) -> LocationStatusReport:
    return LocationStatusReport(
        report_id=row["id"],
        agent_id=row["agent_id"],
        location_id=row["location_id"],
        status=row["status"],
        report_time=from_storage(row["report_time"]),
        report_title=row["report_title"] or "",
        report_body=row["report_body"] or "",
    )


def get_report(report_id: int) -> Optional[LocationStatusReport]:
    with get_conn() as conn:
        row = conn.execute(f"SELECT {_COLUMNS} FROM location_reports WHERE id = ?", (report_id,)).fetchone()
    return _row_to_report(row) if row else None


def create_report(report: LocationStatusReport) -> int:
    with get_conn() as conn:
        cursor = conn.execute(
            """
            INSERT INTO location_reports (agent_id, location_id, status, report_time, report_title, report_body)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                report.agent_id,
                report.location_id,
                report.status,
                to_storage(report.report_time),
                report.report_title,
                report.report_body,
            ),
        )
        report_id = int(cursor.lastrowid)
    log.info("Stored location report %s for agent %s at location %s", report_id, report.agent_id, report.location_id)
    return report_id


def update_report(report: LocationStatusReport) -> bool:
    with get_conn() as conn:
        cursor = conn.execute(
            """
            UPDATE location_reports
            SET agent_id = ?, location_id = ?, status = ?, report_time = ?, report_title = ?, report_body = ?
            WHERE id = ?
            """,
            (
                report.agent_id,
                report.location_id,
                report.status,
                to_storage(report.report_time),
                report.report_title,
                report.report_body,
                report.report_id,
            ),
        )
        return cursor.rowcount > 0


def delete_report(report_id: int) -> bool:
    with get_conn() as conn:
        cursor = conn.execute("DELETE FROM location_reports WHERE id = ?", (report_id,))
        return cursor.rowcount > 0


def has_reports_for_location(location_id: int) -> bool:
    with get_conn() as conn:
        row = conn.execute("SELECT 1 FROM location_reports WHERE location_id = ? LIMIT 1", (location_id,)).fetchone()
    return row is not None


def search_reports(criteria: Sequence[ReportSearchCriterion]) -> List[LocationStatusReport]:
    where, params = build_where_clause(criteria)
    sql = f"SELECT {_COLUMNS} FROM location_reports{where} ORDER BY report_time DESC, id DESC"
    with get_conn() as conn:
        rows = conn.execute(sql, params).fetchall()
    return [_row_to_report(row) for row in rows]


__all__ = [
    "init_db",
    "get_report",
    "create_report",
    "update_report",
    "delete_report",
    "has_reports_for_location",
    "search_reports",
]
