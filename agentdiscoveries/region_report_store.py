from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

from agentdiscoveries.db import get_conn, id_column
from agentdiscoveries.models import RegionSummaryReport
from agentdiscoveries.search_criteria import ReportSearchCriterion, build_where_clause
from agentdiscoveries.timestamps import from_storage, to_storage

log = logging.getLogger("uvicorn.error")

_COLUMNS = "id, region_id, user_id, status, report_time, report_title, report_body"


def init_db() -> None:
    with get_conn() as conn:
        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS region_reports (
                id {id_column()},
                region_id INTEGER NOT NULL,
                user_id INTEGER NOT NULL,
                status INTEGER NOT NULL,
                report_time TEXT NOT NULL,
                report_title TEXT NOT NULL DEFAULT '',
                report_body TEXT NOT NULL DEFAULT ''
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_region_reports_time ON region_reports(report_time)")


def _row_to_report(row: Any) -> RegionSummaryReport:
    return RegionSummaryReport(
        report_id=row["id"],
        region_id=row["region_id"],
        user_id=row["user_id"],
        status=row["status"],
        report_time=from_storage(row["report_time"]),
        report_title=row["report_title"] or "",
        report_body=row["report_body"] or "",
    )


def get_report(report_id: int) -> Optional[RegionSummaryReport]:
    with get_conn() as conn:
        row = conn.execute(f"SELECT {_COLUMNS} FROM region_reports WHERE id = ?", (report_id,)).fetchone()
    return _row_to_report(row) if row else None


def create_report(report: RegionSummaryReport) -> int:
    with get_conn() as conn:
        cursor = conn.execute(
            """
            INSERT INTO region_reports (region_id, user_id, status, report_time, report_title, report_body)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                report.region_id,
                report.user_id,
                report.status,
                to_storage(report.report_time),
                report.report_title,
                report.report_body,
            ),
        )
        report_id = int(cursor.lastrowid)
    log.info("Stored region summary %s for region %s by user %s", report_id, report.region_id, report.user_id)
    return report_id


def update_report(report: RegionSummaryReport) -> bool:
    with get_conn() as conn:
        cursor = conn.execute(
            """
            UPDATE region_reports
            SET region_id = ?, user_id = ?, status = ?, report_time = ?, report_title = ?, report_body = ?
            WHERE id = ?
            """,
            (
                report.region_id,
                report.user_id,
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
        cursor = conn.execute("DELETE FROM region_reports WHERE id = ?", (report_id,))
        return cursor.rowcount > 0


def search_reports(criteria: Sequence[ReportSearchCriterion]) -> List[RegionSummaryReport]:
    where, params = build_where_clause(criteria)
    sql = f"SELECT {_COLUMNS} FROM region_reports{where} ORDER BY report_time DESC, id DESC"
    with get_conn() as conn:
        rows = conn.execute(sql, params).fetchall()
    return [_row_to_report(row) for row in rows]


__all__ = [
    "init_db",
    "get_report",
    "create_report",
    "update_report",
    "delete_report",
    "search_reports",
]
