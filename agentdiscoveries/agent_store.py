from __future__ import annotations

import logging
from datetime import date
from typing import Any, List, Optional

from agentdiscoveries.db import get_conn, id_column
from agentdiscoveries.models import Agent

log = logging.getLogger("uvicorn.error")

_COLUMNS = "id, first_name, last_name, date_of_birth, rank, call_sign"


def init_db() -> None:
    with get_conn() as conn:
        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS agents (
                id {id_column()},
                first_name TEXT NOT NULL,
                last_name TEXT NOT NULL,
                date_of_birth TEXT NOT NULL,
                rank INTEGER NOT NULL DEFAULT 0,
                call_sign TEXT NOT NULL UNIQUE
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_agents_call_sign ON agents(call_sign)")


def _row_to_agent(row: Any) -> Agent:
    dob = row["date_of_birth"]
    return Agent(
        agent_id=row["id"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        date_of_birth=dob if isinstance(dob, date) else date.fromisoformat(str(dob)),
        rank=row["rank"] or 0,
        call_sign=row["call_sign"],
    )


def list_agents() -> List[Agent]:
    with get_conn() as conn:
        rows = conn.execute(f"SELECT {_COLUMNS} FROM agents ORDER BY call_sign ASC").fetchall()
    return [_row_to_agent(row) for row in rows]


def get_agent(agent_id: int) -> Optional[Agent]:
    with get_conn() as conn:
        row = conn.execute(f"SELECT {_COLUMNS} FROM agents WHERE id = ?", (agent_id,)).fetchone()
    return _row_to_agent(row) if row else None


def create_agent(agent: Agent) -> int:
    with get_conn() as conn:
        cursor = conn.execute(
            """
            INSERT INTO agents (first_name, last_name, date_of_birth, rank, call_sign)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                agent.first_name,
                agent.last_name,
                agent.date_of_birth.isoformat(),
                agent.rank,
                agent.call_sign,
            ),
        )
        agent_id = int(cursor.lastrowid)
    log.info("Created agent %s (%s)", agent_id, agent.call_sign)
    return agent_id


def update_agent(agent: Agent) -> bool:
    with get_conn() as conn:
        cursor = conn.execute(
            """
            UPDATE agents
            SET first_name = ?, last_name = ?, date_of_birth = ?, rank = ?, call_sign = ?
            WHERE id = ?
            """,
            (
                agent.first_name,
                agent.last_name,
                agent.date_of_birth.isoformat(),
                agent.rank,
                agent.call_sign,
                agent.agent_id,
            ),
        )
        return cursor.rowcount > 0


def delete_agent(agent_id: int) -> bool:
    with get_conn() as conn:
        cursor = conn.execute("DELETE FROM agents WHERE id = ?", (agent_id,))
        return cursor.rowcount > 0


__all__ = [
    "init_db",
    "list_agents",
    "get_agent",
    "create_agent",
    "update_agent",
    "delete_agent",
]
