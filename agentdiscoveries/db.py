from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Tuple

APP_ENV = (os.environ.get("APP_ENV") or os.environ.get("AGENTDISCOVERIES_ENV") or "development").strip().lower()
ALLOW_SQLITE = os.environ.get("ALLOW_SQLITE", "").strip().lower() in {"1", "true", "yes"}

if not os.environ.get("DB_HOST") and APP_ENV in {"production", "staging"} and not ALLOW_SQLITE:
    raise RuntimeError(
        "DB_HOST is required when APP_ENV is set to production or staging. "
        "Set DB_HOST/DB_* secrets or explicitly opt into SQLite with ALLOW_SQLITE=1 for temporary use."
    )

USE_POSTGRES = bool(os.environ.get("DB_HOST"))

DB_PATH = Path(
    os.environ.get("AGENTDISCOVERIES_DB_PATH")
    or Path(__file__).resolve().parents[1] / "data" / "agentdiscoveries.db"
)


@contextmanager
def _sqlite_conn() -> Iterator[sqlite3.Connection]:
    # DB_PATH is read per call so it can be repointed after import
    path = Path(DB_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def adapt_sql(sql: str) -> str:
    """Rewrite qmark placeholders into psycopg2 pyformat ones."""
    cleaned = sql.strip().rstrip(";")
    return cleaned.replace("?", "%s")


def with_returning_id(sql: str) -> Tuple[str, bool]:
    """Append ``RETURNING id`` to a plain INSERT so the new id can be read back."""
    upper = sql.lstrip().upper()
    if upper.startswith("INSERT") and "RETURNING" not in upper and "ON CONFLICT" not in upper:
        return f"{sql} RETURNING id", True
    return sql, False


if USE_POSTGRES:
    import psycopg2
    from psycopg2 import pool
    from psycopg2.extras import RealDictCursor

    _required = ["DB_HOST", "DB_USER", "DB_PASSWORD"]
    _missing = [name for name in _required if not os.environ.get(name)]
    if _missing:
        missing = ', '.join(sorted(_missing))
        raise RuntimeError(f'PostgreSQL backend enabled but missing environment variables: {missing}')

    _CONFIG = {
        "host": os.environ["DB_HOST"],
        "dbname": os.environ.get("DB_NAME", "agentdiscoveries"),
        "user": os.environ["DB_USER"],
        "password": os.environ["DB_PASSWORD"],
        "port": int(os.environ.get("DB_PORT", "5432")),
        "sslmode": os.environ.get("DB_SSLMODE", "require"),
    }
    _POOL = pool.SimpleConnectionPool(1, int(os.environ.get("DB_POOL_MAX", "10")), **_CONFIG)

    class PostgresCursor:
        def __init__(self, cursor: "psycopg2.extensions.cursor", prefetched: Optional[dict] = None) -> None:
            self._cursor = cursor
            self._prefetched = prefetched
            self.lastrowid = None
            self.rowcount = cursor.rowcount
            if prefetched and "id" in prefetched:
                self.lastrowid = prefetched["id"]

        def fetchone(self):
            if self._prefetched is not None:
                row = self._prefetched
                self._prefetched = None
                return row
            return self._cursor.fetchone()

        def fetchall(self):
            rows = []
            if self._prefetched is not None:
                rows.append(self._prefetched)
                self._prefetched = None
            rows.extend(self._cursor.fetchall())
            return rows

        def close(self) -> None:
            self._cursor.close()

    class PostgresConnection:
        def __init__(self, raw_conn: "psycopg2.extensions.connection") -> None:
            self._raw = raw_conn
            self._returned = False

        def close(self) -> None:
            if not self._returned:
                _POOL.putconn(self._raw)
                self._returned = True

        def execute(self, sql: str, params: tuple = ()):  # type: ignore[override]
            sql_text, add_returning = with_returning_id(adapt_sql(sql))
            cursor = self._raw.cursor(cursor_factory=RealDictCursor)
            cursor.execute(sql_text, tuple(params))
            prefetched = None
            if add_returning:
                prefetched = cursor.fetchone() or {}
            return PostgresCursor(cursor, prefetched)

        def commit(self) -> None:
            self._raw.commit()

        def rollback(self) -> None:
            self._raw.rollback()

    @contextmanager
    def get_postgres_conn() -> Iterator[PostgresConnection]:
        raw = _POOL.getconn()
        conn = PostgresConnection(raw)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    IntegrityError = psycopg2.IntegrityError
else:
    @contextmanager
    def get_postgres_conn():  # type: ignore
        raise RuntimeError("PostgreSQL connection requested but DB_HOST is not set")
        yield  # pragma: no cover

    IntegrityError = sqlite3.IntegrityError


def get_conn():
    if USE_POSTGRES:
        return get_postgres_conn()
    return _sqlite_conn()


def id_column() -> str:
    return "SERIAL PRIMARY KEY" if USE_POSTGRES else "INTEGER PRIMARY KEY AUTOINCREMENT"


__all__ = ["USE_POSTGRES", "DB_PATH", "IntegrityError", "adapt_sql", "with_returning_id", "get_conn", "id_column"]
