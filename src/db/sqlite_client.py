from __future__ import annotations

import os
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import Any

from src.engine.errors import StoreUnavailable
from src.utils.log import get_logger

logger = get_logger("store")

WATCHED_TABLES = ("sessions", "players", "unavailable_players")

# Every app session shares one cached connection; guarded blocks take turns on it.
_store_lock = threading.RLock()

SQLITE_SCHEMA = """
CREATE TABLE IF NOT EXISTS sessions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    date TEXT NOT NULL,
    time TEXT NOT NULL,
    total_spots INTEGER NOT NULL CHECK(total_spots > 0),
    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now'))
);

CREATE INDEX IF NOT EXISTS idx_sessions_date ON sessions(date);

CREATE TABLE IF NOT EXISTS players (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id INTEGER NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now'))
);

CREATE INDEX IF NOT EXISTS idx_players_session ON players(session_id);

CREATE TABLE IF NOT EXISTS unavailable_players (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id INTEGER NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now'))
);

CREATE INDEX IF NOT EXISTS idx_unavailable_players_session ON unavailable_players(session_id);

CREATE TABLE IF NOT EXISTS table_revisions (
    table_name TEXT PRIMARY KEY,
    revision INTEGER NOT NULL DEFAULT 0
);
"""

POSTGRES_SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS sessions (
        id BIGSERIAL PRIMARY KEY,
        date DATE NOT NULL,
        time TEXT NOT NULL,
        total_spots INTEGER NOT NULL CHECK(total_spots > 0),
        created_at TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_sessions_date ON sessions(date)",
    """
    CREATE TABLE IF NOT EXISTS players (
        id BIGSERIAL PRIMARY KEY,
        session_id BIGINT NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_players_session ON players(session_id)",
    """
    CREATE TABLE IF NOT EXISTS unavailable_players (
        id BIGSERIAL PRIMARY KEY,
        session_id BIGINT NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_unavailable_players_session ON unavailable_players(session_id)",
    """
    CREATE TABLE IF NOT EXISTS table_revisions (
        table_name TEXT PRIMARY KEY,
        revision BIGINT NOT NULL DEFAULT 0
    )
    """,
]


def _is_postgres(conn: Any) -> bool:
    return conn.__class__.__module__.startswith("psycopg")


def _adapt_sql(conn: Any, sql: str) -> str:
    return sql.replace("?", "%s") if _is_postgres(conn) else sql


def _execute(conn: Any, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> Any:
    if _is_postgres(conn):
        cur = conn.cursor()
        cur.execute(_adapt_sql(conn, sql), tuple(params))
        return cur
    return conn.execute(_adapt_sql(conn, sql), tuple(params))


def _to_dict(row: Any) -> dict[str, Any]:
    return row if isinstance(row, dict) else dict(row)


def _insert_returning_id(conn: Any, sql: str, params: list[Any]) -> int:
    if _is_postgres(conn):
        row = _execute(conn, f"{sql} RETURNING id", params).fetchone()
        return int(_to_dict(row)["id"])
    cur = _execute(conn, sql, params)
    return int(cur.lastrowid)


def is_store_error(exc: BaseException) -> bool:
    return isinstance(exc, sqlite3.Error) or exc.__class__.__module__.startswith("psycopg")


def safe_rollback(conn: Any) -> None:
    """Reset failed DB transactions without masking original errors."""
    with suppress(Exception):
        conn.rollback()


@contextmanager
def store_guard(conn: Any, action: str) -> Iterator[None]:
    """Run the block alone on the store and translate driver errors into ``StoreUnavailable``.

    The lock is re-entrant so a guarded transaction may call guarded helpers.
    A rollback issued here can therefore never land inside another caller's
    open transaction.
    """
    with _store_lock:
        try:
            yield
        except Exception as exc:
            if not is_store_error(exc):
                raise
            safe_rollback(conn)
            logger.error("[STORE] action=%s status=failed error=%s", action, exc)
            raise StoreUnavailable(f"Error {action}") from exc


def get_connection(db_path: str) -> Any:
    database_url = os.getenv("DATABASE_URL", "").strip()
    if database_url:
        from psycopg import connect
        from psycopg.rows import dict_row

        return connect(database_url, row_factory=dict_row, autocommit=False)

    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn


def init_schema(conn: Any) -> None:
    if _is_postgres(conn):
        cur = conn.cursor()
        for statement in POSTGRES_SCHEMA_STATEMENTS:
            cur.execute(statement)
    else:
        conn.executescript(SQLITE_SCHEMA)
    seed_revisions(conn)
    conn.commit()


def seed_revisions(conn: Any) -> None:
    for table in WATCHED_TABLES:
        _execute(
            conn,
            "INSERT INTO table_revisions (table_name, revision) VALUES (?, 0) "
            "ON CONFLICT(table_name) DO NOTHING",
            [table],
        )


def _bump_revision(conn: Any, *tables: str) -> None:
    for table in tables:
        _execute(
            conn,
            """
            INSERT INTO table_revisions (table_name, revision) VALUES (?, 1)
            ON CONFLICT(table_name) DO UPDATE SET revision = table_revisions.revision + 1
            """,
            [table],
        )


def get_revisions(conn: Any) -> dict[str, int]:
    rows = _execute(conn, "SELECT table_name, revision FROM table_revisions").fetchall()
    revisions = {table: 0 for table in WATCHED_TABLES}
    for row in rows:
        data = _to_dict(row)
        revisions[str(data["table_name"])] = int(data["revision"])
    return revisions


def _normalize_session_row(row: Any) -> dict[str, Any]:
    data = _to_dict(row)
    # Postgres hands back date/datetime objects; keep the SQLite text shape.
    data["date"] = str(data["date"])[:10]
    data["created_at"] = str(data["created_at"])
    return data


def _normalize_roster_row(row: Any) -> dict[str, Any]:
    data = _to_dict(row)
    data["created_at"] = str(data["created_at"])
    return data


def create_session(
    conn: Any,
    session_date: str,
    time_label: str,
    total_spots: int,
    commit: bool = True,
) -> int:
    session_id = _insert_returning_id(
        conn,
        "INSERT INTO sessions (date, time, total_spots) VALUES (?, ?, ?)",
        [session_date, time_label, total_spots],
    )
    _bump_revision(conn, "sessions")
    if commit:
        conn.commit()
    return session_id


def get_session(conn: Any, session_id: int) -> dict[str, Any] | None:
    row = _execute(conn, "SELECT * FROM sessions WHERE id = ?", [session_id]).fetchone()
    return _normalize_session_row(row) if row else None


def list_sessions(conn: Any) -> list[dict[str, Any]]:
    rows = _execute(
        conn, "SELECT * FROM sessions ORDER BY date ASC, created_at ASC, id ASC"
    ).fetchall()
    return [_normalize_session_row(row) for row in rows]


def delete_session(conn: Any, session_id: int, commit: bool = True) -> bool:
    # Child rows go through ON DELETE CASCADE, so all three collections change.
    cur = _execute(conn, "DELETE FROM sessions WHERE id = ?", [session_id])
    removed = cur.rowcount > 0
    if removed:
        _bump_revision(conn, *WATCHED_TABLES)
    if commit:
        conn.commit()
    return removed


def _add_roster_entry(conn: Any, table: str, session_id: int, name: str, commit: bool) -> int:
    entry_id = _insert_returning_id(
        conn,
        f"INSERT INTO {table} (session_id, name) VALUES (?, ?)",
        [session_id, name],
    )
    _bump_revision(conn, table)
    if commit:
        conn.commit()
    return entry_id


def _list_roster_entries(conn: Any, table: str, session_id: int | None) -> list[dict[str, Any]]:
    sql = f"SELECT * FROM {table}"
    params: list[Any] = []
    if session_id is not None:
        sql += " WHERE session_id = ?"
        params.append(session_id)
    sql += " ORDER BY created_at ASC, id ASC"
    return [_normalize_roster_row(row) for row in _execute(conn, sql, params).fetchall()]


def _delete_roster_entry(conn: Any, table: str, entry_id: int, commit: bool) -> bool:
    cur = _execute(conn, f"DELETE FROM {table} WHERE id = ?", [entry_id])
    removed = cur.rowcount > 0
    if removed:
        _bump_revision(conn, table)
    if commit:
        conn.commit()
    return removed


def add_player(conn: Any, session_id: int, name: str, commit: bool = True) -> int:
    return _add_roster_entry(conn, "players", session_id, name, commit)


def list_players(conn: Any, session_id: int | None = None) -> list[dict[str, Any]]:
    return _list_roster_entries(conn, "players", session_id)


def delete_player(conn: Any, player_id: int, commit: bool = True) -> bool:
    return _delete_roster_entry(conn, "players", player_id, commit)


def add_unavailable_player(conn: Any, session_id: int, name: str, commit: bool = True) -> int:
    return _add_roster_entry(conn, "unavailable_players", session_id, name, commit)


def list_unavailable_players(conn: Any, session_id: int | None = None) -> list[dict[str, Any]]:
    return _list_roster_entries(conn, "unavailable_players", session_id)


def delete_unavailable_player(conn: Any, entry_id: int, commit: bool = True) -> bool:
    return _delete_roster_entry(conn, "unavailable_players", entry_id, commit)
