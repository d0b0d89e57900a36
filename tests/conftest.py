from __future__ import annotations

import os
import sqlite3
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from src.db.sqlite_client import create_session, get_connection, init_schema
from src.engine.roster import RosterSnapshot
from src.sessions.manager import fetch_snapshot


@pytest.fixture
def sqlite_db(tmp_path: Path) -> Generator[sqlite3.Connection, None, None]:
    os.environ.pop("DATABASE_URL", None)
    db_path = str(tmp_path / "test.db")
    conn = get_connection(db_path)
    init_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def make_session(sqlite_db: sqlite3.Connection) -> Callable[..., int]:
    def _make(
        session_date: str = "2026-03-10", time_label: str = "9:30-11am", spots: int = 2
    ) -> int:
        return create_session(sqlite_db, session_date, time_label, spots)

    return _make


@pytest.fixture
def snapshot_of(sqlite_db: sqlite3.Connection) -> Callable[[], RosterSnapshot]:
    def _snapshot() -> RosterSnapshot:
        return fetch_snapshot(sqlite_db)

    return _snapshot
