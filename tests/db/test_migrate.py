from __future__ import annotations

from pathlib import Path

from src.db.migrate import apply_all, discover_migrations
from src.db.sqlite_client import get_connection, get_revisions


def test_discover_migrations_is_sorted():
    names = discover_migrations()
    assert names == sorted(names)
    assert names[0] == "001_create_sessions"


def test_apply_all_creates_tables_and_is_idempotent(tmp_path: Path):
    db_path = str(tmp_path / "migrate.db")
    first = apply_all(db_path)
    second = apply_all(db_path)
    assert first == discover_migrations()
    assert second == []
    conn = get_connection(db_path)
    try:
        row = conn.execute("SELECT COUNT(*) AS c FROM _migrations").fetchone()
        assert int(row["c"]) == len(first)
        tables = {
            r["name"]
            for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
        assert {"sessions", "players", "unavailable_players", "table_revisions"} <= tables
        assert get_revisions(conn) == {"sessions": 0, "players": 0, "unavailable_players": 0}
    finally:
        conn.close()
