from __future__ import annotations

import argparse
import importlib
import pkgutil
from pathlib import Path

from src.config.settings import load_settings
from src.db.sqlite_client import get_connection
from src.utils.log import configure_logging, get_logger

MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"

logger = get_logger("migrate")


def _is_postgres(conn: object) -> bool:
    return conn.__class__.__module__.startswith("psycopg")


def ensure_migrations_table(conn: object) -> None:
    if _is_postgres(conn):
        cur = conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS _migrations (
                id BIGSERIAL PRIMARY KEY,
                name TEXT NOT NULL UNIQUE,
                applied_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """
        )
    else:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS _migrations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                applied_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
            """
        )
    conn.commit()


def applied_migration_names(conn: object) -> set[str]:
    cur = conn.cursor() if _is_postgres(conn) else conn
    rows = cur.execute("SELECT name FROM _migrations").fetchall()
    return {row[0] if not isinstance(row, dict) else row["name"] for row in rows}


def discover_migrations() -> list[str]:
    modules = [
        name for _, name, _ in pkgutil.iter_modules([str(MIGRATIONS_DIR)]) if name[0:3].isdigit()
    ]
    return sorted(modules)


def apply_all(db_path: str) -> list[str]:
    conn = get_connection(db_path)
    applied: list[str] = []
    try:
        ensure_migrations_table(conn)
        already = applied_migration_names(conn)
        for module_name in discover_migrations():
            if module_name in already:
                continue
            mod = importlib.import_module(f"migrations.{module_name}")
            mod.up(conn)
            cur = conn.cursor() if _is_postgres(conn) else conn
            if _is_postgres(conn):
                cur.execute("INSERT INTO _migrations(name) VALUES (%s)", (module_name,))
            else:
                cur.execute("INSERT INTO _migrations(name) VALUES (?)", (module_name,))
            conn.commit()
            applied.append(module_name)
            logger.info("[MIGRATE] applied=%s", module_name)
    finally:
        conn.close()
    return applied


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    parser = argparse.ArgumentParser(description="Apply pending signup board migrations.")
    parser.add_argument("--db-path", default=settings.sqlite_db_path)
    args = parser.parse_args()
    applied = apply_all(args.db_path)
    logger.info("[MIGRATE] status=done applied_count=%d", len(applied))


if __name__ == "__main__":
    main()
