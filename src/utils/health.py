from __future__ import annotations

from typing import Any

from src.db.sqlite_client import store_guard


def liveness() -> dict[str, Any]:
    return {"ok": True}


def _database_ready(conn: Any) -> str:
    try:
        with store_guard(conn, "checking readiness"):
            if hasattr(conn, "execute"):
                conn.execute("SELECT 1").fetchone()
            else:
                cur = conn.cursor()
                cur.execute("SELECT 1")
                cur.fetchone()
        return "ready"
    except Exception as exc:
        return f"error: {exc.__cause__ or exc}"


def readiness(conn: Any | None) -> dict[str, Any]:
    dependencies: dict[str, str] = {}
    if conn is None:
        dependencies["database"] = "error: unavailable"
    else:
        dependencies["database"] = _database_ready(conn)
    ok = dependencies["database"] == "ready"
    return {"ok": ok, "dependencies": dependencies}
