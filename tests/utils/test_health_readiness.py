from __future__ import annotations

import sqlite3

from src.utils.health import liveness, readiness


class _BrokenConnection:
    def execute(self, sql: str):
        raise RuntimeError("database is locked")


def test_liveness_ok():
    assert liveness()["ok"] is True


def test_readiness_ok_with_sqlite(sqlite_db):
    status = readiness(sqlite_db)
    assert status["ok"] is True
    assert status["dependencies"]["database"] == "ready"


def test_readiness_fails_without_connection():
    status = readiness(None)
    assert status["ok"] is False
    assert status["dependencies"]["database"] == "error: unavailable"


def test_readiness_fails_when_database_raises():
    status = readiness(_BrokenConnection())
    assert status["ok"] is False
    assert "database is locked" in status["dependencies"]["database"]


class _LockedConnection:
    def execute(self, sql: str):
        raise sqlite3.OperationalError("database is locked")

    def rollback(self) -> None:
        pass


def test_readiness_reports_driver_error_detail():
    status = readiness(_LockedConnection())
    assert status["ok"] is False
    assert status["dependencies"]["database"] == "error: database is locked"
