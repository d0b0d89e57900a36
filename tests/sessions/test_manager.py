from __future__ import annotations

import sqlite3
from datetime import date, datetime

import pytest

from src.db.sqlite_client import add_player, add_unavailable_player
from src.engine.errors import StoreUnavailable, ValidationError
from src.sessions.manager import (
    clean_participant_name,
    create_new_session,
    fetch_snapshot,
    load_board,
    parse_session_date,
    remove_session,
    validate_participant_name,
    validate_session_input,
)


def test_validate_participant_name():
    assert validate_participant_name("John D.") is None
    assert validate_participant_name("") == "Name is required."
    assert validate_participant_name("   ") == "Name is required."
    assert validate_participant_name(None) == "Name is required."


def test_clean_participant_name_strips_outer_whitespace_only():
    assert clean_participant_name("  Ana  María ") == "Ana  María"
    with pytest.raises(ValidationError):
        clean_participant_name("\t")


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2026-03-10", "2026-03-10"),
        (date(2026, 3, 10), "2026-03-10"),
        (datetime(2026, 3, 10, 18, 30), "2026-03-10"),
        ("20260310", "2026-03-10"),
    ],
)
def test_parse_session_date(value, expected):
    assert parse_session_date(value) == expected


@pytest.mark.parametrize("value", [None, "", "next tuesday", "2026-13-40"])
def test_parse_session_date_rejects_bad_input(value):
    with pytest.raises(ValidationError):
        parse_session_date(value)


def test_validate_session_input_rules():
    assert validate_session_input("2026-03-10", " 9:30-11am ", "8", 20) == (
        "2026-03-10",
        "9:30-11am",
        8,
    )
    with pytest.raises(ValidationError, match="Time is required"):
        validate_session_input("2026-03-10", "  ", 8, 20)
    with pytest.raises(ValidationError, match="whole number"):
        validate_session_input("2026-03-10", "6pm", "eight", 20)
    with pytest.raises(ValidationError, match="between 1 and 20"):
        validate_session_input("2026-03-10", "6pm", 0, 20)
    with pytest.raises(ValidationError, match="between 1 and 20"):
        validate_session_input("2026-03-10", "6pm", 21, 20)


def test_create_and_remove_session(sqlite_db):
    session_id = create_new_session(sqlite_db, date(2026, 3, 10), "9:30-11am", 8)
    snapshot = fetch_snapshot(sqlite_db)
    assert [s.id for s in snapshot.sessions] == [session_id]
    assert remove_session(sqlite_db, session_id) is True
    assert remove_session(sqlite_db, session_id) is False
    assert fetch_snapshot(sqlite_db).sessions == ()


def test_fetch_snapshot_includes_revisions_and_records(sqlite_db):
    session_id = create_new_session(sqlite_db, "2026-03-10", "9:30-11am", 8)
    add_player(sqlite_db, session_id, "John D.")
    add_unavailable_player(sqlite_db, session_id, "Mary K.")
    snapshot = fetch_snapshot(sqlite_db)
    assert [p.name for p in snapshot.players] == ["John D."]
    assert [p.name for p in snapshot.unavailable_players] == ["Mary K."]
    assert snapshot.revisions == {"sessions": 1, "players": 1, "unavailable_players": 1}


def test_fetch_snapshot_wraps_store_errors(sqlite_db, mocker):
    mocker.patch(
        "src.sessions.manager.list_sessions",
        side_effect=sqlite3.OperationalError("no such table: sessions"),
    )
    with pytest.raises(StoreUnavailable, match="Error fetching sessions"):
        fetch_snapshot(sqlite_db)


def test_load_board_falls_back_to_empty(sqlite_db, mocker):
    create_new_session(sqlite_db, "2026-03-10", "9:30-11am", 8)
    mocker.patch(
        "src.sessions.manager.list_players",
        side_effect=sqlite3.OperationalError("disk I/O error"),
    )
    snapshot, error = load_board(sqlite_db)
    assert snapshot.views() == []
    assert error == "Error fetching sessions"


def test_load_board_ok(sqlite_db):
    create_new_session(sqlite_db, "2026-03-10", "9:30-11am", 8)
    snapshot, error = load_board(sqlite_db)
    assert error is None
    assert len(snapshot.views()) == 1
