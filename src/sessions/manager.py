from __future__ import annotations

from datetime import date, datetime
from typing import Any

from dateutil import parser as date_parser

from src.db.sqlite_client import (
    create_session,
    delete_session,
    get_revisions,
    list_players,
    list_sessions,
    list_unavailable_players,
    store_guard,
)
from src.engine.errors import StoreUnavailable, ValidationError
from src.engine.roster import RosterSnapshot, snapshot_from_rows
from src.utils.log import get_logger

logger = get_logger("sessions")

MIN_TOTAL_SPOTS = 1


def validate_participant_name(name: str | None) -> str | None:
    if name is None or not name.strip():
        return "Name is required."
    return None


def clean_participant_name(name: str | None) -> str:
    error = validate_participant_name(name)
    if error or name is None:
        raise ValidationError(error or "Name is required.")
    return name.strip()


def parse_session_date(value: date | datetime | str | None) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if value is None or not str(value).strip():
        raise ValidationError("Date is required.")
    try:
        return date_parser.isoparse(str(value).strip()).date().isoformat()
    except ValueError as exc:
        raise ValidationError("Date must be an ISO date, e.g. 2026-03-10.") from exc


def validate_session_input(
    session_date: date | datetime | str | None,
    time_label: str | None,
    total_spots: Any,
    max_total_spots: int,
) -> tuple[str, str, int]:
    iso_date = parse_session_date(session_date)
    if time_label is None or not time_label.strip():
        raise ValidationError("Time is required.")
    try:
        spots = int(total_spots)
    except (TypeError, ValueError) as exc:
        raise ValidationError("Spots must be a whole number.") from exc
    if spots < MIN_TOTAL_SPOTS or spots > max_total_spots:
        raise ValidationError(f"Spots must be between {MIN_TOTAL_SPOTS} and {max_total_spots}.")
    return iso_date, time_label.strip(), spots


def create_new_session(
    conn: Any,
    session_date: date | datetime | str | None,
    time_label: str | None,
    total_spots: Any,
    max_total_spots: int = 20,
) -> int:
    iso_date, time_text, spots = validate_session_input(
        session_date, time_label, total_spots, max_total_spots
    )
    with store_guard(conn, "creating session"):
        session_id = create_session(conn, iso_date, time_text, spots)
    logger.info(
        "[SESSIONS] action=create session=%s date=%s spots=%s", session_id, iso_date, spots
    )
    return session_id


def remove_session(conn: Any, session_id: int) -> bool:
    with store_guard(conn, "deleting session"):
        removed = delete_session(conn, session_id)
    logger.info("[SESSIONS] action=delete session=%s removed=%s", session_id, removed)
    return removed


def fetch_snapshot(conn: Any) -> RosterSnapshot:
    with store_guard(conn, "fetching sessions"):
        revisions = get_revisions(conn)
        sessions = list_sessions(conn)
        if not sessions:
            return RosterSnapshot(revisions=revisions)
        players = list_players(conn)
        unavailable = list_unavailable_players(conn)
    return snapshot_from_rows(sessions, players, unavailable, revisions)


def load_board(conn: Any) -> tuple[RosterSnapshot, str | None]:
    """Fetch a snapshot for display, falling back to an empty board on store errors."""
    try:
        return fetch_snapshot(conn), None
    except StoreUnavailable as exc:
        return RosterSnapshot(), str(exc)
