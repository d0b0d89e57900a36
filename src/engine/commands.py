from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from src.db.sqlite_client import (
    add_player,
    add_unavailable_player,
    delete_player,
    delete_unavailable_player,
    store_guard,
)
from src.engine.errors import RosterError, ValidationError
from src.engine.roster import (
    AVAILABLE,
    ROSTERS,
    UNAVAILABLE,
    RosterChange,
    RosterSnapshot,
    plan_decline,
    plan_signup,
)
from src.sessions.manager import clean_participant_name, create_new_session, remove_session
from src.utils.display import decline_confirmation, signup_confirmation
from src.utils.log import get_logger

logger = get_logger("roster")


@dataclass(frozen=True)
class SignUp:
    session_id: int
    name: str


@dataclass(frozen=True)
class Decline:
    session_id: int
    name: str


@dataclass(frozen=True)
class Withdraw:
    record_id: int
    roster: str


@dataclass(frozen=True)
class CreateSession:
    session_date: date | str
    time_label: str
    total_spots: int


@dataclass(frozen=True)
class DeleteSession:
    session_id: int


Intent = SignUp | Decline | Withdraw | CreateSession | DeleteSession


@dataclass(frozen=True)
class Outcome:
    message: str
    record_id: int | None = None
    changed: bool = True


def apply_change(conn: Any, change: RosterChange) -> int:
    """Apply a planned change in one transaction: removals first, then the insert."""
    with store_guard(conn, f"registering {change.roster} player"):
        for stale_id in change.remove_unavailable:
            delete_unavailable_player(conn, stale_id, commit=False)
        for stale_id in change.remove_available:
            delete_player(conn, stale_id, commit=False)
        if change.roster == AVAILABLE:
            entry_id = add_player(conn, change.session_id, change.name, commit=False)
        else:
            entry_id = add_unavailable_player(conn, change.session_id, change.name, commit=False)
        conn.commit()
    return entry_id


def _register(
    conn: Any, snapshot: RosterSnapshot, session_id: int, name: str, roster: str
) -> int:
    cleaned = clean_participant_name(name)
    view = snapshot.view_for(session_id)
    try:
        if roster == AVAILABLE:
            change = plan_signup(view, session_id, cleaned)
        else:
            change = plan_decline(view, session_id, cleaned)
    except RosterError as exc:
        logger.info(
            "[ROSTER] action=%s session=%s name=%s status=rejected reason=%s",
            roster,
            session_id,
            cleaned,
            exc.__class__.__name__,
        )
        raise
    entry_id = apply_change(conn, change)
    logger.info(
        "[ROSTER] action=%s session=%s name=%s status=ok entry=%s switched=%s",
        roster,
        session_id,
        cleaned,
        entry_id,
        len(change.remove_available) + len(change.remove_unavailable),
    )
    return entry_id


def register_availability(
    conn: Any, snapshot: RosterSnapshot, session_id: int, name: str
) -> int:
    """Sign ``name`` up for a session, moving them off the unavailable list if needed.

    Validation runs against ``snapshot``, not a fresh read, so two participants
    racing for the last spot can both succeed.
    """
    return _register(conn, snapshot, session_id, name, AVAILABLE)


def register_unavailability(
    conn: Any, snapshot: RosterSnapshot, session_id: int, name: str
) -> int:
    return _register(conn, snapshot, session_id, name, UNAVAILABLE)


def withdraw(conn: Any, record_id: int, roster: str) -> bool:
    if roster not in ROSTERS:
        raise ValidationError(f"Unknown roster: {roster}")
    with store_guard(conn, f"removing {roster} player"):
        if roster == AVAILABLE:
            removed = delete_player(conn, record_id)
        else:
            removed = delete_unavailable_player(conn, record_id)
    logger.info(
        "[ROSTER] action=withdraw roster=%s entry=%s removed=%s", roster, record_id, removed
    )
    return removed


def dispatch(
    conn: Any, snapshot: RosterSnapshot, intent: Intent, max_total_spots: int = 20
) -> Outcome:
    if isinstance(intent, SignUp):
        entry_id = register_availability(conn, snapshot, intent.session_id, intent.name)
        return Outcome(signup_confirmation(intent.name.strip()), record_id=entry_id)
    if isinstance(intent, Decline):
        entry_id = register_unavailability(conn, snapshot, intent.session_id, intent.name)
        return Outcome(decline_confirmation(intent.name.strip()), record_id=entry_id)
    if isinstance(intent, Withdraw):
        removed = withdraw(conn, intent.record_id, intent.roster)
        label = "Player removed." if intent.roster == AVAILABLE else "Unavailable status removed."
        return Outcome(label if removed else "Already removed.", changed=removed)
    if isinstance(intent, CreateSession):
        session_id = create_new_session(
            conn,
            intent.session_date,
            intent.time_label,
            intent.total_spots,
            max_total_spots=max_total_spots,
        )
        return Outcome("Session created.", record_id=session_id)
    if isinstance(intent, DeleteSession):
        removed = remove_session(conn, intent.session_id)
        message = "Session deleted." if removed else "Session already deleted."
        return Outcome(message, changed=removed)
    raise ValidationError(f"Unsupported intent: {intent!r}")
