"""Roster reconciliation.

Everything in this module is pure: it works on an immutable ``RosterSnapshot``
fetched from the store and returns views or planned changes. Applying a
planned change against the store lives in ``src.engine.commands``.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from src.engine.errors import (
    DuplicateAvailable,
    DuplicateUnavailable,
    SessionFull,
    SessionNotFound,
)

AVAILABLE = "available"
UNAVAILABLE = "unavailable"
ROSTERS = (AVAILABLE, UNAVAILABLE)


@dataclass(frozen=True)
class SessionRecord:
    id: int
    date: str
    time: str
    total_spots: int
    created_at: str = ""


@dataclass(frozen=True)
class RosterEntry:
    id: int
    session_id: int
    name: str
    created_at: str = ""


def session_from_row(row: Mapping[str, Any]) -> SessionRecord:
    return SessionRecord(
        id=int(row["id"]),
        date=str(row["date"])[:10],
        time=str(row["time"]),
        total_spots=int(row["total_spots"]),
        created_at=str(row.get("created_at") or ""),
    )


def entry_from_row(row: Mapping[str, Any]) -> RosterEntry:
    return RosterEntry(
        id=int(row["id"]),
        session_id=int(row["session_id"]),
        name=str(row["name"]),
        created_at=str(row.get("created_at") or ""),
    )


def names_match(left: str, right: str) -> bool:
    return left.strip().casefold() == right.strip().casefold()


@dataclass(frozen=True)
class SessionView:
    session: SessionRecord
    available: tuple[RosterEntry, ...] = ()
    unavailable: tuple[RosterEntry, ...] = ()

    @property
    def session_id(self) -> int:
        return self.session.id

    @property
    def spots_remaining(self) -> int:
        return self.session.total_spots - len(self.available)

    @property
    def is_full(self) -> bool:
        return self.spots_remaining <= 0

    def find_available(self, name: str) -> list[RosterEntry]:
        return [entry for entry in self.available if names_match(entry.name, name)]

    def find_unavailable(self, name: str) -> list[RosterEntry]:
        return [entry for entry in self.unavailable if names_match(entry.name, name)]


def _entry_order(entry: RosterEntry) -> tuple[str, int]:
    return (entry.created_at, entry.id)


def _session_order(session: SessionRecord) -> tuple[str, str, int]:
    return (session.date, session.created_at, session.id)


def join(
    sessions: Iterable[SessionRecord],
    players: Iterable[RosterEntry],
    unavailable_players: Iterable[RosterEntry],
) -> list[SessionView]:
    """Group roster records under their sessions.

    Sessions come back soonest first; each roster is ordered by creation time.
    Records pointing at a session that is not in ``sessions`` are dropped.
    """
    available_by_session: dict[int, list[RosterEntry]] = defaultdict(list)
    for entry in players:
        available_by_session[entry.session_id].append(entry)
    unavailable_by_session: dict[int, list[RosterEntry]] = defaultdict(list)
    for entry in unavailable_players:
        unavailable_by_session[entry.session_id].append(entry)
    return [
        SessionView(
            session=session,
            available=tuple(sorted(available_by_session.get(session.id, []), key=_entry_order)),
            unavailable=tuple(
                sorted(unavailable_by_session.get(session.id, []), key=_entry_order)
            ),
        )
        for session in sorted(sessions, key=_session_order)
    ]


@dataclass(frozen=True)
class RosterSnapshot:
    sessions: tuple[SessionRecord, ...] = ()
    players: tuple[RosterEntry, ...] = ()
    unavailable_players: tuple[RosterEntry, ...] = ()
    revisions: Mapping[str, int] = field(default_factory=dict)

    def views(self) -> list[SessionView]:
        return join(self.sessions, self.players, self.unavailable_players)

    def view_for(self, session_id: int) -> SessionView | None:
        return next((view for view in self.views() if view.session_id == session_id), None)


def snapshot_from_rows(
    sessions: Iterable[Mapping[str, Any]],
    players: Iterable[Mapping[str, Any]],
    unavailable_players: Iterable[Mapping[str, Any]],
    revisions: Mapping[str, int] | None = None,
) -> RosterSnapshot:
    return RosterSnapshot(
        sessions=tuple(session_from_row(row) for row in sessions),
        players=tuple(entry_from_row(row) for row in players),
        unavailable_players=tuple(entry_from_row(row) for row in unavailable_players),
        revisions=dict(revisions or {}),
    )


@dataclass(frozen=True)
class RosterChange:
    """Store mutations for one status change, applied deletes first."""

    session_id: int
    roster: str
    name: str
    remove_available: tuple[int, ...] = ()
    remove_unavailable: tuple[int, ...] = ()


def plan_signup(view: SessionView | None, session_id: int, name: str) -> RosterChange:
    if view is None:
        raise SessionNotFound(session_id)
    if view.find_available(name):
        raise DuplicateAvailable(name)
    if view.is_full:
        raise SessionFull(session_id)
    return RosterChange(
        session_id=session_id,
        roster=AVAILABLE,
        name=name,
        remove_unavailable=tuple(entry.id for entry in view.find_unavailable(name)),
    )


def plan_decline(view: SessionView | None, session_id: int, name: str) -> RosterChange:
    if view is None:
        raise SessionNotFound(session_id)
    if view.find_unavailable(name):
        raise DuplicateUnavailable(name)
    return RosterChange(
        session_id=session_id,
        roster=UNAVAILABLE,
        name=name,
        remove_available=tuple(entry.id for entry in view.find_available(name)),
    )
