from __future__ import annotations

import pytest

from src.engine.errors import DuplicateAvailable, DuplicateUnavailable, SessionFull, SessionNotFound
from src.engine.roster import (
    AVAILABLE,
    UNAVAILABLE,
    RosterEntry,
    RosterSnapshot,
    SessionRecord,
    SessionView,
    join,
    names_match,
    plan_decline,
    plan_signup,
    snapshot_from_rows,
)


def _session(session_id: int, day: str = "2026-03-10", spots: int = 2) -> SessionRecord:
    return SessionRecord(
        id=session_id, date=day, time="9:30-11am", total_spots=spots, created_at="2026-03-01"
    )


def _entry(entry_id: int, session_id: int, name: str, created_at: str = "") -> RosterEntry:
    return RosterEntry(
        id=entry_id,
        session_id=session_id,
        name=name,
        created_at=created_at or f"2026-03-01 10:00:{entry_id:02d}",
    )


def test_join_orders_sessions_by_date():
    views = join([_session(1, "2026-03-17"), _session(2, "2026-03-10")], [], [])
    assert [view.session_id for view in views] == [2, 1]


def test_join_groups_and_orders_records_by_creation_time():
    players = [
        _entry(3, 1, "Jane S.", "2026-03-01 10:00:05"),
        _entry(1, 1, "John D.", "2026-03-01 10:00:01"),
        _entry(2, 2, "Mary K."),
    ]
    unavailable = [_entry(4, 1, "Bob T.")]
    views = join([_session(1), _session(2, "2026-03-17")], players, unavailable)
    first, second = views
    assert [e.name for e in first.available] == ["John D.", "Jane S."]
    assert [e.name for e in first.unavailable] == ["Bob T."]
    assert [e.name for e in second.available] == ["Mary K."]
    assert second.unavailable == ()


def test_join_breaks_creation_ties_by_id():
    players = [_entry(9, 1, "B", "same"), _entry(5, 1, "A", "same")]
    (view,) = join([_session(1)], players, [])
    assert [e.id for e in view.available] == [5, 9]


def test_join_drops_orphan_records():
    (view,) = join([_session(1)], [_entry(1, 99, "Ghost")], [_entry(2, 99, "Ghost")])
    assert view.available == ()
    assert view.unavailable == ()


def test_join_is_idempotent():
    sessions = [_session(2, "2026-03-17"), _session(1)]
    players = [_entry(2, 1, "Jane S."), _entry(1, 1, "John D.")]
    unavailable = [_entry(3, 2, "Mary K.")]
    assert join(sessions, players, unavailable) == join(sessions, players, unavailable)


def test_spots_remaining_and_full():
    view = SessionView(session=_session(1, spots=2), available=(_entry(1, 1, "John D."),))
    assert view.spots_remaining == 1
    assert view.is_full is False
    full = SessionView(
        session=_session(1, spots=2),
        available=(_entry(1, 1, "John D."), _entry(2, 1, "Jane S.")),
    )
    assert full.spots_remaining == 0
    assert full.is_full is True


def test_names_match_ignores_case_and_outer_whitespace():
    assert names_match("John D.", "john d.")
    assert names_match(" JOHN D. ", "john d.")
    assert not names_match("John  D.", "John D.")


def test_plan_signup_requires_session():
    with pytest.raises(SessionNotFound):
        plan_signup(None, 7, "John D.")


def test_plan_signup_rejects_duplicate_before_capacity():
    view = SessionView(
        session=_session(1, spots=1), available=(_entry(1, 1, "John D."),)
    )
    with pytest.raises(DuplicateAvailable):
        plan_signup(view, 1, "JOHN D.")
    with pytest.raises(SessionFull):
        plan_signup(view, 1, "Jane S.")


def test_plan_signup_moves_unavailable_record():
    view = SessionView(session=_session(1), unavailable=(_entry(4, 1, "john d."),))
    change = plan_signup(view, 1, "John D.")
    assert change.roster == AVAILABLE
    assert change.name == "John D."
    assert change.remove_unavailable == (4,)
    assert change.remove_available == ()


def test_plan_decline_has_no_capacity_check():
    view = SessionView(
        session=_session(1, spots=1), available=(_entry(1, 1, "John D."),)
    )
    change = plan_decline(view, 1, "Jane S.")
    assert change.roster == UNAVAILABLE
    assert change.remove_available == ()


def test_plan_decline_moves_available_record_and_rejects_duplicates():
    view = SessionView(
        session=_session(1),
        available=(_entry(1, 1, "John D."),),
        unavailable=(_entry(2, 1, "Mary K."),),
    )
    assert plan_decline(view, 1, "john d.").remove_available == (1,)
    with pytest.raises(DuplicateUnavailable):
        plan_decline(view, 1, "MARY K.")
    with pytest.raises(SessionNotFound):
        plan_decline(None, 1, "Mary K.")


def test_snapshot_from_rows_and_view_for():
    snapshot = snapshot_from_rows(
        sessions=[{"id": 1, "date": "2026-03-10", "time": "6-8pm", "total_spots": 4}],
        players=[{"id": 1, "session_id": 1, "name": "John D.", "created_at": "x"}],
        unavailable_players=[],
        revisions={"players": 3},
    )
    view = snapshot.view_for(1)
    assert view is not None
    assert view.spots_remaining == 3
    assert snapshot.view_for(2) is None
    assert snapshot.revisions["players"] == 3
    assert RosterSnapshot().views() == []
