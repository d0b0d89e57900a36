from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any

import streamlit as st

from src.config.settings import Settings, ensure_runtime_dirs, load_settings, validate_settings
from src.db.change_feed import ChangeFeed
from src.db.sqlite_client import get_connection, init_schema, store_guard
from src.engine.commands import (
    CreateSession,
    Decline,
    DeleteSession,
    Intent,
    SignUp,
    Withdraw,
    dispatch,
)
from src.engine.errors import RosterError, StoreUnavailable
from src.engine.roster import AVAILABLE, UNAVAILABLE, RosterSnapshot, SessionView
from src.sessions.manager import load_board
from src.utils.display import (
    empty_slot_labels,
    escape_markdown,
    format_session_date,
    spots_label,
    unavailable_heading,
)
from src.utils.form_state import apply_pending_clear, mark_for_clear
from src.utils.health import readiness
from src.utils.log import configure_logging, get_logger

logger = get_logger("app")


def _inject_board_styles() -> None:
    st.markdown(
        """
        <style>
        .sb-title {
            font-size: 3rem;
            font-weight: 800;
            letter-spacing: 0.04em;
            text-align: center;
            margin: 0;
            background: linear-gradient(90deg, #15803d 0%, #4ade80 100%);
            -webkit-background-clip: text;
            -webkit-text-fill-color: transparent;
        }
        .sb-subtitle {
            text-align: center;
            color: #4b5563;
            font-size: 1.15rem;
            margin-bottom: 1.5rem;
        }
        .sb-date {
            font-size: 1.6rem;
            font-weight: 700;
            color: #15803d;
        }
        .sb-spots {
            font-size: 1.5rem;
            font-weight: 700;
            text-align: right;
        }
        .sb-muted {
            font-size: 0.8rem;
            text-transform: uppercase;
            letter-spacing: 0.05em;
            opacity: 0.7;
        }
        </style>
        """,
        unsafe_allow_html=True,
    )


@st.cache_resource
def get_runtime() -> dict[str, Any]:
    settings = load_settings()
    configure_logging(settings.log_level)
    errors = validate_settings(settings)
    conn: Any | None = None
    if not errors:
        ensure_runtime_dirs(settings)
        try:
            conn = get_connection(settings.sqlite_db_path)
            init_schema(conn)
        except Exception as exc:
            logger.exception("[APP] database initialization failed")
            errors.append(f"Database initialization failed: {exc}")
    return {"settings": settings, "conn": conn, "errors": errors}


def init_state() -> None:
    defaults = {
        "flash": None,
        "board_changed": False,
        "snapshot": RosterSnapshot(),
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def _flash(kind: str, message: str) -> None:
    st.session_state.flash = (kind, message)


def render_flash() -> None:
    flash = st.session_state.flash
    if not flash:
        return
    st.session_state.flash = None
    kind, message = flash
    if kind == "success":
        st.success(escape_markdown(message))
    else:
        st.error(escape_markdown(message))


def run_intent(intent: Intent) -> bool:
    runtime = get_runtime()
    settings: Settings = runtime["settings"]
    try:
        outcome = dispatch(
            runtime["conn"],
            st.session_state.snapshot,
            intent,
            max_total_spots=settings.max_total_spots,
        )
    except (RosterError, StoreUnavailable) as exc:
        _flash("error", str(exc))
        return False
    _flash("success", outcome.message)
    return True


@st.dialog("Please confirm")
def confirm_intent(prompt: str, intent: Intent) -> None:
    st.write(prompt)
    confirm_col, cancel_col = st.columns(2)
    if confirm_col.button("Confirm", type="primary", use_container_width=True):
        run_intent(intent)
        st.rerun()
    if cancel_col.button("Cancel", use_container_width=True):
        st.rerun()


def _mark_board_changed(tables: frozenset[str]) -> None:
    logger.debug("[APP] change_notification tables=%s", ",".join(sorted(tables)))
    st.session_state.board_changed = True


def get_change_feed(conn: Any, seen: Mapping[str, int] | None = None) -> ChangeFeed:
    """Per-browser feed; ``seen`` marks revisions this session has already rendered."""
    feed = st.session_state.get("change_feed")
    if feed is None:
        feed = ChangeFeed(conn, seen=seen)
        feed.subscribe(_mark_board_changed)
        st.session_state.change_feed = feed
    elif seen:
        feed.mark_seen(seen)
    return feed


def render_header(settings: Settings) -> None:
    _inject_board_styles()
    st.markdown(
        f'<p class="sb-title">{settings.app_title.upper()}</p>'
        f'<p class="sb-subtitle">{settings.app_subtitle}</p>',
        unsafe_allow_html=True,
    )


def _render_signup_form(view: SessionView) -> None:
    session_id = view.session_id
    name_key = f"signup_name_{session_id}"
    apply_pending_clear(st.session_state, name_key)
    with st.form(f"signup_form_{session_id}"):
        name = st.text_input(
            "Your Response",
            placeholder="First Name Last Initial (e.g., John D.)",
            key=name_key,
        )
        in_col, out_col = st.columns(2)
        joined = in_col.form_submit_button(
            "I'm In", type="primary", disabled=view.is_full, use_container_width=True
        )
        declined = out_col.form_submit_button("I'm Out", use_container_width=True)
        if view.is_full:
            st.caption("Session is full! You can still mark yourself as unavailable.")
    intent: Intent | None = None
    if joined:
        intent = SignUp(session_id=session_id, name=name)
    elif declined:
        intent = Decline(session_id=session_id, name=name)
    if intent is not None:
        if run_intent(intent):
            mark_for_clear(st.session_state, name_key)
        st.rerun()


def _render_available(view: SessionView) -> None:
    columns = st.columns(3)
    slots: list[tuple[str, int | None]] = [
        (f"{index}. {entry.name}", entry.id)
        for index, entry in enumerate(view.available, start=1)
    ]
    slots.extend((label, None) for label in empty_slot_labels(view))
    for position, (label, entry_id) in enumerate(slots):
        with columns[position % 3]:
            with st.container(border=True):
                if entry_id is None:
                    st.caption(f"_{label}_")
                    continue
                name_col, remove_col = st.columns([4, 1])
                name_col.text(label)
                if remove_col.button("×", key=f"remove_player_{entry_id}"):
                    confirm_intent(
                        "Remove this player from the session?",
                        Withdraw(record_id=entry_id, roster=AVAILABLE),
                    )


def _render_unavailable(view: SessionView) -> None:
    if not view.unavailable:
        return
    st.markdown(
        f'<span class="sb-muted">{unavailable_heading(view)}</span>', unsafe_allow_html=True
    )
    columns = st.columns(4)
    for position, entry in enumerate(view.unavailable):
        with columns[position % 4]:
            name_col, remove_col = st.columns([3, 1])
            name_col.text(entry.name)
            if remove_col.button("×", key=f"remove_unavailable_{entry.id}"):
                confirm_intent(
                    "Remove this unavailable status?",
                    Withdraw(record_id=entry.id, roster=UNAVAILABLE),
                )


def render_session_card(view: SessionView) -> None:
    with st.container(border=True):
        when_col, spots_col = st.columns([3, 1])
        when_col.markdown(
            f'<div class="sb-date">{format_session_date(view.session.date)}</div>',
            unsafe_allow_html=True,
        )
        when_col.text(view.session.time)
        spots_col.markdown(
            f'<div class="sb-spots">{spots_label(view)}</div>'
            '<div class="sb-muted" style="text-align:right">Spots Available</div>',
            unsafe_allow_html=True,
        )
        _render_signup_form(view)
        _render_available(view)
        _render_unavailable(view)
        if st.button("Delete Session", key=f"delete_session_{view.session_id}"):
            confirm_intent(
                "Delete this session? This cannot be undone.",
                DeleteSession(session_id=view.session_id),
            )


def render_admin_panel(settings: Settings) -> None:
    with st.container(border=True):
        st.subheader("Admin - Create Session")
        with st.form("create_session_form", clear_on_submit=True):
            date_col, time_col, spots_col = st.columns([2, 2, 1])
            session_date = date_col.date_input("Date", value=date.today(), format="YYYY-MM-DD")
            time_label = time_col.text_input("Time", placeholder="e.g., 9:30-11am")
            total_spots = spots_col.number_input(
                "Spots",
                min_value=1,
                max_value=settings.max_total_spots,
                value=settings.default_total_spots,
                step=1,
            )
            submitted = st.form_submit_button(
                "Create Session", type="primary", use_container_width=True
            )
    if submitted:
        run_intent(
            CreateSession(
                session_date=session_date,
                time_label=time_label,
                total_spots=int(total_spots),
            )
        )
        st.rerun()


def render_change_watcher(conn: Any, settings: Settings) -> None:
    @st.fragment(run_every=settings.refresh_interval_seconds)
    def _watch() -> None:
        try:
            with store_guard(conn, "polling changes"):
                get_change_feed(conn).poll()
        except StoreUnavailable:
            return
        if st.session_state.board_changed:
            st.session_state.board_changed = False
            st.rerun(scope="app")

    _watch()


def main() -> None:
    settings = load_settings()
    st.set_page_config(
        page_title=settings.app_title,
        page_icon=":calendar:",
        layout="centered",
    )
    init_state()
    runtime = get_runtime()
    if runtime["errors"]:
        st.error("Startup validation failed.")
        for error in runtime["errors"]:
            st.write(f"- {error}")
        return
    status = readiness(runtime["conn"])
    if not status["ok"]:
        st.error("Readiness check failed.")
        st.json(status)
        return

    conn = runtime["conn"]
    render_header(settings)
    render_flash()
    snapshot, load_error = load_board(conn)
    if load_error:
        st.error("Error loading sessions. Try again in a moment.")
    st.session_state.snapshot = snapshot
    if snapshot.revisions:
        get_change_feed(conn, seen=snapshot.revisions)

    views = snapshot.views()
    if views:
        for view in views:
            render_session_card(view)
    else:
        st.info("No sessions scheduled yet.\n\nAdmin: Create a session below to get started.")
    render_admin_panel(settings)
    render_change_watcher(conn, settings)


if __name__ == "__main__":
    main()
