from __future__ import annotations

import re
from datetime import date

from src.engine.roster import SessionView


def format_session_date(value: str) -> str:
    """'2026-03-10' -> 'Tuesday, March 10, 2026'; unparseable input is returned as-is."""
    try:
        day = date.fromisoformat(str(value)[:10])
    except ValueError:
        return str(value)
    return f"{day:%A, %B} {day.day}, {day.year}"


def spots_label(view: SessionView) -> str:
    return f"{max(view.spots_remaining, 0)} / {view.session.total_spots}"


def empty_slot_labels(view: SessionView) -> list[str]:
    taken = len(view.available)
    return [f"{taken + i + 1}. Available" for i in range(max(view.spots_remaining, 0))]


def unavailable_heading(view: SessionView) -> str:
    return f"Can't Attend ({len(view.unavailable)})"


def signup_confirmation(name: str) -> str:
    return f"✓ {name} - You're in!"


def decline_confirmation(name: str) -> str:
    return f"✓ {name} - Marked as unavailable"


_MARKDOWN_PUNCTUATION = re.compile(r"([!\"#$%&'()*+,\-./:;<=>?@\[\\\]^_`{|}~])")


def escape_markdown(text: str) -> str:
    """Backslash-escape markdown punctuation so user text renders verbatim."""
    return _MARKDOWN_PUNCTUATION.sub(r"\\\1", text)
