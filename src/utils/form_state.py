from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any


def _clear_flag(key: str) -> str:
    return f"clear_{key}"


def mark_for_clear(state: MutableMapping[str, Any], key: str) -> None:
    """Ask for the input under ``key`` to be emptied on the next run."""
    state[_clear_flag(key)] = True


def apply_pending_clear(state: MutableMapping[str, Any], key: str) -> bool:
    # Streamlit only accepts widget values set before the widget is drawn.
    if not state.pop(_clear_flag(key), False):
        return False
    state[key] = ""
    return True
