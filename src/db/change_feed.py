from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from src.db.sqlite_client import WATCHED_TABLES, get_revisions
from src.utils.log import get_logger

logger = get_logger("changes")

ChangeCallback = Callable[[frozenset[str]], None]


class ChangeFeed:
    """Poll-based change notifications for the roster collections.

    Every mutation bumps a per-table revision in the store. ``poll`` compares
    the current revisions with the last ones it saw and calls each subscriber
    whose tables changed. Subscribers get the changed table names only; they
    are expected to re-fetch everything.
    """

    def __init__(
        self,
        conn: Any,
        tables: Iterable[str] = WATCHED_TABLES,
        seen: Mapping[str, int] | None = None,
    ) -> None:
        self._conn = conn
        self._tables = tuple(tables)
        self._seen: dict[str, int] = {}
        if seen:
            self.mark_seen(seen)
        else:
            self._seen = self._current()
        self._subscribers: dict[int, tuple[ChangeCallback, frozenset[str]]] = {}
        self._next_token = 1

    def _current(self) -> dict[str, int]:
        revisions = get_revisions(self._conn)
        return {table: revisions.get(table, 0) for table in self._tables}

    def mark_seen(self, revisions: Mapping[str, int]) -> None:
        """Treat ``revisions`` as already handled, e.g. those of a freshly loaded snapshot."""
        for table in self._tables:
            if table in revisions:
                self._seen[table] = int(revisions[table])

    @property
    def revisions(self) -> dict[str, int]:
        return dict(self._seen)

    def subscribe(self, callback: ChangeCallback, tables: Iterable[str] | None = None) -> int:
        watched = frozenset(tables) if tables is not None else frozenset(self._tables)
        unknown = watched.difference(self._tables)
        if unknown:
            raise ValueError(f"Unknown tables: {', '.join(sorted(unknown))}")
        token = self._next_token
        self._next_token += 1
        self._subscribers[token] = (callback, watched)
        return token

    def unsubscribe(self, token: int) -> bool:
        return self._subscribers.pop(token, None) is not None

    def poll(self) -> frozenset[str]:
        current = self._current()
        changed = frozenset(
            table for table in self._tables if current[table] != self._seen.get(table, 0)
        )
        self._seen = current
        if not changed:
            return changed
        logger.debug("[CHANGES] tables=%s", ",".join(sorted(changed)))
        for callback, watched in list(self._subscribers.values()):
            hits = changed.intersection(watched)
            if hits:
                callback(hits)
        return changed
