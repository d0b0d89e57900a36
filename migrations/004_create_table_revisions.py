from __future__ import annotations

import sqlite3


def up(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS table_revisions (
            table_name TEXT PRIMARY KEY,
            revision INTEGER NOT NULL DEFAULT 0
        );

        INSERT OR IGNORE INTO table_revisions (table_name, revision) VALUES
            ('sessions', 0),
            ('players', 0),
            ('unavailable_players', 0);
        """
    )
    conn.commit()


def down(conn: sqlite3.Connection) -> None:
    conn.executescript("DROP TABLE IF EXISTS table_revisions;")
    conn.commit()
