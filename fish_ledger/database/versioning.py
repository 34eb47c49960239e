"""Single-row table recording the schema version a database file was last opened with."""
from __future__ import annotations

import sqlite3

from ..constants import TABLE_SCHEMA_VERSION

_CREATE_SQL = f"""
CREATE TABLE IF NOT EXISTS {TABLE_SCHEMA_VERSION} (
    id      INTEGER PRIMARY KEY CHECK (id = 1),
    version TEXT NOT NULL
)
"""


def get_current_version(conn: sqlite3.Connection) -> str | None:
    """None on a database that has never been stamped."""
    conn.execute(_CREATE_SQL)
    row = conn.execute(f"SELECT version FROM {TABLE_SCHEMA_VERSION} WHERE id = 1").fetchone()
    return None if row is None else row[0]


def set_current_version(conn: sqlite3.Connection, version: str) -> None:
    with conn:
        conn.execute(_CREATE_SQL)
        conn.execute(
            f"""
            INSERT INTO {TABLE_SCHEMA_VERSION}(id, version) VALUES (1, ?)
            ON CONFLICT(id) DO UPDATE SET version = excluded.version
            """,
            (version,),
        )
