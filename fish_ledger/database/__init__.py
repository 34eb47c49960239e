# database/__init__.py
from __future__ import annotations

from pathlib import Path
import logging
import sqlite3

from ..config import DB_PATH
from ..constants import SCHEMA_VERSION
from . import schema as schema_module
from .seeders.default_data import seed as seed_default_data
from .versioning import get_current_version, set_current_version

_log = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


def get_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    """
    Returns a sqlite3.Connection with:
      - WAL mode (file databases only)
      - foreign_keys ON
      - row_factory = sqlite3.Row (so rows behave like dicts and tuples)
    Ensures schema & seed data are applied idempotently.
    """
    target = DB_PATH if db_path is None else db_path
    is_memory = str(target) == MEMORY_DB
    if not is_memory:
        Path(target).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(target))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    if not is_memory:
        conn.execute("PRAGMA journal_mode = WAL;")

    # Always apply the schema (idempotent: uses CREATE IF NOT EXISTS)
    schema_module.init_schema(conn)

    current = get_current_version(conn)
    if current != SCHEMA_VERSION:
        _log.info("Schema version %s -> %s (%s)", current, SCHEMA_VERSION, target)
        set_current_version(conn, SCHEMA_VERSION)

    # Seeders should be safe to run repeatedly (idempotent).
    seed_default_data(conn)

    conn.commit()
    return conn


__all__ = [
    "MEMORY_DB",
    "get_connection",
]
