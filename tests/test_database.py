import logging
import sqlite3

import pytest

from fish_ledger.constants import SCHEMA_VERSION
from fish_ledger.database import MEMORY_DB, get_connection
from fish_ledger.database.versioning import get_current_version, set_current_version
from fish_ledger.utils.helpers import fmt_money, month_bounds
from fish_ledger.utils.loggers import get_logger
from fish_ledger.utils.validators import try_parse_float


def test_connection_applies_schema_version_and_pragmas(conn):
    assert conn.row_factory is sqlite3.Row
    assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1
    assert conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
    assert get_current_version(conn) == SCHEMA_VERSION
    tables = {r["name"] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    assert {"bills", "bill_items", "purchase_bills", "purchase_bill_payments", "sales", "expenses"} <= tables


def test_reopening_is_idempotent(tmp_path):
    path = tmp_path / "again.db"
    first = get_connection(path)
    first.execute("INSERT INTO fish_varieties(name) VALUES ('Rohu')")
    first.commit()
    first.close()

    second = get_connection(path)
    try:
        assert second.execute("SELECT COUNT(*) FROM fish_varieties").fetchone()[0] == 1
        assert second.execute("SELECT COUNT(*) FROM expense_categories").fetchone()[0] == 8
    finally:
        second.close()


def test_version_bump_is_logged(tmp_path, caplog):
    path = tmp_path / "old.db"
    con = get_connection(path)
    set_current_version(con, "0.9.0")
    con.close()
    with caplog.at_level(logging.INFO):
        con = get_connection(path)
    try:
        assert get_current_version(con) == SCHEMA_VERSION
        assert "0.9.0" in caplog.text
    finally:
        con.close()


def test_set_version_overwrites_single_row(conn):
    set_current_version(conn, "2.0.0")
    set_current_version(conn, "2.0.1")
    assert get_current_version(conn) == "2.0.1"
    assert conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0] == 1


def test_in_memory_connection():
    con = get_connection(MEMORY_DB)
    try:
        assert get_current_version(con) == SCHEMA_VERSION
    finally:
        con.close()


def test_sale_rows_cannot_go_negative(conn, ids):
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            "INSERT INTO sales(customer_id, fish_variety_id, quantity_crates, quantity_kg, sale_date) VALUES (?,?,?,?,?)",
            (ids["cust_ravi"], ids["rohu"], -1, 0, "2024-03-15"),
        )


def test_created_at_has_milliseconds(conn, ids):
    row = conn.execute("SELECT created_at FROM fish_varieties WHERE fish_variety_id=?", (ids["rohu"],)).fetchone()
    # 'YYYY-MM-DD HH:MM:SS.SSS'
    assert len(row["created_at"]) == 23


# ---------------- utils ----------------

def test_month_bounds():
    assert month_bounds(2024, 2) == ("2024-02-01", "2024-02-29")
    assert month_bounds(2023, 12) == ("2023-12-01", "2023-12-31")


def test_fmt_money():
    assert fmt_money(1234567.891) == "1,234,567.89"
    assert fmt_money("abc") == "abc"
    assert fmt_money("abc", sentinel="N/A") == "N/A"
    with pytest.raises(ValueError):
        fmt_money(None, strict=True)


@pytest.mark.parametrize(
    "value, expected",
    [("12.5", (True, 12.5)), (3, (True, 3.0)), ("x", (False, None)), (None, (False, None)),
     (True, (False, None)), (float("nan"), (False, None)), ("inf", (False, None))],
)
def test_try_parse_float(value, expected):
    assert try_parse_float(value) == expected


def test_get_logger_installs_one_handler():
    a = get_logger("fish_ledger.test")
    b = get_logger("fish_ledger.test")
    assert a is b
    assert len(a.handlers) == 1
    assert a.level == logging.INFO
