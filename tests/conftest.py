# fish_ledger/tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - Every test gets its own SQLite file under tmp_path (schema + seed
#   applied by get_connection), so commits inside repos/services are safe
# - conn.row_factory = sqlite3.Row, PRAGMA foreign_keys=ON
# - Provide handy ids for customers, farmers and fish varieties
# ---------------------------------------------------------------------

from __future__ import annotations

import sqlite3

import pytest

from fish_ledger.database import get_connection
from fish_ledger.database.repositories import (
    Customer,
    CustomersRepo,
    Farmer,
    FarmersRepo,
    FishVarietiesRepo,
)

BILL_DATE = "2024-03-15"


# ---------- Per-test database ----------
@pytest.fixture()
def conn(tmp_path) -> sqlite3.Connection:
    con = get_connection(tmp_path / "fish_ledger_test.db")
    try:
        yield con
    finally:
        con.close()


# ---------- Handy ids ----------
@pytest.fixture()
def ids(conn: sqlite3.Connection) -> dict:
    """Two customers, two farmers and three varieties."""
    customers = CustomersRepo(conn)
    farmers = FarmersRepo(conn)
    varieties = FishVarietiesRepo(conn)
    return {
        "cust_ravi": customers.create(Customer(None, "Ravi Traders", phone="9800000001", city="Kakinada")),
        "cust_sea": customers.create(Customer(None, "Sea Mart", city="Vizag")),
        "farmer_kumar": farmers.create(Farmer(None, "Kumar", phone="9700000001")),
        "farmer_lakshmi": farmers.create(Farmer(None, "Lakshmi")),
        "rohu": varieties.create("Rohu"),
        "katla": varieties.create("Katla"),
        "tilapia": varieties.create("Tilapia"),
    }


@pytest.fixture()
def bill_date() -> str:
    return BILL_DATE
