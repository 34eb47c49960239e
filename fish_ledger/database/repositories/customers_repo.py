from __future__ import annotations
from dataclasses import dataclass, fields
import sqlite3


# Domain-level error the caller can surface directly (e.g., toast/snackbar)
class DomainError(Exception):
    pass


@dataclass
class Customer:
    customer_id: int | None
    name: str
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    contact_person: str | None = None
    business_type: str | None = None
    notes: str | None = None


_COLUMNS = [f.name for f in fields(Customer)]
_SELECT = "SELECT " + ", ".join(_COLUMNS) + " FROM customers"
_EDITABLE = [c for c in _COLUMNS if c != "customer_id"]


class CustomersRepo:
    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---- Internal helpers -------------------------------------------------

    @staticmethod
    def _normalize_text(s: str | None) -> str | None:
        if s is None:
            return None
        s = s.strip()
        return s or None

    @staticmethod
    def _ensure_non_empty(value: str | None, field_label: str) -> None:
        if value is None or value.strip() == "":
            raise DomainError(f"{field_label} cannot be empty.")

    def _values(self, c: Customer) -> list:
        self._ensure_non_empty(c.name, "Name")
        return [self._normalize_text(getattr(c, col)) for col in _EDITABLE]

    # ---- Queries ----------------------------------------------------------

    def list_customers(self) -> list[Customer]:
        rows = self.conn.execute(_SELECT + " ORDER BY name COLLATE NOCASE, customer_id").fetchall()
        return [Customer(**dict(r)) for r in rows]

    def search(self, term: str) -> list[Customer]:
        """LIKE match over name / phone / city."""
        pattern = f"%{term.strip()}%"
        rows = self.conn.execute(
            _SELECT + " WHERE name LIKE ? OR phone LIKE ? OR city LIKE ? "
            "ORDER BY name COLLATE NOCASE, customer_id",
            (pattern, pattern, pattern),
        ).fetchall()
        return [Customer(**dict(r)) for r in rows]

    def get(self, customer_id: int) -> Customer | None:
        r = self.conn.execute(_SELECT + " WHERE customer_id=?", (customer_id,)).fetchone()
        return Customer(**dict(r)) if r else None

    # ---- Mutations --------------------------------------------------------

    def create(self, customer: Customer) -> int:
        values = self._values(customer)
        cur = self.conn.execute(
            f"INSERT INTO customers({', '.join(_EDITABLE)}) VALUES ({', '.join('?' for _ in _EDITABLE)})",
            values,
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def update(self, customer: Customer) -> None:
        if customer.customer_id is None:
            raise DomainError("Customer id is required for update.")
        values = self._values(customer)
        self.conn.execute(
            f"UPDATE customers SET {', '.join(c + '=?' for c in _EDITABLE)} WHERE customer_id=?",
            (*values, customer.customer_id),
        )
        self.conn.commit()

    def delete(self, customer_id: int) -> None:
        try:
            with self.conn:
                self.conn.execute("DELETE FROM customers WHERE customer_id=?", (customer_id,))
        except sqlite3.IntegrityError as e:
            raise DomainError("Customer has sales or bills and cannot be deleted.") from e
