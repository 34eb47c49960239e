from __future__ import annotations
from dataclasses import dataclass, field
import logging
import sqlite3
from typing import Iterable, Optional

from ...constants import BILL_NUMBER_WIDTH, SALES_BILL_PREFIX
from ...modules.billing.drafts import SalesBillTotals, SalesLineItem
from ...utils.helpers import epoch_ms

_log = logging.getLogger(__name__)


def next_bill_number(conn: sqlite3.Connection, table: str, prefix: str) -> str:
    """
    1 + the highest numeric suffix among `<prefix>NNNN` numbers in `table`.
    Gaps left by deleted bills are not reused; only the maximum counts.
    If the lookup fails, a timestamp placeholder `<prefix><epoch-ms>` is used.
    """
    try:
        row = conn.execute(
            f"""
            SELECT MAX(CAST(SUBSTR(bill_number, ?) AS INTEGER))
            FROM {table}
            WHERE bill_number LIKE ?
            """,
            (len(prefix) + 1, prefix + "%"),
        ).fetchone()
    except sqlite3.Error:
        _log.warning("Bill number lookup failed on %s; using timestamp placeholder", table, exc_info=True)
        return f"{prefix}{epoch_ms()}"
    last = int(row[0] or 0) if row else 0
    return f"{prefix}{last + 1:0{BILL_NUMBER_WIDTH}d}"


@dataclass
class SalesBill:
    bill_id: int
    bill_number: str
    customer_id: int
    bill_date: str
    subtotal: float
    discount: float
    total: float
    previous_balance: float
    grand_total: float
    amount_received: float
    balance_due: float
    payment_status: str
    notes: str | None
    created_at: str
    customer_name: str | None = None
    items: list[SalesLineItem] = field(default_factory=list)


@dataclass(frozen=True)
class Rate:
    rate_per_crate: float
    rate_per_kg: float


class BillsRepo:
    """
    Sales bills (bills + bill_items).

    Write helpers do NOT commit; the service wraps header + items in one
    transaction. Items are never diffed: an edit deletes every line and
    inserts the new set.
    """

    _HEADER_SELECT = """
        SELECT b.bill_id, b.bill_number, b.customer_id, b.bill_date,
               b.subtotal, b.discount, b.total, b.previous_balance, b.grand_total,
               b.amount_received, b.balance_due, b.payment_status, b.notes, b.created_at,
               c.name AS customer_name
        FROM bills b
        JOIN customers c ON c.customer_id = b.customer_id
    """

    def __init__(self, conn: sqlite3.Connection):
        # ensure rows behave like dicts/tuples
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---------------------------------------------------------------------
    # READ
    # ---------------------------------------------------------------------
    def next_bill_number(self) -> str:
        return next_bill_number(self.conn, "bills", SALES_BILL_PREFIX)

    def get(self, bill_id: int) -> SalesBill | None:
        r = self.conn.execute(self._HEADER_SELECT + " WHERE b.bill_id=?", (bill_id,)).fetchone()
        if not r:
            return None
        bill = SalesBill(**dict(r))
        bill.items = self.list_items(bill_id)
        return bill

    def list_items(self, bill_id: int) -> list[SalesLineItem]:
        rows = self.conn.execute(
            """
            SELECT fish_variety_id, fish_variety_name,
                   quantity_crates, quantity_kg, rate_per_crate, rate_per_kg, amount
            FROM bill_items
            WHERE bill_id=?
            ORDER BY item_id
            """,
            (bill_id,),
        ).fetchall()
        return [SalesLineItem(**dict(r)) for r in rows]

    def list_by_date(self, bill_date: str) -> list[SalesBill]:
        rows = self.conn.execute(
            self._HEADER_SELECT + " WHERE b.bill_date=? ORDER BY b.created_at DESC, b.bill_id DESC",
            (bill_date,),
        ).fetchall()
        return [SalesBill(**dict(r)) for r in rows]

    def list_by_customer(self, customer_id: int) -> list[SalesBill]:
        rows = self.conn.execute(
            self._HEADER_SELECT + " WHERE b.customer_id=? ORDER BY b.bill_date DESC, b.bill_id DESC",
            (customer_id,),
        ).fetchall()
        return [SalesBill(**dict(r)) for r in rows]

    def latest_for_customer_on_date(self, customer_id: int, bill_date: str) -> SalesBill | None:
        r = self.conn.execute(
            self._HEADER_SELECT
            + " WHERE b.customer_id=? AND b.bill_date=? ORDER BY b.created_at DESC, b.bill_id DESC LIMIT 1",
            (customer_id, bill_date),
        ).fetchone()
        if not r:
            return None
        bill = SalesBill(**dict(r))
        bill.items = self.list_items(bill.bill_id)
        return bill

    def pending_balance(self, customer_id: int, exclude_bill_id: Optional[int] = None) -> float:
        """
        SUM(total - amount_received) over the customer's pending/partial bills.
        `exclude_bill_id` keeps a bill being edited out of its own previous balance.
        """
        sql = """
            SELECT COALESCE(SUM(total - amount_received), 0.0)
            FROM bills
            WHERE customer_id = ?
              AND payment_status IN ('pending', 'partial')
        """
        params: list[object] = [customer_id]
        if exclude_bill_id is not None:
            sql += " AND bill_id <> ?"
            params.append(exclude_bill_id)
        row = self.conn.execute(sql, params).fetchone()
        return float(row[0] or 0.0)

    def last_rates(self, variety_ids: Iterable[int]) -> dict[int, Rate]:
        """Most recently created line item per variety (ties -> highest item_id)."""
        ids = list(dict.fromkeys(variety_ids))
        if not ids:
            return {}
        placeholders = ",".join("?" for _ in ids)
        rows = self.conn.execute(
            f"""
            SELECT fish_variety_id, rate_per_crate, rate_per_kg
            FROM bill_items
            WHERE fish_variety_id IN ({placeholders})
            ORDER BY created_at DESC, item_id DESC
            """,
            ids,
        ).fetchall()
        rates: dict[int, Rate] = {}
        for r in rows:
            vid = int(r["fish_variety_id"])
            if vid not in rates:
                rates[vid] = Rate(float(r["rate_per_crate"] or 0.0), float(r["rate_per_kg"] or 0.0))
        return rates

    # ---------------------------------------------------------------------
    # WRITE (no commit)
    # ---------------------------------------------------------------------
    def insert_bill(
        self,
        *,
        bill_number: str,
        customer_id: int,
        bill_date: str,
        totals: SalesBillTotals,
        notes: str | None,
    ) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO bills (
                bill_number, customer_id, bill_date,
                subtotal, discount, total, previous_balance, grand_total,
                amount_received, balance_due, payment_status, notes
            ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?)
            """,
            (
                bill_number, customer_id, bill_date,
                totals.subtotal, totals.discount, totals.total,
                totals.previous_balance, totals.grand_total,
                totals.amount_received, totals.balance_due, totals.payment_status,
                notes or None,
            ),
        )
        bill_id = int(cur.lastrowid)
        self._insert_items(bill_id, totals.items)
        return bill_id

    def update_bill(self, bill_id: int, *, totals: SalesBillTotals, notes: str | None) -> None:
        """Header fields + full item rebuild. bill_number, customer and date are untouched."""
        cur = self.conn.execute(
            """
            UPDATE bills
               SET subtotal=?, discount=?, total=?, previous_balance=?, grand_total=?,
                   amount_received=?, balance_due=?, payment_status=?, notes=?
             WHERE bill_id=?
            """,
            (
                totals.subtotal, totals.discount, totals.total,
                totals.previous_balance, totals.grand_total,
                totals.amount_received, totals.balance_due, totals.payment_status,
                notes or None, bill_id,
            ),
        )
        if cur.rowcount == 0:
            raise ValueError(f"Unknown bill_id: {bill_id}")
        self.conn.execute("DELETE FROM bill_items WHERE bill_id=?", (bill_id,))
        self._insert_items(bill_id, totals.items)

    def _insert_items(self, bill_id: int, items: Iterable[SalesLineItem]) -> None:
        self.conn.executemany(
            """
            INSERT INTO bill_items (
                bill_id, fish_variety_id, fish_variety_name,
                quantity_crates, quantity_kg, rate_per_crate, rate_per_kg, amount
            ) VALUES (?,?,?,?,?,?,?,?)
            """,
            [
                (
                    bill_id, it.fish_variety_id, it.fish_variety_name,
                    float(it.quantity_crates or 0.0), float(it.quantity_kg or 0.0),
                    float(it.rate_per_crate or 0.0), float(it.rate_per_kg or 0.0),
                    it.amount,
                )
                for it in items
            ],
        )

    def delete_bill(self, bill_id: int) -> bool:
        # items first, then the header
        self.conn.execute("DELETE FROM bill_items WHERE bill_id=?", (bill_id,))
        cur = self.conn.execute("DELETE FROM bills WHERE bill_id=?", (bill_id,))
        return cur.rowcount > 0
