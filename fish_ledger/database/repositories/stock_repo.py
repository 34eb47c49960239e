from __future__ import annotations
from dataclasses import dataclass
import sqlite3
from typing import Iterable, Optional


@dataclass
class Sale:
    sale_id: int | None
    customer_id: int
    fish_variety_id: int
    quantity_crates: float
    quantity_kg: float
    sale_date: str
    customer_name: str | None = None
    fish_variety_name: str | None = None


@dataclass
class Purchase:
    purchase_id: int | None
    farmer_id: int
    fish_variety_id: int
    quantity_crates: float
    quantity_kg: float
    purchase_date: str
    location: str | None = None
    secondary_name: str | None = None
    farmer_name: str | None = None
    fish_variety_name: str | None = None


def _quantities(crates, kg) -> tuple[float, float]:
    c = float(crates or 0.0)
    k = float(kg or 0.0)
    if c < 0 or k < 0:
        raise ValueError("Quantities cannot be negative.")
    return c, k


class StockRepo:
    """
    Daily sale / purchase ledger (the rows the spreadsheet screens edit).

    Sales are keyed by (customer_id, fish_variety_id, sale_date): add_sale()
    updates the existing row for that key instead of inserting a second one,
    and a zero quantity removes it.
    """

    _SALE_SELECT = """
        SELECT s.sale_id, s.customer_id, s.fish_variety_id,
               CAST(s.quantity_crates AS REAL) AS quantity_crates,
               CAST(s.quantity_kg AS REAL)     AS quantity_kg,
               s.sale_date,
               c.name AS customer_name, v.name AS fish_variety_name
        FROM sales s
        JOIN customers c      ON c.customer_id = s.customer_id
        JOIN fish_varieties v ON v.fish_variety_id = s.fish_variety_id
    """

    _PURCHASE_SELECT = """
        SELECT p.purchase_id, p.farmer_id, p.fish_variety_id,
               CAST(p.quantity_crates AS REAL) AS quantity_crates,
               CAST(p.quantity_kg AS REAL)     AS quantity_kg,
               p.purchase_date, p.location, p.secondary_name,
               f.name AS farmer_name, v.name AS fish_variety_name
        FROM purchases p
        JOIN farmers f        ON f.farmer_id = p.farmer_id
        JOIN fish_varieties v ON v.fish_variety_id = p.fish_variety_id
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---------------------------------------------------------------------
    # SALES
    # ---------------------------------------------------------------------
    def get_sale(self, sale_id: int) -> Sale | None:
        r = self.conn.execute(self._SALE_SELECT + " WHERE s.sale_id=?", (sale_id,)).fetchone()
        return Sale(**dict(r)) if r else None

    def sales_by_date(self, sale_date: str, customer_id: Optional[int] = None) -> list[Sale]:
        sql = self._SALE_SELECT + " WHERE s.sale_date = ?"
        params: list[object] = [sale_date]
        if customer_id is not None:
            sql += " AND s.customer_id = ?"
            params.append(customer_id)
        sql += " ORDER BY s.created_at DESC, s.sale_id DESC"
        return [Sale(**dict(r)) for r in self.conn.execute(sql, params).fetchall()]

    def sales_up_to_date(self, sale_date: str) -> list[Sale]:
        sql = self._SALE_SELECT + " WHERE s.sale_date <= ? ORDER BY s.sale_date DESC, s.sale_id DESC"
        return [Sale(**dict(r)) for r in self.conn.execute(sql, (sale_date,)).fetchall()]

    def sale_rows_for_reconcile(self, sale_date: str) -> list[dict]:
        """Raw (id, key, created_at) rows for a date, newest first; ties -> highest id first."""
        rows = self.conn.execute(
            """
            SELECT sale_id, customer_id, fish_variety_id, created_at
            FROM sales
            WHERE sale_date = ?
            ORDER BY created_at DESC, sale_id DESC
            """,
            (sale_date,),
        ).fetchall()
        return [dict(r) for r in rows]

    def add_sale(
        self,
        customer_id: int,
        fish_variety_id: int,
        quantity_crates: float,
        quantity_kg: float,
        sale_date: str,
    ) -> int | None:
        """
        Upsert by (customer, variety, date).
          - existing row  -> quantities replaced in place
          - no row        -> inserted
          - both zero     -> rows for the key deleted, returns None
        """
        crates, kg = _quantities(quantity_crates, quantity_kg)
        key = (customer_id, fish_variety_id, sale_date)
        with self.conn:
            if crates == 0 and kg == 0:
                self.conn.execute(
                    "DELETE FROM sales WHERE customer_id=? AND fish_variety_id=? AND sale_date=?",
                    key,
                )
                return None

            row = self.conn.execute(
                """
                SELECT sale_id FROM sales
                WHERE customer_id=? AND fish_variety_id=? AND sale_date=?
                ORDER BY created_at DESC, sale_id DESC
                LIMIT 1
                """,
                key,
            ).fetchone()
            if row:
                sale_id = int(row["sale_id"])
                self.conn.execute(
                    "UPDATE sales SET quantity_crates=?, quantity_kg=? WHERE sale_id=?",
                    (crates, kg, sale_id),
                )
                return sale_id

            cur = self.conn.execute(
                """
                INSERT INTO sales(customer_id, fish_variety_id, quantity_crates, quantity_kg, sale_date)
                VALUES (?, ?, ?, ?, ?)
                """,
                (customer_id, fish_variety_id, crates, kg, sale_date),
            )
            return int(cur.lastrowid)

    def update_sale(
        self,
        sale_id: int,
        customer_id: int,
        fish_variety_id: int,
        quantity_crates: float,
        quantity_kg: float,
    ) -> None:
        crates, kg = _quantities(quantity_crates, quantity_kg)
        with self.conn:
            self.conn.execute(
                """
                UPDATE sales
                   SET customer_id=?, fish_variety_id=?, quantity_crates=?, quantity_kg=?
                 WHERE sale_id=?
                """,
                (customer_id, fish_variety_id, crates, kg, sale_id),
            )

    def delete_sale(self, sale_id: int) -> None:
        with self.conn:
            self.conn.execute("DELETE FROM sales WHERE sale_id=?", (sale_id,))

    def delete_sales(self, sale_ids: Iterable[int]) -> int:
        """Delete many rows by id (no implicit commit). Returns rows removed."""
        ids = list(sale_ids)
        if not ids:
            return 0
        placeholders = ",".join("?" for _ in ids)
        cur = self.conn.execute(f"DELETE FROM sales WHERE sale_id IN ({placeholders})", ids)
        return cur.rowcount

    # ---------------------------------------------------------------------
    # PURCHASES
    # ---------------------------------------------------------------------
    def get_purchase(self, purchase_id: int) -> Purchase | None:
        r = self.conn.execute(self._PURCHASE_SELECT + " WHERE p.purchase_id=?", (purchase_id,)).fetchone()
        return Purchase(**dict(r)) if r else None

    def purchases_by_date(self, purchase_date: str, farmer_id: Optional[int] = None) -> list[Purchase]:
        sql = self._PURCHASE_SELECT + " WHERE p.purchase_date = ?"
        params: list[object] = [purchase_date]
        if farmer_id is not None:
            sql += " AND p.farmer_id = ?"
            params.append(farmer_id)
        sql += " ORDER BY p.created_at DESC, p.purchase_id DESC"
        return [Purchase(**dict(r)) for r in self.conn.execute(sql, params).fetchall()]

    def all_purchases(self) -> list[Purchase]:
        sql = self._PURCHASE_SELECT + " ORDER BY p.purchase_date DESC, p.purchase_id DESC"
        return [Purchase(**dict(r)) for r in self.conn.execute(sql).fetchall()]

    def add_purchase(
        self,
        farmer_id: int,
        fish_variety_id: int,
        quantity_crates: float,
        quantity_kg: float,
        purchase_date: str,
        *,
        location: str | None = None,
        secondary_name: str | None = None,
    ) -> int:
        crates, kg = _quantities(quantity_crates, quantity_kg)
        if crates == 0 and kg == 0:
            raise ValueError("Enter crates or kg for the purchase.")
        with self.conn:
            cur = self.conn.execute(
                """
                INSERT INTO purchases(
                    farmer_id, fish_variety_id, quantity_crates, quantity_kg,
                    purchase_date, location, secondary_name
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (farmer_id, fish_variety_id, crates, kg, purchase_date, location or None, secondary_name or None),
            )
        return int(cur.lastrowid)

    def update_purchase(
        self,
        purchase_id: int,
        farmer_id: int,
        fish_variety_id: int,
        quantity_crates: float,
        quantity_kg: float,
    ) -> None:
        crates, kg = _quantities(quantity_crates, quantity_kg)
        with self.conn:
            self.conn.execute(
                """
                UPDATE purchases
                   SET farmer_id=?, fish_variety_id=?, quantity_crates=?, quantity_kg=?
                 WHERE purchase_id=?
                """,
                (farmer_id, fish_variety_id, crates, kg, purchase_id),
            )

    def delete_purchase(self, purchase_id: int) -> None:
        with self.conn:
            self.conn.execute("DELETE FROM purchases WHERE purchase_id=?", (purchase_id,))
