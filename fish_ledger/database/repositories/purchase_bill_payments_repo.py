from __future__ import annotations
from dataclasses import dataclass
import sqlite3
from typing import Optional


@dataclass
class PurchaseBillPayment:
    payment_id: int
    purchase_bill_id: int
    payment_date: str
    amount: float
    payment_mode: str
    notes: str | None
    created_at: str


class PurchaseBillPaymentsRepo:
    """
    Payments made to a farmer against one purchase bill.

    The header's amount_paid is never incremented in place: after every insert
    it is recomputed as SUM(amount) over the bill's payment rows, and
    balance_due / payment_status are derived from that sum. No commit here.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def record_payment(
        self,
        purchase_bill_id: int,
        *,
        amount: float,
        payment_date: str,
        mode: str = "cash",
        notes: Optional[str] = None,
    ) -> int:
        exists = self.conn.execute(
            "SELECT 1 FROM purchase_bills WHERE purchase_bill_id=?", (purchase_bill_id,)
        ).fetchone()
        if not exists:
            raise ValueError(f"Purchase bill not found: {purchase_bill_id}")

        cur = self.conn.execute(
            """
            INSERT INTO purchase_bill_payments (purchase_bill_id, payment_date, amount, payment_mode, notes)
            VALUES (?, ?, ?, ?, ?)
            """,
            (purchase_bill_id, payment_date, float(amount), mode.lower(), notes or None),
        )
        payment_id = int(cur.lastrowid)
        self.refresh_header(purchase_bill_id)

        self.conn.execute(
            """
            INSERT INTO audit_logs (action_type, table_name, record_id, details)
            VALUES (?, ?, ?, ?)
            """,
            (
                "payment",
                "purchase_bill_payments",
                str(payment_id),
                f"Recorded payment of {float(amount):g} by {mode.lower()}. Purchase bill ID: {purchase_bill_id}",
            ),
        )
        return payment_id

    def refresh_header(self, purchase_bill_id: int) -> None:
        """amount_paid := SUM(payments); balance and status follow."""
        paid = self.total_paid(purchase_bill_id)
        self.conn.execute(
            """
            UPDATE purchase_bills
               SET amount_paid = ?,
                   balance_due = total - ?,
                   payment_status = CASE
                       WHEN ? >= total THEN 'paid'
                       WHEN ? > 0 THEN 'partial'
                       ELSE 'pending' END
             WHERE purchase_bill_id = ?
            """,
            (paid, paid, paid, paid, purchase_bill_id),
        )

    def total_paid(self, purchase_bill_id: int) -> float:
        row = self.conn.execute(
            "SELECT COALESCE(SUM(amount), 0.0) FROM purchase_bill_payments WHERE purchase_bill_id=?",
            (purchase_bill_id,),
        ).fetchone()
        return float(row[0] or 0.0)

    def list_payments(self, purchase_bill_id: int) -> list[PurchaseBillPayment]:
        """Newest payment first (payment_date DESC, then id DESC)."""
        rows = self.conn.execute(
            """
            SELECT payment_id, purchase_bill_id, payment_date,
                   CAST(amount AS REAL) AS amount, payment_mode, notes, created_at
            FROM purchase_bill_payments
            WHERE purchase_bill_id = ?
            ORDER BY DATE(payment_date) DESC, payment_id DESC
            """,
            (purchase_bill_id,),
        ).fetchall()
        return [PurchaseBillPayment(**dict(r)) for r in rows]

    def list_payments_for_farmer(
        self,
        farmer_id: int,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> list[dict]:
        sql_parts = [
            """
            SELECT p.payment_id, p.payment_date, CAST(p.amount AS REAL) AS amount,
                   p.payment_mode, p.notes, p.purchase_bill_id, pb.bill_number
            FROM purchase_bill_payments p
            JOIN purchase_bills pb ON pb.purchase_bill_id = p.purchase_bill_id
            WHERE pb.farmer_id = ?
            """
        ]
        params: list[object] = [farmer_id]
        if date_from:
            sql_parts.append("AND DATE(p.payment_date) >= DATE(?)")
            params.append(date_from)
        if date_to:
            sql_parts.append("AND DATE(p.payment_date) <= DATE(?)")
            params.append(date_to)
        sql_parts.append("ORDER BY DATE(p.payment_date) DESC, p.payment_id DESC")
        return [dict(r) for r in self.conn.execute("\n".join(sql_parts), params).fetchall()]
