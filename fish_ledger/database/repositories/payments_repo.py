from __future__ import annotations
from dataclasses import dataclass
import sqlite3
from typing import Optional

from ...utils.helpers import month_bounds
from .customers_repo import DomainError


@dataclass
class CustomerPayment:
    payment_id: int | None
    amount: float
    payment_date: str
    customer_id: int | None = None
    received_from: str | None = None
    payment_method: str = "Cash"
    reference_number: str | None = None
    notes: str | None = None
    customer_name: str | None = None


class PaymentsRepo:
    """
    Cash received from customers, independent of any bill.

    A payment names either a customer or a free-text `received_from`.
    Writes commit immediately.
    """

    _SELECT = """
        SELECT p.payment_id, CAST(p.amount AS REAL) AS amount, p.payment_date,
               p.customer_id, p.received_from, p.payment_method,
               p.reference_number, p.notes,
               c.name AS customer_name
        FROM payments p
        LEFT JOIN customers c ON c.customer_id = p.customer_id
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def _normalize(self, p: CustomerPayment) -> CustomerPayment:
        try:
            amount = float(p.amount)
        except (TypeError, ValueError) as e:
            raise DomainError("Amount must be a number.") from e
        if amount <= 0:
            raise DomainError("Amount must be greater than zero.")
        received_from = (p.received_from or "").strip() or None
        if p.customer_id is None and not received_from:
            raise DomainError("Select a customer or enter who paid.")
        if not p.payment_date:
            raise DomainError("Payment date is required.")
        return CustomerPayment(
            payment_id=p.payment_id,
            amount=amount,
            payment_date=p.payment_date,
            customer_id=p.customer_id,
            received_from=received_from,
            payment_method=(p.payment_method or "Cash").strip() or "Cash",
            reference_number=(p.reference_number or "").strip() or None,
            notes=(p.notes or "").strip() or None,
        )

    # ---------------------------------------------------------------------
    # WRITE
    # ---------------------------------------------------------------------
    def add(self, payment: CustomerPayment) -> int:
        p = self._normalize(payment)
        cur = self.conn.execute(
            """
            INSERT INTO payments(customer_id, received_from, amount, payment_method,
                                 reference_number, notes, payment_date)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (p.customer_id, p.received_from, p.amount, p.payment_method,
             p.reference_number, p.notes, p.payment_date),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def update(self, payment: CustomerPayment) -> None:
        if not payment.payment_id:
            raise DomainError("payment_id is required for update.")
        p = self._normalize(payment)
        self.conn.execute(
            """
            UPDATE payments
               SET customer_id=?, received_from=?, amount=?, payment_method=?,
                   reference_number=?, notes=?, payment_date=?
             WHERE payment_id=?
            """,
            (p.customer_id, p.received_from, p.amount, p.payment_method,
             p.reference_number, p.notes, p.payment_date, p.payment_id),
        )
        self.conn.commit()

    def delete(self, payment_id: int) -> None:
        self.conn.execute("DELETE FROM payments WHERE payment_id=?", (payment_id,))
        self.conn.commit()

    # ---------------------------------------------------------------------
    # READ
    # ---------------------------------------------------------------------
    def get(self, payment_id: int) -> CustomerPayment | None:
        r = self.conn.execute(self._SELECT + " WHERE p.payment_id=?", (payment_id,)).fetchone()
        return CustomerPayment(**dict(r)) if r else None

    def payments_by_date(self, payment_date: str) -> list[CustomerPayment]:
        rows = self.conn.execute(
            self._SELECT + " WHERE p.payment_date=? ORDER BY p.created_at DESC, p.payment_id DESC",
            (payment_date,),
        ).fetchall()
        return [CustomerPayment(**dict(r)) for r in rows]

    def payments_by_date_range(
        self, date_from: str, date_to: str, customer_id: Optional[int] = None
    ) -> list[CustomerPayment]:
        sql = self._SELECT + " WHERE p.payment_date >= ? AND p.payment_date <= ?"
        params: list[object] = [date_from, date_to]
        if customer_id is not None:
            sql += " AND p.customer_id = ?"
            params.append(customer_id)
        sql += " ORDER BY p.payment_date DESC, p.payment_id DESC"
        return [CustomerPayment(**dict(r)) for r in self.conn.execute(sql, params).fetchall()]

    def _by_method(self, date_from: str, date_to: str) -> list[dict]:
        rows = self.conn.execute(
            """
            SELECT payment_method,
                   CAST(COALESCE(SUM(amount), 0) AS REAL) AS total,
                   COUNT(*) AS count
            FROM payments
            WHERE payment_date >= ? AND payment_date <= ?
            GROUP BY payment_method
            ORDER BY total DESC, payment_method
            """,
            (date_from, date_to),
        ).fetchall()
        return [dict(r) for r in rows]

    def summary_by_date(self, payment_date: str) -> dict:
        """{'total', 'count', 'by_method': [{payment_method, total, count}, ...]} (largest method first)."""
        row = self.conn.execute(
            """
            SELECT CAST(COALESCE(SUM(amount), 0) AS REAL) AS total, COUNT(*) AS count
            FROM payments
            WHERE payment_date = ?
            """,
            (payment_date,),
        ).fetchone()
        return {
            "total": float(row["total"] or 0.0),
            "count": int(row["count"] or 0),
            "by_method": self._by_method(payment_date, payment_date),
        }

    def monthly_summary(self, year: int, month: int) -> dict:
        """{'total', 'count', 'by_method', 'by_day': [{payment_date, total}, ...] ascending}."""
        date_from, date_to = month_bounds(year, month)
        by_day = [
            dict(r)
            for r in self.conn.execute(
                """
                SELECT payment_date, CAST(SUM(amount) AS REAL) AS total
                FROM payments
                WHERE payment_date >= ? AND payment_date <= ?
                GROUP BY payment_date
                ORDER BY payment_date
                """,
                (date_from, date_to),
            ).fetchall()
        ]
        by_method = self._by_method(date_from, date_to)
        return {
            "total": sum(d["total"] for d in by_day),
            "count": sum(m["count"] for m in by_method),
            "by_method": by_method,
            "by_day": by_day,
        }
