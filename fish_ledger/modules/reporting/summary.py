# fish_ledger/modules/reporting/summary.py
from __future__ import annotations

import sqlite3
from typing import Any, Dict, List, Optional, Tuple

from ...utils.helpers import month_bounds


def _to_float(x: Optional[Any]) -> float:
    try:
        return float(x or 0.0)
    except (TypeError, ValueError):
        return 0.0


class SummaryRepo:
    """
    Read-only aggregates for the daily / monthly summary.

    Dates are ISO 'YYYY-MM-DD' text and compared directly so the date
    indexes stay usable. Bill figures are by bill_date; payments and
    expenses by their own dates.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def daily_summary(self, day: str) -> Dict[str, Any]:
        out = self._range_summary(day, day)
        out["date"] = day
        return out

    def monthly_summary(self, year: int, month: int) -> Dict[str, Any]:
        date_from, date_to = month_bounds(year, month)
        out = self._range_summary(date_from, date_to)
        out.update(date_from=date_from, date_to=date_to, by_day=self._sales_by_day(date_from, date_to))
        return out

    # ------------------------------- Pieces --------------------------------

    def _range_summary(self, date_from: str, date_to: str) -> Dict[str, Any]:
        rng = (date_from, date_to)
        sales_billed = _to_float(self._scalar(
            "SELECT COALESCE(SUM(total), 0.0) AS v FROM bills WHERE bill_date >= ? AND bill_date <= ?", rng))
        received_on_bills = _to_float(self._scalar(
            "SELECT COALESCE(SUM(amount_received), 0.0) AS v FROM bills WHERE bill_date >= ? AND bill_date <= ?", rng))
        purchases_billed = _to_float(self._scalar(
            "SELECT COALESCE(SUM(total), 0.0) AS v FROM purchase_bills WHERE bill_date >= ? AND bill_date <= ?", rng))
        paid_to_farmers = _to_float(self._scalar(
            """
            SELECT COALESCE(SUM(amount), 0.0) AS v
            FROM purchase_bill_payments
            WHERE payment_date >= ? AND payment_date <= ?
            """, rng))
        cash_received = _to_float(self._scalar(
            "SELECT COALESCE(SUM(amount), 0.0) AS v FROM payments WHERE payment_date >= ? AND payment_date <= ?", rng))
        expenses = _to_float(self._scalar(
            "SELECT COALESCE(SUM(amount), 0.0) AS v FROM expenses WHERE expense_date >= ? AND expense_date <= ?", rng))

        sold = self.conn.execute(
            """
            SELECT COALESCE(SUM(quantity_crates), 0.0) AS crates, COALESCE(SUM(quantity_kg), 0.0) AS kg
            FROM sales WHERE sale_date >= ? AND sale_date <= ?
            """, rng).fetchone()
        bought = self.conn.execute(
            """
            SELECT COALESCE(SUM(quantity_crates), 0.0) AS crates, COALESCE(SUM(quantity_kg), 0.0) AS kg
            FROM purchases WHERE purchase_date >= ? AND purchase_date <= ?
            """, rng).fetchone()

        return {
            "sales_billed": sales_billed,
            "received_on_bills": received_on_bills,
            "purchases_billed": purchases_billed,
            "paid_to_farmers": paid_to_farmers,
            "cash_received": cash_received,
            "expenses": expenses,
            "net_cash": received_on_bills + cash_received - paid_to_farmers - expenses,
            "crates_sold": _to_float(sold["crates"]),
            "kg_sold": _to_float(sold["kg"]),
            "crates_purchased": _to_float(bought["crates"]),
            "kg_purchased": _to_float(bought["kg"]),
        }

    def _sales_by_day(self, date_from: str, date_to: str) -> List[Dict[str, Any]]:
        rows = self.conn.execute(
            """
            SELECT bill_date AS date,
                   CAST(SUM(total) AS REAL) AS sales_billed,
                   COUNT(*) AS bills
            FROM bills
            WHERE bill_date >= ? AND bill_date <= ?
            GROUP BY bill_date
            ORDER BY bill_date
            """,
            (date_from, date_to),
        ).fetchall()
        return [dict(r) for r in rows]

    # ------------------------------- Helpers --------------------------------

    def _scalar(self, sql: str, params: Tuple[Any, ...] | List[Any] | None = None, *, alias: str = "v") -> Any:
        row = self.conn.execute(sql, params or []).fetchone()
        if row is None:
            return None
        return row[alias]
