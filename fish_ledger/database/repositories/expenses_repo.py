from __future__ import annotations

"""
Repository for expenses and expense categories.

Schema reference (see `database/schema.py`):

CREATE TABLE expense_categories (
    category_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT UNIQUE NOT NULL,
    icon        TEXT NOT NULL DEFAULT 'more',
    color       TEXT NOT NULL DEFAULT '#6b7280'
);

CREATE TABLE expenses (
    expense_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    category_id    INTEGER,
    amount         REAL NOT NULL CHECK (amount >= 0),
    description    TEXT,
    payment_method TEXT,
    paid_to        TEXT,
    expense_date   DATE NOT NULL,
    ...
);

The default categories are inserted by `database/seeders/default_data.py` the
first time a connection is opened on an empty table.
"""

import sqlite3
from dataclasses import dataclass
from typing import Optional, List, Dict

from ...utils.helpers import month_bounds


class DomainError(Exception):
    """Domain-level error raised for validation issues."""
    pass


@dataclass
class ExpenseCategory:
    category_id: int | None
    name: str
    icon: str = "more"
    color: str = "#6b7280"


@dataclass
class Expense:
    expense_id: int | None
    category_id: int | None
    amount: float
    expense_date: str
    description: str | None = None
    payment_method: str | None = None
    paid_to: str | None = None
    category_name: str | None = None


class ExpensesRepo:
    """
    CRUD for expense categories and expenses, plus per-category totals.
    Writes commit immediately.
    """

    _EXPENSE_SELECT = """
        SELECT e.expense_id,
               e.category_id,
               CAST(e.amount AS REAL) AS amount,
               e.expense_date,
               e.description,
               e.payment_method,
               e.paid_to,
               c.name AS category_name
        FROM expenses e
        LEFT JOIN expense_categories c ON c.category_id = e.category_id
    """

    def __init__(self, conn: sqlite3.Connection):
        # ensure rows behave like dicts/tuples
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ------------------------------------------------------------------
    # Category operations
    # ------------------------------------------------------------------

    def list_categories(self) -> List[ExpenseCategory]:
        """Return all expense categories ordered by name."""
        rows = self.conn.execute(
            "SELECT category_id, name, icon, color FROM expense_categories ORDER BY name"
        ).fetchall()
        return [ExpenseCategory(**dict(r)) for r in rows]

    def create_category(self, name: str, icon: str = "more", color: str = "#6b7280") -> int:
        """
        Insert a new expense category. Raises DomainError if the name is blank
        or already taken. Returns the new category_id.
        """
        if not name or not name.strip():
            raise DomainError("Name cannot be empty.")
        try:
            cur = self.conn.execute(
                "INSERT INTO expense_categories(name, icon, color) VALUES (?, ?, ?)",
                (name.strip(), icon or "more", color or "#6b7280"),
            )
            self.conn.commit()
        except sqlite3.IntegrityError as e:
            self.conn.rollback()
            raise DomainError(f"Category '{name.strip()}' already exists.") from e
        return int(cur.lastrowid)

    def update_category(self, category_id: int, name: str, icon: str | None = None, color: str | None = None) -> None:
        if not name or not name.strip():
            raise DomainError("Name cannot be empty.")
        self.conn.execute(
            """
            UPDATE expense_categories
               SET name = ?, icon = COALESCE(?, icon), color = COALESCE(?, color)
             WHERE category_id = ?
            """,
            (name.strip(), icon, color, category_id),
        )
        self.conn.commit()

    def delete_category(self, category_id: int) -> None:
        """Remove a category. Translate FK violations into a domain error."""
        try:
            self.conn.execute(
                "DELETE FROM expense_categories WHERE category_id=?",
                (category_id,),
            )
            self.conn.commit()
        except sqlite3.IntegrityError as e:
            self.conn.rollback()
            # category is referenced by existing expenses
            raise DomainError(
                "Cannot delete a category that is used by existing expenses."
            ) from e

    # ------------------------------------------------------------------
    # Expense operations
    # ------------------------------------------------------------------

    def get_expense(self, expense_id: int) -> Expense | None:
        row = self.conn.execute(
            self._EXPENSE_SELECT + " WHERE e.expense_id = ?", (expense_id,)
        ).fetchone()
        return Expense(**dict(row)) if row else None

    def expenses_by_date(self, expense_date: str) -> List[Expense]:
        rows = self.conn.execute(
            self._EXPENSE_SELECT + " WHERE e.expense_date = ? ORDER BY e.created_at DESC, e.expense_id DESC",
            (expense_date,),
        ).fetchall()
        return [Expense(**dict(r)) for r in rows]

    def expenses_by_date_range(
        self,
        date_from: str,
        date_to: str,
        category_id: Optional[int] = None,
    ) -> List[Expense]:
        """Inclusive range, newest first."""
        sql = self._EXPENSE_SELECT + " WHERE e.expense_date >= ? AND e.expense_date <= ?"
        params: List = [date_from, date_to]
        if category_id is not None:
            sql += " AND e.category_id = ?"
            params.append(category_id)
        sql += " ORDER BY e.expense_date DESC, e.expense_id DESC"
        return [Expense(**dict(r)) for r in self.conn.execute(sql, params).fetchall()]

    def create_expense(self, expense: Expense) -> int:
        """`amount` must be non-negative. Returns the new expense_id."""
        amount = self._amount(expense.amount)
        cur = self.conn.execute(
            """
            INSERT INTO expenses(category_id, amount, description, payment_method, paid_to, expense_date)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                expense.category_id,
                amount,
                (expense.description or "").strip() or None,
                expense.payment_method or None,
                (expense.paid_to or "").strip() or None,
                expense.expense_date,
            ),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def update_expense(self, expense: Expense) -> None:
        if not expense.expense_id:
            raise DomainError("expense_id is required for update.")
        amount = self._amount(expense.amount)
        self.conn.execute(
            """
            UPDATE expenses
               SET category_id = ?, amount = ?, description = ?,
                   payment_method = ?, paid_to = ?, expense_date = ?
             WHERE expense_id = ?
            """,
            (
                expense.category_id,
                amount,
                (expense.description or "").strip() or None,
                expense.payment_method or None,
                (expense.paid_to or "").strip() or None,
                expense.expense_date,
                expense.expense_id,
            ),
        )
        self.conn.commit()

    def delete_expense(self, expense_id: int) -> None:
        self.conn.execute("DELETE FROM expenses WHERE expense_id = ?", (expense_id,))
        self.conn.commit()

    def total_by_category(self, date_from: Optional[str] = None, date_to: Optional[str] = None) -> List[Dict]:
        """
        Total spent in each category, optionally limited to a date range.

        Includes categories with no expenses (total = 0.0). Ordered by
        category name with keys: category_id, category_name, total_amount.
        """
        join_filter = ""
        params: List = []
        if date_from:
            join_filter += " AND e.expense_date >= ?"
            params.append(date_from)
        if date_to:
            join_filter += " AND e.expense_date <= ?"
            params.append(date_to)
        rows = self.conn.execute(
            f"""
            SELECT c.category_id,
                   c.name AS category_name,
                   CAST(COALESCE(SUM(e.amount), 0) AS REAL) AS total_amount
            FROM expense_categories c
            LEFT JOIN expenses e ON e.category_id = c.category_id{join_filter}
            GROUP BY c.category_id
            ORDER BY c.name
            """,
            params,
        ).fetchall()
        return [dict(r) for r in rows]

    # ---- Summaries ----------------------------------------------------------

    def _by_category(self, date_from: str, date_to: str) -> List[Dict]:
        rows = self.conn.execute(
            """
            SELECT e.category_id,
                   COALESCE(c.name, 'Unknown')  AS category_name,
                   COALESCE(c.color, '#6b7280') AS category_color,
                   CAST(SUM(e.amount) AS REAL)  AS total,
                   COUNT(*)                     AS count
            FROM expenses e
            LEFT JOIN expense_categories c ON c.category_id = e.category_id
            WHERE e.expense_date >= ? AND e.expense_date <= ?
            GROUP BY e.category_id
            ORDER BY total DESC, category_name
            """,
            (date_from, date_to),
        ).fetchall()
        return [dict(r) for r in rows]

    def summary_by_date(self, expense_date: str) -> Dict:
        """{'total', 'count', 'by_category': [{category_id, category_name, category_color, total, count}, ...]} (largest first)."""
        by_category = self._by_category(expense_date, expense_date)
        return {
            "total": sum(c["total"] for c in by_category),
            "count": sum(c["count"] for c in by_category),
            "by_category": by_category,
        }

    def monthly_summary(self, year: int, month: int) -> Dict:
        """Like summary_by_date over a calendar month, plus 'by_day': [{expense_date, total}, ...] ascending."""
        date_from, date_to = month_bounds(year, month)
        by_day = [
            dict(r)
            for r in self.conn.execute(
                """
                SELECT expense_date, CAST(SUM(amount) AS REAL) AS total
                FROM expenses
                WHERE expense_date >= ? AND expense_date <= ?
                GROUP BY expense_date
                ORDER BY expense_date
                """,
                (date_from, date_to),
            ).fetchall()
        ]
        by_category = self._by_category(date_from, date_to)
        return {
            "total": sum(d["total"] for d in by_day),
            "count": sum(c["count"] for c in by_category),
            "by_category": by_category,
            "by_day": by_day,
        }

    @staticmethod
    def _amount(value) -> float:
        try:
            amount = float(value)
        except (TypeError, ValueError) as e:
            raise DomainError("Amount must be a number.") from e
        if amount < 0:
            raise DomainError("Amount must be non-negative.")
        return amount
