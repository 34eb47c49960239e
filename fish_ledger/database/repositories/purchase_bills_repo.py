from __future__ import annotations
from dataclasses import dataclass, field
import sqlite3
from typing import Iterable, Optional

from ...constants import PURCHASE_BILL_PREFIX
from ...modules.billing.calculations import status_from_paid
from ...modules.billing.drafts import Deduction, PurchaseBillTotals, PurchaseLineItem
from .bills_repo import next_bill_number
from .purchase_bill_payments_repo import PurchaseBillPayment


@dataclass
class PurchaseBill:
    purchase_bill_id: int
    bill_number: str
    farmer_id: int
    bill_date: str
    location: str | None
    secondary_name: str | None
    gross_amount: float
    weight_deduction_pct: float
    weight_deduction_amount: float
    subtotal: float
    total_billable_weight: float
    commission_per_kg: float
    commission_amount: float
    other_deductions_total: float
    total: float
    amount_paid: float
    balance_due: float
    payment_status: str
    notes: str | None
    created_at: str
    farmer_name: str | None = None
    items: list[PurchaseLineItem] = field(default_factory=list)
    other_deductions: list[Deduction] = field(default_factory=list)
    payments: list[PurchaseBillPayment] = field(default_factory=list)


class PurchaseBillsRepo:
    """
    Purchase bills (purchase_bills + purchase_bill_items + purchase_bill_deductions).

    Header writes never touch amount_paid: it is owned by
    PurchaseBillPaymentsRepo, which recomputes it from the payment rows.
    Write helpers do NOT commit.
    """

    _HEADER_SELECT = """
        SELECT pb.purchase_bill_id, pb.bill_number, pb.farmer_id, pb.bill_date,
               pb.location, pb.secondary_name,
               pb.gross_amount, pb.weight_deduction_pct, pb.weight_deduction_amount,
               pb.subtotal, pb.total_billable_weight, pb.commission_per_kg, pb.commission_amount,
               pb.other_deductions_total, pb.total, pb.amount_paid, pb.balance_due,
               pb.payment_status, pb.notes, pb.created_at,
               f.name AS farmer_name
        FROM purchase_bills pb
        JOIN farmers f ON f.farmer_id = pb.farmer_id
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---------------------------------------------------------------------
    # READ
    # ---------------------------------------------------------------------
    def next_bill_number(self) -> str:
        return next_bill_number(self.conn, "purchase_bills", PURCHASE_BILL_PREFIX)

    def get(self, purchase_bill_id: int) -> PurchaseBill | None:
        r = self.conn.execute(
            self._HEADER_SELECT + " WHERE pb.purchase_bill_id=?", (purchase_bill_id,)
        ).fetchone()
        if not r:
            return None
        bill = PurchaseBill(**dict(r))
        bill.items = self.list_items(purchase_bill_id)
        bill.other_deductions = self.list_deductions(purchase_bill_id)
        return bill

    def get_header(self, purchase_bill_id: int) -> PurchaseBill | None:
        r = self.conn.execute(
            self._HEADER_SELECT + " WHERE pb.purchase_bill_id=?", (purchase_bill_id,)
        ).fetchone()
        return PurchaseBill(**dict(r)) if r else None

    def list_items(self, purchase_bill_id: int) -> list[PurchaseLineItem]:
        rows = self.conn.execute(
            """
            SELECT fish_variety_id, fish_variety_name, quantity_crates, quantity_kg,
                   rate_per_kg, crate_weight, apply_deduction,
                   actual_weight, billable_weight, amount
            FROM purchase_bill_items
            WHERE purchase_bill_id=?
            ORDER BY item_id
            """,
            (purchase_bill_id,),
        ).fetchall()
        out = []
        for r in rows:
            d = dict(r)
            d["apply_deduction"] = bool(d["apply_deduction"])
            out.append(PurchaseLineItem(**d))
        return out

    def list_deductions(self, purchase_bill_id: int) -> list[Deduction]:
        rows = self.conn.execute(
            """
            SELECT label, amount
            FROM purchase_bill_deductions
            WHERE purchase_bill_id=?
            ORDER BY deduction_id
            """,
            (purchase_bill_id,),
        ).fetchall()
        return [Deduction(r["label"], float(r["amount"])) for r in rows]

    def list_by_date(self, bill_date: str) -> list[PurchaseBill]:
        rows = self.conn.execute(
            self._HEADER_SELECT + " WHERE pb.bill_date=? ORDER BY pb.created_at DESC, pb.purchase_bill_id DESC",
            (bill_date,),
        ).fetchall()
        return [PurchaseBill(**dict(r)) for r in rows]

    def list_by_farmer(self, farmer_id: int) -> list[PurchaseBill]:
        rows = self.conn.execute(
            self._HEADER_SELECT + " WHERE pb.farmer_id=? ORDER BY pb.bill_date DESC, pb.purchase_bill_id DESC",
            (farmer_id,),
        ).fetchall()
        return [PurchaseBill(**dict(r)) for r in rows]

    def pending_balance(self, farmer_id: int, exclude_bill_id: Optional[int] = None) -> float:
        """What the business still owes a farmer across pending/partial bills."""
        sql = """
            SELECT COALESCE(SUM(total - amount_paid), 0.0)
            FROM purchase_bills
            WHERE farmer_id = ?
              AND payment_status IN ('pending', 'partial')
        """
        params: list[object] = [farmer_id]
        if exclude_bill_id is not None:
            sql += " AND purchase_bill_id <> ?"
            params.append(exclude_bill_id)
        row = self.conn.execute(sql, params).fetchone()
        return float(row[0] or 0.0)

    def last_rates(self, variety_ids: Iterable[int]) -> dict[int, float]:
        """variety -> rate_per_kg of its most recent purchase line (ties -> highest item_id)."""
        ids = list(dict.fromkeys(variety_ids))
        if not ids:
            return {}
        placeholders = ",".join("?" for _ in ids)
        rows = self.conn.execute(
            f"""
            SELECT fish_variety_id, rate_per_kg
            FROM purchase_bill_items
            WHERE fish_variety_id IN ({placeholders})
            ORDER BY created_at DESC, item_id DESC
            """,
            ids,
        ).fetchall()
        rates: dict[int, float] = {}
        for r in rows:
            rates.setdefault(int(r["fish_variety_id"]), float(r["rate_per_kg"] or 0.0))
        return rates

    # ---------------------------------------------------------------------
    # WRITE (no commit)
    # ---------------------------------------------------------------------
    def insert_bill(
        self,
        *,
        bill_number: str,
        farmer_id: int,
        bill_date: str,
        totals: PurchaseBillTotals,
        notes: str | None,
        location: str | None = None,
        secondary_name: str | None = None,
    ) -> int:
        """Header starts unpaid; payments are added afterwards."""
        cur = self.conn.execute(
            """
            INSERT INTO purchase_bills (
                bill_number, farmer_id, bill_date, location, secondary_name,
                gross_amount, weight_deduction_pct, weight_deduction_amount, subtotal,
                total_billable_weight, commission_per_kg, commission_amount,
                other_deductions_total, total, amount_paid, balance_due, payment_status, notes
            ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
            """,
            (
                bill_number, farmer_id, bill_date, location or None, secondary_name or None,
                totals.gross_amount, totals.weight_deduction_pct, totals.weight_deduction_amount,
                totals.subtotal, totals.total_billable_weight, totals.commission_per_kg,
                totals.commission_amount, totals.other_deductions_total, totals.total,
                0.0, totals.total, status_from_paid(totals.total, 0.0),
                notes or None,
            ),
        )
        bill_id = int(cur.lastrowid)
        self._insert_items(bill_id, totals.items)
        self._insert_deductions(bill_id, totals.other_deductions)
        return bill_id

    def update_bill(self, purchase_bill_id: int, *, totals: PurchaseBillTotals, notes: str | None) -> None:
        """
        Replace computed fields, items and deductions. amount_paid is kept;
        balance_due and payment_status are derived from it again in SQL.
        """
        cur = self.conn.execute(
            """
            UPDATE purchase_bills
               SET gross_amount=?, weight_deduction_pct=?, weight_deduction_amount=?,
                   subtotal=?, total_billable_weight=?, commission_per_kg=?, commission_amount=?,
                   other_deductions_total=?, total=?,
                   balance_due = ? - amount_paid,
                   payment_status = CASE
                       WHEN amount_paid >= ? THEN 'paid'
                       WHEN amount_paid > 0 THEN 'partial'
                       ELSE 'pending' END,
                   notes=?
             WHERE purchase_bill_id=?
            """,
            (
                totals.gross_amount, totals.weight_deduction_pct, totals.weight_deduction_amount,
                totals.subtotal, totals.total_billable_weight, totals.commission_per_kg,
                totals.commission_amount, totals.other_deductions_total, totals.total,
                totals.total, totals.total,
                notes or None, purchase_bill_id,
            ),
        )
        if cur.rowcount == 0:
            raise ValueError(f"Unknown purchase_bill_id: {purchase_bill_id}")
        self.conn.execute("DELETE FROM purchase_bill_items WHERE purchase_bill_id=?", (purchase_bill_id,))
        self.conn.execute("DELETE FROM purchase_bill_deductions WHERE purchase_bill_id=?", (purchase_bill_id,))
        self._insert_items(purchase_bill_id, totals.items)
        self._insert_deductions(purchase_bill_id, totals.other_deductions)

    def update_location_and_name(
        self, purchase_bill_id: int, location: str | None, secondary_name: str | None
    ) -> bool:
        cur = self.conn.execute(
            "UPDATE purchase_bills SET location=?, secondary_name=? WHERE purchase_bill_id=?",
            (location or None, secondary_name or None, purchase_bill_id),
        )
        return cur.rowcount > 0

    def _insert_items(self, purchase_bill_id: int, items: Iterable[PurchaseLineItem]) -> None:
        self.conn.executemany(
            """
            INSERT INTO purchase_bill_items (
                purchase_bill_id, fish_variety_id, fish_variety_name,
                quantity_crates, quantity_kg, crate_weight, actual_weight,
                apply_deduction, billable_weight, rate_per_kg, amount
            ) VALUES (?,?,?,?,?,?,?,?,?,?,?)
            """,
            [
                (
                    purchase_bill_id, it.fish_variety_id, it.fish_variety_name,
                    float(it.quantity_crates or 0.0), float(it.quantity_kg or 0.0),
                    float(it.crate_weight), it.actual_weight,
                    1 if it.apply_deduction else 0, it.billable_weight,
                    float(it.rate_per_kg or 0.0), it.amount,
                )
                for it in items
            ],
        )

    def _insert_deductions(self, purchase_bill_id: int, deductions: Iterable[Deduction]) -> None:
        self.conn.executemany(
            "INSERT INTO purchase_bill_deductions (purchase_bill_id, label, amount) VALUES (?,?,?)",
            [(purchase_bill_id, d.label.strip(), float(d.amount)) for d in deductions],
        )

    def delete_bill(self, purchase_bill_id: int) -> bool:
        # children first, then the header
        for table in ("purchase_bill_payments", "purchase_bill_deductions", "purchase_bill_items"):
            self.conn.execute(f"DELETE FROM {table} WHERE purchase_bill_id=?", (purchase_bill_id,))
        cur = self.conn.execute("DELETE FROM purchase_bills WHERE purchase_bill_id=?", (purchase_bill_id,))
        return cur.rowcount > 0

