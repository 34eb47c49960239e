from __future__ import annotations

import logging
import sqlite3
from typing import Iterable, Optional

from ...database.repositories.bills_repo import BillsRepo, SalesBill
from ...database.repositories.stock_repo import StockRepo
from ...utils.helpers import fmt_money
from .calculations import compute_sales_bill
from .drafts import SalesBillDraft, SalesBillTotals, SalesLineItem
from .rate_resolver import RateResolver
from .validation import raise_if_invalid, validate_sales_bill

_log = logging.getLogger(__name__)


class SalesBillService:
    """
    Customer (sales) bills: numbering, previous balance, persistence.

    Writes validate first and raise BillValidationError before touching the
    database; header and items are then written in one transaction, and any
    sqlite3.Error propagates. Reads log store failures and return an empty
    result instead.
    """

    def __init__(self, conn: sqlite3.Connection, logger: Optional[logging.Logger] = None):
        self.conn = conn
        self.bills = BillsRepo(conn)
        self.stock = StockRepo(conn)
        self.rates = RateResolver(conn)
        self._log = logger or _log

    # ---------------------------------------------------------------------
    # Drafting
    # ---------------------------------------------------------------------
    def draft_from_sales(self, customer_id: int, bill_date: str) -> SalesBillDraft:
        """
        One line per variety the customer took on `bill_date` (quantities of
        repeated rows are summed), rates pre-filled from the last bill that
        used the variety, previous balance from the customer's open bills.
        """
        try:
            sales = self.stock.sales_by_date(bill_date, customer_id=customer_id)
        except sqlite3.Error:
            self._log.exception("Failed to load sales for customer %s on %s", customer_id, bill_date)
            sales = []

        grouped: dict[int, dict] = {}
        for s in reversed(sales):   # oldest first keeps a stable item order
            g = grouped.setdefault(
                s.fish_variety_id,
                {"name": s.fish_variety_name or "", "crates": 0.0, "kg": 0.0},
            )
            g["crates"] += float(s.quantity_crates or 0.0)
            g["kg"] += float(s.quantity_kg or 0.0)

        last = self.rates.sales_rates(grouped.keys())
        items = []
        for vid, g in grouped.items():
            rate = last.get(vid)
            items.append(
                SalesLineItem(
                    fish_variety_id=vid,
                    fish_variety_name=g["name"],
                    quantity_crates=g["crates"],
                    quantity_kg=g["kg"],
                    rate_per_crate=rate.rate_per_crate if rate else 0.0,
                    rate_per_kg=rate.rate_per_kg if rate else 0.0,
                )
            )
        return SalesBillDraft(
            customer_id=customer_id,
            bill_date=bill_date,
            items=tuple(items),
            previous_balance=self.customer_pending_balance(customer_id),
        )

    def preview(self, draft: SalesBillDraft, exclude_bill_id: Optional[int] = None) -> SalesBillTotals:
        """Totals for a draft without saving it."""
        previous = draft.previous_balance
        if previous is None:
            previous = self.customer_pending_balance(draft.customer_id, exclude_bill_id)
        return compute_sales_bill(draft.items, draft.discount, previous, draft.amount_received)

    # ---------------------------------------------------------------------
    # WRITE
    # ---------------------------------------------------------------------
    def create_bill(
        self,
        customer_id: int,
        bill_date: str,
        items: Iterable[SalesLineItem],
        discount: float = 0.0,
        notes: Optional[str] = None,
        previous_balance: Optional[float] = None,
        amount_received: float = 0.0,
    ) -> SalesBill:
        items = list(items)
        raise_if_invalid(validate_sales_bill(items, discount, amount_received))
        items = [it for it in items if it.has_quantity]

        with self.conn:
            if previous_balance is None:
                previous_balance = self.bills.pending_balance(customer_id)
            totals = compute_sales_bill(items, discount, previous_balance, amount_received)
            bill_number = self.bills.next_bill_number()
            bill_id = self.bills.insert_bill(
                bill_number=bill_number,
                customer_id=customer_id,
                bill_date=bill_date,
                totals=totals,
                notes=notes,
            )

        self._log.info(
            "Created sales bill %s for customer %s (grand total %s, %s)",
            bill_number, customer_id, fmt_money(totals.grand_total), totals.payment_status,
        )
        return self.bills.get(bill_id)

    def create_from_draft(self, draft: SalesBillDraft) -> SalesBill:
        return self.create_bill(
            draft.customer_id,
            draft.bill_date,
            draft.items,
            discount=draft.discount,
            notes=draft.notes,
            previous_balance=draft.previous_balance,
            amount_received=draft.amount_received,
        )

    def update_bill(
        self,
        bill_id: int,
        items: Iterable[SalesLineItem],
        discount: float = 0.0,
        notes: Optional[str] = None,
        previous_balance: Optional[float] = None,
        amount_received: float = 0.0,
    ) -> SalesBill:
        """
        Recompute and save an existing bill. The bill number, customer and
        date stay as they are; the previous balance leaves this bill out.
        """
        items = list(items)
        raise_if_invalid(validate_sales_bill(items, discount, amount_received))
        items = [it for it in items if it.has_quantity]

        with self.conn:
            current = self.bills.get(bill_id)
            if current is None:
                raise ValueError(f"Sales bill not found: {bill_id}")
            if previous_balance is None:
                previous_balance = self.bills.pending_balance(current.customer_id, exclude_bill_id=bill_id)
            totals = compute_sales_bill(items, discount, previous_balance, amount_received)
            self.bills.update_bill(bill_id, totals=totals, notes=notes)

        self._log.info(
            "Updated sales bill %s (grand total %s, %s)",
            current.bill_number, fmt_money(totals.grand_total), totals.payment_status,
        )
        return self.bills.get(bill_id)

    def delete_bill(self, bill_id: int) -> bool:
        with self.conn:
            deleted = self.bills.delete_bill(bill_id)
        if deleted:
            self._log.info("Deleted sales bill %s", bill_id)
        return deleted

    # ---------------------------------------------------------------------
    # READ
    # ---------------------------------------------------------------------
    def get_bill(self, bill_id: int) -> Optional[SalesBill]:
        try:
            return self.bills.get(bill_id)
        except sqlite3.Error:
            self._log.exception("Failed to load sales bill %s", bill_id)
            return None

    def bills_by_date(self, bill_date: str) -> list[SalesBill]:
        try:
            return self.bills.list_by_date(bill_date)
        except sqlite3.Error:
            self._log.exception("Failed to load sales bills for %s", bill_date)
            return []

    def bills_by_customer(self, customer_id: int) -> list[SalesBill]:
        try:
            return self.bills.list_by_customer(customer_id)
        except sqlite3.Error:
            self._log.exception("Failed to load sales bills for customer %s", customer_id)
            return []

    def bill_for_customer_on_date(self, customer_id: int, bill_date: str) -> Optional[SalesBill]:
        """Most recently created bill for the customer on that date."""
        try:
            return self.bills.latest_for_customer_on_date(customer_id, bill_date)
        except sqlite3.Error:
            self._log.exception("Failed to load bill for customer %s on %s", customer_id, bill_date)
            return None

    def customer_pending_balance(self, customer_id: int, exclude_bill_id: Optional[int] = None) -> float:
        try:
            return self.bills.pending_balance(customer_id, exclude_bill_id)
        except sqlite3.Error:
            self._log.exception("Failed to compute pending balance for customer %s", customer_id)
            return 0.0
