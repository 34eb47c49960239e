from __future__ import annotations

import logging
import sqlite3
from typing import Iterable, Optional

from ...constants import (
    DEFAULT_COMMISSION_PER_KG,
    DEFAULT_CRATE_WEIGHT_KG,
    DEFAULT_WEIGHT_DEDUCTION_PCT,
)
from ...database.repositories.purchase_bill_payments_repo import (
    PurchaseBillPayment,
    PurchaseBillPaymentsRepo,
)
from ...database.repositories.purchase_bills_repo import PurchaseBill, PurchaseBillsRepo
from ...database.repositories.stock_repo import StockRepo
from ...utils.helpers import fmt_money
from .calculations import compute_purchase_bill, project_purchase_after_payment
from .drafts import (
    Deduction,
    NewPayment,
    PaymentPreview,
    PurchaseBillDraft,
    PurchaseBillTotals,
    PurchaseLineItem,
)
from .rate_resolver import RateResolver
from .validation import (
    raise_if_invalid,
    validate_payment,
    validate_purchase_bill,
)

_log = logging.getLogger(__name__)


def _has_weight(item: PurchaseLineItem) -> bool:
    return bool(item.quantity_crates or item.quantity_kg)


class PurchaseBillService:
    """
    Farmer (purchase) bills and the payments made against them.

    amount_paid on a bill is always the sum of its payment rows; nothing here
    writes it directly. Overpayment is accepted (balance goes negative);
    preview_payment() reports it so the caller can ask first.
    """

    def __init__(self, conn: sqlite3.Connection, logger: Optional[logging.Logger] = None):
        self.conn = conn
        self.bills = PurchaseBillsRepo(conn)
        self.payments = PurchaseBillPaymentsRepo(conn)
        self.stock = StockRepo(conn)
        self.rates = RateResolver(conn)
        self._log = logger or _log

    # ---------------------------------------------------------------------
    # Drafting
    # ---------------------------------------------------------------------
    def draft_from_purchases(self, farmer_id: int, bill_date: str) -> PurchaseBillDraft:
        """Day's purchase rows for the farmer, one line per variety, last rates pre-filled."""
        try:
            purchases = self.stock.purchases_by_date(bill_date, farmer_id=farmer_id)
        except sqlite3.Error:
            self._log.exception("Failed to load purchases for farmer %s on %s", farmer_id, bill_date)
            purchases = []

        grouped: dict[int, dict] = {}
        location = secondary_name = None
        for p in reversed(purchases):
            g = grouped.setdefault(
                p.fish_variety_id,
                {"name": p.fish_variety_name or "", "crates": 0.0, "kg": 0.0},
            )
            g["crates"] += float(p.quantity_crates or 0.0)
            g["kg"] += float(p.quantity_kg or 0.0)
            location = location or p.location
            secondary_name = secondary_name or p.secondary_name

        last = self.rates.purchase_rates(grouped.keys())
        items = tuple(
            PurchaseLineItem(
                fish_variety_id=vid,
                fish_variety_name=g["name"],
                quantity_crates=g["crates"],
                quantity_kg=g["kg"],
                rate_per_kg=last.get(vid, 0.0),
                crate_weight=DEFAULT_CRATE_WEIGHT_KG,
            )
            for vid, g in grouped.items()
        )
        return PurchaseBillDraft(
            farmer_id=farmer_id,
            bill_date=bill_date,
            items=items,
            location=location,
            secondary_name=secondary_name,
        )

    def preview(self, draft: PurchaseBillDraft) -> PurchaseBillTotals:
        paid = draft.initial_payment.amount if draft.initial_payment else 0.0
        return compute_purchase_bill(
            draft.items, draft.commission_per_kg, draft.deduction_pct, draft.other_deductions, paid
        )

    # ---------------------------------------------------------------------
    # WRITE
    # ---------------------------------------------------------------------
    def create_bill(
        self,
        farmer_id: int,
        bill_date: str,
        items: Iterable[PurchaseLineItem],
        commission_per_kg: float = DEFAULT_COMMISSION_PER_KG,
        deduction_pct: float = DEFAULT_WEIGHT_DEDUCTION_PCT,
        other_deductions: Iterable[Deduction] = (),
        notes: Optional[str] = None,
        initial_payment: Optional[NewPayment] = None,
        location: Optional[str] = None,
        secondary_name: Optional[str] = None,
    ) -> PurchaseBill:
        items = list(items)
        other_deductions = tuple(other_deductions)
        raise_if_invalid(
            validate_purchase_bill(items, deduction_pct, commission_per_kg, other_deductions, initial_payment)
        )
        items = [it for it in items if _has_weight(it)]
        totals = compute_purchase_bill(items, commission_per_kg, deduction_pct, other_deductions)

        with self.conn:
            bill_number = self.bills.next_bill_number()
            bill_id = self.bills.insert_bill(
                bill_number=bill_number,
                farmer_id=farmer_id,
                bill_date=bill_date,
                totals=totals,
                notes=notes,
                location=location,
                secondary_name=secondary_name,
            )
            if initial_payment is not None and initial_payment.amount:
                self.payments.record_payment(
                    bill_id,
                    amount=float(initial_payment.amount),
                    payment_date=initial_payment.payment_date,
                    mode=initial_payment.mode,
                    notes=initial_payment.notes,
                )

        self._log.info("Created purchase bill %s for farmer %s (total %s)", bill_number, farmer_id, fmt_money(totals.total))
        return self.get_bill(bill_id)

    def create_from_draft(self, draft: PurchaseBillDraft) -> PurchaseBill:
        return self.create_bill(
            draft.farmer_id,
            draft.bill_date,
            draft.items,
            commission_per_kg=draft.commission_per_kg,
            deduction_pct=draft.deduction_pct,
            other_deductions=draft.other_deductions,
            notes=draft.notes,
            initial_payment=draft.initial_payment,
            location=draft.location,
            secondary_name=draft.secondary_name,
        )

    def update_bill(
        self,
        bill_id: int,
        items: Iterable[PurchaseLineItem],
        commission_per_kg: float = DEFAULT_COMMISSION_PER_KG,
        deduction_pct: float = DEFAULT_WEIGHT_DEDUCTION_PCT,
        other_deductions: Iterable[Deduction] = (),
        notes: Optional[str] = None,
    ) -> PurchaseBill:
        """Items and deductions replaced; recorded payments are kept and re-applied."""
        items = list(items)
        other_deductions = tuple(other_deductions)
        raise_if_invalid(validate_purchase_bill(items, deduction_pct, commission_per_kg, other_deductions))
        items = [it for it in items if _has_weight(it)]
        totals = compute_purchase_bill(items, commission_per_kg, deduction_pct, other_deductions)

        with self.conn:
            current = self.bills.get_header(bill_id)
            if current is None:
                raise ValueError(f"Purchase bill not found: {bill_id}")
            self.bills.update_bill(bill_id, totals=totals, notes=notes)

        self._log.info("Updated purchase bill %s (total %s)", current.bill_number, fmt_money(totals.total))
        return self.get_bill(bill_id)

    def update_location_and_name(
        self, bill_id: int, location: Optional[str], secondary_name: Optional[str]
    ) -> bool:
        with self.conn:
            updated = self.bills.update_location_and_name(bill_id, location, secondary_name)
        if updated:
            self._log.info("Updated location/name on purchase bill %s", bill_id)
        return updated

    def delete_bill(self, bill_id: int) -> bool:
        """Payments, deductions and items go first, then the header."""
        with self.conn:
            deleted = self.bills.delete_bill(bill_id)
        if deleted:
            self._log.info("Deleted purchase bill %s", bill_id)
        return deleted

    # ---------------------------------------------------------------------
    # Payments
    # ---------------------------------------------------------------------
    def preview_payment(self, bill_id: int, amount: float) -> PaymentPreview:
        """Projected header after paying `amount`; `overpays` asks for confirmation."""
        header = self.bills.get_header(bill_id)
        if header is None:
            raise ValueError(f"Purchase bill not found: {bill_id}")
        return project_purchase_after_payment(
            total=header.total,
            current_amount_paid=header.amount_paid,
            new_payment_amount=amount,
        )

    def add_payment(
        self,
        bill_id: int,
        amount: float,
        payment_date: str,
        mode: str = "cash",
        note: Optional[str] = None,
    ) -> PurchaseBill:
        """
        Append one payment and re-derive amount_paid / balance_due / status.
        Not idempotent: calling twice records two payments.
        """
        payment = NewPayment(amount=amount, payment_date=payment_date, mode=mode, notes=note)
        raise_if_invalid(validate_payment(payment))

        with self.conn:
            self.payments.record_payment(
                bill_id,
                amount=float(amount),
                payment_date=payment_date,
                mode=mode,
                notes=note,
            )

        bill = self.get_bill(bill_id)
        if bill is not None:
            self._log.info(
                "Payment of %s (%s) on purchase bill %s; paid %s, balance %s, %s",
                fmt_money(amount), mode.lower(), bill.bill_number,
                fmt_money(bill.amount_paid), fmt_money(bill.balance_due), bill.payment_status,
            )
        return bill

    def payments_for_bill(self, bill_id: int) -> list[PurchaseBillPayment]:
        try:
            return self.payments.list_payments(bill_id)
        except sqlite3.Error:
            self._log.exception("Failed to load payments for purchase bill %s", bill_id)
            return []

    # ---------------------------------------------------------------------
    # READ
    # ---------------------------------------------------------------------
    def get_bill(self, bill_id: int) -> Optional[PurchaseBill]:
        """Header with items, deductions and payments (newest payment first)."""
        try:
            bill = self.bills.get(bill_id)
            if bill is not None:
                bill.payments = self.payments.list_payments(bill_id)
            return bill
        except sqlite3.Error:
            self._log.exception("Failed to load purchase bill %s", bill_id)
            return None

    def bills_by_date(self, bill_date: str) -> list[PurchaseBill]:
        try:
            return self.bills.list_by_date(bill_date)
        except sqlite3.Error:
            self._log.exception("Failed to load purchase bills for %s", bill_date)
            return []

    def bills_by_farmer(self, farmer_id: int) -> list[PurchaseBill]:
        try:
            return self.bills.list_by_farmer(farmer_id)
        except sqlite3.Error:
            self._log.exception("Failed to load purchase bills for farmer %s", farmer_id)
            return []

    def farmer_pending_balance(self, farmer_id: int) -> float:
        try:
            return self.bills.pending_balance(farmer_id)
        except sqlite3.Error:
            self._log.exception("Failed to compute pending balance for farmer %s", farmer_id)
            return 0.0
