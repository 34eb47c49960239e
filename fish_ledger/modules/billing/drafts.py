"""
Immutable bill drafts and computed bill totals.

A draft is what the user has typed so far; the calculators in
``calculations.py`` turn a draft's items into priced items and totals without
touching the database. Drafts are frozen: edits produce a new draft via
``dataclasses.replace``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ...constants import (
    DEFAULT_COMMISSION_PER_KG,
    DEFAULT_CRATE_WEIGHT_KG,
    DEFAULT_WEIGHT_DEDUCTION_PCT,
)


# -----------------------------
# Sales bills
# -----------------------------

@dataclass(frozen=True)
class SalesLineItem:
    fish_variety_id: int
    fish_variety_name: str
    quantity_crates: float = 0.0
    quantity_kg: float = 0.0
    rate_per_crate: Optional[float] = 0.0
    rate_per_kg: Optional[float] = 0.0
    amount: float = 0.0

    @property
    def has_quantity(self) -> bool:
        return bool(self.quantity_crates or self.quantity_kg)


@dataclass(frozen=True)
class SalesBillDraft:
    customer_id: int
    bill_date: str
    items: tuple[SalesLineItem, ...] = ()
    discount: float = 0.0
    # None -> the customer's pending balance is looked up when saving
    previous_balance: Optional[float] = None
    amount_received: float = 0.0
    notes: Optional[str] = None


@dataclass(frozen=True)
class SalesBillTotals:
    items: tuple[SalesLineItem, ...]
    subtotal: float
    discount: float
    total: float
    previous_balance: float
    grand_total: float
    amount_received: float
    balance_due: float
    payment_status: str


# -----------------------------
# Purchase bills
# -----------------------------

@dataclass(frozen=True)
class PurchaseLineItem:
    fish_variety_id: int
    fish_variety_name: str
    quantity_crates: float = 0.0
    quantity_kg: float = 0.0          # loose kg on top of the crates
    rate_per_kg: Optional[float] = 0.0
    crate_weight: float = DEFAULT_CRATE_WEIGHT_KG
    apply_deduction: bool = True
    actual_weight: float = 0.0
    billable_weight: float = 0.0
    amount: float = 0.0


@dataclass(frozen=True)
class Deduction:
    """Ad-hoc amount taken off a purchase bill (ice, transport, ...)."""
    label: str
    amount: float


@dataclass(frozen=True)
class NewPayment:
    amount: float
    payment_date: str
    mode: str = "cash"
    notes: Optional[str] = None


@dataclass(frozen=True)
class PurchaseBillDraft:
    farmer_id: int
    bill_date: str
    items: tuple[PurchaseLineItem, ...] = ()
    commission_per_kg: float = DEFAULT_COMMISSION_PER_KG
    deduction_pct: float = DEFAULT_WEIGHT_DEDUCTION_PCT
    other_deductions: tuple[Deduction, ...] = ()
    notes: Optional[str] = None
    location: Optional[str] = None
    secondary_name: Optional[str] = None
    initial_payment: Optional[NewPayment] = None


@dataclass(frozen=True)
class PurchaseBillTotals:
    items: tuple[PurchaseLineItem, ...]
    gross_amount: float
    weight_deduction_pct: float
    weight_deduction_amount: float
    subtotal: float
    total_billable_weight: float
    commission_per_kg: float
    commission_amount: float
    other_deductions: tuple[Deduction, ...]
    other_deductions_total: float
    total: float
    amount_paid: float
    balance_due: float
    payment_status: str


@dataclass(frozen=True)
class PaymentPreview:
    """What a purchase bill would look like after one more payment."""
    amount_paid: float
    balance_due: float
    payment_status: str
    overpays: bool
