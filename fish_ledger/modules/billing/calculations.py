"""
billing/calculations.py

Pure bill arithmetic for sales bills and purchase bills.

Do not import repos or open DB connections here.
Only compute numbers; formatting belongs to the caller. No rounding is
performed and nothing is clamped: a discount larger than the subtotal gives a
negative total, and an overpayment gives a negative balance due.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from ...constants import DEFAULT_CRATE_WEIGHT_KG
from .drafts import (
    Deduction,
    PaymentPreview,
    PurchaseBillTotals,
    PurchaseLineItem,
    SalesBillTotals,
    SalesLineItem,
)

__all__ = [
    "status_from_paid",
    "line_amount",
    "price_sales_item",
    "compute_sales_bill",
    "actual_weight",
    "billable_weight",
    "price_purchase_item",
    "compute_purchase_bill",
    "project_purchase_after_payment",
]


# -----------------------------
# Common status helper
# -----------------------------

def status_from_paid(total: float, paid: float) -> str:
    """
    Three-way payment status:
      - 'paid'    if paid >= total
      - 'partial' if 0 < paid < total
      - 'pending' otherwise

    For sales bills `total` is the grand total (bill total + previous balance);
    for purchase bills it is the bill total.
    """
    if paid >= total:
        return "paid"
    if paid > 0:
        return "partial"
    return "pending"


def _num(x) -> float:
    return float(x or 0.0)


# -----------------------------
# Sales bills
# -----------------------------

def line_amount(quantity_crates: float, quantity_kg: float, rate_per_crate: float, rate_per_kg: float) -> float:
    """amount = crates x rate_per_crate + kg x rate_per_kg"""
    return _num(quantity_crates) * _num(rate_per_crate) + _num(quantity_kg) * _num(rate_per_kg)


def price_sales_item(item: SalesLineItem) -> SalesLineItem:
    return replace(
        item,
        amount=line_amount(item.quantity_crates, item.quantity_kg, item.rate_per_crate, item.rate_per_kg),
    )


def compute_sales_bill(
    items: Iterable[SalesLineItem],
    discount: float = 0.0,
    previous_balance: float = 0.0,
    amount_received: float = 0.0,
) -> SalesBillTotals:
    """
    subtotal      = sum(item amounts)
    total         = subtotal - discount
    grand_total   = total + previous_balance
    balance_due   = grand_total - amount_received
    payment_status from (grand_total, amount_received)
    """
    priced = tuple(price_sales_item(it) for it in items)
    discount = _num(discount)
    previous_balance = _num(previous_balance)
    amount_received = _num(amount_received)

    subtotal = sum(it.amount for it in priced)
    total = subtotal - discount
    grand_total = total + previous_balance
    return SalesBillTotals(
        items=priced,
        subtotal=subtotal,
        discount=discount,
        total=total,
        previous_balance=previous_balance,
        grand_total=grand_total,
        amount_received=amount_received,
        balance_due=grand_total - amount_received,
        payment_status=status_from_paid(grand_total, amount_received),
    )


# -----------------------------
# Purchase bills
# -----------------------------

def actual_weight(quantity_crates: float, loose_kg: float, crate_weight: float = DEFAULT_CRATE_WEIGHT_KG) -> float:
    return _num(quantity_crates) * _num(crate_weight) + _num(loose_kg)


def billable_weight(actual: float, apply_deduction: bool, deduction_pct: float) -> float:
    if not apply_deduction:
        return actual
    return actual * (1 - _num(deduction_pct) / 100)


def price_purchase_item(item: PurchaseLineItem, deduction_pct: float) -> PurchaseLineItem:
    actual = actual_weight(item.quantity_crates, item.quantity_kg, item.crate_weight)
    billable = billable_weight(actual, item.apply_deduction, deduction_pct)
    return replace(
        item,
        actual_weight=actual,
        billable_weight=billable,
        amount=billable * _num(item.rate_per_kg),
    )


def compute_purchase_bill(
    items: Iterable[PurchaseLineItem],
    commission_per_kg: float,
    deduction_pct: float,
    other_deductions: Iterable[Deduction] = (),
    amount_paid: float = 0.0,
) -> PurchaseBillTotals:
    """
    gross_amount            = sum(actual_weight x rate)
    subtotal                = sum(billable_weight x rate)
    weight_deduction_amount = gross_amount - subtotal
    commission_amount       = total_billable_weight x commission_per_kg   (added)
    total                   = subtotal + commission_amount - other_deductions_total
    balance_due             = total - amount_paid
    """
    priced = tuple(price_purchase_item(it, deduction_pct) for it in items)
    deductions = tuple(other_deductions)
    commission_per_kg = _num(commission_per_kg)
    amount_paid = _num(amount_paid)

    gross_amount = sum(it.actual_weight * _num(it.rate_per_kg) for it in priced)
    subtotal = sum(it.amount for it in priced)
    total_billable = sum(it.billable_weight for it in priced)
    commission_amount = total_billable * commission_per_kg
    other_total = sum(_num(d.amount) for d in deductions)
    total = subtotal + commission_amount - other_total

    return PurchaseBillTotals(
        items=priced,
        gross_amount=gross_amount,
        weight_deduction_pct=_num(deduction_pct),
        weight_deduction_amount=gross_amount - subtotal,
        subtotal=subtotal,
        total_billable_weight=total_billable,
        commission_per_kg=commission_per_kg,
        commission_amount=commission_amount,
        other_deductions=deductions,
        other_deductions_total=other_total,
        total=total,
        amount_paid=amount_paid,
        balance_due=total - amount_paid,
        payment_status=status_from_paid(total, amount_paid),
    )


def project_purchase_after_payment(
    *,
    total: float,
    current_amount_paid: float,
    new_payment_amount: float,
) -> PaymentPreview:
    """
    Projected header after one more payment. `overpays` is True when the
    payment would push the balance below zero; callers confirm before saving.
    """
    paid = _num(current_amount_paid) + _num(new_payment_amount)
    balance = _num(total) - paid
    return PaymentPreview(
        amount_paid=paid,
        balance_due=balance,
        payment_status=status_from_paid(total, paid),
        overpays=balance < 0,
    )
