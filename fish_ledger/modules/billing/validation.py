"""
Checks run before a bill is finalized. Nothing here touches the database.

Validators return a list of ValidationIssue (empty = OK). Services raise
BillValidationError with that list before the first write, so callers can
show every problem at once.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from ...constants import PAYMENT_MODES
from ...utils.validators import (
    is_non_negative_number,
    is_strictly_positive_number,
    non_empty,
    try_parse_float,
)
from .drafts import Deduction, NewPayment, PurchaseLineItem, SalesLineItem


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    message: str
    index: Optional[int] = None   # item/deduction position, when the issue is per-row


class BillValidationError(ValueError):
    def __init__(self, issues: Iterable[ValidationIssue]):
        self.issues = list(issues)
        super().__init__("; ".join(i.message for i in self.issues) or "Invalid bill.")


def raise_if_invalid(issues: list[ValidationIssue]) -> None:
    if issues:
        raise BillValidationError(issues)


def _quantity(issues, idx, label, field, value) -> float:
    ok, v = try_parse_float(0.0 if value is None else value)
    if not ok:
        issues.append(ValidationIssue(field, f"Item {idx + 1} ({label}): {field} is not a number.", idx))
        return 0.0
    if v < 0:
        issues.append(ValidationIssue(field, f"Item {idx + 1} ({label}): {field} cannot be negative.", idx))
    return v


def _rate(issues, idx, label, field, value, needed: bool) -> None:
    """A rate is required (> 0) when the matching quantity is non-zero."""
    if value is None:
        if needed:
            issues.append(ValidationIssue(field, f"Item {idx + 1} ({label}): {field} is missing.", idx))
        return
    ok, v = try_parse_float(value)
    if not ok:
        issues.append(ValidationIssue(field, f"Item {idx + 1} ({label}): {field} is not a number.", idx))
    elif v < 0:
        issues.append(ValidationIssue(field, f"Item {idx + 1} ({label}): {field} cannot be negative.", idx))
    elif v == 0 and needed:
        issues.append(ValidationIssue(field, f"Item {idx + 1} ({label}): {field} is not set.", idx))


# -----------------------------
# Sales bills
# -----------------------------

def validate_sales_items(items: Iterable[SalesLineItem]) -> list[ValidationIssue]:
    items = list(items)
    issues: list[ValidationIssue] = []
    if not items:
        return [ValidationIssue("items", "Add at least one item.")]

    any_quantity = False
    for idx, it in enumerate(items):
        label = it.fish_variety_name or f"variety {it.fish_variety_id}"
        crates = _quantity(issues, idx, label, "quantity_crates", it.quantity_crates)
        kg = _quantity(issues, idx, label, "quantity_kg", it.quantity_kg)
        _rate(issues, idx, label, "rate_per_crate", it.rate_per_crate, needed=crates > 0)
        _rate(issues, idx, label, "rate_per_kg", it.rate_per_kg, needed=kg > 0)
        if crates > 0 or kg > 0:
            any_quantity = True

    if not any_quantity:
        issues.append(ValidationIssue("items", "At least one item needs crates or kg."))
    return issues


def validate_sales_bill(items, discount, amount_received) -> list[ValidationIssue]:
    issues = validate_sales_items(items)
    if not try_parse_float(0.0 if discount is None else discount)[0]:
        issues.append(ValidationIssue("discount", "Discount is not a number."))
    if not is_non_negative_number(0.0 if amount_received is None else amount_received):
        issues.append(ValidationIssue("amount_received", "Amount received must be a number, zero or more."))
    return issues


# -----------------------------
# Purchase bills
# -----------------------------

def validate_purchase_items(items: Iterable[PurchaseLineItem], deduction_pct: float) -> list[ValidationIssue]:
    items = list(items)
    issues: list[ValidationIssue] = []

    ok, pct = try_parse_float(deduction_pct)
    if not ok or not (0 <= pct <= 100):
        issues.append(ValidationIssue("deduction_pct", "Weight deduction must be between 0 and 100 %."))

    if not items:
        issues.append(ValidationIssue("items", "Add at least one item."))
        return issues

    any_weight = False
    for idx, it in enumerate(items):
        label = it.fish_variety_name or f"variety {it.fish_variety_id}"
        crates = _quantity(issues, idx, label, "quantity_crates", it.quantity_crates)
        kg = _quantity(issues, idx, label, "quantity_kg", it.quantity_kg)
        if not is_strictly_positive_number(it.crate_weight):
            issues.append(ValidationIssue("crate_weight", f"Item {idx + 1} ({label}): crate weight must be positive.", idx))
        has_weight = crates > 0 or kg > 0
        _rate(issues, idx, label, "rate_per_kg", it.rate_per_kg, needed=has_weight)
        any_weight = any_weight or has_weight

    if not any_weight:
        issues.append(ValidationIssue("items", "At least one item needs crates or kg."))
    return issues


def validate_deductions(deductions: Iterable[Deduction]) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for idx, d in enumerate(deductions):
        if not non_empty(d.label):
            issues.append(ValidationIssue("other_deductions", f"Deduction {idx + 1}: label is required.", idx))
        if not try_parse_float(d.amount)[0]:
            issues.append(ValidationIssue("other_deductions", f"Deduction {idx + 1}: amount is not a number.", idx))
    return issues


def validate_payment(payment: NewPayment) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if not is_strictly_positive_number(payment.amount):
        issues.append(ValidationIssue("amount", "Payment amount must be greater than zero."))
    if (payment.mode or "").lower() not in PAYMENT_MODES:
        issues.append(ValidationIssue("mode", f"Payment mode must be one of: {', '.join(PAYMENT_MODES)}."))
    if not non_empty(payment.payment_date):
        issues.append(ValidationIssue("payment_date", "Payment date is required."))
    return issues


def validate_purchase_bill(
    items,
    deduction_pct,
    commission_per_kg,
    other_deductions,
    initial_payment: Optional[NewPayment] = None,
) -> list[ValidationIssue]:
    issues = validate_purchase_items(items, deduction_pct)
    ok, commission = try_parse_float(commission_per_kg)
    if not ok:
        issues.append(ValidationIssue("commission_per_kg", "Commission per kg is not a number."))
    elif commission < 0:
        issues.append(ValidationIssue("commission_per_kg", "Commission per kg cannot be negative."))
    issues += validate_deductions(other_deductions)
    if initial_payment is not None and initial_payment.amount:
        issues += validate_payment(initial_payment)
    return issues
