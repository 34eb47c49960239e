import pytest

from fish_ledger.modules.billing.calculations import (
    actual_weight,
    billable_weight,
    compute_purchase_bill,
    compute_sales_bill,
    line_amount,
    project_purchase_after_payment,
    status_from_paid,
)
from fish_ledger.modules.billing.drafts import Deduction, PurchaseLineItem, SalesLineItem


def _sales_item(vid=1, crates=0.0, kg=0.0, rpc=0.0, rpk=0.0, name="Rohu"):
    return SalesLineItem(vid, name, crates, kg, rpc, rpk)


# ---------------- status ----------------

@pytest.mark.parametrize(
    "total, paid, expected",
    [
        (1000, 0, "pending"),
        (1000, 1, "partial"),
        (1000, 999.99, "partial"),
        (1000, 1000, "paid"),
        (1000, 1500, "paid"),
        (0, 0, "paid"),
        (-50, 0, "paid"),
    ],
)
def test_status_from_paid(total, paid, expected):
    assert status_from_paid(total, paid) == expected


# ---------------- sales ----------------

def test_line_amount_mixes_crates_and_kg():
    assert line_amount(2, 5, 500, 80) == 1400
    assert line_amount(None, 3, None, 100) == 300


def test_sales_bill_worked_example():
    totals = compute_sales_bill(
        [_sales_item(1, crates=2, kg=5, rpc=500, rpk=80), _sales_item(2, kg=10, rpk=120, name="Katla")],
        discount=100,
        previous_balance=200,
        amount_received=1500,
    )
    assert [it.amount for it in totals.items] == [1400, 1200]
    assert totals.subtotal == 2600
    assert totals.total == 2500
    assert totals.grand_total == 2700
    assert totals.balance_due == 1200
    assert totals.payment_status == "partial"


def test_sales_bill_is_pure_and_returns_new_items():
    original = _sales_item(crates=1, rpc=400)
    totals = compute_sales_bill([original])
    assert original.amount == 0.0
    assert totals.items[0].amount == 400
    assert totals.items[0] is not original


def test_sales_status_uses_grand_total():
    # bill total is covered but the carried balance is not
    totals = compute_sales_bill([_sales_item(kg=10, rpk=100)], previous_balance=500, amount_received=1000)
    assert totals.total == 1000
    assert totals.grand_total == 1500
    assert totals.payment_status == "partial"


def test_sales_exact_payment_is_paid():
    totals = compute_sales_bill([_sales_item(crates=2, rpc=500)], amount_received=1000)
    assert totals.subtotal == 1000
    assert totals.balance_due == 0
    assert totals.payment_status == "paid"


def test_sales_overpayment_gives_negative_balance():
    totals = compute_sales_bill([_sales_item(kg=10, rpk=100)], amount_received=1200)
    assert totals.balance_due == -200
    assert totals.payment_status == "paid"


def test_sales_discount_larger_than_subtotal_is_not_clamped():
    totals = compute_sales_bill([_sales_item(kg=1, rpk=100)], discount=250)
    assert totals.total == -150
    assert totals.grand_total == -150
    assert totals.balance_due == -150


def test_sales_empty_items_is_zero():
    totals = compute_sales_bill([])
    assert totals.subtotal == 0
    assert totals.payment_status == "paid"


# ---------------- purchase ----------------

def test_weights():
    assert actual_weight(10, 0) == 350
    assert actual_weight(2, 7.5, crate_weight=30) == 67.5
    assert billable_weight(350, True, 5) == pytest.approx(332.5)
    assert billable_weight(350, False, 5) == 350
    assert billable_weight(100, True, 0) == 100


def test_purchase_bill_worked_example():
    items = [PurchaseLineItem(1, "Rohu", quantity_crates=10, quantity_kg=0, rate_per_kg=100)]
    totals = compute_purchase_bill(items, commission_per_kg=0.5, deduction_pct=5)

    item = totals.items[0]
    assert item.actual_weight == 350
    assert item.billable_weight == pytest.approx(332.5)
    assert item.amount == pytest.approx(33250)
    assert totals.gross_amount == pytest.approx(35000)
    assert totals.subtotal == pytest.approx(33250)
    assert totals.weight_deduction_amount == pytest.approx(1750)
    assert totals.total_billable_weight == pytest.approx(332.5)
    assert totals.commission_amount == pytest.approx(166.25)
    # commission is added to what the farmer is owed
    assert totals.total == pytest.approx(33416.25)
    assert totals.balance_due == pytest.approx(33416.25)
    assert totals.payment_status == "pending"


def test_purchase_item_without_deduction_bills_actual_weight():
    items = [
        PurchaseLineItem(1, "Rohu", quantity_crates=1, rate_per_kg=100, apply_deduction=False),
        PurchaseLineItem(2, "Katla", quantity_kg=100, rate_per_kg=50),
    ]
    totals = compute_purchase_bill(items, commission_per_kg=0, deduction_pct=50)
    assert totals.items[0].billable_weight == 35
    assert totals.items[1].billable_weight == 50
    assert totals.subtotal == 3500 + 2500
    assert totals.weight_deduction_amount == 2500


def test_purchase_other_deductions_reduce_total():
    items = [PurchaseLineItem(1, "Rohu", quantity_kg=100, rate_per_kg=100, apply_deduction=False)]
    totals = compute_purchase_bill(
        items,
        commission_per_kg=1,
        deduction_pct=5,
        other_deductions=[Deduction("Ice", 150), Deduction("Transport", 250)],
        amount_paid=5000,
    )
    assert totals.other_deductions_total == 400
    assert totals.total == 10000 + 100 - 400
    assert totals.balance_due == 9700 - 5000
    assert totals.payment_status == "partial"


def test_payment_projection_flags_overpayment():
    ok = project_purchase_after_payment(total=1000, current_amount_paid=400, new_payment_amount=600)
    assert (ok.amount_paid, ok.balance_due, ok.payment_status, ok.overpays) == (1000, 0, "paid", False)

    over = project_purchase_after_payment(total=1000, current_amount_paid=400, new_payment_amount=700)
    assert over.balance_due == -100
    assert over.overpays is True
