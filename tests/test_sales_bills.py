import logging
import sqlite3

import pytest

from fish_ledger.database.repositories import BillsRepo, StockRepo, next_bill_number
from fish_ledger.modules.billing.drafts import SalesLineItem
from fish_ledger.modules.billing.sales_bills import SalesBillService
from fish_ledger.modules.billing.validation import BillValidationError


def _item(vid, name="Rohu", crates=0.0, kg=0.0, rpc=0.0, rpk=0.0):
    return SalesLineItem(vid, name, crates, kg, rpc, rpk)


@pytest.fixture()
def svc(conn):
    return SalesBillService(conn)


def _count(conn, table):
    return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


# ---------------- numbering ----------------

def test_bill_numbers_start_at_one_and_increase(svc, ids, bill_date):
    numbers = [
        svc.create_bill(ids["cust_ravi"], bill_date, [_item(ids["rohu"], kg=1, rpk=100)]).bill_number
        for _ in range(3)
    ]
    assert numbers == ["IB-0001", "IB-0002", "IB-0003"]


def test_bill_number_follows_highest_suffix(conn, svc, ids, bill_date):
    first = svc.create_bill(ids["cust_ravi"], bill_date, [_item(ids["rohu"], kg=1, rpk=100)])
    conn.execute("UPDATE bills SET bill_number='IB-0041' WHERE bill_id=?", (first.bill_id,))
    conn.commit()
    second = svc.create_bill(ids["cust_sea"], bill_date, [_item(ids["rohu"], kg=1, rpk=100)])
    assert second.bill_number == "IB-0042"


def test_bill_number_grows_past_nine(svc, ids, bill_date):
    numbers = [
        svc.create_bill(ids["cust_ravi"], bill_date, [_item(ids["rohu"], kg=1, rpk=100)]).bill_number
        for _ in range(10)
    ]
    assert numbers[8] == "IB-0009"
    assert numbers[9] == "IB-0010"
    assert BillsRepo(svc.conn).next_bill_number() == "IB-0011"


def test_deleted_gap_is_not_reused(svc, ids, bill_date):
    bills = [
        svc.create_bill(ids["cust_ravi"], bill_date, [_item(ids["rohu"], kg=1, rpk=100)])
        for _ in range(3)
    ]
    assert svc.delete_bill(bills[1].bill_id) is True
    assert BillsRepo(svc.conn).next_bill_number() == "IB-0004"


def test_bill_number_lookup_failure_uses_placeholder(conn, caplog):
    with caplog.at_level(logging.WARNING):
        number = next_bill_number(conn, "no_such_table", "IB-")
    assert number.startswith("IB-")
    assert number[3:].isdigit() and len(number[3:]) >= 13
    assert "placeholder" in caplog.text


# ---------------- create / update / delete ----------------

def test_create_bill_persists_header_and_items(conn, svc, ids, bill_date):
    bill = svc.create_bill(
        ids["cust_ravi"],
        bill_date,
        [
            _item(ids["rohu"], crates=2, kg=5, rpc=500, rpk=80),
            _item(ids["katla"], "Katla", kg=10, rpk=120),
            _item(ids["tilapia"], "Tilapia"),   # no quantity: dropped
        ],
        discount=100,
        amount_received=1000,
        notes="  morning load ",
    )
    assert bill.customer_name == "Ravi Traders"
    assert bill.subtotal == 2600
    assert bill.total == 2500
    assert bill.previous_balance == 0
    assert bill.grand_total == 2500
    assert bill.balance_due == 1500
    assert bill.payment_status == "partial"
    assert [(i.fish_variety_name, i.amount) for i in bill.items] == [("Rohu", 1400), ("Katla", 1200)]
    assert _count(conn, "bill_items") == 2


def test_previous_balance_comes_from_open_bills(svc, ids, bill_date):
    svc.create_bill(ids["cust_ravi"], "2024-03-14", [_item(ids["rohu"], kg=10, rpk=100)])       # 1000 pending
    svc.create_bill(ids["cust_ravi"], "2024-03-14", [_item(ids["rohu"], kg=5, rpk=100)], amount_received=200)  # 300 open
    svc.create_bill(ids["cust_ravi"], "2024-03-14", [_item(ids["rohu"], kg=1, rpk=100)], amount_received=5000)  # paid
    svc.create_bill(ids["cust_sea"], "2024-03-14", [_item(ids["rohu"], kg=9, rpk=100)])         # other customer

    assert svc.customer_pending_balance(ids["cust_ravi"]) == 1300

    bill = svc.create_bill(ids["cust_ravi"], bill_date, [_item(ids["rohu"], kg=2, rpk=100)])
    assert bill.previous_balance == 1300
    assert bill.grand_total == 1500


def test_explicit_previous_balance_is_used(svc, ids, bill_date):
    svc.create_bill(ids["cust_ravi"], "2024-03-14", [_item(ids["rohu"], kg=10, rpk=100)])
    bill = svc.create_bill(ids["cust_ravi"], bill_date, [_item(ids["rohu"], kg=1, rpk=100)], previous_balance=0)
    assert bill.previous_balance == 0


def test_update_keeps_number_and_excludes_itself(conn, svc, ids, bill_date):
    older = svc.create_bill(ids["cust_ravi"], "2024-03-14", [_item(ids["rohu"], kg=4, rpk=100)])
    bill = svc.create_bill(ids["cust_ravi"], bill_date, [_item(ids["rohu"], kg=10, rpk=100)])
    assert bill.previous_balance == 400

    updated = svc.update_bill(
        bill.bill_id,
        [_item(ids["katla"], "Katla", crates=1, rpc=900)],
        discount=50,
        notes="fixed",
        amount_received=1250,
    )
    assert updated.bill_number == bill.bill_number
    assert updated.customer_id == bill.customer_id
    assert updated.bill_date == bill_date
    assert updated.previous_balance == 400       # not 400 + its own 1000
    assert updated.total == 850
    assert updated.grand_total == 1250
    assert updated.payment_status == "paid"
    assert [i.fish_variety_name for i in updated.items] == ["Katla"]
    assert _count(conn, "bill_items") == 2       # 1 old bill + 1 replaced

    # editing the older bill now sees the newer one only if it is still open
    again = svc.update_bill(older.bill_id, [_item(ids["rohu"], kg=4, rpk=100)])
    assert again.previous_balance == 0


def test_update_unknown_bill_raises(svc, ids):
    with pytest.raises(ValueError, match="not found"):
        svc.update_bill(999, [_item(ids["rohu"], kg=1, rpk=100)])


def test_delete_removes_items_and_header(conn, svc, ids, bill_date):
    bill = svc.create_bill(ids["cust_ravi"], bill_date, [_item(ids["rohu"], kg=1, rpk=100)])
    assert svc.delete_bill(bill.bill_id) is True
    assert svc.get_bill(bill.bill_id) is None
    assert _count(conn, "bill_items") == 0
    assert svc.delete_bill(bill.bill_id) is False


def test_validation_blocks_zero_rate_before_any_write(conn, svc, ids, bill_date):
    with pytest.raises(BillValidationError) as exc:
        svc.create_bill(ids["cust_ravi"], bill_date, [_item(ids["rohu"], kg=5, rpk=0)])
    assert exc.value.issues[0].field == "rate_per_kg"
    assert _count(conn, "bills") == 0
    assert _count(conn, "bill_items") == 0


def test_status_constraint_rejects_inconsistent_rows(conn, svc, ids, bill_date):
    bill = svc.create_bill(ids["cust_ravi"], bill_date, [_item(ids["rohu"], kg=1, rpk=100)])
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute("UPDATE bills SET payment_status='paid' WHERE bill_id=?", (bill.bill_id,))
    conn.rollback()


# ---------------- reads ----------------

def test_listing_and_lookup(svc, ids, bill_date):
    a = svc.create_bill(ids["cust_ravi"], bill_date, [_item(ids["rohu"], kg=1, rpk=100)])
    b = svc.create_bill(ids["cust_ravi"], bill_date, [_item(ids["rohu"], kg=2, rpk=100)])
    c = svc.create_bill(ids["cust_sea"], "2024-03-16", [_item(ids["rohu"], kg=3, rpk=100)])

    assert [x.bill_id for x in svc.bills_by_date(bill_date)] == [b.bill_id, a.bill_id]
    assert [x.bill_id for x in svc.bills_by_customer(ids["cust_sea"])] == [c.bill_id]
    assert svc.bill_for_customer_on_date(ids["cust_ravi"], bill_date).bill_id == b.bill_id
    assert svc.bill_for_customer_on_date(ids["cust_sea"], bill_date) is None


def test_reads_return_defaults_when_store_fails(conn, svc, ids, caplog):
    conn.close()
    with caplog.at_level(logging.ERROR):
        assert svc.get_bill(1) is None
        assert svc.bills_by_date("2024-03-15") == []
        assert svc.bills_by_customer(ids["cust_ravi"]) == []
        assert svc.bill_for_customer_on_date(ids["cust_ravi"], "2024-03-15") is None
        assert svc.customer_pending_balance(ids["cust_ravi"]) == 0.0
    assert "Failed to load" in caplog.text


def test_writes_propagate_store_failures(conn, svc, ids, bill_date):
    conn.close()
    with pytest.raises(sqlite3.Error):
        svc.create_bill(ids["cust_ravi"], bill_date, [_item(ids["rohu"], kg=1, rpk=100)])


# ---------------- drafting ----------------

def test_draft_from_sales_groups_rows_and_prefills(conn, svc, ids, bill_date):
    svc.create_bill(ids["cust_ravi"], "2024-03-10", [_item(ids["rohu"], crates=1, kg=2, rpc=450, rpk=95)])

    stock = StockRepo(conn)
    stock.add_sale(ids["cust_ravi"], ids["rohu"], 3, 0, bill_date)
    stock.add_sale(ids["cust_ravi"], ids["katla"], 0, 12.5, bill_date)
    stock.add_sale(ids["cust_sea"], ids["rohu"], 9, 0, bill_date)

    draft = svc.draft_from_sales(ids["cust_ravi"], bill_date)
    by_variety = {it.fish_variety_id: it for it in draft.items}
    assert set(by_variety) == {ids["rohu"], ids["katla"]}
    assert by_variety[ids["rohu"]].quantity_crates == 3
    assert (by_variety[ids["rohu"]].rate_per_crate, by_variety[ids["rohu"]].rate_per_kg) == (450, 95)
    assert by_variety[ids["katla"]].quantity_kg == 12.5
    assert by_variety[ids["katla"]].rate_per_kg == 0.0      # never billed
    assert draft.previous_balance == 640

    preview = svc.preview(draft)
    assert preview.subtotal == 1350
    assert preview.grand_total == 1990


def test_create_from_draft_with_rates_filled_in(conn, svc, ids, bill_date):
    from dataclasses import replace

    StockRepo(conn).add_sale(ids["cust_sea"], ids["tilapia"], 0, 20, bill_date)
    draft = svc.draft_from_sales(ids["cust_sea"], bill_date)
    with pytest.raises(BillValidationError):
        svc.create_from_draft(draft)

    items = tuple(replace(it, rate_per_kg=60) for it in draft.items)
    bill = svc.create_from_draft(replace(draft, items=items, amount_received=1200))
    assert bill.total == 1200
    assert bill.payment_status == "paid"
