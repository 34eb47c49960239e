import pytest

from fish_ledger.database.repositories import StockRepo
from fish_ledger.modules.stock.reconciler import DuplicateSaleReconciler, duplicate_sale_ids


@pytest.fixture()
def stock(conn):
    return StockRepo(conn)


def _insert_sale(conn, customer_id, variety_id, crates, kg, sale_date, created_at):
    cur = conn.execute(
        """
        INSERT INTO sales(customer_id, fish_variety_id, quantity_crates, quantity_kg, sale_date, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (customer_id, variety_id, crates, kg, sale_date, created_at),
    )
    conn.commit()
    return int(cur.lastrowid)


# ---------------- sale upsert ----------------

def test_add_sale_upserts_by_customer_variety_date(conn, stock, ids, bill_date):
    first = stock.add_sale(ids["cust_ravi"], ids["rohu"], 2, 0, bill_date)
    second = stock.add_sale(ids["cust_ravi"], ids["rohu"], 5, 1.5, bill_date)
    assert first == second

    rows = stock.sales_by_date(bill_date)
    assert len(rows) == 1
    assert (rows[0].quantity_crates, rows[0].quantity_kg) == (5, 1.5)
    assert rows[0].customer_name == "Ravi Traders"
    assert rows[0].fish_variety_name == "Rohu"

    # another date or variety is a new row
    assert stock.add_sale(ids["cust_ravi"], ids["rohu"], 1, 0, "2024-03-16") != first
    assert stock.add_sale(ids["cust_ravi"], ids["katla"], 1, 0, bill_date) != first


def test_zero_quantity_deletes_the_row(stock, ids, bill_date):
    stock.add_sale(ids["cust_ravi"], ids["rohu"], 2, 0, bill_date)
    assert stock.add_sale(ids["cust_ravi"], ids["rohu"], 0, 0, bill_date) is None
    assert stock.sales_by_date(bill_date) == []
    # nothing to delete: still nothing inserted
    assert stock.add_sale(ids["cust_ravi"], ids["rohu"], 0, 0, bill_date) is None
    assert stock.sales_by_date(bill_date) == []


def test_negative_quantities_rejected(stock, ids, bill_date):
    with pytest.raises(ValueError):
        stock.add_sale(ids["cust_ravi"], ids["rohu"], -1, 0, bill_date)


def test_sales_filters(stock, ids, bill_date):
    stock.add_sale(ids["cust_ravi"], ids["rohu"], 1, 0, "2024-03-14")
    stock.add_sale(ids["cust_ravi"], ids["rohu"], 2, 0, bill_date)
    stock.add_sale(ids["cust_sea"], ids["rohu"], 3, 0, bill_date)
    stock.add_sale(ids["cust_sea"], ids["rohu"], 4, 0, "2024-03-20")

    assert [s.quantity_crates for s in stock.sales_by_date(bill_date, customer_id=ids["cust_sea"])] == [3]
    assert sorted(s.quantity_crates for s in stock.sales_up_to_date(bill_date)) == [1, 2, 3]


def test_update_and_delete_sale(stock, ids, bill_date):
    sale_id = stock.add_sale(ids["cust_ravi"], ids["rohu"], 1, 0, bill_date)
    stock.update_sale(sale_id, ids["cust_sea"], ids["katla"], 0, 7)
    s = stock.get_sale(sale_id)
    assert (s.customer_id, s.fish_variety_id, s.quantity_kg) == (ids["cust_sea"], ids["katla"], 7)
    stock.delete_sale(sale_id)
    assert stock.get_sale(sale_id) is None


# ---------------- purchases ----------------

def test_purchases_crud(stock, ids, bill_date):
    pid = stock.add_purchase(ids["farmer_kumar"], ids["rohu"], 10, 0, bill_date, location="Eluru", secondary_name="")
    stock.add_purchase(ids["farmer_lakshmi"], ids["katla"], 0, 25, bill_date)

    p = stock.get_purchase(pid)
    assert (p.farmer_name, p.location, p.secondary_name) == ("Kumar", "Eluru", None)
    assert len(stock.purchases_by_date(bill_date)) == 2
    assert [x.purchase_id for x in stock.purchases_by_date(bill_date, farmer_id=ids["farmer_kumar"])] == [pid]

    stock.update_purchase(pid, ids["farmer_kumar"], ids["rohu"], 12, 4)
    assert stock.get_purchase(pid).quantity_crates == 12
    stock.delete_purchase(pid)
    assert [x.fish_variety_name for x in stock.all_purchases()] == ["Katla"]

    with pytest.raises(ValueError):
        stock.add_purchase(ids["farmer_kumar"], ids["rohu"], 0, 0, bill_date)


# ---------------- reconciler ----------------

def test_duplicate_sale_ids_keeps_first_per_key():
    rows = [
        {"sale_id": 9, "customer_id": 1, "fish_variety_id": 1},
        {"sale_id": 7, "customer_id": 1, "fish_variety_id": 2},
        {"sale_id": 5, "customer_id": 1, "fish_variety_id": 1},
        {"sale_id": 3, "customer_id": 2, "fish_variety_id": 1},
        {"sale_id": 2, "customer_id": 1, "fish_variety_id": 1},
    ]
    assert duplicate_sale_ids(rows) == [5, 2]
    assert duplicate_sale_ids([]) == []


def test_reconcile_keeps_most_recent_row(conn, stock, ids, bill_date):
    old = _insert_sale(conn, ids["cust_ravi"], ids["rohu"], 1, 0, bill_date, "2024-03-15 08:00:00.000")
    newest = _insert_sale(conn, ids["cust_ravi"], ids["rohu"], 3, 0, bill_date, "2024-03-15 09:30:00.000")
    middle = _insert_sale(conn, ids["cust_ravi"], ids["rohu"], 2, 0, bill_date, "2024-03-15 09:00:00.000")
    keep_other = _insert_sale(conn, ids["cust_sea"], ids["rohu"], 4, 0, bill_date, "2024-03-15 07:00:00.000")
    other_day = _insert_sale(conn, ids["cust_ravi"], ids["rohu"], 9, 0, "2024-03-16", "2024-03-16 07:00:00.000")
    _insert_sale(conn, ids["cust_ravi"], ids["rohu"], 8, 0, "2024-03-16", "2024-03-16 06:00:00.000")

    reconciler = DuplicateSaleReconciler(conn)
    assert reconciler.reconcile(bill_date) == 2

    remaining = {s.sale_id for s in stock.sales_by_date(bill_date)}
    assert remaining == {newest, keep_other}
    assert old not in remaining and middle not in remaining
    # other dates untouched
    assert len(stock.sales_by_date("2024-03-16")) == 2
    assert other_day in {s.sale_id for s in stock.sales_by_date("2024-03-16")}

    # idempotent
    assert reconciler.reconcile(bill_date) == 0


def test_reconcile_tie_on_created_at_keeps_highest_id(conn, stock, ids, bill_date):
    ts = "2024-03-15 10:00:00.000"
    low = _insert_sale(conn, ids["cust_ravi"], ids["katla"], 1, 0, bill_date, ts)
    high = _insert_sale(conn, ids["cust_ravi"], ids["katla"], 2, 0, bill_date, ts)
    assert DuplicateSaleReconciler(conn).reconcile(bill_date) == 1
    assert [s.sale_id for s in stock.sales_by_date(bill_date)] == [high]
    assert stock.get_sale(low) is None
