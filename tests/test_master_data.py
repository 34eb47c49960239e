import pytest

from fish_ledger.database.repositories import (
    Customer,
    CustomersDomainError,
    CustomersRepo,
    Farmer,
    FarmersRepo,
    FishVarietiesRepo,
    StockRepo,
)


def test_customer_crud_and_search(conn, ids):
    repo = CustomersRepo(conn)
    cid = repo.create(Customer(None, "  Anil Fish Stall ", phone=" 98 ", city="Rajahmundry", notes=""))
    c = repo.get(cid)
    assert (c.name, c.phone, c.notes) == ("Anil Fish Stall", "98", None)

    assert [x.name for x in repo.list_customers()] == ["Anil Fish Stall", "Ravi Traders", "Sea Mart"]

    repo.update(Customer(cid, "Anil Fish Stall", city="Kovvur", business_type="retail"))
    assert repo.get(cid).city == "Kovvur"
    assert [x.customer_id for x in repo.search("kovv")] == [cid]

    with pytest.raises(CustomersDomainError):
        repo.create(Customer(None, "   "))

    repo.delete(cid)
    assert repo.get(cid) is None


def test_customer_with_sales_cannot_be_deleted(conn, ids, bill_date):
    StockRepo(conn).add_sale(ids["cust_ravi"], ids["rohu"], 1, 0, bill_date)
    with pytest.raises(CustomersDomainError):
        CustomersRepo(conn).delete(ids["cust_ravi"])


def test_farmers(conn, ids, bill_date):
    repo = FarmersRepo(conn)
    assert [f.name for f in repo.list_farmers()] == ["Kumar", "Lakshmi"]
    fid = repo.create(Farmer(None, "Venkat", bank_account=" 0012 ", bank_name="SBI"))
    assert repo.get(fid).bank_account == "0012"
    repo.update(Farmer(fid, "Venkat R", bank_name="Andhra Bank"))
    assert repo.get(fid).name == "Venkat R"

    StockRepo(conn).add_purchase(ids["farmer_kumar"], ids["rohu"], 1, 0, bill_date)
    with pytest.raises(CustomersDomainError):
        repo.delete(ids["farmer_kumar"])
    repo.delete(fid)
    assert repo.get(fid) is None


def test_fish_varieties(conn, ids):
    repo = FishVarietiesRepo(conn)
    assert [v.name for v in repo.list_varieties()] == ["Katla", "Rohu", "Tilapia"]
    with pytest.raises(CustomersDomainError):
        repo.create(" Rohu ")
    with pytest.raises(CustomersDomainError):
        repo.create("")
    repo.update(ids["tilapia"], "Tilapia (big)")
    assert repo.names_by_id([ids["tilapia"], ids["rohu"]]) == {
        ids["tilapia"]: "Tilapia (big)",
        ids["rohu"]: "Rohu",
    }
    repo.delete(ids["tilapia"])
    assert repo.get(ids["tilapia"]) is None
