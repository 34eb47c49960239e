from pathlib import Path
import sqlite3
import sys

from ..utils.loggers import get_logger

SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== MASTER DATA ======================== */

CREATE TABLE IF NOT EXISTS fish_varieties (
    fish_variety_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name            TEXT UNIQUE NOT NULL,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now'))
);

CREATE TABLE IF NOT EXISTS farmers (
    farmer_id    INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT NOT NULL,
    phone        TEXT,
    email        TEXT,
    address      TEXT,
    city         TEXT,
    state        TEXT,
    bank_account TEXT,
    bank_name    TEXT,
    notes        TEXT,
    created_at   TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now'))
);
CREATE INDEX IF NOT EXISTS idx_farmers_name ON farmers(name);

CREATE TABLE IF NOT EXISTS customers (
    customer_id    INTEGER PRIMARY KEY AUTOINCREMENT,
    name           TEXT NOT NULL,
    phone          TEXT,
    email          TEXT,
    address        TEXT,
    city           TEXT,
    state          TEXT,
    contact_person TEXT,
    business_type  TEXT,
    notes          TEXT,
    created_at     TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now'))
);
CREATE INDEX IF NOT EXISTS idx_customers_name ON customers(name);

/* ======================== DAILY LEDGER ======================== */

/* Raw sale rows. One row per (customer, variety, date) is enforced by
   StockRepo.add_sale; DuplicateSaleReconciler repairs older data. */
CREATE TABLE IF NOT EXISTS sales (
    sale_id         INTEGER PRIMARY KEY AUTOINCREMENT,
    customer_id     INTEGER NOT NULL,
    fish_variety_id INTEGER NOT NULL,
    quantity_crates REAL NOT NULL DEFAULT 0 CHECK (quantity_crates >= 0),
    quantity_kg     REAL NOT NULL DEFAULT 0 CHECK (quantity_kg >= 0),
    sale_date       DATE NOT NULL,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now')),
    FOREIGN KEY (customer_id)     REFERENCES customers(customer_id),
    FOREIGN KEY (fish_variety_id) REFERENCES fish_varieties(fish_variety_id)
);
CREATE INDEX IF NOT EXISTS idx_sales_natural_key
  ON sales(sale_date, customer_id, fish_variety_id);
CREATE INDEX IF NOT EXISTS idx_sales_date_created
  ON sales(sale_date, created_at DESC, sale_id DESC);

CREATE TABLE IF NOT EXISTS purchases (
    purchase_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    farmer_id       INTEGER NOT NULL,
    fish_variety_id INTEGER NOT NULL,
    quantity_crates REAL NOT NULL DEFAULT 0 CHECK (quantity_crates >= 0),
    quantity_kg     REAL NOT NULL DEFAULT 0 CHECK (quantity_kg >= 0),
    purchase_date   DATE NOT NULL,
    location        TEXT,
    secondary_name  TEXT,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now')),
    FOREIGN KEY (farmer_id)       REFERENCES farmers(farmer_id),
    FOREIGN KEY (fish_variety_id) REFERENCES fish_varieties(fish_variety_id)
);
CREATE INDEX IF NOT EXISTS idx_purchases_date_farmer ON purchases(purchase_date, farmer_id);

/* ======================== SALES BILLS ======================== */

CREATE TABLE IF NOT EXISTS bills (
    bill_id          INTEGER PRIMARY KEY AUTOINCREMENT,
    bill_number      TEXT UNIQUE NOT NULL,
    customer_id      INTEGER NOT NULL,
    bill_date        DATE NOT NULL,
    subtotal         REAL NOT NULL DEFAULT 0,
    discount         REAL NOT NULL DEFAULT 0,
    total            REAL NOT NULL DEFAULT 0,   -- subtotal - discount (may be negative)
    previous_balance REAL NOT NULL DEFAULT 0,
    grand_total      REAL NOT NULL DEFAULT 0,   -- total + previous_balance
    amount_received  REAL NOT NULL DEFAULT 0,
    balance_due      REAL NOT NULL DEFAULT 0,   -- grand_total - amount_received (negative = credit)
    payment_status   TEXT NOT NULL CHECK (payment_status IN ('pending','partial','paid')),
    notes            TEXT,
    created_at       TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now')),
    FOREIGN KEY (customer_id) REFERENCES customers(customer_id),
    /* status is a function of (grand_total, amount_received), never set on its own */
    CHECK (payment_status = CASE
        WHEN amount_received >= grand_total THEN 'paid'
        WHEN amount_received > 0 THEN 'partial'
        ELSE 'pending' END)
);
CREATE INDEX IF NOT EXISTS idx_bills_date ON bills(bill_date);
CREATE INDEX IF NOT EXISTS idx_bills_customer_status ON bills(customer_id, payment_status);

CREATE TABLE IF NOT EXISTS bill_items (
    item_id           INTEGER PRIMARY KEY AUTOINCREMENT,
    bill_id           INTEGER NOT NULL,
    fish_variety_id   INTEGER NOT NULL,
    fish_variety_name TEXT NOT NULL,            -- denormalized for history
    quantity_crates   REAL NOT NULL DEFAULT 0 CHECK (quantity_crates >= 0),
    quantity_kg       REAL NOT NULL DEFAULT 0 CHECK (quantity_kg >= 0),
    rate_per_crate    REAL NOT NULL DEFAULT 0 CHECK (rate_per_crate >= 0),
    rate_per_kg       REAL NOT NULL DEFAULT 0 CHECK (rate_per_kg >= 0),
    amount            REAL NOT NULL DEFAULT 0,
    created_at        TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now')),
    FOREIGN KEY (bill_id)         REFERENCES bills(bill_id) ON DELETE CASCADE,
    FOREIGN KEY (fish_variety_id) REFERENCES fish_varieties(fish_variety_id)
);
CREATE INDEX IF NOT EXISTS idx_bill_items_bill ON bill_items(bill_id);
/* "most recent rate" lookups */
CREATE INDEX IF NOT EXISTS idx_bill_items_variety_recent
  ON bill_items(fish_variety_id, created_at DESC, item_id DESC);

/* ======================== PURCHASE BILLS ======================== */

CREATE TABLE IF NOT EXISTS purchase_bills (
    purchase_bill_id        INTEGER PRIMARY KEY AUTOINCREMENT,
    bill_number             TEXT UNIQUE NOT NULL,
    farmer_id               INTEGER NOT NULL,
    bill_date               DATE NOT NULL,
    location                TEXT,
    secondary_name          TEXT,
    gross_amount            REAL NOT NULL DEFAULT 0,
    weight_deduction_pct    REAL NOT NULL DEFAULT 5 CHECK (weight_deduction_pct >= 0 AND weight_deduction_pct <= 100),
    weight_deduction_amount REAL NOT NULL DEFAULT 0,
    subtotal                REAL NOT NULL DEFAULT 0,
    total_billable_weight   REAL NOT NULL DEFAULT 0,
    commission_per_kg       REAL NOT NULL DEFAULT 0,
    commission_amount       REAL NOT NULL DEFAULT 0,   -- added on top of subtotal
    other_deductions_total  REAL NOT NULL DEFAULT 0,
    total                   REAL NOT NULL DEFAULT 0,
    amount_paid             REAL NOT NULL DEFAULT 0,   -- SUM(purchase_bill_payments.amount)
    balance_due             REAL NOT NULL DEFAULT 0,
    payment_status          TEXT NOT NULL CHECK (payment_status IN ('pending','partial','paid')),
    notes                   TEXT,
    created_at              TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now')),
    FOREIGN KEY (farmer_id) REFERENCES farmers(farmer_id),
    CHECK (payment_status = CASE
        WHEN amount_paid >= total THEN 'paid'
        WHEN amount_paid > 0 THEN 'partial'
        ELSE 'pending' END)
);
CREATE INDEX IF NOT EXISTS idx_purchase_bills_date ON purchase_bills(bill_date);
CREATE INDEX IF NOT EXISTS idx_purchase_bills_farmer_status ON purchase_bills(farmer_id, payment_status);

CREATE TABLE IF NOT EXISTS purchase_bill_items (
    item_id           INTEGER PRIMARY KEY AUTOINCREMENT,
    purchase_bill_id  INTEGER NOT NULL,
    fish_variety_id   INTEGER NOT NULL,
    fish_variety_name TEXT NOT NULL,
    quantity_crates   REAL NOT NULL DEFAULT 0 CHECK (quantity_crates >= 0),
    quantity_kg       REAL NOT NULL DEFAULT 0 CHECK (quantity_kg >= 0),
    crate_weight      REAL NOT NULL DEFAULT 35 CHECK (crate_weight > 0),
    actual_weight     REAL NOT NULL DEFAULT 0,
    apply_deduction   INTEGER NOT NULL DEFAULT 1 CHECK (apply_deduction IN (0,1)),
    billable_weight   REAL NOT NULL DEFAULT 0,
    rate_per_kg       REAL NOT NULL DEFAULT 0 CHECK (rate_per_kg >= 0),
    amount            REAL NOT NULL DEFAULT 0,
    created_at        TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now')),
    FOREIGN KEY (purchase_bill_id) REFERENCES purchase_bills(purchase_bill_id) ON DELETE CASCADE,
    FOREIGN KEY (fish_variety_id)  REFERENCES fish_varieties(fish_variety_id)
);
CREATE INDEX IF NOT EXISTS idx_pb_items_bill ON purchase_bill_items(purchase_bill_id);
CREATE INDEX IF NOT EXISTS idx_pb_items_variety_recent
  ON purchase_bill_items(fish_variety_id, created_at DESC, item_id DESC);

/* ice, transport, etc. (structured; never parsed out of notes) */
CREATE TABLE IF NOT EXISTS purchase_bill_deductions (
    deduction_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    purchase_bill_id INTEGER NOT NULL,
    label            TEXT NOT NULL,
    amount           REAL NOT NULL,
    FOREIGN KEY (purchase_bill_id) REFERENCES purchase_bills(purchase_bill_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_pb_deductions_bill ON purchase_bill_deductions(purchase_bill_id);

CREATE TABLE IF NOT EXISTS purchase_bill_payments (
    payment_id       INTEGER PRIMARY KEY AUTOINCREMENT,
    purchase_bill_id INTEGER NOT NULL,
    payment_date     DATE NOT NULL,
    amount           REAL NOT NULL CHECK (amount > 0),
    payment_mode     TEXT NOT NULL CHECK (payment_mode IN ('cash','upi','neft','other')),
    notes            TEXT,
    created_at       TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now')),
    FOREIGN KEY (purchase_bill_id) REFERENCES purchase_bills(purchase_bill_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_pb_payments_bill ON purchase_bill_payments(purchase_bill_id);
CREATE INDEX IF NOT EXISTS idx_pb_payments_date ON purchase_bill_payments(payment_date);

/* ======================== CASH RECEIVED ======================== */

CREATE TABLE IF NOT EXISTS payments (
    payment_id       INTEGER PRIMARY KEY AUTOINCREMENT,
    customer_id      INTEGER,
    received_from    TEXT,
    amount           REAL NOT NULL CHECK (amount > 0),
    payment_method   TEXT NOT NULL DEFAULT 'Cash',
    reference_number TEXT,
    notes            TEXT,
    payment_date     DATE NOT NULL,
    created_at       TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now')),
    FOREIGN KEY (customer_id) REFERENCES customers(customer_id) ON DELETE SET NULL
);
CREATE INDEX IF NOT EXISTS idx_payments_date ON payments(payment_date);

/* ======================== EXPENSES ======================== */

CREATE TABLE IF NOT EXISTS expense_categories (
    category_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT UNIQUE NOT NULL,
    icon        TEXT NOT NULL DEFAULT 'more',
    color       TEXT NOT NULL DEFAULT '#6b7280'
);

CREATE TABLE IF NOT EXISTS expenses (
    expense_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    category_id    INTEGER,
    amount         REAL NOT NULL CHECK (amount >= 0),
    description    TEXT,
    payment_method TEXT,
    paid_to        TEXT,
    expense_date   DATE NOT NULL,
    created_at     TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now')),
    FOREIGN KEY (category_id) REFERENCES expense_categories(category_id)
);
CREATE INDEX IF NOT EXISTS idx_expenses_date ON expenses(expense_date);

/* ======================== LOGS ======================== */

CREATE TABLE IF NOT EXISTS audit_logs (
    log_id      INTEGER PRIMARY KEY AUTOINCREMENT,
    action_type TEXT NOT NULL,
    table_name  TEXT,
    record_id   TEXT,
    action_time TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now')),
    details     TEXT
);
"""


def init_schema(conn: sqlite3.Connection) -> None:
    """Apply the (idempotent) schema on an open connection."""
    conn.executescript(SQL)
    conn.commit()


# python -m fish_ledger.database.schema [db_path]
if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else Path(__file__).resolve().parents[1] / "data" / "fish_ledger.db"
    Path(target).parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(target) as c:
        init_schema(c)
    get_logger().info("Schema applied to %s", target)
