# database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from fish_ledger.database.repositories import (
        # Master data
        CustomersRepo, Customer, CustomersDomainError,
        FarmersRepo, Farmer, FishVarietiesRepo, FishVariety,
        # Daily ledger
        StockRepo, Sale, Purchase,
        # Bills
        BillsRepo, SalesBill, PurchaseBillsRepo, PurchaseBill,
        PurchaseBillPaymentsRepo, PurchaseBillPayment,
        # Cash & expenses
        PaymentsRepo, CustomerPayment,
        ExpensesRepo, Expense, ExpenseCategory, ExpensesDomainError,
    )
"""

# ---------------- Master data --------------
from .customers_repo import (
    CustomersRepo,
    Customer,
    DomainError as CustomersDomainError,
)
from .farmers_repo import FarmersRepo, Farmer
from .fish_varieties_repo import FishVarietiesRepo, FishVariety

# ---------------- Daily ledger -------------
from .stock_repo import StockRepo, Sale, Purchase

# ------------------ Bills ------------------
from .bills_repo import BillsRepo, SalesBill, Rate, next_bill_number
from .purchase_bills_repo import PurchaseBillsRepo, PurchaseBill
from .purchase_bill_payments_repo import PurchaseBillPaymentsRepo, PurchaseBillPayment

# ----------------- Payments ----------------
from .payments_repo import PaymentsRepo, CustomerPayment

# ---------------- Expenses -----------------
from .expenses_repo import (
    ExpensesRepo,
    Expense,
    ExpenseCategory,
    DomainError as ExpensesDomainError,
)

__all__ = [
    # master data
    "CustomersRepo",
    "Customer",
    "CustomersDomainError",
    "FarmersRepo",
    "Farmer",
    "FishVarietiesRepo",
    "FishVariety",
    # stock_repo
    "StockRepo",
    "Sale",
    "Purchase",
    # bills
    "BillsRepo",
    "SalesBill",
    "Rate",
    "next_bill_number",
    "PurchaseBillsRepo",
    "PurchaseBill",
    "PurchaseBillPaymentsRepo",
    "PurchaseBillPayment",
    # payments_repo
    "PaymentsRepo",
    "CustomerPayment",
    # expenses_repo
    "ExpensesRepo",
    "Expense",
    "ExpenseCategory",
    "ExpensesDomainError",
]
