DATA_DIR = "data"
DB_FILE_NAME = "fish_ledger.db"

TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1.0.0"

# ---- bill numbering ----
SALES_BILL_PREFIX = "IB-"
PURCHASE_BILL_PREFIX = "PB-"
BILL_NUMBER_WIDTH = 4

# ---- purchase bill defaults ----
DEFAULT_CRATE_WEIGHT_KG = 35.0
DEFAULT_WEIGHT_DEDUCTION_PCT = 5.0
DEFAULT_COMMISSION_PER_KG = 0.5

# ---- payments ----
PAYMENT_MODES: tuple[str, ...] = ("cash", "upi", "neft", "other")

DEFAULT_EXPENSE_CATEGORIES: tuple[dict, ...] = (
    {"name": "Fuel/Transport", "icon": "truck", "color": "#f59e0b"},
    {"name": "Labor/Wages", "icon": "users", "color": "#3b82f6"},
    {"name": "Ice/Cold Storage", "icon": "snowflake", "color": "#06b6d4"},
    {"name": "Packaging", "icon": "package", "color": "#8b5cf6"},
    {"name": "Vehicle Maintenance", "icon": "wrench", "color": "#ef4444"},
    {"name": "Commission/Fees", "icon": "percent", "color": "#10b981"},
    {"name": "Food/Refreshments", "icon": "coffee", "color": "#f97316"},
    {"name": "Miscellaneous", "icon": "more", "color": "#6b7280"},
)
