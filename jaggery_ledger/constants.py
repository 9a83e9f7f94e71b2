# jaggery_ledger/constants.py
APP_NAME = "Jaggery Ledger"

DATA_DIR = "data"
DB_FILE_NAME = "jaggery.db"
LOG_DIR_NAME = "logs"
LEDGER_LOG_FILE = "ledger.log"

TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1.0.0"

# One "sippam" (bag) of jaggery, in kg
DEFAULT_BAG_KG = 30.0
SETTING_DEFAULT_BAG_KG = "default_bag_kg"

# float tolerance for kg / money comparisons
EPS = 1e-9

# ---- sales order status ----
ORDER_DRAFT = "Draft"
ORDER_PACKING = "Packing in Progress"
ORDER_PACKED = "Packed"
ORDER_STATUSES = (ORDER_DRAFT, ORDER_PACKING, ORDER_PACKED)

# ---- pick line status ----
PICK_TO_BE_PACKED = "To Be Packed"
PICK_PACKED = "Packed"

DEFAULT_PACKAGING_TYPE = "Bag"

# ---- payments ----
PAYMENT_METHODS = ("Cash", "RTGS")

# ---- roles ----
ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_DISPATCH = "dispatch"
