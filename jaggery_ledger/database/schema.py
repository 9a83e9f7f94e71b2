from pathlib import Path
import logging
import sqlite3
import sys

_log = logging.getLogger(__name__)

SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== MASTER DATA ======================== */

/* -------- users (role lookup only; no credentials) -------- */
CREATE TABLE IF NOT EXISTS users (
    user_id    INTEGER PRIMARY KEY AUTOINCREMENT,
    username   TEXT UNIQUE NOT NULL,
    full_name  TEXT NOT NULL,
    email      TEXT,
    role       TEXT NOT NULL DEFAULT 'dispatch' CHECK (role IN ('admin','manager','dispatch')),
    is_active  INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1)),
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

/* -------- parties -------- */
CREATE TABLE IF NOT EXISTS farmers (
    farmer_id    INTEGER PRIMARY KEY AUTOINCREMENT,
    auction_name TEXT NOT NULL,
    billing_name TEXT,
    phone        TEXT,
    village      TEXT,
    created_at   TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS customers (
    customer_id         INTEGER PRIMARY KEY AUTOINCREMENT,
    company_name        TEXT NOT NULL,
    contact_person_name TEXT,
    phone               TEXT,
    bag_marking         TEXT,
    created_at          TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

/* -------- products & warehouses -------- */
CREATE TABLE IF NOT EXISTS products (
    product_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    product_name TEXT NOT NULL UNIQUE COLLATE NOCASE,
    description  TEXT,
    created_at   TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS warehouses (
    warehouse_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    warehouse_name TEXT NOT NULL UNIQUE COLLATE NOCASE,
    location       TEXT,
    created_at     TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

/* -------- settings (key/value) -------- */
CREATE TABLE IF NOT EXISTS settings (
    setting_key   TEXT PRIMARY KEY,
    setting_value TEXT NOT NULL,
    updated_at    TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

/* ======================== PURCHASE SIDE ======================== */

/* -------- lots: one purchase from one farmer on one date -------- */
CREATE TABLE IF NOT EXISTS lots (
    lot_id        INTEGER PRIMARY KEY AUTOINCREMENT,
    lot_number    TEXT NOT NULL UNIQUE COLLATE NOCASE,
    farmer_id     INTEGER NOT NULL,
    purchase_date DATE    NOT NULL,
    notes         TEXT,
    created_by    INTEGER,
    created_at    TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (farmer_id)  REFERENCES farmers(farmer_id),
    FOREIGN KEY (created_by) REFERENCES users(user_id)
);
CREATE INDEX IF NOT EXISTS idx_lots_farmer ON lots(farmer_id);
CREATE INDEX IF NOT EXISTS idx_lots_date   ON lots(purchase_date);

/* -------- lot items: one product's stock within a lot -------- */
CREATE TABLE IF NOT EXISTS lot_items (
    lot_item_id          INTEGER PRIMARY KEY AUTOINCREMENT,
    lot_id               INTEGER NOT NULL,
    product_id           INTEGER NOT NULL,
    warehouse_id         INTEGER NOT NULL,
    bay                  TEXT,
    bags                 NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(bags AS REAL) >= 0),
    loose_kg             NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(loose_kg AS REAL) >= 0),
    bag_kg               NUMERIC NOT NULL CHECK (CAST(bag_kg AS REAL) > 0),
    purchase_rate_per_kg NUMERIC NOT NULL CHECK (CAST(purchase_rate_per_kg AS REAL) >= 0),
    initial_total_kg     NUMERIC NOT NULL CHECK (CAST(initial_total_kg AS REAL) > 0),
    current_total_kg     NUMERIC NOT NULL,
    total_purchase_value NUMERIC NOT NULL CHECK (CAST(total_purchase_value AS REAL) >= 0),
    created_at           TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    CHECK (CAST(current_total_kg AS REAL) >= 0),
    CHECK (CAST(current_total_kg AS REAL) <= CAST(initial_total_kg AS REAL)),
    FOREIGN KEY (lot_id)       REFERENCES lots(lot_id) ON DELETE CASCADE,
    FOREIGN KEY (product_id)   REFERENCES products(product_id),
    FOREIGN KEY (warehouse_id) REFERENCES warehouses(warehouse_id)
);
CREATE INDEX IF NOT EXISTS idx_lot_items_lot     ON lot_items(lot_id);
CREATE INDEX IF NOT EXISTS idx_lot_items_product ON lot_items(product_id);

/* -------- purchase payments (append-only) -------- */
CREATE TABLE IF NOT EXISTS purchase_payments (
    payment_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    lot_id       INTEGER NOT NULL,
    amount       NUMERIC NOT NULL CHECK (CAST(amount AS REAL) > 0),
    payment_date DATE    NOT NULL,
    method       TEXT    NOT NULL CHECK (method IN ('Cash','RTGS')),
    reference    TEXT,
    notes        TEXT,
    created_by   INTEGER,
    created_at   TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (lot_id)     REFERENCES lots(lot_id) ON DELETE RESTRICT,
    FOREIGN KEY (created_by) REFERENCES users(user_id)
);
CREATE INDEX IF NOT EXISTS idx_pp_lot ON purchase_payments(lot_id);

/* ======================== SALES SIDE ======================== */

CREATE TABLE IF NOT EXISTS sales_orders (
    order_id    INTEGER PRIMARY KEY AUTOINCREMENT,
    customer_id INTEGER NOT NULL,
    order_date  DATE    NOT NULL,
    notes       TEXT    NOT NULL DEFAULT '',
    status      TEXT    NOT NULL DEFAULT 'Draft'
                CHECK (status IN ('Draft','Packing in Progress','Packed')),
    created_by  INTEGER,
    created_at  TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (customer_id) REFERENCES customers(customer_id),
    FOREIGN KEY (created_by)  REFERENCES users(user_id)
);
CREATE INDEX IF NOT EXISTS idx_so_customer ON sales_orders(customer_id);

/* -------- pick lines: allocation of a lot item to an order -------- */
CREATE TABLE IF NOT EXISTS picklist_items (
    picklist_item_id INTEGER PRIMARY KEY AUTOINCREMENT,
    order_id         INTEGER NOT NULL,
    lot_item_id      INTEGER NOT NULL,
    customer_mark    TEXT    NOT NULL DEFAULT '',
    packaging_type   TEXT    NOT NULL DEFAULT 'Bag',
    bag_kg           NUMERIC NOT NULL CHECK (CAST(bag_kg AS REAL) > 0),
    planned_bags     NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(planned_bags AS REAL) >= 0),
    planned_loose_kg NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(planned_loose_kg AS REAL) >= 0),
    planned_total_kg NUMERIC NOT NULL CHECK (CAST(planned_total_kg AS REAL) > 0),
    sale_rate_per_kg NUMERIC NOT NULL CHECK (CAST(sale_rate_per_kg AS REAL) > 0),
    status           TEXT    NOT NULL DEFAULT 'To Be Packed'
                     CHECK (status IN ('To Be Packed','Packed')),
    actual_bags      NUMERIC,
    actual_loose_kg  NUMERIC,
    actual_total_kg  NUMERIC,
    packed_at        TIMESTAMP,
    created_at       TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (order_id)    REFERENCES sales_orders(order_id) ON DELETE CASCADE,
    FOREIGN KEY (lot_item_id) REFERENCES lot_items(lot_item_id) ON DELETE RESTRICT
);
CREATE INDEX IF NOT EXISTS idx_pick_order    ON picklist_items(order_id);
CREATE INDEX IF NOT EXISTS idx_pick_lot_item ON picklist_items(lot_item_id);
CREATE INDEX IF NOT EXISTS idx_pick_status   ON picklist_items(status);

/* -------- dispatch confirmations: exactly one per packed line -------- */
CREATE TABLE IF NOT EXISTS dispatch_confirmations (
    dispatch_id      INTEGER PRIMARY KEY AUTOINCREMENT,
    picklist_item_id INTEGER NOT NULL UNIQUE,
    actual_bags      NUMERIC NOT NULL CHECK (CAST(actual_bags AS REAL) >= 0),
    actual_loose_kg  NUMERIC NOT NULL CHECK (CAST(actual_loose_kg AS REAL) >= 0),
    actual_total_kg  NUMERIC NOT NULL CHECK (CAST(actual_total_kg AS REAL) > 0),
    created_by       INTEGER,
    created_at       TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (picklist_item_id) REFERENCES picklist_items(picklist_item_id) ON DELETE RESTRICT,
    FOREIGN KEY (created_by)       REFERENCES users(user_id)
);

/* -------- sales payments (append-only) -------- */
CREATE TABLE IF NOT EXISTS sales_payments (
    payment_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    order_id     INTEGER NOT NULL,
    amount       NUMERIC NOT NULL CHECK (CAST(amount AS REAL) > 0),
    payment_date DATE    NOT NULL,
    method       TEXT    NOT NULL CHECK (method IN ('Cash','RTGS')),
    reference    TEXT,
    notes        TEXT,
    created_by   INTEGER,
    created_at   TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (order_id)   REFERENCES sales_orders(order_id) ON DELETE RESTRICT,
    FOREIGN KEY (created_by) REFERENCES users(user_id)
);
CREATE INDEX IF NOT EXISTS idx_sp_order ON sales_payments(order_id);

/* -------- logs -------- */
CREATE TABLE IF NOT EXISTS audit_logs (
    log_id      INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id     INTEGER,
    action_type TEXT NOT NULL,
    table_name  TEXT,
    record_id   TEXT,
    action_time TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    details     TEXT,
    FOREIGN KEY (user_id) REFERENCES users(user_id)
);

/* ======================== TRIGGERS ======================== */

/* Payments and dispatch records are append-only */
DROP TRIGGER IF EXISTS trg_purchase_payments_no_update;
CREATE TRIGGER trg_purchase_payments_no_update
BEFORE UPDATE ON purchase_payments
BEGIN
    SELECT RAISE(ABORT, 'purchase payments are append-only');
END;

DROP TRIGGER IF EXISTS trg_purchase_payments_no_delete;
CREATE TRIGGER trg_purchase_payments_no_delete
BEFORE DELETE ON purchase_payments
BEGIN
    SELECT RAISE(ABORT, 'purchase payments are append-only');
END;

DROP TRIGGER IF EXISTS trg_sales_payments_no_update;
CREATE TRIGGER trg_sales_payments_no_update
BEFORE UPDATE ON sales_payments
BEGIN
    SELECT RAISE(ABORT, 'sales payments are append-only');
END;

DROP TRIGGER IF EXISTS trg_sales_payments_no_delete;
CREATE TRIGGER trg_sales_payments_no_delete
BEFORE DELETE ON sales_payments
BEGIN
    SELECT RAISE(ABORT, 'sales payments are append-only');
END;

DROP TRIGGER IF EXISTS trg_dispatch_no_update;
CREATE TRIGGER trg_dispatch_no_update
BEFORE UPDATE ON dispatch_confirmations
BEGIN
    SELECT RAISE(ABORT, 'dispatch confirmations are immutable');
END;

/* Purchase value and initial stock are fixed at creation */
DROP TRIGGER IF EXISTS trg_lot_items_fixed_fields;
CREATE TRIGGER trg_lot_items_fixed_fields
BEFORE UPDATE OF initial_total_kg, total_purchase_value, purchase_rate_per_kg, bag_kg, lot_id
ON lot_items
WHEN NEW.initial_total_kg     IS NOT OLD.initial_total_kg
  OR NEW.total_purchase_value IS NOT OLD.total_purchase_value
  OR NEW.purchase_rate_per_kg IS NOT OLD.purchase_rate_per_kg
  OR NEW.bag_kg               IS NOT OLD.bag_kg
  OR NEW.lot_id               IS NOT OLD.lot_id
BEGIN
    SELECT RAISE(ABORT, 'lot item quantities and value are fixed at creation');
END;

/* Stock only goes down */
DROP TRIGGER IF EXISTS trg_lot_items_stock_non_increasing;
CREATE TRIGGER trg_lot_items_stock_non_increasing
BEFORE UPDATE OF current_total_kg ON lot_items
WHEN CAST(NEW.current_total_kg AS REAL) > CAST(OLD.current_total_kg AS REAL)
BEGIN
    SELECT RAISE(ABORT, 'current stock of a lot item cannot increase');
END;

/* Packed is terminal */
DROP TRIGGER IF EXISTS trg_pick_packed_terminal;
CREATE TRIGGER trg_pick_packed_terminal
BEFORE UPDATE OF status ON picklist_items
WHEN OLD.status = 'Packed' AND NEW.status <> 'Packed'
BEGIN
    SELECT RAISE(ABORT, 'a packed pick line cannot go back to To Be Packed');
END;
"""


def init_schema(db_path: Path | str = "jaggery.db") -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, timeout=30)
    try:
        conn.execute("PRAGMA journal_mode=WAL;")
        # Apply (idempotent) schema
        conn.executescript(SQL)
        conn.commit()
    finally:
        conn.close()
    _log.debug("schema applied to %s", db_path)


if __name__ == "__main__":
    from ..config import DB_PATH

    target = sys.argv[1] if len(sys.argv) > 1 else DB_PATH
    init_schema(target)
    print(f"✓ DB applied to {target}")
