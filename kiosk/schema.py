SCHEMA_SQL = r"""
-- Key/value settings (POS fee config, manual inventory adjustments as JSON)
CREATE TABLE IF NOT EXISTS settings (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL
);

-- Products (recipe quantities are per unit sold)
CREATE TABLE IF NOT EXISTS products (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  price REAL NOT NULL DEFAULT 0,
  use_manual_cost INTEGER NOT NULL DEFAULT 0,
  manual_cost_per_unit REAL NOT NULL DEFAULT 0,
  strawberries_per_unit REAL NOT NULL DEFAULT 0,  -- pieces
  chocolate_g_per_unit REAL NOT NULL DEFAULT 0,
  kunafa_g_per_unit REAL NOT NULL DEFAULT 0,
  cups_per_unit REAL NOT NULL DEFAULT 0,
  sticks_per_unit REAL NOT NULL DEFAULT 0
);

-- Sales (no FK to products: deleting a product keeps its history)
CREATE TABLE IF NOT EXISTS sales (
  id TEXT PRIMARY KEY,
  date TEXT NOT NULL,                    -- ISO date
  product_id TEXT NOT NULL,
  qty INTEGER NOT NULL,
  unit_price REAL NOT NULL,              -- price at time of sale
  source TEXT NOT NULL DEFAULT 'manual', -- pos / manual
  transaction_id TEXT
);

CREATE TABLE IF NOT EXISTS fixed_costs (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  amount REAL NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS ingredients (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  unit TEXT NOT NULL,                    -- g / pcs / units
  default_bulk_qty REAL NOT NULL DEFAULT 0,
  default_bulk_cost REAL NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS ingredient_batches (
  id TEXT PRIMARY KEY,
  ingredient_id TEXT NOT NULL,
  name TEXT NOT NULL,
  date TEXT NOT NULL,
  bulk_qty REAL NOT NULL,
  bulk_cost REAL NOT NULL
);

-- Strawberry batches: cost_per_gram / cost_per_piece are written for display only
CREATE TABLE IF NOT EXISTS strawberry_batches (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  date TEXT NOT NULL,
  bulk_weight_kg REAL NOT NULL,
  bulk_weight_g REAL NOT NULL,
  bulk_cost REAL NOT NULL,
  avg_weight_per_piece REAL NOT NULL,
  cost_per_gram REAL NOT NULL DEFAULT 0,
  cost_per_piece REAL NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS waste_entries (
  id TEXT PRIMARY KEY,
  date TEXT NOT NULL,
  ingredient_id TEXT NOT NULL,
  qty REAL NOT NULL,
  reason TEXT,
  estimated_cost REAL NOT NULL DEFAULT 0
);
"""

# Insertion order matters: the resolvers treat the last-added batch as current.
TABLE_ORDER_BY = {
    "products": "rowid",
    "sales": "date, rowid",
    "fixed_costs": "rowid",
    "ingredients": "rowid",
    "ingredient_batches": "rowid",
    "strawberry_batches": "rowid",
    "waste_entries": "rowid",
}
