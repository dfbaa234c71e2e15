SCHEMA_SQL = r"""
-- One JSON document per logical collection (receptions, lots, ...).
-- Every mutation rewrites the whole document under its key.
CREATE TABLE IF NOT EXISTS kv_store (
  key TEXT PRIMARY KEY,
  payload TEXT NOT NULL,                 -- JSON array or scalar
  updated_at TEXT NOT NULL DEFAULT ''    -- ISO datetime of last rewrite
);
"""
