# storage/schema.py
"""
Database schema for the card portfolio store.

Schema version history:
  v1: cards, transactions, meta
"""
from __future__ import annotations

SCHEMA_VERSION = 1

CREATE_META = """
CREATE TABLE IF NOT EXISTS meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""

CREATE_CARDS = """
CREATE TABLE IF NOT EXISTS cards (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    issuer TEXT NOT NULL,
    product_id TEXT,
    raw_names TEXT NOT NULL DEFAULT '[]',
    first_seen TEXT NOT NULL,
    last_used TEXT NOT NULL,
    transaction_count INTEGER NOT NULL DEFAULT 1,
    is_active INTEGER NOT NULL DEFAULT 1,
    match_confidence REAL NOT NULL DEFAULT 0.0,
    seq INTEGER NOT NULL
);
"""

CREATE_TRANSACTIONS = """
CREATE TABLE IF NOT EXISTS transactions (
    id TEXT PRIMARY KEY,
    merchant_name TEXT NOT NULL,
    amount REAL NOT NULL,
    currency TEXT NOT NULL,
    card_name TEXT NOT NULL,
    card_id TEXT,
    category TEXT NOT NULL,
    optimal_card_id TEXT,
    actual_reward REAL NOT NULL DEFAULT 0.0,
    optimal_reward REAL NOT NULL DEFAULT 0.0,
    rewards_delta REAL NOT NULL DEFAULT 0.0,
    optimal_card_name TEXT,
    timestamp TEXT NOT NULL,
    is_optimal INTEGER NOT NULL DEFAULT 1,
    seq INTEGER NOT NULL,
    FOREIGN KEY (card_id) REFERENCES cards(id)
);
"""

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_cards_product ON cards(product_id)",
    "CREATE INDEX IF NOT EXISTS idx_txn_timestamp ON transactions(timestamp)",
    "CREATE INDEX IF NOT EXISTS idx_txn_category ON transactions(category)",
]

ALL_TABLES = [CREATE_META, CREATE_CARDS, CREATE_TRANSACTIONS]
