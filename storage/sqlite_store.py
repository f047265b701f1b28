# storage/sqlite_store.py
"""
SQLite storage for a user's card portfolio and transaction history.

Implements the Portfolio protocol used by the ingestion pipeline:
- Cards (detected from raw labels, updated in place)
- Transactions (write-once)
"""
from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from typing import Any, Dict, List, Optional

from sca_core.models import Card, SpendingCategory, Transaction
from .schema import ALL_TABLES, INDEXES, SCHEMA_VERSION

log = logging.getLogger("storage")


def open_conn(path: str = "data/cardwise.sqlite") -> sqlite3.Connection:
    """Open a database connection with row factory."""
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def _card_from_row(row: sqlite3.Row) -> Card:
    return Card(
        id=row["id"],
        name=row["name"],
        issuer=row["issuer"],
        product_id=row["product_id"],
        raw_names=list(json.loads(row["raw_names"] or "[]")),
        first_seen=datetime.fromisoformat(row["first_seen"]),
        last_used=datetime.fromisoformat(row["last_used"]),
        transaction_count=int(row["transaction_count"]),
        is_active=bool(row["is_active"]),
        match_confidence=float(row["match_confidence"]),
    )


def _txn_from_row(row: sqlite3.Row) -> Transaction:
    return Transaction(
        id=row["id"],
        merchant_name=row["merchant_name"],
        amount=float(row["amount"]),
        currency=row["currency"],
        card_name=row["card_name"],
        card_id=row["card_id"],
        category=SpendingCategory.parse(row["category"]),
        optimal_card_id=row["optimal_card_id"],
        actual_reward=float(row["actual_reward"]),
        optimal_reward=float(row["optimal_reward"]),
        rewards_delta=float(row["rewards_delta"]),
        optimal_card_name=row["optimal_card_name"],
        timestamp=datetime.fromisoformat(row["timestamp"]),
        is_optimal=bool(row["is_optimal"]),
    )


class SQLiteStore:
    """
    Portfolio store backed by SQLite. Use as a context manager or call close().
    """

    def __init__(self, db_path: str = "data/cardwise.sqlite"):
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        self.ensure_schema()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = open_conn(self.db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def ensure_schema(self) -> Dict[str, Any]:
        """Create tables if missing and record the schema version."""
        cur = self.conn.cursor()
        for ddl in ALL_TABLES:
            cur.execute(ddl)
        for idx in INDEXES:
            cur.execute(idx)
        cur.execute(
            "INSERT OR IGNORE INTO meta (key, value) VALUES ('schema_version', ?)",
            (str(SCHEMA_VERSION),),
        )
        self.conn.commit()
        return {"schema_version": self.schema_version()}

    def schema_version(self) -> int:
        row = self.conn.execute(
            "SELECT value FROM meta WHERE key = 'schema_version'"
        ).fetchone()
        return int(row["value"]) if row else 0

    def get_stats(self) -> Dict[str, int]:
        """Row counts per table."""
        return {
            table: self.conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
            for table in ("cards", "transactions")
        }

    def _next_seq(self, table: str) -> int:
        row = self.conn.execute(f"SELECT COALESCE(MAX(seq), 0) + 1 FROM {table}").fetchone()
        return int(row[0])

    # =========================================================================
    # Card Operations
    # =========================================================================

    def add_card(self, card: Card) -> None:
        self.conn.execute(
            """
            INSERT INTO cards (
                id, name, issuer, product_id, raw_names, first_seen, last_used,
                transaction_count, is_active, match_confidence, seq
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                card.id,
                card.name,
                card.issuer,
                card.product_id,
                json.dumps(card.raw_names),
                card.first_seen.isoformat(),
                card.last_used.isoformat(),
                card.transaction_count,
                int(card.is_active),
                card.match_confidence,
                self._next_seq("cards"),
            ),
        )
        self.conn.commit()

    def save_card(self, card: Card) -> None:
        cur = self.conn.execute(
            """
            UPDATE cards
            SET name=?, issuer=?, product_id=?, raw_names=?, first_seen=?,
                last_used=?, transaction_count=?, is_active=?, match_confidence=?
            WHERE id=?
            """,
            (
                card.name,
                card.issuer,
                card.product_id,
                json.dumps(card.raw_names),
                card.first_seen.isoformat(),
                card.last_used.isoformat(),
                card.transaction_count,
                int(card.is_active),
                card.match_confidence,
                card.id,
            ),
        )
        self.conn.commit()
        if cur.rowcount == 0:
            self.add_card(card)

    def get_card(self, card_id: str) -> Optional[Card]:
        row = self.conn.execute("SELECT * FROM cards WHERE id = ?", (card_id,)).fetchone()
        return _card_from_row(row) if row else None

    def all_cards(self) -> List[Card]:
        rows = self.conn.execute("SELECT * FROM cards ORDER BY seq").fetchall()
        return [_card_from_row(r) for r in rows]

    def active_cards(self) -> List[Card]:
        rows = self.conn.execute(
            "SELECT * FROM cards WHERE is_active = 1 ORDER BY seq"
        ).fetchall()
        return [_card_from_row(r) for r in rows]

    def set_card_active(self, card_id: str, active: bool) -> bool:
        """Soft-enable/disable a card. Returns True if a row changed."""
        cur = self.conn.execute(
            "UPDATE cards SET is_active = ? WHERE id = ?", (int(active), card_id)
        )
        self.conn.commit()
        return cur.rowcount > 0

    # =========================================================================
    # Transaction Operations
    # =========================================================================

    def add_transaction(self, txn: Transaction) -> None:
        self.conn.execute(
            """
            INSERT INTO transactions (
                id, merchant_name, amount, currency, card_name, card_id, category,
                optimal_card_id, actual_reward, optimal_reward, rewards_delta,
                optimal_card_name, timestamp, is_optimal, seq
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                txn.id,
                txn.merchant_name,
                txn.amount,
                txn.currency,
                txn.card_name,
                txn.card_id,
                txn.category.value,
                txn.optimal_card_id,
                txn.actual_reward,
                txn.optimal_reward,
                txn.rewards_delta,
                txn.optimal_card_name,
                txn.timestamp.isoformat(),
                int(txn.is_optimal),
                self._next_seq("transactions"),
            ),
        )
        self.conn.commit()
        log.debug("Stored transaction %s", txn.id)

    def transactions(self, limit: Optional[int] = None) -> List[Transaction]:
        query = "SELECT * FROM transactions ORDER BY seq"
        params: List[Any] = []
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        rows = self.conn.execute(query, params).fetchall()
        return [_txn_from_row(r) for r in rows]
