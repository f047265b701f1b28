"""
Storage layer: the user's card portfolio and transaction history.

Provides the Portfolio protocol with an in-memory and a SQLite implementation.
"""

from .portfolio import InMemoryPortfolio, Portfolio
from .schema import SCHEMA_VERSION
from .sqlite_store import SQLiteStore, open_conn

__all__ = [
    "Portfolio",
    "InMemoryPortfolio",
    "SQLiteStore",
    "open_conn",
    "SCHEMA_VERSION",
]
