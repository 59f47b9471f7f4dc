"""Ledger store layer for the treasury engine."""

from treasury.database.base import LedgerStore
from treasury.database.factories import create_sqlite_store

__all__ = ["LedgerStore", "create_sqlite_store"]
