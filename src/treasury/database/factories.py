"""Ledger store factory functions for creating store instances."""

import os
from pathlib import Path
from typing import Optional

from treasury.database.sqlalchemy_db import SQLAlchemyLedgerStore


def create_sqlite_store(database_path: Optional[str] = None) -> SQLAlchemyLedgerStore:
    """Create a SQLite ledger store instance.

    Args:
        database_path: Path to SQLite database file. If None, checks TREASURY_DB_PATH
            environment variable, then defaults to ~/.treasury/treasury.db

    Returns:
        SQLAlchemyLedgerStore instance configured for SQLite
    """
    if database_path is None:
        # Check environment variable
        database_path = os.environ.get("TREASURY_DB_PATH")

    if database_path is None:
        # Default to ~/.treasury/treasury.db
        home = Path.home()
        db_dir = home / ".treasury"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "treasury.db")

    database_url = f"sqlite:///{database_path}"
    return SQLAlchemyLedgerStore(database_url)
