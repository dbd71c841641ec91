"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from ledgerkit.database.memory import InMemoryDatabase
from ledgerkit.database.sqlalchemy_db import SQLAlchemyDatabase


def default_database_path() -> str:
    """Return the database path from LEDGERKIT_DB_PATH or ~/.ledgerkit/ledger.db."""
    database_path = os.environ.get("LEDGERKIT_DB_PATH")
    if database_path:
        return database_path

    home = Path.home()
    db_dir = home / ".ledgerkit"
    db_dir.mkdir(exist_ok=True)
    return str(db_dir / "ledger.db")


def create_sqlite_database(
    database_path: Optional[str] = None, busy_timeout: float = 5.0
) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks LEDGERKIT_DB_PATH
            environment variable, then defaults to ~/.ledgerkit/ledger.db
        busy_timeout: Seconds SQLite waits on a locked database before failing

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        database_path = default_database_path()

    database_url = f"sqlite:///{database_path}"
    return SQLAlchemyDatabase(database_url, connect_args={"timeout": busy_timeout})


def create_memory_database() -> InMemoryDatabase:
    """Create an empty in-memory database instance."""
    return InMemoryDatabase()
