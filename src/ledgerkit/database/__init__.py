"""Database layer for ledgerkit application."""

from ledgerkit.database.base import Database
from ledgerkit.database.factories import create_sqlite_database, create_memory_database

__all__ = ["Database", "create_sqlite_database", "create_memory_database"]
