"""
Storage Services Package

Provides the relational ledger store and the audit storage interface.
Backed by SQLAlchemy; SQLite for development and tests, PostgreSQL in
production.
"""

from src.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
)
from src.services.storage.database import Database, SqlAuditStorage
from src.services.storage.ledger_store import LedgerStore, get_owned

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # SQL implementation
    "Database",
    "LedgerStore",
    "SqlAuditStorage",
    "get_owned",
]
