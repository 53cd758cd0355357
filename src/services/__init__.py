"""Services package."""

from src.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    Database,
    DuplicateError,
    LedgerStore,
    NotFoundError,
    SqlAuditStorage,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "Database",
    "DuplicateError",
    "LedgerStore",
    "NotFoundError",
    "SqlAuditStorage",
    "StorageError",
]
