"""
Abstract Storage Interface

DESIGN DECISION: The audit trail is written through an abstract interface.
This allows us to:
1. Keep audit persistence in the ledger database today
2. Ship events to a log pipeline later without touching callers
3. Use in-memory storage for testing

Storage-layer exceptions also live here. They slot into the error
taxonomy in src.errors so the API layer maps them without special cases.
"""

from abc import ABC, abstractmethod
from typing import Optional

from src.errors import ConflictError, InternalError, NotFoundError
from src.models.audit import AuditEvent


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'debt_payment')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        user_id: Optional[str] = None,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Args:
            user_id: Restrict to one user's events
            limit: Maximum number of events to return

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(InternalError):
    """Base exception for storage operations."""
    pass


class DuplicateError(ConflictError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
]
