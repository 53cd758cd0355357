"""
Audit Models for Syphon Ledger

Every mutation of the ledger is logged for audit purposes.
This provides:
1. Complete traceability of balance changes
2. Debugging information when an aggregate looks wrong
3. The observability feed reported by the health check

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Identity
    USER_CREATED = "user_created"
    DEFAULTS_SEEDED = "defaults_seeded"

    # Plain entities
    ENTITY_CREATED = "entity_created"
    ENTITY_UPDATED = "entity_updated"
    ENTITY_DELETED = "entity_deleted"
    BULK_DELETED = "bulk_deleted"

    # Balance reconciliation
    PAYMENT_RECORDED = "payment_recorded"
    PAYMENT_UPDATED = "payment_updated"
    PAYMENT_DELETED = "payment_deleted"
    CONTRIBUTION_RECORDED = "contribution_recorded"
    CONTRIBUTION_DELETED = "contribution_deleted"

    # CSV import
    IMPORT_COMPLETED = "import_completed"
    IMPORT_FAILED = "import_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about, and whose?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'debt_payment', 'savings_goal')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Owner of the entity"
    )
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one request)"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def details_json(self) -> str:
        """Details serialized for a text column. Decimals and dates become strings."""
        return json.dumps(self.details, default=str) if self.details else ""


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.payment_recorded(user_id, payment_id, debt_id, amount)
        event = AuditEventBuilder.import_completed(user_id, imported=3, skipped=1, ...)
    """

    @staticmethod
    def user_created(user_id: str, external_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_CREATED,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            description="User created on first authenticated request",
            details={"external_id": external_id},
        )

    @staticmethod
    def defaults_seeded(
        user_id: str,
        categories_created: int,
        sources_created: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEFAULTS_SEEDED,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            description="Default categories and income sources created",
            details={
                "categories_created": categories_created,
                "sources_created": sources_created,
            },
        )

    @staticmethod
    def entity_created(user_id: str, entity_type: str, entity_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_CREATED,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            description=f"{entity_type} created",
        )

    @staticmethod
    def entity_updated(
        user_id: str,
        entity_type: str,
        entity_id: str,
        fields: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_UPDATED,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            description=f"{entity_type} updated ({len(fields)} fields)",
            details={"fields": fields},
        )

    @staticmethod
    def entity_deleted(user_id: str, entity_type: str, entity_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_DELETED,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            description=f"{entity_type} deleted",
        )

    @staticmethod
    def bulk_deleted(user_id: str, entity_type: str, count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BULK_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            user_id=user_id,
            description=f"Deleted all {entity_type} rows for user ({count})",
            details={"deleted": count},
        )

    @staticmethod
    def payment_recorded(
        user_id: str,
        payment_id: str,
        debt_id: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_RECORDED,
            entity_type="debt_payment",
            entity_id=payment_id,
            user_id=user_id,
            description=f"Payment of {amount} recorded, debt balance reduced",
            details={"debt_id": debt_id, "amount": amount},
        )

    @staticmethod
    def payment_updated(
        user_id: str,
        payment_id: str,
        debt_id: str,
        balance_delta: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_UPDATED,
            entity_type="debt_payment",
            entity_id=payment_id,
            user_id=user_id,
            description=f"Payment updated, debt balance adjusted by -{balance_delta}",
            details={"debt_id": debt_id, "balance_delta": balance_delta},
        )

    @staticmethod
    def payment_deleted(
        user_id: str,
        payment_id: str,
        debt_id: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_DELETED,
            entity_type="debt_payment",
            entity_id=payment_id,
            user_id=user_id,
            description=f"Payment of {amount} deleted, debt balance restored",
            details={"debt_id": debt_id, "amount": amount},
        )

    @staticmethod
    def contribution_recorded(
        user_id: str,
        contribution_id: str,
        goal_id: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTRIBUTION_RECORDED,
            entity_type="goal_contribution",
            entity_id=contribution_id,
            user_id=user_id,
            description=f"Contribution of {amount} recorded",
            details={"goal_id": goal_id, "amount": amount},
        )

    @staticmethod
    def contribution_deleted(
        user_id: str,
        contribution_id: str,
        goal_id: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTRIBUTION_DELETED,
            entity_type="goal_contribution",
            entity_id=contribution_id,
            user_id=user_id,
            description=f"Contribution of {amount} deleted",
            details={"goal_id": goal_id, "amount": amount},
        )

    @staticmethod
    def import_completed(
        user_id: str,
        imported: int,
        skipped: int,
        categories_created: int,
        accounts_created: int,
        total_rows: int,
    ) -> AuditEvent:
        severity = AuditSeverity.WARNING if skipped else AuditSeverity.INFO
        return AuditEvent(
            event_type=AuditEventType.IMPORT_COMPLETED,
            severity=severity,
            entity_type="csv_import",
            user_id=user_id,
            description=f"CSV import: {imported} imported, {skipped} skipped",
            details={
                "total_rows": total_rows,
                "imported": imported,
                "skipped": skipped,
                "categories_created": categories_created,
                "accounts_created": accounts_created,
            },
        )

    @staticmethod
    def import_failed(user_id: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="csv_import",
            user_id=user_id,
            description="CSV import aborted",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
