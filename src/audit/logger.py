"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged.
This provides:
1. Complete traceability of balance changes
2. Debugging capability when an aggregate looks wrong
3. A persisted trail the health check can report on

The audit logger:
- Is called after the business transaction has committed
- Gracefully handles failures (doesn't fail a request if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from src.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(debug: bool = False) -> None:
    """Route structlog output through stdlib logging at the right level."""
    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if debug else logging.INFO,
    )


def get_logger(name: Optional[str] = None):
    return structlog.get_logger(name)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit_events table (for persistence), when storage is given
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("syphon.audit")

    @property
    def persists(self) -> bool:
        return self._storage is not None

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_user_created(self, user_id: str, external_id: str) -> None:
        self.log(AuditEventBuilder.user_created(user_id, external_id))

    def log_defaults_seeded(
        self,
        user_id: str,
        categories_created: int,
        sources_created: int,
    ) -> None:
        self.log(AuditEventBuilder.defaults_seeded(user_id, categories_created, sources_created))

    def log_created(self, user_id: str, entity_type: str, entity_id: str) -> None:
        self.log(AuditEventBuilder.entity_created(user_id, entity_type, entity_id))

    def log_updated(
        self,
        user_id: str,
        entity_type: str,
        entity_id: str,
        fields: list[str],
    ) -> None:
        self.log(AuditEventBuilder.entity_updated(user_id, entity_type, entity_id, fields))

    def log_deleted(self, user_id: str, entity_type: str, entity_id: str) -> None:
        self.log(AuditEventBuilder.entity_deleted(user_id, entity_type, entity_id))

    def log_bulk_deleted(self, user_id: str, entity_type: str, count: int) -> None:
        self.log(AuditEventBuilder.bulk_deleted(user_id, entity_type, count))

    def log_payment_recorded(
        self,
        user_id: str,
        payment_id: str,
        debt_id: str,
        amount: Decimal,
    ) -> None:
        """Log a payment and the matching balance decrement."""
        self.log(AuditEventBuilder.payment_recorded(user_id, payment_id, debt_id, str(amount)))

    def log_payment_updated(
        self,
        user_id: str,
        payment_id: str,
        debt_id: str,
        balance_delta: Decimal,
    ) -> None:
        self.log(
            AuditEventBuilder.payment_updated(user_id, payment_id, debt_id, str(balance_delta))
        )

    def log_payment_deleted(
        self,
        user_id: str,
        payment_id: str,
        debt_id: str,
        amount: Decimal,
    ) -> None:
        self.log(AuditEventBuilder.payment_deleted(user_id, payment_id, debt_id, str(amount)))

    def log_contribution_recorded(
        self,
        user_id: str,
        contribution_id: str,
        goal_id: str,
        amount: Decimal,
    ) -> None:
        self.log(
            AuditEventBuilder.contribution_recorded(user_id, contribution_id, goal_id, str(amount))
        )

    def log_contribution_deleted(
        self,
        user_id: str,
        contribution_id: str,
        goal_id: str,
        amount: Decimal,
    ) -> None:
        self.log(
            AuditEventBuilder.contribution_deleted(user_id, contribution_id, goal_id, str(amount))
        )

    def log_import_completed(
        self,
        user_id: str,
        imported: int,
        skipped: int,
        categories_created: int,
        accounts_created: int,
        total_rows: int,
    ) -> None:
        """Log CSV import outcome."""
        event = AuditEventBuilder.import_completed(
            user_id=user_id,
            imported=imported,
            skipped=skipped,
            categories_created=categories_created,
            accounts_created=accounts_created,
            total_rows=total_rows,
        )
        self.log(event)

    def log_import_failed(self, user_id: str, error_message: str) -> None:
        self.log(AuditEventBuilder.import_failed(user_id, error_message))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a request and pass it to anything that
    logs on the request's behalf.
    """
    return uuid4()
