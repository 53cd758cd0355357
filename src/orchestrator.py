"""
Service Wiring for Syphon Ledger

This module ties together the components every request needs:
1. Database (engine + session factory)
2. LedgerStore (scoped CRUD)
3. BalanceReconciler (payments and contributions)
4. CSVImportPipeline (statement import)
5. AuditLogger (structured log + audit_events table)

DESIGN DECISION: There is no global tracer or global client. Everything
is built once by create_app_components() and handed to whoever needs it,
so tests can build the same graph over an in-memory database.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from src.audit import AuditLogger, get_logger
from src.config import Settings, get_settings
from src.importer import CSVImportPipeline
from src.reconciliation import BalanceReconciler
from src.services.storage import Database, LedgerStore, SqlAuditStorage


logger = get_logger(__name__)


@dataclass
class LedgerServices:
    """Everything the API layer talks to."""
    settings: Settings
    database: Database
    store: LedgerStore
    reconciler: BalanceReconciler
    importer: CSVImportPipeline
    audit: AuditLogger

    def check_health(self) -> dict:
        """
        Report storage and audit pipeline status.

        Status is "unhealthy" if the database is unreachable. The audit
        pipeline reports "console-only" when events are not persisted,
        which degrades but does not fail the service.
        """
        database_ok = self.database.ping()
        telemetry = "healthy" if self.audit.persists else "console-only"

        if not database_ok:
            status = "unhealthy"
        elif telemetry != "healthy":
            status = "degraded"
        else:
            status = "healthy"

        return {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "status": status,
            "environment": self.settings.app.app_environment,
            "version": self.settings.app.app_version,
            "service": self.settings.app.service_name,
            "checks": {
                "database": "healthy" if database_ok else "unhealthy",
                "telemetry": telemetry,
            },
        }


def create_app_components(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> LedgerServices:
    """
    Factory function to create all application components.

    Args:
        settings: Defaults to the cached environment settings.
        database: Pre-built database (tests pass an in-memory one).
        clock: "now" for the import retention window.

    Returns:
        LedgerServices with the schema created
    """
    settings = settings or get_settings()
    database = database or Database(settings.database)
    database.create_all()

    if settings.audit.persist_events:
        audit_logger = AuditLogger(SqlAuditStorage(database))
    else:
        audit_logger = AuditLogger()  # Local-only logging
        logger.warning("audit_persistence_disabled")

    return LedgerServices(
        settings=settings,
        database=database,
        store=LedgerStore(database, settings.app),
        reconciler=BalanceReconciler(database, audit_logger),
        importer=CSVImportPipeline(
            database,
            settings=settings.imports,
            audit_logger=audit_logger,
            clock=clock,
        ),
        audit=audit_logger,
    )
