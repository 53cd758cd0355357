"""Helpers shared by the resource routers."""

from src.models import BulkDeleteResult, UserOut
from src.orchestrator import LedgerServices


SUCCESS = {"success": True}


def bulk_delete(services: LedgerServices, user: UserOut, entity: str, label: str) -> BulkDeleteResult:
    """Wipe one entity type for the caller and describe the outcome."""
    deleted = services.store.bulk_delete(user.id, entity)
    services.audit.log_bulk_deleted(user.id, entity, deleted)
    return BulkDeleteResult(
        deleted=deleted,
        message=f"Successfully deleted {deleted} {label} records",
    )
