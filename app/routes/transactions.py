"""Income and expense transactions."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.dependencies import get_current_user, get_services
from app.routes.common import SUCCESS, bulk_delete
from src.errors import ValidationError
from src.models import (
    BulkDeleteResult,
    TransactionCreate,
    TransactionOut,
    TransactionType,
    UserOut,
)
from src.orchestrator import LedgerServices


router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("", response_model=list[TransactionOut])
def list_transactions(
    type: Optional[TransactionType] = Query(default=None),
    limit: int = Query(default=50, ge=1),
    offset: int = Query(default=0, ge=0),
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> list[TransactionOut]:
    """Newest first. limit is capped at the configured page size."""
    return services.store.list_transactions(user.id, type=type, limit=limit, offset=offset)


@router.post("", response_model=TransactionOut, status_code=201)
def create_transaction(
    body: TransactionCreate,
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> TransactionOut:
    transaction = services.store.create_transaction(user.id, body)
    services.audit.log_created(user.id, "transaction", transaction.id)
    return transaction


@router.delete("")
def delete_transaction(
    id: Optional[str] = Query(default=None),
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> dict:
    if not id:
        raise ValidationError("Transaction ID is required")
    services.store.delete_transaction(user.id, id)
    services.audit.log_deleted(user.id, "transaction", id)
    return SUCCESS


@router.delete("/bulk-delete", response_model=BulkDeleteResult)
def delete_all_transactions(
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> BulkDeleteResult:
    return bulk_delete(services, user, "transactions", "transaction")
