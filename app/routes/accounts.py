"""Accounts: where money is held."""

from fastapi import APIRouter, Depends

from app.dependencies import get_current_user, get_services
from app.routes.common import bulk_delete
from src.models import AccountCreate, AccountOut, BulkDeleteResult, UserOut
from src.orchestrator import LedgerServices


router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.get("", response_model=list[AccountOut])
def list_accounts(
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> list[AccountOut]:
    return services.store.list_accounts(user.id)


@router.post("", response_model=AccountOut, status_code=201)
def create_account(
    body: AccountCreate,
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> AccountOut:
    account = services.store.create_account(user.id, body)
    services.audit.log_created(user.id, "account", account.id)
    return account


@router.delete("/bulk-delete", response_model=BulkDeleteResult)
def delete_all_accounts(
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> BulkDeleteResult:
    return bulk_delete(services, user, "accounts", "account")
