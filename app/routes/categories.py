"""Income and expense categories."""

from fastapi import APIRouter, Depends

from app.dependencies import get_current_user, get_services
from src.models import CategoryCreate, CategoryOut, UserOut
from src.orchestrator import LedgerServices


router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=list[CategoryOut])
def list_categories(
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> list[CategoryOut]:
    return services.store.list_categories(user.id)


@router.post("", response_model=CategoryOut, status_code=201)
def create_category(
    body: CategoryCreate,
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> CategoryOut:
    category = services.store.create_category(user.id, body)
    services.audit.log_created(user.id, "category", category.id)
    return category
