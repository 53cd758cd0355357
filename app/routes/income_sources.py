"""Income sources (employers, side work, investments)."""

from fastapi import APIRouter, Depends

from app.dependencies import get_current_user, get_services
from src.models import IncomeSourceCreate, IncomeSourceOut, UserOut
from src.orchestrator import LedgerServices


router = APIRouter(prefix="/income-sources", tags=["income-sources"])


@router.get("", response_model=list[IncomeSourceOut])
def list_income_sources(
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> list[IncomeSourceOut]:
    return services.store.list_income_sources(user.id)


@router.post("", response_model=IncomeSourceOut, status_code=201)
def create_income_source(
    body: IncomeSourceCreate,
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> IncomeSourceOut:
    source = services.store.create_income_source(user.id, body)
    services.audit.log_created(user.id, "income_source", source.id)
    return source
