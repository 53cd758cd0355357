"""CSV statement import. Both paths run the same pipeline."""

from fastapi import APIRouter, Depends

from app.dependencies import get_current_user, get_services
from src.models import ImportRequest, ImportSummary, UserOut
from src.orchestrator import LedgerServices


router = APIRouter(tags=["import"])


@router.post("/expenses/import", response_model=ImportSummary)
@router.post("/expense/import", response_model=ImportSummary)
def import_expenses(
    body: ImportRequest,
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> ImportSummary:
    return services.importer.run(user.id, body)
