"""Health, profile and first-run setup."""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from app.dependencies import get_current_user, get_services
from src.models import SetupResult, UserOut
from src.orchestrator import LedgerServices


router = APIRouter(tags=["system"])


def _health_status_code(status: str) -> int:
    return 503 if status == "unhealthy" else 200


@router.get("/health")
def health(services: LedgerServices = Depends(get_services)) -> JSONResponse:
    report = services.check_health()
    return JSONResponse(report, status_code=_health_status_code(report["status"]))


@router.head("/health")
def health_head(services: LedgerServices = Depends(get_services)) -> Response:
    report = services.check_health()
    return Response(status_code=_health_status_code(report["status"]))


@router.get("/me", response_model=UserOut)
def me(user: UserOut = Depends(get_current_user)) -> UserOut:
    return user


@router.post("/setup", response_model=SetupResult)
def setup(
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> SetupResult:
    """Seed default categories and income sources for a new user."""
    result = services.store.seed_defaults(user.id)
    if result.categories_created or result.sources_created:
        services.audit.log_defaults_seeded(
            user.id, result.categories_created, result.sources_created
        )
    return result
