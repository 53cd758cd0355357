"""
FastAPI Application for Syphon Ledger

This is the HTTP surface the web client talks to.

DESIGN PRINCIPLES:
1. Every request is scoped to the caller's identity
2. Every failure maps to one status code via the error taxonomy
3. Internal details never leak into a response body
4. Handlers are thin; business rules live in src/

Run with:
    uvicorn app.main:app --reload
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.routes import ROUTERS
from src.audit import configure_logging, get_logger
from src.config import Settings, get_settings
from src.errors import InternalError, LedgerError, ValidationError
from src.orchestrator import create_app_components
from src.services.storage import Database


logger = get_logger(__name__)


def _validation_details(exc: RequestValidationError) -> list[dict]:
    details = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        details.append({
            "path": loc,
            "message": error.get("msg", "Invalid value"),
        })
    return details


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    clock=None,
) -> FastAPI:
    """
    Build the application and its service graph.

    Args:
        settings: Defaults to environment settings.
        database: Pre-built database (tests inject in-memory SQLite).
        clock: "now" for the import retention window.
    """
    settings = settings or get_settings()
    configure_logging(settings.app.debug_mode)

    app = FastAPI(
        title="Syphon Ledger",
        version=settings.app.app_version,
        debug=settings.app.debug_mode,
    )
    app.state.services = create_app_components(settings, database=database, clock=clock)

    for router in ROUTERS:
        app.include_router(router)

    @app.exception_handler(LedgerError)
    def handle_ledger_error(request: Request, exc: LedgerError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "request_failed",
                path=request.url.path,
                error_type=type(exc).__name__,
                error=exc.message,
            )
        return JSONResponse(jsonable_encoder(exc.to_response()), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = ValidationError(details=_validation_details(exc))
        return JSONResponse(jsonable_encoder(error.to_response()), status_code=error.status_code)

    @app.exception_handler(Exception)
    def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "unhandled_exception",
            path=request.url.path,
            error_type=type(exc).__name__,
        )
        app.state.services.audit.log_error(
            error_type=type(exc).__name__,
            error_message=str(exc),
            details={"path": request.url.path},
        )
        error = InternalError()
        return JSONResponse(error.to_response(), status_code=error.status_code)

    return app


app = create_app()
