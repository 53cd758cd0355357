"""API routers, one module per resource."""

from app.routes import (
    accounts,
    categories,
    debts,
    goals,
    imports,
    income_sources,
    system,
    transactions,
)

ROUTERS = [
    system.router,
    accounts.router,
    categories.router,
    income_sources.router,
    transactions.router,
    debts.router,
    goals.router,
    imports.router,
]

__all__ = ["ROUTERS"]
