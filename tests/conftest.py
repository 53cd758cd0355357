"""
Shared fixtures.

Every test gets a fresh in-memory SQLite database, so tests never see
each other's rows. Concurrency tests use a file under tmp_path instead,
since threads need their own connections.
"""

import os

# Must be set before app.main is imported (it builds a module-level app)
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from src.audit import AuditLogger
from src.config import DatabaseSettings, ImportSettings
from src.importer import CSVImportPipeline
from src.models import DebtCreate, GoalCreate, UserIdentity
from src.reconciliation import BalanceReconciler
from src.services.storage import Database, LedgerStore, SqlAuditStorage


FIXED_NOW = datetime(2024, 1, 2, 12, 0, 0)


@pytest.fixture
def database():
    db = Database(DatabaseSettings(url="sqlite://"))
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def file_database(tmp_path):
    """On-disk SQLite, one connection per thread. For concurrency tests."""
    db = Database(DatabaseSettings(url=f"sqlite:///{tmp_path / 'ledger.db'}"))
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def audit_storage(database):
    return SqlAuditStorage(database)


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def store(database):
    return LedgerStore(database)


@pytest.fixture
def reconciler(database, audit_logger):
    return BalanceReconciler(database, audit_logger)


@pytest.fixture
def pipeline(database, audit_logger):
    return CSVImportPipeline(
        database,
        settings=ImportSettings(retention_days=90, max_rows=100),
        audit_logger=audit_logger,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def user(store):
    user, _ = store.ensure_user(UserIdentity(external_id="user_alice", country="GB"))
    return user


@pytest.fixture
def other_user(store):
    user, _ = store.ensure_user(UserIdentity(external_id="user_bob", country="US"))
    return user


@pytest.fixture
def debt(store, user):
    return store.create_debt(
        user.id,
        DebtCreate(name="Visa", balance=Decimal("1000.00"), min_payment=Decimal("25.00")),
    )


@pytest.fixture
def goal(store, user):
    return store.create_goal(
        user.id,
        GoalCreate(name="Holiday", target_amount=Decimal("2000.00")),
    )


@pytest.fixture
def client(database):
    from app.main import create_app

    app = create_app(database=database, clock=lambda: FIXED_NOW)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def alice_headers():
    return {"X-User-Id": "user_alice", "X-User-Country": "GB", "X-User-Email": "alice@example.com"}


@pytest.fixture
def bob_headers():
    return {"X-User-Id": "user_bob", "X-User-Country": "US"}
