"""
Database Engine and Sessions

DESIGN DECISION: One SQLAlchemy engine per process, one session per
unit of work. session_scope() is the only way business code gets a
session, so every multi-row change commits or rolls back as a whole.

This module also holds the SQL implementation of the audit storage
interface, since audit events live in the same database.
"""

import json
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.config import DatabaseSettings, get_settings
from src.models.audit import AuditEvent, AuditEventType, AuditSeverity
from src.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    StorageError,
)
from src.services.storage.tables import AuditEventRow, Base


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE / SET NULL unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Owns the engine and session factory.

    Usage:
        db = Database()
        db.create_all()
        with db.session_scope() as session:
            ...
    """

    def __init__(self, settings: Optional[DatabaseSettings] = None):
        self._settings = settings or get_settings().database
        self._engine = self._build_engine(self._settings)
        self._session_factory = sessionmaker(
            bind=self._engine,
            autoflush=False,
            expire_on_commit=False,
        )

    @staticmethod
    def _build_engine(settings: DatabaseSettings) -> Engine:
        kwargs = {"echo": settings.echo}
        if settings.is_sqlite:
            kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in settings.url or settings.url == "sqlite://":
                # One shared connection, otherwise each session sees an empty database
                kwargs["poolclass"] = StaticPool
        engine = create_engine(settings.url, **kwargs)
        if settings.is_sqlite:
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    @retry(
        retry=retry_if_exception_type(OperationalError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _create_schema(self) -> None:
        Base.metadata.create_all(self._engine)

    def create_all(self) -> None:
        """
        Create any missing tables.

        Retried at startup only. Request paths never retry.
        """
        try:
            self._create_schema()
        except OperationalError as e:
            raise ConnectionError(f"Failed to create schema: {e}") from e

    def drop_all(self) -> None:
        Base.metadata.drop_all(self._engine)

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Transactional scope around a series of operations.

        Commits on success, rolls back on ANY exception (domain errors
        included), always closes.
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def ping(self) -> bool:
        """Cheap reachability check for the health endpoint."""
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False

    def dispose(self) -> None:
        self._engine.dispose()


class SqlAuditStorage(AuditStorageInterface):
    """
    SQL implementation of audit storage.

    Each event is written in its own short transaction so an audit write
    can never hold locks belonging to the business operation it describes.
    """

    def __init__(self, database: Database):
        self._db = database

    def _event_to_row(self, event: AuditEvent) -> AuditEventRow:
        return AuditEventRow(
            event_id=str(event.event_id),
            timestamp=event.timestamp,
            event_type=event.event_type.value,
            severity=event.severity.value,
            entity_type=event.entity_type,
            entity_id=event.entity_id,
            user_id=event.user_id,
            correlation_id=str(event.correlation_id) if event.correlation_id else None,
            description=event.description,
            details_json=event.details_json() or None,
            error_message=event.error_message,
        )

    def _row_to_event(self, row: AuditEventRow) -> AuditEvent:
        return AuditEvent(
            event_id=row.event_id,
            timestamp=row.timestamp,
            event_type=AuditEventType(row.event_type),
            severity=AuditSeverity(row.severity),
            entity_type=row.entity_type,
            entity_id=row.entity_id,
            user_id=row.user_id,
            correlation_id=row.correlation_id,
            description=row.description,
            details=json.loads(row.details_json) if row.details_json else {},
            error_message=row.error_message,
        )

    def append_event(self, event: AuditEvent) -> bool:
        try:
            with self._db.session_scope() as session:
                session.add(self._event_to_row(event))
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to append audit event: {e}") from e
        return True

    def get_events_by_entity(self, entity_type: str, entity_id: str) -> list[AuditEvent]:
        with self._db.session_scope() as session:
            rows = session.scalars(
                select(AuditEventRow)
                .where(
                    AuditEventRow.entity_type == entity_type,
                    AuditEventRow.entity_id == entity_id,
                )
                .order_by(AuditEventRow.timestamp)
            ).all()
            return [self._row_to_event(row) for row in rows]

    def get_recent_events(
        self,
        user_id: Optional[str] = None,
        limit: int = 100,
    ) -> list[AuditEvent]:
        with self._db.session_scope() as session:
            query = select(AuditEventRow)
            if user_id:
                query = query.where(AuditEventRow.user_id == user_id)
            rows = session.scalars(
                query.order_by(AuditEventRow.timestamp.desc()).limit(limit)
            ).all()
            return [self._row_to_event(row) for row in rows]
