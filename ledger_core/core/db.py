from __future__ import annotations

from collections.abc import Generator
from typing import Any, Optional

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from ..models import db as _db_models  # noqa: F401 - ensure models register with metadata
from .config import get_settings


def _begin_immediate(engine: Engine) -> None:
    # SQLite has no row locks. Taking the write lock when the transaction
    # starts serializes writers the way SELECT ... FOR UPDATE does elsewhere.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine_for_url(database_url: str, lock_timeout: Optional[float] = None) -> Engine:
    if lock_timeout is None:
        lock_timeout = get_settings().lock_timeout_seconds

    connect_args: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        # pysqlite's timeout is the busy wait on a held write lock.
        connect_args = {"check_same_thread": False, "timeout": lock_timeout}
    new_engine = create_engine(database_url, echo=False, connect_args=connect_args)
    if new_engine.dialect.name == "sqlite":
        _begin_immediate(new_engine)
    return new_engine


settings = get_settings()
engine = create_engine_for_url(settings.database_url, settings.lock_timeout_seconds)


def init_db() -> None:
    SQLModel.metadata.create_all(engine)


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


def set_engine(new_engine: Engine) -> None:
    global engine
    engine = new_engine
