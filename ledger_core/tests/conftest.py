from collections.abc import Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel

from ..core import db as core_db
from ..core.db import create_engine_for_url, get_session, set_engine
from ..main import app
from ..services import AccountStore, LedgerService


@pytest.fixture
def make_engine(tmp_path) -> Iterator[Callable[..., Engine]]:
    engines: list[Engine] = []

    def _make(lock_timeout: float = 5.0) -> Engine:
        engine = create_engine_for_url(f"sqlite:///{tmp_path / 'test.db'}", lock_timeout)
        SQLModel.metadata.create_all(engine)
        engines.append(engine)
        return engine

    yield _make
    for engine in engines:
        engine.dispose()


@pytest.fixture
def engine(make_engine) -> Engine:
    return make_engine()


@pytest.fixture
def make_service(engine) -> Iterator[Callable[[], LedgerService]]:
    """Each call gets its own session, like one request worker."""
    sessions: list[Session] = []

    def _make(store_cls: type[AccountStore] = AccountStore) -> LedgerService:
        session = Session(engine)
        sessions.append(session)
        return LedgerService(session, store_cls(session))

    yield _make
    for session in sessions:
        session.close()


@pytest.fixture
def service(make_service) -> LedgerService:
    return make_service()


@pytest.fixture
def client(engine) -> Iterator[TestClient]:
    original_engine = core_db.engine
    set_engine(engine)

    def _get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session_override

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    set_engine(original_engine)
