"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from main import app
from api.connections import get_connection_sync_service
from services.connection_sync_service import ConnectionSyncService
from services.sync_complete_event import SyncCompleteEvent
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    account,
    connection,
    second_account,
)
from tests.fixtures.mocks import RecordingScheduler


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite engine shared across threads."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="session_factory")
def session_factory_fixture(engine):
    """Sessionmaker bound to the test engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(name="db")
def db_fixture(session_factory):
    """Create a database session for testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(name="scheduler")
def scheduler_fixture():
    """Scheduler that records requests instead of running them."""
    return RecordingScheduler()


@pytest.fixture(name="completion_event")
def completion_event_fixture():
    """Completion event with no listeners."""
    return SyncCompleteEvent()


@pytest.fixture(name="sync_service")
def sync_service_fixture(scheduler, completion_event):
    """ConnectionSyncService wired to recording collaborators."""
    return ConnectionSyncService(scheduler=scheduler, completion_event=completion_event)


@pytest.fixture(name="client")
def client_fixture(db, sync_service):
    """Create a test client with the test database."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_connection_sync_service] = lambda: sync_service
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
