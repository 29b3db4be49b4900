"""
Pytest configuration and fixtures for SQLShift tests.

This module provides shared fixtures for testing database models, repositories,
the lifecycle controller and the API.
"""

import os

# Must be set before sqlshift.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_FILE_ENABLED", "false")

import time
import uuid
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from sqlshift.db.connection import install_sqlite_compat
from sqlshift.lifecycle import LifecycleController
from sqlshift.models.conversion import ConversionResult, DataTypeMapping, Issue
from sqlshift.models.db import (
    Base,
    ConversionStatus,
    FileRecord,
    FileType,
    MigrationProject,
)

PROCEDURE_SQL = """create procedure get_orders @customer_id int
as
begin
    select order_id, order_date from orders where customer_id = @customer_id
end
"""


class FakeConverter:
    """Deterministic converter that upper-cases the source."""

    def __init__(self):
        self.calls: list[str] = []

    def convert(self, source_text: str) -> ConversionResult:
        self.calls.append(source_text)
        return ConversionResult(
            converted_text=f"-- oracle\n{source_text.upper()}",
            issues=[Issue(description="Check date handling", severity="warning")],
            data_type_mapping=[DataTypeMapping("int", "NUMBER(10)", "Integer type")],
            performance_metrics={"conversion_time_ms": 12},
        )


class FailingConverter:
    """Converter that always raises."""

    def __init__(self, message: str = "model unavailable"):
        self.message = message
        self.calls = 0

    def convert(self, source_text: str) -> ConversionResult:
        self.calls += 1
        raise RuntimeError(self.message)


class SlowConverter:
    """Converter that takes longer than any test timeout."""

    def __init__(self, delay: float = 1.0):
        self.delay = delay

    def convert(self, source_text: str) -> ConversionResult:
        time.sleep(self.delay)
        return ConversionResult(converted_text="too late")


class RecordingDeployer:
    """Deployer that remembers what it was asked to deploy."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.deployed: list[list[uuid.UUID]] = []

    def deploy(self, files) -> None:
        if self.error is not None:
            raise self.error
        self.deployed.append([record.id for record in files])


@pytest.fixture
def test_engine():
    """Create a fresh in-memory SQLite engine for each test."""
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        # A single shared connection keeps the in-memory database alive
        poolclass=StaticPool,
    )
    install_sqlite_compat(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(test_engine) -> Generator[Session, None, None]:
    """
    Create a database session for a test.

    The controller commits its own transactions, so isolation comes from the
    per-test engine rather than an outer rollback.
    """
    session = sessionmaker(bind=test_engine, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def other_user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def fake_converter() -> FakeConverter:
    return FakeConverter()


@pytest.fixture
def failing_converter() -> FailingConverter:
    return FailingConverter()


@pytest.fixture
def slow_converter() -> SlowConverter:
    return SlowConverter()


@pytest.fixture
def failing_deployer() -> RecordingDeployer:
    return RecordingDeployer(error=ConnectionError("ORA-12541: TNS:no listener"))


@pytest.fixture
def deployer() -> RecordingDeployer:
    return RecordingDeployer()


@pytest.fixture
def controller(
    db_session: Session, fake_converter: FakeConverter, deployer: RecordingDeployer
) -> LifecycleController:
    """Controller with a fake converter and no conversion cache."""
    return LifecycleController(
        db_session,
        converter=fake_converter,
        deployer=deployer,
        cache_enabled=False,
        conversion_timeout=5.0,
    )


@pytest.fixture
def sample_project(db_session: Session, user_id: uuid.UUID) -> MigrationProject:
    """Create a sample project for testing."""
    project = MigrationProject(
        id=uuid.uuid4(),
        user_id=user_id,
        project_name="Orders Migration",
        description="Order management procedures",
    )
    db_session.add(project)
    db_session.commit()
    db_session.refresh(project)
    return project


@pytest.fixture
def pending_file(db_session: Session, sample_project: MigrationProject) -> FileRecord:
    """Create a pending file record for testing."""
    record = FileRecord(
        id=uuid.uuid4(),
        migration_id=sample_project.id,
        file_name="get_orders.sql",
        file_path="procs/get_orders.sql",
        file_type=FileType.PROCEDURE,
        original_content=PROCEDURE_SQL,
        conversion_status=ConversionStatus.PENDING,
    )
    db_session.add(record)
    db_session.commit()
    db_session.refresh(record)
    return record


@pytest.fixture
def converted_file(
    controller: LifecycleController, user_id: uuid.UUID, pending_file: FileRecord
) -> FileRecord:
    """A file record converted successfully through the controller."""
    return controller.convert_file(user_id, pending_file.id)


@pytest.fixture
def api_client(db_session: Session, controller: LifecycleController):
    """Create a test client for FastAPI with the controller dependency overridden."""
    from unittest.mock import patch

    from fastapi.testclient import TestClient

    from sqlshift.api.app import app
    from sqlshift.api.auth import get_controller

    app.dependency_overrides[get_controller] = lambda: controller

    # Disable lifespan startup checks for testing
    with patch("sqlshift.api.app.run_all_startup_checks"):
        client = TestClient(app)
        yield client

    # Clean up
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(user_id: uuid.UUID) -> dict[str, str]:
    return {"X-User-Id": str(user_id)}
