"""Pytest configuration and shared fixtures."""

import shutil
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from audittrail.core.audit import AuditConfiguration, AuditManager, clear_audit_context
from audittrail.core.database import Base
from sample_models import AppBase


@pytest.fixture(autouse=True)
def _reset_audit_state() -> Generator[None, None, None]:
    """Isolate tests from context and default-configuration changes."""
    clear_audit_context()
    yield
    clear_audit_context()
    AuditManager.reset_default_configuration()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test operations.

    Yields:
        Path to the temporary directory
    """
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """In-memory SQLite engine with application and audit tables."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    AppBase.metadata.create_all(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine: Engine) -> Generator[Session, None, None]:
    """Session that keeps attributes loaded after commit."""
    with Session(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def configuration() -> AuditConfiguration:
    """Fresh configuration with defaults and no auto-save."""
    return AuditConfiguration()
