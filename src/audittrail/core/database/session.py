"""Engine and session factories built from settings."""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from audittrail.config import Settings, settings as default_settings
from audittrail.core.database.base import Base


def create_engine_from_settings(
    settings: Settings | None = None,
    database_url: str | None = None,
) -> Engine:
    """Create a synchronous engine.

    Args:
        settings: Settings providing ``database_url`` and ``database_echo``
        database_url: Explicit URL overriding the settings value

    Returns:
        A configured SQLAlchemy engine
    """
    settings = settings or default_settings
    return create_engine(
        database_url or settings.database_url,
        echo=settings.database_echo,
        pool_pre_ping=True,  # Verify connections before use
    )


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a session factory bound to ``engine``."""
    return sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
    )


def create_audit_tables(engine: Engine) -> list[str]:
    """Create the audit tables if they do not exist.

    Returns:
        Names of the audit tables
    """
    # Register the audit models on Base.metadata
    from audittrail.core.audit import models  # noqa: F401

    Base.metadata.create_all(engine)
    return sorted(Base.metadata.tables)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations.

    Usage:
        with session_scope(factory) as session:
            session.add(invoice)
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
