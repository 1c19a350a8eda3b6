"""Test fixtures and configuration."""

import logging
import sys

import pytest
import structlog
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from finsnap.database import Base, init_db, set_session_maker
from finsnap.services.reconciliation import ReconciliationEngine
from finsnap.services.reconciliation_config import DEFAULT_CONFIG
from finsnap.services.store import SqlAlchemyRecordStore


# --- Structlog Configuration for Tests ---
@pytest.fixture(autouse=True, scope="session")
def configure_structlog_for_tests():
    """Configure structlog for proper capsys capture in tests."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(),
        foreign_pre_chain=processors[:-1],
    )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG)

    yield

    structlog.reset_defaults()


# --- Database ---
@pytest.fixture
def db_engine():
    """In-memory SQLite shared by every connection of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_maker):
    session = session_maker()
    yield session
    session.close()


@pytest.fixture
def store(db):
    return SqlAlchemyRecordStore(db)


@pytest.fixture
def engine(store):
    return ReconciliationEngine(store, DEFAULT_CONFIG)


# --- API ---
@pytest.fixture
def client(session_maker):
    """TestClient bound to the in-memory database.

    Used without the context manager so the lifespan does not create the
    on-disk default database.
    """
    from finsnap.main import app

    previous = set_session_maker(session_maker)
    try:
        yield TestClient(app)
    finally:
        set_session_maker(previous)
