"""Database configuration and session management."""

from collections.abc import Generator
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from finsnap.config import settings


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


_engine: Engine | None = None
_session_maker: sessionmaker[Session] | None = None


def _prepare_sqlite_path(url: URL) -> None:
    """Ensure on-disk SQLite paths exist before engine creation."""
    database = url.database
    if not database or database == ":memory:":
        return

    db_path = Path(database)
    if not db_path.is_absolute():
        db_path = (Path.cwd() / db_path).resolve()
    db_path.parent.mkdir(parents=True, exist_ok=True)


def get_engine() -> Engine:
    """Create (or return) the global SQLAlchemy engine."""
    global _engine
    if _engine is None:
        parsed_url = make_url(settings.database_url)
        if parsed_url.drivername.startswith("sqlite"):
            _prepare_sqlite_path(parsed_url)
            connect_args = {"check_same_thread": False}
        else:
            connect_args = {}
        _engine = create_engine(
            settings.database_url,
            echo=settings.debug,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
    return _engine


def get_session_maker() -> sessionmaker[Session]:
    global _session_maker
    if _session_maker is None:
        _session_maker = sessionmaker(
            bind=get_engine(),
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_maker


def set_session_maker(maker: sessionmaker[Session] | None) -> sessionmaker[Session] | None:
    """Replace the session maker (tests bind an in-memory engine) and return the previous one."""
    global _session_maker
    previous = _session_maker
    _session_maker = maker
    return previous


def get_db() -> Generator[Session, None, None]:
    """Dependency for database session."""
    session = get_session_maker()()
    try:
        yield session
    finally:
        session.close()


def init_db(engine: Engine | None = None) -> None:
    """Create tables if they are missing."""
    from finsnap import models  # noqa: F401

    Base.metadata.create_all(bind=engine or get_engine())
