"""Engine construction, schema bootstrap and session management."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import URL, make_url
from sqlalchemy.orm import Session, sessionmaker

from moviecat.core.config import get_settings
from moviecat.models import Base

logger = logging.getLogger(__name__)


def _database_url() -> str:
    """Return the SQLAlchemy URL from settings (defaults to local SQLite)."""
    return get_settings().database_url


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def normalize_url(url: str | URL) -> URL:
    """Point a bare ``postgresql://`` URL at psycopg 3, the installed driver.

    SQLAlchemy maps the bare scheme to psycopg2, which the ``postgres`` extra
    does not install. Explicit driver names are left alone.
    """
    parsed = make_url(url)
    if parsed.drivername == "postgresql":
        return parsed.set(drivername="postgresql+psycopg")
    return parsed


def create_store_engine(url: str | None = None) -> Engine:
    """Build the engine every store operation runs on."""

    engine = create_engine(normalize_url(url or _database_url()), future=True)
    if engine.dialect.name == "sqlite":
        # SQLite leaves foreign keys off unless asked, per connection.
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def init_models(engine: Engine, *, reset: bool = False) -> None:
    """Create the catalog tables, dropping existing ones first when ``reset``."""

    if reset:
        logger.info("Dropping existing catalog tables")
        Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    logger.info("Catalog schema ready on %s", engine.url.render_as_string(hide_password=True))


@contextmanager
def session_scope(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """One transaction per unit of work: commit on success, roll back on error."""

    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
