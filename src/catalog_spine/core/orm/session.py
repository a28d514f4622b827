"""Engine and session factories for the catalog database.

* ``create_catalog_engine``   -- engine for a database URL, SQLite tuned for
  concurrent sync workers
* ``CatalogSession``          -- ``Session`` subclass for catalog work
* ``catalog_session_factory`` -- ``sessionmaker`` producing ``CatalogSession``
  with ``expire_on_commit`` off

Tags:
    catalog-spine, orm, sqlalchemy, session, engine
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Milliseconds a writer waits on a locked SQLite file before failing
SQLITE_BUSY_TIMEOUT_MS = 5000

_SQLITE_PRAGMAS = ("foreign_keys=ON", f"busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")


def _is_memory_database(url: str) -> bool:
    database = make_url(url).database
    return database in (None, "", ":memory:")


def _install_sqlite_pragmas(engine: Engine, *, wal: bool) -> None:
    pragmas = _SQLITE_PRAGMAS + (("journal_mode=WAL",) if wal else ())

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        try:
            for pragma in pragmas:
                cursor.execute(f"PRAGMA {pragma}")
        finally:
            cursor.close()


def create_catalog_engine(url: str = "sqlite:///data/catalog.db", *, echo: bool = False, **kwargs: Any) -> Engine:
    """Create the engine for *url*.

    SQLite connections may be used from the event router's worker threads,
    so ``check_same_thread`` is off. ``:memory:`` databases share a single
    connection (otherwise every session would see its own empty database);
    file databases run in WAL mode so searches do not block syncs. Extra
    keyword arguments go to :func:`sqlalchemy.create_engine` unchanged.
    """
    if make_url(url).get_backend_name() != "sqlite":
        return create_engine(url, echo=echo, pool_pre_ping=True, **kwargs)

    memory = _is_memory_database(url)
    kwargs.setdefault("connect_args", {"check_same_thread": False})
    if memory:
        kwargs.setdefault("poolclass", StaticPool)
    engine = create_engine(url, echo=echo, **kwargs)
    _install_sqlite_pragmas(engine, wal=not memory)
    return engine


class CatalogSession(Session):
    """Session type produced by :func:`catalog_session_factory`."""


def catalog_session_factory(engine: Engine) -> sessionmaker[CatalogSession]:
    """Sessions whose rows stay readable after commit.

    The store hands rows to callers after their session has closed, so the
    factory turns ``expire_on_commit`` off. ``sessionmaker`` always passes
    that flag to the session itself, so it has to be set here.
    """
    return sessionmaker(bind=engine, class_=CatalogSession, expire_on_commit=False)
