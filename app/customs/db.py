from __future__ import annotations

from contextlib import contextmanager
from collections.abc import Generator

from flask import Flask, current_app, g
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def _engine_options(db_url: str) -> dict[str, object]:
    opts: dict[str, object] = {"future": True, "pool_pre_ping": True}
    if db_url.startswith("postgres"):
        # gunicorn workers x pool_size must stay under the server's connection cap
        opts.update(pool_recycle=1800, pool_size=5, max_overflow=10, pool_timeout=30)
    return opts


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _fk_pragma(dbapi_connection, connection_record):  # type: ignore[no-redef]
        cur = dbapi_connection.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()


def init_db(app: Flask) -> None:
    """Create the engine and session factory; both live in app.extensions."""
    db_url = app.config["DATABASE_URL"]
    engine = create_engine(db_url, **_engine_options(db_url))
    if db_url.startswith("sqlite"):
        _enable_sqlite_foreign_keys(engine)

    app.extensions["sqlalchemy_engine"] = engine
    app.extensions["sqlalchemy_sessionmaker"] = sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )
    app.logger.debug("DB engine ready (%s)", engine.url.render_as_string(hide_password=True))


def db_session() -> Session:
    """Request-scoped session, opened lazily and closed on teardown."""
    s: Session | None = getattr(g, "db_session", None)
    if s is None:
        s = current_app.extensions["sqlalchemy_sessionmaker"]()
        g.db_session = s
    return s


def teardown_db_session(exc: BaseException | None) -> None:
    s: Session | None = g.pop("db_session", None)
    if s is None:
        return
    try:
        if exc is not None:
            s.rollback()
    finally:
        s.close()


@contextmanager
def session_scope(app: Flask) -> Generator[Session, None, None]:
    """Session outside a request (scripts, tests): commit on success, roll back on error."""
    s: Session = app.extensions["sqlalchemy_sessionmaker"]()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
