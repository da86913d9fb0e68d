# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261018v1
# ---------------------------------------------------------------------------
"""
SQLAlchemy declarative base, session-factory construction, the transaction
helper, and the FastAPI dependency that provides a DB session per request.

There is no module-level engine.  ``main.create_app`` builds a session
factory (or receives one from the caller, e.g. tests) and stores it on
``app.state.session_factory``; ``get_db`` reads it from there.
"""

from contextlib import contextmanager
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from core.logger import logger

Base = declarative_base()


def create_session_factory(database_url: str, echo: bool = False) -> sessionmaker:
    """
    Build an engine for *database_url* and return a bound session factory.

    SQLite URLs get ``check_same_thread=False`` because FastAPI runs sync
    handlers in a threadpool; an in-memory SQLite database additionally
    shares one connection (StaticPool) so every session sees the same data.
    """
    kwargs = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        # pool_pre_ping keeps idle connections alive across MySQL's wait_timeout
        kwargs["pool_pre_ping"] = True

    engine = create_engine(database_url, **kwargs)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request) -> Iterator[Session]:
    """
    FastAPI dependency.  Yields a session for the duration of the request,
    then closes it.  Use with Depends(get_db).
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Commit everything done inside the block as one unit, or roll all of it
    back if the block raises.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def check_connection(db: Session) -> bool:
    """Round-trip ``SELECT 1``; False when the database is unreachable."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception as exc:
        logger.warning("Database health check failed: %s", exc)
        return False
