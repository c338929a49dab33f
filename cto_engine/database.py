from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from .config import get_settings
from .models.base import Base

_engine = None
_SessionLocal = None


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _enforce_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # Decisions and typed rules must point at stored rule versions and rule sets.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine():
    global _engine
    if _engine is not None:
        return _engine
    settings = get_settings()
    kwargs = {"pool_pre_ping": True, "future": True}
    if _is_sqlite(settings.DATABASE_URL):
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_size"] = settings.DB_POOL_SIZE
    _engine = create_engine(settings.DATABASE_URL, **kwargs)
    if _is_sqlite(settings.DATABASE_URL):
        event.listen(_engine, "connect", _enforce_sqlite_foreign_keys)
    return _engine


def get_sessionmaker():
    global _SessionLocal
    if _SessionLocal is not None:
        return _SessionLocal
    _SessionLocal = sessionmaker(bind=get_engine(), autocommit=False, autoflush=False)
    return _SessionLocal


def reset_engine() -> None:
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def init_db() -> None:
    # Importing the package registers every table on Base.metadata.
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=get_engine())


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for work outside a request (startup seeding, scripts).

    Uncommitted work is rolled back when the block raises.
    """
    db = get_sessionmaker()()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_db():
    with session_scope() as db:
        yield db
