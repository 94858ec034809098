from contextlib import contextmanager
from typing import Iterator
import logging

from sqlmodel import SQLModel, Session, create_engine
from sqlalchemy.engine import make_url

# Ensure models are imported so SQLModel metadata is populated
from ..models import profile as _profile_models  # noqa: F401
from ..models import job as _job_models  # noqa: F401
from .config import settings

log = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    backend_name = make_url(url).get_backend_name()
    if backend_name == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    # Short, bounded waits: a slow database surfaces as StorageUnavailable instead of hanging the upload flow
    return {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 5,
        "pool_timeout": settings.DB_CONNECT_TIMEOUT,
        "pool_recycle": 1800,
        "pool_reset_on_return": "rollback",
        "connect_args": {
            "connect_timeout": settings.DB_CONNECT_TIMEOUT,
            "options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}",
        },
    }


def _create_engine():
    url = settings.database_url
    try:
        backend_name = make_url(url).get_backend_name()
    except Exception as e:
        log.error("[db] Invalid DATABASE_URL format: %s", e)
        raise RuntimeError(f"Invalid DATABASE_URL format: {e}") from e
    log.info("[db] Using %s database backend", backend_name)
    return create_engine(url, echo=False, **_engine_kwargs(url))


engine = _create_engine()


def create_db_and_tables():
    """Create tables from SQLModel metadata (profile, job)."""
    SQLModel.metadata.create_all(engine)


def get_session():
    """Provide database session for FastAPI dependency injection.

    expire_on_commit=False keeps profile attributes readable after commit.
    Any open transaction is rolled back before the connection returns to the pool.
    """
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
    except Exception:
        try:
            session.rollback()
        except Exception as rollback_exc:
            log.warning("[db] Rollback failed in get_session cleanup: %s", rollback_exc)
        raise
    finally:
        if session.in_transaction():
            session.rollback()
        session.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Context manager for DB sessions outside FastAPI dependencies (scripts, jobs).

    Caller is responsible for commit().
    """
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
    except Exception:
        try:
            session.rollback()
        except Exception as rollback_exc:
            log.warning("[db] Rollback failed in session_scope cleanup: %s", rollback_exc)
        raise
    finally:
        if session.in_transaction():
            session.rollback()
        session.close()
