import os
from datetime import datetime
from importlib import import_module
from pathlib import Path
from typing import Optional
from uuid import UUID

import pytest

os.environ.setdefault("APP_ENV", "test")


@pytest.fixture(scope="function")
def db_engine(tmp_path: Path):
    """Temporary SQLite engine with tables created.

    Patches `notes_api.core.database.engine` in place so services, routes and
    maintenance scripts that dereference the module attribute all use it.
    """
    from sqlmodel import create_engine
    db_path = tmp_path / "test.db"
    engine_url = f"sqlite:///{db_path.as_posix()}"

    db = import_module("notes_api.core.database")
    old_engine = getattr(db, "engine")
    new_engine = create_engine(engine_url, echo=False, connect_args={"check_same_thread": False})
    setattr(db, "engine", new_engine)
    db.create_db_and_tables()

    try:
        yield new_engine
    finally:
        setattr(db, "engine", old_engine)
        new_engine.dispose()


@pytest.fixture(scope="function")
def session(db_engine):
    """Database session bound to the temporary test engine."""
    from sqlmodel import Session as SQLSession
    with SQLSession(db_engine, expire_on_commit=False) as s:
        yield s


@pytest.fixture(scope="function")
def app(db_engine):
    """FastAPI app wired to the temporary DB engine."""
    main = import_module("notes_api.main")
    return main.create_app()


@pytest.fixture(scope="function")
def client(app):
    """Synchronous FastAPI TestClient.

    Example:
        def test_health(client):
            assert client.get("/api/health").status_code == 200
    """
    from fastapi.testclient import TestClient
    with TestClient(app) as tc:
        yield tc


@pytest.fixture
def make_profile(session):
    """Factory for Profile rows: make_profile(tier="free", period_end=...)."""
    from notes_api.models.profile import Profile

    counter = {"n": 0}

    def _make(
        tier: Optional[str] = "free",
        *,
        period_start: Optional[datetime] = None,
        period_end: Optional[datetime] = None,
        grace_tier: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Profile:
        counter["n"] += 1
        profile = Profile(
            email=email or f"user{counter['n']}@example.com",
            subscription_tier=tier,
            subscription_period_start=period_start,
            subscription_period_end=period_end,
            grace_tier=grace_tier,
        )
        session.add(profile)
        session.commit()
        session.refresh(profile)
        return profile

    return _make


@pytest.fixture
def make_job(session):
    """Factory for Job rows; defaults to a completed job."""
    from notes_api.models.enums import JobStatus
    from notes_api.models.job import Job

    def _make(
        user_id: UUID,
        *,
        created_at: datetime,
        file_size_mb: float = 0.0,
        duration_minutes: float = 0.0,
        status: JobStatus = JobStatus.completed,
        title: Optional[str] = None,
    ) -> Job:
        job = Job(
            user_id=user_id,
            status=status,
            created_at=created_at,
            file_size_mb=file_size_mb,
            duration_minutes=duration_minutes,
            output_pdf_path=f"pdfs/{user_id}/notes.pdf" if status == JobStatus.completed else None,
            lecture_title=title,
        )
        session.add(job)
        session.commit()
        session.refresh(job)
        return job

    return _make
