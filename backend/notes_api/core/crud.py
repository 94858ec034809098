from sqlmodel import Session, select
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional, List
from uuid import UUID

from .errors import NotFound, StorageUnavailable
from ..models.profile import Profile
from ..models.job import Job

# --- Profile lookups ---

def get_profile_by_id(session: Session, user_id: UUID) -> Optional[Profile]:
    try:
        return session.get(Profile, user_id)
    except SQLAlchemyError as e:
        raise StorageUnavailable("Profile lookup failed", context={"user_id": str(user_id)}) from e


def get_profile_by_email(session: Session, email: str) -> Optional[Profile]:
    # Stored emails keep whatever case the signup used
    statement = select(Profile).where(func.lower(Profile.email) == email.strip().lower())
    try:
        return session.exec(statement).first()
    except SQLAlchemyError as e:
        raise StorageUnavailable("Profile lookup failed") from e


def get_profile(session: Session, user_id: UUID) -> Profile:
    """Point lookup that raises NotFound instead of returning None."""
    profile = get_profile_by_id(session, user_id)
    if profile is None:
        raise NotFound(f"Profile {user_id} not found", context={"user_id": str(user_id)})
    return profile


def resolve_profile(session: Session, identifier: str) -> Profile:
    """Find a profile by UUID or email (maintenance scripts accept either)."""
    identifier = (identifier or "").strip()
    try:
        user_id = UUID(identifier)
    except ValueError:
        profile = get_profile_by_email(session, identifier)
        if profile is None:
            raise NotFound(f"No profile with email {identifier}")
        return profile
    return get_profile(session, user_id)


def list_profiles(session: Session) -> List[Profile]:
    statement = select(Profile)
    try:
        return list(session.exec(statement).all())
    except SQLAlchemyError as e:
        raise StorageUnavailable("Profile listing failed") from e

# --- Job lookups ---

def get_job(session: Session, job_id: UUID) -> Job:
    try:
        job = session.get(Job, job_id)
    except SQLAlchemyError as e:
        raise StorageUnavailable("Job lookup failed", context={"job_id": str(job_id)}) from e
    if job is None:
        raise NotFound(f"Job {job_id} not found", code="JOB_NOT_FOUND", context={"job_id": str(job_id)})
    return job


def save(session: Session, *rows) -> None:
    """Add and commit rows, mapping driver failures to StorageUnavailable."""
    try:
        for row in rows:
            session.add(row)
        session.commit()
        for row in rows:
            session.refresh(row)
    except SQLAlchemyError as e:
        session.rollback()
        raise StorageUnavailable("Write failed") from e
