"""
Job lifecycle helpers.

pending -> processing -> completed | failed. Terminal rows are never updated
again except by ``reset_monthly_usage``, which backdates ``created_at`` so the
jobs stop counting towards the current month.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from ..core import crud
from ..core.errors import InvalidInput, StorageUnavailable
from ..core.timeutils import to_naive_utc, utcnow
from ..models.enums import JobStatus, TERMINAL_JOB_STATUSES
from ..models.job import Job
from .billing.usage import month_bounds

log = logging.getLogger(__name__)

_ALLOWED_TRANSITIONS = {
    JobStatus.pending: {JobStatus.processing, JobStatus.failed},
    JobStatus.processing: {JobStatus.completed, JobStatus.failed},
}


def _transition(job: Job, target: JobStatus) -> None:
    if job.status in TERMINAL_JOB_STATUSES:
        raise InvalidInput(
            f"Job {job.job_id} is already {job.status.value}",
            context={"job_id": str(job.job_id), "status": job.status.value, "target": target.value},
        )
    if target not in _ALLOWED_TRANSITIONS.get(job.status, set()):
        raise InvalidInput(
            f"Cannot move job from {job.status.value} to {target.value}",
            context={"job_id": str(job.job_id)},
        )
    job.status = target


def _non_negative(name: str, value: float) -> float:
    if value is None or value < 0:
        raise InvalidInput(f"{name} must be non-negative", context={name: value})
    return float(value)


def create_job(
    session: Any,
    user_id: UUID,
    *,
    file_size_mb: float = 0.0,
    lecture_title: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Job:
    crud.get_profile(session, user_id)
    job = Job(
        user_id=user_id,
        status=JobStatus.pending,
        file_size_mb=_non_negative("file_size_mb", file_size_mb),
        lecture_title=lecture_title,
        created_at=to_naive_utc(now or utcnow()),
    )
    crud.save(session, job)
    log.info("job.created", extra={"job_id": str(job.job_id), "user_id": str(user_id)})
    return job


def start_job(session: Any, job_id: UUID) -> Job:
    job = crud.get_job(session, job_id)
    _transition(job, JobStatus.processing)
    crud.save(session, job)
    return job


def complete_job(
    session: Any,
    job_id: UUID,
    *,
    output_pdf_path: str,
    duration_minutes: float,
    file_size_mb: Optional[float] = None,
) -> Job:
    if not output_pdf_path:
        raise InvalidInput("Completed jobs require an output_pdf_path", context={"job_id": str(job_id)})
    job = crud.get_job(session, job_id)
    _transition(job, JobStatus.completed)
    job.output_pdf_path = output_pdf_path
    job.duration_minutes = _non_negative("duration_minutes", duration_minutes)
    if file_size_mb is not None:
        job.file_size_mb = _non_negative("file_size_mb", file_size_mb)
    crud.save(session, job)
    log.info("job.completed", extra={
        "job_id": str(job.job_id),
        "user_id": str(job.user_id),
        "minutes": job.duration_minutes,
        "mb": job.file_size_mb,
    })
    return job


def fail_job(session: Any, job_id: UUID, error_message: str = "") -> Job:
    job = crud.get_job(session, job_id)
    _transition(job, JobStatus.failed)
    job.output_pdf_path = None
    job.error_message = error_message or None
    crud.save(session, job)
    log.warning("job.failed", extra={"job_id": str(job.job_id), "error": error_message})
    return job


def list_jobs(session: Any, user_id: UUID, limit: int = 20) -> List[Job]:
    q = (
        select(Job)
        .where(Job.user_id == user_id)
        .order_by(desc(Job.created_at))
        .limit(limit)
    )
    try:
        return list(session.exec(q).all())
    except SQLAlchemyError as e:
        raise StorageUnavailable("Job listing failed", context={"user_id": str(user_id)}) from e


def reset_monthly_usage(
    session: Any,
    user_id: UUID,
    now: Optional[datetime] = None,
    *,
    dry_run: bool = False,
) -> List[Job]:
    """Backdate this month's jobs to the first day of the previous month.

    Used by support to give a user a fresh allowance. Returns the moved jobs.
    """
    now = now or utcnow()
    crud.get_profile(session, user_id)
    start, end = month_bounds(now)
    previous_month_start, _ = month_bounds(start - timedelta(microseconds=1))
    q = (
        select(Job)
        .where(Job.user_id == user_id)
        .where(Job.created_at >= start)
        .where(Job.created_at < end)
    )
    try:
        jobs = list(session.exec(q).all())
    except SQLAlchemyError as e:
        raise StorageUnavailable("Job query failed", context={"user_id": str(user_id)}) from e

    if dry_run or not jobs:
        return jobs
    for job in jobs:
        job.created_at = previous_month_start
    crud.save(session, *jobs)
    log.info("usage.reset", extra={"user_id": str(user_id), "jobs": len(jobs)})
    return jobs


__all__ = [
    "create_job",
    "start_job",
    "complete_job",
    "fail_job",
    "list_jobs",
    "reset_monthly_usage",
]
