from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from ...core.config import settings
from ...core.errors import StorageUnavailable
from ...core.timeutils import to_naive_utc
from ...models.enums import JobStatus
from ...models.job import Job

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class UsageSnapshot:
    minutes: float = 0.0
    mb: float = 0.0
    file_count: int = 0


def month_bounds(now: datetime, tz: Optional[tzinfo] = None) -> tuple[datetime, datetime]:
    """[start of month, start of next month) around ``now`` in ``tz``, returned as naive UTC.

    Naive ``now`` is read as UTC.
    """
    tz = tz or settings.billing_tz
    aware = now if now.tzinfo is not None else now.replace(tzinfo=timezone.utc)
    local = aware.astimezone(tz)
    start = local.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        nxt = start.replace(year=start.year + 1, month=1)
    else:
        nxt = start.replace(month=start.month + 1)
    return to_naive_utc(start), to_naive_utc(nxt)


def current_usage(session: Any, user_id: UUID, now: datetime) -> UsageSnapshot:
    """Sum completed jobs created this calendar month. Zeros when there are none."""
    start, end = month_bounds(now)
    q = (
        select(
            func.coalesce(func.sum(Job.duration_minutes), 0),
            func.coalesce(func.sum(Job.file_size_mb), 0),
            func.count(Job.job_id),
        )
        .where(Job.user_id == user_id)
        .where(Job.status == JobStatus.completed)
        .where(Job.created_at >= start)
        .where(Job.created_at < end)
    )
    try:
        minutes, mb, count = session.exec(q).one()
    except SQLAlchemyError as e:
        raise StorageUnavailable(
            "Usage query failed",
            context={"user_id": str(user_id), "period_start": start.isoformat()},
        ) from e
    snapshot = UsageSnapshot(minutes=float(minutes or 0), mb=float(mb or 0), file_count=int(count or 0))
    log.debug(
        "usage.snapshot",
        extra={
            "user_id": str(user_id),
            "period_start": start.isoformat(),
            "minutes": snapshot.minutes,
            "mb": snapshot.mb,
            "files": snapshot.file_count,
        },
    )
    return snapshot


__all__ = ["UsageSnapshot", "month_bounds", "current_usage"]
