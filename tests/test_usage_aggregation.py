from datetime import datetime
from uuid import uuid4
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.exc import OperationalError

from notes_api.core.errors import StorageUnavailable
from notes_api.models.enums import JobStatus
from notes_api.services.billing import usage as usage_svc
from notes_api.services.billing.usage import UsageSnapshot

NOW = datetime(2025, 10, 15, 12, 0, 0)


def test_month_bounds_utc():
    start, end = usage_svc.month_bounds(NOW, ZoneInfo("UTC"))
    assert start == datetime(2025, 10, 1)
    assert end == datetime(2025, 11, 1)


def test_month_bounds_december_rolls_year():
    start, end = usage_svc.month_bounds(datetime(2025, 12, 31, 23, 59), ZoneInfo("UTC"))
    assert start == datetime(2025, 12, 1)
    assert end == datetime(2026, 1, 1)


def test_month_bounds_in_billing_timezone():
    # 03:00 UTC on Nov 1 is still October in New York (UTC-4)
    start, end = usage_svc.month_bounds(datetime(2025, 11, 1, 3, 0), ZoneInfo("America/New_York"))
    assert start == datetime(2025, 10, 1, 4, 0)
    assert end == datetime(2025, 11, 1, 4, 0)


def test_no_jobs_returns_zeros(session, make_profile):
    profile = make_profile()
    assert usage_svc.current_usage(session, profile.id, NOW) == UsageSnapshot(0.0, 0.0, 0)


def test_sums_completed_jobs_this_month(session, make_profile, make_job):
    profile = make_profile()
    make_job(profile.id, created_at=datetime(2025, 10, 1, 0, 0), file_size_mb=100, duration_minutes=30)
    make_job(profile.id, created_at=datetime(2025, 10, 14, 9, 30), file_size_mb=50.5, duration_minutes=12.5)

    snapshot = usage_svc.current_usage(session, profile.id, NOW)
    assert snapshot.mb == pytest.approx(150.5)
    assert snapshot.minutes == pytest.approx(42.5)
    assert snapshot.file_count == 2


def test_excludes_other_months_statuses_and_users(session, make_profile, make_job):
    profile = make_profile()
    other = make_profile()
    make_job(profile.id, created_at=datetime(2025, 9, 30, 23, 59, 59), file_size_mb=300)
    make_job(profile.id, created_at=datetime(2025, 11, 1, 0, 0), file_size_mb=300)
    make_job(profile.id, created_at=datetime(2025, 10, 5), file_size_mb=300, status=JobStatus.failed)
    make_job(profile.id, created_at=datetime(2025, 10, 5), file_size_mb=300, status=JobStatus.processing)
    make_job(profile.id, created_at=datetime(2025, 10, 5), file_size_mb=300, status=JobStatus.pending)
    make_job(other.id, created_at=datetime(2025, 10, 5), file_size_mb=300)
    make_job(profile.id, created_at=datetime(2025, 10, 6), file_size_mb=10, duration_minutes=5)

    snapshot = usage_svc.current_usage(session, profile.id, NOW)
    assert snapshot == UsageSnapshot(minutes=5.0, mb=10.0, file_count=1)


def test_unknown_user_has_zero_usage(session):
    assert usage_svc.current_usage(session, uuid4(), NOW).file_count == 0


def test_query_failure_raises_storage_unavailable(session, monkeypatch):
    def _boom(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection timed out"))

    monkeypatch.setattr(session, "exec", _boom)
    with pytest.raises(StorageUnavailable) as exc_info:
        usage_svc.current_usage(session, uuid4(), NOW)
    assert exc_info.value.code == "STORAGE_UNAVAILABLE"
    assert isinstance(exc_info.value.__cause__, OperationalError)
