"""
Entitlement check for new uploads.

Admission policy: storage MB is the only gating dimension. A single file larger
than the tier's per-file cap is refused outright; otherwise the file must fit
the monthly MB allowance (plus the tier's overflow, if its limits table grants
one). Minutes and file count are computed and reported, and produce advisories
when the upload would push them past the tier allowance, but they never block
admission.

The check is read-only and best-effort: two uploads racing through the check
can both be admitted and overshoot the allowance slightly. Callers that need a
hard quota must combine job insert and check in one transaction themselves.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ...billing.plans import active_limits_version, get_tier_limits
from ...core import crud
from ...core.errors import InvalidInput
from ...core.timeutils import utcnow
from . import tiers
from . import usage as usage_svc

log = logging.getLogger(__name__)


class EntitlementResult(BaseModel):
    can_process: bool
    message: str
    user_id: UUID
    stored_tier: str
    effective_tier: str
    in_grace_period: bool = False
    grace_period_ends_at: Optional[datetime] = None
    limits_version: str

    monthly_limit_mb: int
    current_usage_mb: float
    remaining_mb: float
    incoming_file_size_mb: float = 0.0
    max_file_size_mb: int

    # Monthly overflow past monthly_limit_mb (0 when the tier has none)
    overflow_limit_mb: int = 0
    overflow_used_mb: float = 0.0
    overflow_available_mb: float = 0.0
    using_overflow: bool = False

    monthly_limit_minutes: int
    current_usage_minutes: float
    remaining_minutes: float

    file_limit: int
    files_this_month: int
    remaining_files: int

    advisories: List[str] = Field(default_factory=list)


def _validate_amount(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput(f"{name} must be a number", context={name: repr(value)})
    if not math.isfinite(value) or value < 0:
        raise InvalidInput(f"{name} must be a finite, non-negative number", context={name: value})
    return float(value)


def _fmt(value: float) -> str:
    return f"{value:g}"


def check_usage_limits(
    session: Any,
    user_id: UUID,
    incoming_file_size_mb: float,
    now: Optional[datetime] = None,
    *,
    incoming_minutes: Optional[float] = None,
) -> EntitlementResult:
    """Decide whether a new file of ``incoming_file_size_mb`` fits this month's allowance.

    Raises:
        NotFound: the profile does not exist.
        InvalidInput: negative/non-finite sizes or a non-datetime ``now``.
        StorageUnavailable: a storage query failed.
    """
    size_mb = _validate_amount("incoming_file_size_mb", incoming_file_size_mb)
    extra_minutes = _validate_amount("incoming_minutes", incoming_minutes) if incoming_minutes is not None else None
    if now is None:
        now = utcnow()
    elif not isinstance(now, datetime):
        raise InvalidInput("now must be a datetime", context={"now": repr(now)})

    profile = crud.get_profile(session, user_id)
    stored = tiers.stored_tier(profile)
    effective = tiers.effective_tier(profile, now)
    grace_end = tiers.grace_period_end(profile, now)
    version = active_limits_version()
    limits = get_tier_limits(effective, version)
    used = usage_svc.current_usage(session, user_id, now)

    projected_mb = used.mb + size_mb
    allowance_mb = limits.max_storage_mb + limits.overflow_mb

    if size_mb > limits.max_file_size_mb:
        # Per-file cap is checked first and the overflow never applies to it
        can_process = False
        message = (
            f"File size {_fmt(size_mb)}MB exceeds limit of "
            f"{limits.max_file_size_mb}MB for {effective.value} tier"
        )
    else:
        # Inclusive: landing exactly on the allowance is still allowed
        can_process = projected_mb <= allowance_mb
        if not can_process and limits.overflow_mb:
            message = (
                f"Adding {_fmt(size_mb)}MB would exceed monthly limit of {allowance_mb}MB "
                f"(includes {limits.overflow_mb}MB overflow) - {_fmt(used.mb)}MB used"
            )
        elif not can_process:
            message = (
                f"Adding {_fmt(size_mb)}MB would exceed monthly limit of "
                f"{limits.max_storage_mb}MB ({_fmt(used.mb)}MB used)"
            )
        elif projected_mb > limits.max_storage_mb:
            message = (
                f"Within limits using {_fmt(projected_mb - limits.max_storage_mb)}MB "
                f"of the {limits.overflow_mb}MB monthly overflow"
            )
        else:
            message = "Within all limits"

    # Overflow is whatever this month's usage already sits past the base allowance
    overflow_used_mb = min(float(limits.overflow_mb), max(0.0, used.mb - limits.max_storage_mb))

    advisories: list[str] = []
    if used.file_count + 1 > limits.max_files:
        advisories.append(
            f"Monthly limit of {limits.max_files} summaries reached for {effective.value} tier"
        )
    projected_minutes = used.minutes + (extra_minutes or 0.0)
    if projected_minutes > limits.max_minutes:
        advisories.append(
            f"Projected {_fmt(projected_minutes)} minutes exceeds monthly limit of {limits.max_minutes} minutes"
        )

    result = EntitlementResult(
        can_process=can_process,
        message=message,
        user_id=user_id,
        stored_tier=stored.value,
        effective_tier=effective.value,
        in_grace_period=grace_end is not None,
        grace_period_ends_at=grace_end,
        limits_version=version,
        monthly_limit_mb=limits.max_storage_mb,
        current_usage_mb=used.mb,
        remaining_mb=max(0.0, limits.max_storage_mb - used.mb),
        incoming_file_size_mb=size_mb,
        max_file_size_mb=limits.max_file_size_mb,
        overflow_limit_mb=limits.overflow_mb,
        overflow_used_mb=overflow_used_mb,
        overflow_available_mb=max(0.0, limits.overflow_mb - overflow_used_mb),
        using_overflow=can_process and projected_mb > limits.max_storage_mb,
        monthly_limit_minutes=limits.max_minutes,
        current_usage_minutes=used.minutes,
        remaining_minutes=max(0.0, limits.max_minutes - used.minutes),
        file_limit=limits.max_files,
        files_this_month=used.file_count,
        remaining_files=max(0, limits.max_files - used.file_count),
        advisories=advisories,
    )
    log.info(
        "[entitlements] user_id=%s stored=%s effective=%s used_mb=%s incoming_mb=%s limit_mb=%s can_process=%s",
        user_id,
        stored.value,
        effective.value,
        _fmt(used.mb),
        _fmt(size_mb),
        limits.max_storage_mb,
        can_process,
    )
    return result


def usage_summary(session: Any, user_id: UUID, now: Optional[datetime] = None) -> EntitlementResult:
    """Dashboard view: current usage and remaining allowance without an incoming file."""
    return check_usage_limits(session, user_id, 0, now)


__all__ = ["EntitlementResult", "check_usage_limits", "usage_summary"]
