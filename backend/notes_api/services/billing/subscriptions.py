"""
Subscription state changes on profiles: upgrade, downgrade, billing period
setup, and cleanup of expired grace windows.

All operations commit their own writes and log a ``subscription.*`` event.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from ...core import crud
from ...core.errors import InvalidInput, StorageUnavailable
from ...core.timeutils import add_months, to_naive_utc, utcnow
from ...models.enums import PAID_TIERS, SubscriptionTier
from ...models.profile import Profile, ProfilePublic
from . import tiers

log = logging.getLogger(__name__)


def _check_period(start: Optional[datetime], end: Optional[datetime]) -> None:
    if start is not None and end is not None and to_naive_utc(end) < to_naive_utc(start):
        raise InvalidInput(
            "subscription_period_end must not precede subscription_period_start",
            context={"period_start": start.isoformat(), "period_end": end.isoformat()},
        )


def _paid_tier(tier: SubscriptionTier | str) -> SubscriptionTier:
    try:
        value = SubscriptionTier(str(getattr(tier, "value", tier)).strip().lower())
    except ValueError:
        raise InvalidInput(f"Unknown tier '{tier}'") from None
    if value not in PAID_TIERS:
        raise InvalidInput(f"'{value.value}' is not a paid tier")
    return value


def to_public(profile: Profile, now: Optional[datetime] = None) -> ProfilePublic:
    now = now or utcnow()
    return ProfilePublic(
        id=profile.id,
        email=profile.email,
        subscription_tier=profile.subscription_tier,
        subscription_period_start=profile.subscription_period_start,
        subscription_period_end=profile.subscription_period_end,
        grace_tier=profile.grace_tier,
        effective_tier=tiers.effective_tier(profile, now).value,
        in_grace_period=tiers.grace_period_end(profile, now) is not None,
        updated_at=profile.updated_at,
    )


def upgrade(
    session: Any,
    user_id: UUID,
    tier: SubscriptionTier | str,
    now: Optional[datetime] = None,
    *,
    period_start: Optional[datetime] = None,
    stripe_customer_id: Optional[str] = None,
) -> Profile:
    """Move a profile onto a paid tier with a fresh one-month billing period."""
    target = _paid_tier(tier)
    now = to_naive_utc(now or utcnow())
    start = to_naive_utc(period_start) if period_start is not None else now
    profile = crud.get_profile(session, user_id)
    previous = profile.subscription_tier

    profile.subscription_tier = target.value
    profile.subscription_period_start = start
    profile.subscription_period_end = add_months(start, 1)
    profile.grace_tier = None
    if stripe_customer_id:
        profile.stripe_customer_id = stripe_customer_id
    profile.updated_at = now
    crud.save(session, profile)

    log.info("subscription.upgrade", extra={
        "user_id": str(user_id),
        "from_tier": previous,
        "to_tier": target.value,
        "period_end": profile.subscription_period_end.isoformat(),
    })
    return profile


def downgrade(
    session: Any,
    user_id: UUID,
    now: Optional[datetime] = None,
    *,
    period_end: Optional[datetime] = None,
) -> Profile:
    """Switch a paid profile to free while keeping the paid tier until the period ends.

    The tier being left is recorded in ``grace_tier``. A profile that is
    already free is returned unchanged.
    """
    now = to_naive_utc(now or utcnow())
    profile = crud.get_profile(session, user_id)
    current = tiers.stored_tier(profile)
    if current not in PAID_TIERS:
        log.info("subscription.downgrade no-op; profile already free", extra={"user_id": str(user_id)})
        return profile

    new_end = to_naive_utc(period_end) if period_end is not None else profile.subscription_period_end
    _check_period(profile.subscription_period_start, new_end)

    profile.subscription_tier = SubscriptionTier.free.value
    profile.subscription_period_end = new_end
    profile.grace_tier = current.value
    profile.updated_at = now
    crud.save(session, profile)

    log.info("subscription.downgrade", extra={
        "user_id": str(user_id),
        "grace_tier": current.value,
        "period_end": new_end.isoformat() if new_end else None,
    })
    return profile


def setup_billing_period(session: Any, user_id: UUID, now: Optional[datetime] = None) -> Profile:
    """Set ``subscription_period_end`` to one calendar month after the period start."""
    profile = crud.get_profile(session, user_id)
    start = profile.subscription_period_start
    if start is None:
        raise InvalidInput(
            "Profile has no subscription_period_start; cannot derive a billing period",
            context={"user_id": str(user_id)},
        )
    profile.subscription_period_end = add_months(start, 1)
    profile.updated_at = to_naive_utc(now or utcnow())
    crud.save(session, profile)
    log.info("subscription.billing_period", extra={
        "user_id": str(user_id),
        "period_start": start.isoformat(),
        "period_end": profile.subscription_period_end.isoformat(),
    })
    return profile


def _expired_grace_profiles(session: Any, now: datetime) -> List[Profile]:
    q = (
        select(Profile)
        .where(Profile.subscription_tier == SubscriptionTier.free.value)
        .where(Profile.subscription_period_end.is_not(None))  # type: ignore[union-attr]
        .where(Profile.subscription_period_end < now)
    )
    try:
        return list(session.exec(q).all())
    except SQLAlchemyError as e:
        raise StorageUnavailable("Expired subscription query failed") from e


def cleanup_expired_subscriptions(
    session: Any,
    now: Optional[datetime] = None,
    *,
    dry_run: bool = False,
) -> List[Profile]:
    """Clear stale grace windows on free profiles whose paid period has ended.

    Returns the affected profiles (as they were before cleanup when ``dry_run``).
    """
    now = to_naive_utc(now or utcnow())
    expired = _expired_grace_profiles(session, now)
    if dry_run or not expired:
        log.info("subscription.cleanup", extra={"count": len(expired), "dry_run": dry_run})
        return expired

    for profile in expired:
        profile.subscription_period_end = None
        profile.grace_tier = None
        profile.updated_at = now
    crud.save(session, *expired)
    log.info("subscription.cleanup", extra={"count": len(expired), "dry_run": False})
    return expired


@dataclass
class SubscriptionReport:
    active_paid: int = 0
    downgraded_in_period: int = 0
    expired: int = 0
    free: int = 0
    total: int = 0


def subscription_report(session: Any, now: Optional[datetime] = None) -> SubscriptionReport:
    now = now or utcnow()
    report = SubscriptionReport()
    for profile in crud.list_profiles(session):
        report.total += 1
        tier = tiers.stored_tier(profile)
        if tier in PAID_TIERS:
            report.active_paid += 1
        elif profile.subscription_period_end is None:
            report.free += 1
        elif tiers.grace_period_end(profile, now) is not None:
            report.downgraded_in_period += 1
        else:
            report.expired += 1
    return report


__all__ = [
    "upgrade",
    "downgrade",
    "setup_billing_period",
    "cleanup_expired_subscriptions",
    "subscription_report",
    "SubscriptionReport",
    "to_public",
]
