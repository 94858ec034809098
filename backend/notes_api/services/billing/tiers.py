"""
Effective tier resolution.

A user who downgrades to ``free`` keeps the paid tier's limits until the paid
period they already bought runs out. The stored ``subscription_tier`` flips to
``free`` immediately; ``subscription_period_end`` (and ``grace_tier``) carry
the grace window.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from ...core.config import settings
from ...core.timeutils import to_naive_utc
from ...models.enums import PAID_TIERS, SubscriptionTier

log = logging.getLogger(__name__)


def stored_tier(profile: Any) -> SubscriptionTier:
    """The tier written on the profile; null or unknown values count as free."""
    raw = getattr(profile, "subscription_tier", None)
    if raw is None or not str(raw).strip():
        return SubscriptionTier.free
    try:
        return SubscriptionTier(str(raw).strip().lower())
    except ValueError:
        log.warning(
            "[tiers] Unknown stored tier '%s' for profile %s; treating as free",
            raw,
            getattr(profile, "id", None),
        )
        return SubscriptionTier.free


def grace_period_end(profile: Any, now: datetime) -> Optional[datetime]:
    """End of the active downgrade grace window, or None when not in one."""
    if stored_tier(profile) != SubscriptionTier.free:
        return None
    period_end = getattr(profile, "subscription_period_end", None)
    if period_end is None:
        return None
    if to_naive_utc(period_end) > to_naive_utc(now):
        return period_end
    return None


def _grace_tier(profile: Any) -> SubscriptionTier:
    raw = getattr(profile, "grace_tier", None)
    if raw:
        try:
            tier = SubscriptionTier(str(raw).strip().lower())
        except ValueError:
            tier = None
        if tier in PAID_TIERS:
            return tier
    # Rows downgraded before grace_tier was recorded only ever came from Student
    return SubscriptionTier(settings.GRACE_FALLBACK_TIER.strip().lower())


def effective_tier(profile: Any, now: datetime) -> SubscriptionTier:
    """Tier whose limits apply to ``profile`` at ``now``. Pure."""
    if grace_period_end(profile, now) is not None:
        return _grace_tier(profile)
    return stored_tier(profile)


__all__ = ["stored_tier", "effective_tier", "grace_period_end"]
