"""
Tier limit tables.

Single source of truth for per-tier monthly allowances. Every consumer (the
entitlement check, the dashboard summary, maintenance scripts) reads limits
from here; nothing else should carry tier literals.

Tables are versioned so a historical month can be recomputed with the limits
that applied at the time. Add a new version instead of editing an old one.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Mapping, Optional

from ..core.errors import InvalidInput
from ..models.enums import SubscriptionTier

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TierLimits:
    max_minutes: int
    max_storage_mb: int
    max_files: int
    # Largest single upload; checked before the monthly allowance
    max_file_size_mb: int
    # Extra MB a tier may run past max_storage_mb each month before uploads are refused
    overflow_mb: int = 0


# v1: pre-launch pricing (Student at 40 hours)
_V1 = {
    SubscriptionTier.free: TierLimits(max_minutes=600, max_storage_mb=120, max_files=2, max_file_size_mb=60),
    SubscriptionTier.student: TierLimits(max_minutes=2400, max_storage_mb=700, max_files=50, max_file_size_mb=300),
    SubscriptionTier.genius: TierLimits(max_minutes=6000, max_storage_mb=2000, max_files=200, max_file_size_mb=1000),
}

# v2: launch pricing (Student reduced to 25 hours)
_V2 = {
    SubscriptionTier.free: TierLimits(max_minutes=600, max_storage_mb=120, max_files=2, max_file_size_mb=60),
    SubscriptionTier.student: TierLimits(max_minutes=1500, max_storage_mb=700, max_files=50, max_file_size_mb=300),
    SubscriptionTier.genius: TierLimits(max_minutes=6000, max_storage_mb=2000, max_files=200, max_file_size_mb=1000),
}

# v3: v2 plus a 25MB monthly overflow for paying tiers. Opt-in through
# TIER_LIMITS_VERSION=v3 until the overflow is announced.
_V3 = {
    SubscriptionTier.free: _V2[SubscriptionTier.free],
    SubscriptionTier.student: replace(_V2[SubscriptionTier.student], overflow_mb=25),
    SubscriptionTier.genius: replace(_V2[SubscriptionTier.genius], overflow_mb=25),
}

LIMIT_TABLES: Mapping[str, Mapping[SubscriptionTier, TierLimits]] = MappingProxyType({
    "v1": MappingProxyType(_V1),
    "v2": MappingProxyType(_V2),
    "v3": MappingProxyType(_V3),
})

LATEST_LIMITS_VERSION = "v2"


def active_limits_version() -> str:
    """Version selected by TIER_LIMITS_VERSION, or LATEST_LIMITS_VERSION when unset."""
    from ..core.config import settings

    configured = (settings.TIER_LIMITS_VERSION or "").strip()
    return configured or LATEST_LIMITS_VERSION


def get_limit_table(version: Optional[str] = None) -> Mapping[SubscriptionTier, TierLimits]:
    version = version or active_limits_version()
    try:
        return LIMIT_TABLES[version]
    except KeyError:
        raise InvalidInput(
            f"Unknown tier limits version '{version}'",
            context={"known_versions": sorted(LIMIT_TABLES)},
        ) from None


def get_tier_limits(tier: SubscriptionTier | str, version: Optional[str] = None) -> TierLimits:
    """Limits for ``tier``; unknown tiers get free-tier limits."""
    table = get_limit_table(version)
    try:
        key = SubscriptionTier(tier)
    except ValueError:
        log.warning(f"[plans] Unknown tier '{tier}', defaulting to 'free' tier limits")
        key = SubscriptionTier.free
    return table[key]


__all__ = [
    "TierLimits",
    "LIMIT_TABLES",
    "LATEST_LIMITS_VERSION",
    "active_limits_version",
    "get_limit_table",
    "get_tier_limits",
]
