import pytest

from notes_api.billing import plans
from notes_api.billing.plans import TierLimits, get_limit_table, get_tier_limits
from notes_api.core.errors import InvalidInput
from notes_api.models.enums import SubscriptionTier


def test_current_table_values():
    assert get_tier_limits("free") == TierLimits(max_minutes=600, max_storage_mb=120, max_files=2, max_file_size_mb=60)
    assert get_tier_limits("student") == TierLimits(
        max_minutes=1500, max_storage_mb=700, max_files=50, max_file_size_mb=300
    )
    assert get_tier_limits(SubscriptionTier.genius) == TierLimits(
        max_minutes=6000, max_storage_mb=2000, max_files=200, max_file_size_mb=1000
    )


def test_published_tables_have_no_overflow():
    for version in ("v1", "v2"):
        assert all(limits.overflow_mb == 0 for limits in get_limit_table(version).values())


def test_v3_adds_overflow_for_paid_tiers_only():
    table = get_limit_table("v3")
    assert table[SubscriptionTier.free].overflow_mb == 0
    assert table[SubscriptionTier.student].overflow_mb == 25
    assert table[SubscriptionTier.genius].overflow_mb == 25
    assert table[SubscriptionTier.student].max_storage_mb == 700


def test_v1_student_minutes():
    assert get_tier_limits("student", "v1").max_minutes == 2400
    assert get_tier_limits("student", "v2").max_minutes == 1500


def test_every_version_covers_every_tier():
    for version, table in plans.LIMIT_TABLES.items():
        assert set(table) == set(SubscriptionTier), version


def test_unknown_tier_gets_free_limits():
    assert get_tier_limits("enterprise") == get_tier_limits("free")


def test_unknown_version_rejected():
    with pytest.raises(InvalidInput):
        get_limit_table("v99")


def test_tables_are_read_only():
    with pytest.raises(TypeError):
        plans.LIMIT_TABLES["v2"][SubscriptionTier.free] = TierLimits(1, 1, 1, 1)  # type: ignore[index]


def test_active_version_defaults_to_latest(monkeypatch):
    from notes_api.core.config import settings

    monkeypatch.setattr(settings, "TIER_LIMITS_VERSION", "")
    assert plans.active_limits_version() == plans.LATEST_LIMITS_VERSION
