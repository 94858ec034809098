import pytest
from pydantic import ValidationError

from notes_api.core.config import Settings


@pytest.mark.parametrize("value", ["premium", "free", "", "studnet"])
def test_grace_fallback_must_be_a_paid_tier(value):
    with pytest.raises(ValidationError) as exc_info:
        Settings(GRACE_FALLBACK_TIER=value)
    assert "GRACE_FALLBACK_TIER" in str(exc_info.value)


def test_grace_fallback_is_normalised():
    assert Settings(GRACE_FALLBACK_TIER=" Genius ").GRACE_FALLBACK_TIER == "genius"


def test_invalid_billing_timezone_rejected():
    with pytest.raises(ValidationError):
        Settings(BILLING_TIMEZONE="Mars/Olympus_Mons")


def test_database_url_required_in_production():
    with pytest.raises(ValidationError):
        Settings(APP_ENV="production", DATABASE_URL="")


def test_defaults():
    s = Settings(DATABASE_URL="sqlite:///./x.db")
    assert s.GRACE_FALLBACK_TIER == "student"
    assert s.billing_tz.key == "UTC"
    assert s.is_dev_mode is True
