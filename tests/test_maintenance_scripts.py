"""Maintenance scripts under backend/ run against the temporary test database."""
from datetime import timedelta

import pytest

from notes_api.core.timeutils import utcnow


@pytest.fixture
def scripts(db_engine):
    import check_usage
    import cleanup_expired_subscriptions
    import manual_upgrade
    import reset_user_usage
    import setup_billing_period

    class _Scripts:
        check = check_usage
        cleanup = cleanup_expired_subscriptions
        upgrade = manual_upgrade
        reset = reset_user_usage
        billing = setup_billing_period

    return _Scripts


def test_check_usage_by_email(scripts, make_profile, make_job, capsys):
    now = utcnow()
    profile = make_profile("free", period_end=now + timedelta(days=10), email="downgraded@example.com")
    make_job(profile.id, created_at=now, file_size_mb=410, duration_minutes=80, title="Organic Chemistry")

    assert scripts.check.main(["downgraded@example.com", "--jobs", "5"]) == 0
    out = capsys.readouterr().out
    assert "Effective tier: student" in out
    assert "410 / 700 MB" in out
    assert "Organic Chemistry" in out


def test_check_usage_unknown_user(scripts, capsys):
    assert scripts.check.main(["nobody@example.com"]) == 1
    assert "❌" in capsys.readouterr().out


def test_reset_user_usage(scripts, session, make_profile, make_job, capsys):
    now = utcnow()
    profile = make_profile("free")
    make_job(profile.id, created_at=now, file_size_mb=100)

    assert scripts.reset.main([str(profile.id), "--dry-run"]) == 0
    assert "DRY RUN: would move 1 jobs" in capsys.readouterr().out

    assert scripts.reset.main([str(profile.id)]) == 0
    out = capsys.readouterr().out
    assert "Moved 1 jobs to last month" in out
    after = out.split("Usage after reset:")[1]
    assert " 0 / 120" in after
    assert "100 / 120" not in after


def test_manual_upgrade(scripts, session, make_profile, capsys):
    profile = make_profile("free", email="buyer@example.com")

    assert scripts.upgrade.main(["buyer@example.com", "--tier", "genius", "--stripe-customer", "cus_abc"]) == 0
    assert "Upgraded to genius" in capsys.readouterr().out

    session.expire_all()
    session.refresh(profile)
    assert profile.subscription_tier == "genius"
    assert profile.stripe_customer_id == "cus_abc"

    assert scripts.upgrade.main(["buyer@example.com", "--tier", "genius"]) == 0
    assert "nothing to do" in capsys.readouterr().out


def test_setup_billing_period_script(scripts, session, make_profile, capsys):
    start = utcnow() - timedelta(days=3)
    profile = make_profile("student", period_start=start)

    assert scripts.billing.main([str(profile.id)]) == 0
    out = capsys.readouterr().out
    assert "Effective tier: student" in out

    session.expire_all()
    session.refresh(profile)
    assert profile.subscription_period_end is not None


def test_setup_billing_period_without_start(scripts, make_profile, capsys):
    profile = make_profile("student")
    assert scripts.billing.main([str(profile.id)]) == 1
    assert "no subscription_period_start" in capsys.readouterr().out


def test_cleanup_script(scripts, session, make_profile, capsys):
    now = utcnow()
    expired = make_profile("free", period_end=now - timedelta(days=2), grace_tier="student")
    make_profile("free", period_end=now + timedelta(days=2))

    assert scripts.cleanup.main(["--dry-run"]) == 0
    assert "Found 1 users with expired subscription periods" in capsys.readouterr().out

    assert scripts.cleanup.main([]) == 0
    out = capsys.readouterr().out
    assert "Cleaned 1 profiles" in out
    assert "Validation passed" in out
    assert "Downgraded (still in period): 1" in out

    session.expire_all()
    session.refresh(expired)
    assert expired.subscription_period_end is None


def test_check_usage_finds_mixed_case_email(scripts, make_profile, capsys):
    make_profile("student", email="Jane.Doe@University.edu")
    assert scripts.check.main(["jane.doe@university.edu"]) == 0
    out = capsys.readouterr().out
    assert "Per-file cap:   300 MB" in out
