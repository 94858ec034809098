from datetime import timedelta
from uuid import uuid4

from notes_api.core.timeutils import utcnow


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_health_deep(client):
    r = client.get("/api/health/deep")
    assert r.status_code == 200
    assert r.json()["db"] == "ok"


def test_usage_summary_for_grace_user(client, make_profile, make_job):
    now = utcnow()
    profile = make_profile("free", period_end=now + timedelta(days=10))
    make_job(profile.id, created_at=now, file_size_mb=410, duration_minutes=90)

    r = client.get(f"/api/users/{profile.id}/usage")
    assert r.status_code == 200
    body = r.json()
    assert body["effective_tier"] == "student"
    assert body["monthly_limit_mb"] == 700
    assert body["current_usage_mb"] == 410
    assert body["in_grace_period"] is True


def test_usage_check_allows_and_rejects(client, make_profile, make_job):
    now = utcnow()
    profile = make_profile("free")
    make_job(profile.id, created_at=now, file_size_mb=100)

    ok = client.post(f"/api/users/{profile.id}/usage/check", json={"file_size_mb": 20})
    assert ok.status_code == 200
    assert ok.json()["can_process"] is True

    too_big = client.post(f"/api/users/{profile.id}/usage/check", json={"file_size_mb": 50})
    assert too_big.status_code == 200
    assert too_big.json()["can_process"] is False
    assert too_big.json()["message"] == "Adding 50MB would exceed monthly limit of 120MB (100MB used)"


def test_unknown_user_is_404_with_debug_id(client):
    r = client.get(f"/api/users/{uuid4()}/usage")
    assert r.status_code == 404
    assert r.json()["code"] == "PROFILE_NOT_FOUND"
    assert r.headers.get("X-Debug-ID")


def test_negative_size_is_422(client, make_profile):
    profile = make_profile()
    r = client.post(f"/api/users/{profile.id}/usage/check", json={"file_size_mb": -3})
    assert r.status_code == 422
    assert r.json()["code"] == "INVALID_INPUT"


def test_malformed_user_id_is_422(client):
    r = client.get("/api/users/not-a-uuid/usage")
    assert r.status_code == 422


def test_downgrade_then_upgrade(client, make_profile):
    now = utcnow()
    profile = make_profile("student", period_start=now - timedelta(days=5), period_end=now + timedelta(days=25))

    r = client.post(f"/api/users/{profile.id}/subscription/downgrade", json={})
    assert r.status_code == 200
    body = r.json()
    assert body["subscription_tier"] == "free"
    assert body["grace_tier"] == "student"
    assert body["effective_tier"] == "student"
    assert body["in_grace_period"] is True

    r = client.post(f"/api/users/{profile.id}/subscription/upgrade", json={"tier": "genius"})
    assert r.status_code == 200
    body = r.json()
    assert body["subscription_tier"] == "genius"
    assert body["effective_tier"] == "genius"
    assert body["grace_tier"] is None


def test_upgrade_to_free_is_rejected(client, make_profile):
    profile = make_profile("student")
    r = client.post(f"/api/users/{profile.id}/subscription/upgrade", json={"tier": "free"})
    assert r.status_code == 422
    assert r.json()["code"] == "INVALID_INPUT"


def test_asgi_entrypoint_uses_factory(app):
    from notes_api.app import app as asgi_app

    assert asgi_app is app
