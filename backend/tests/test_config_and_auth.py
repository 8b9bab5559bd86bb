from datetime import timedelta

import pytest
from pydantic import ValidationError

from dealflow import models
from dealflow.config import Settings
from dealflow.core.security import (
    create_access_token,
    create_access_token_for_subject,
    decode_access_token_subject,
)


def _settings(monkeypatch, **env):
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return Settings(_env_file=None)


def test_cors_origins_accept_csv_and_json(monkeypatch):
    s = _settings(monkeypatch, CORS_ORIGINS="https://app.test/, https://admin.test")
    assert s.cors_origins == ["https://app.test", "https://admin.test"]

    s = _settings(monkeypatch, CORS_ORIGINS='["https://app.test"]')
    assert s.cors_origins == ["https://app.test"]


def test_dev_defaults(monkeypatch):
    monkeypatch.delenv("CORS_ORIGINS", raising=False)
    s = _settings(monkeypatch, ENVIRONMENT="dev")
    assert "http://localhost:3000" in s.cors_origins
    assert s.enable_docs is True


def test_api_prefix_normalized(monkeypatch):
    assert _settings(monkeypatch, API_V1_STR="v1/").api_prefix == "/v1"


def test_postgres_urls_use_psycopg_driver(monkeypatch):
    s = _settings(monkeypatch, DATABASE_URL="postgres://u:p@db:5432/deals")
    assert s.database_url == "postgresql+psycopg://u:p@db:5432/deals"


def test_production_rejects_sqlite_and_missing_cors(monkeypatch):
    monkeypatch.delenv("CORS_ORIGINS", raising=False)
    with pytest.raises(ValidationError):
        _settings(monkeypatch, ENVIRONMENT="production")


def test_weak_secret_rejected(monkeypatch):
    with pytest.raises(ValidationError):
        _settings(monkeypatch, SECRET_KEY="change-me")


def test_token_round_trip():
    token = create_access_token_for_subject("owner@test.com")
    assert decode_access_token_subject(token) == "owner@test.com"
    assert decode_access_token_subject("not-a-token") is None

    expired = create_access_token({"sub": "owner@test.com"}, expires_delta=timedelta(seconds=-5))
    assert decode_access_token_subject(expired) is None


def test_bearer_token_resolves_user(client, seeded):
    token = create_access_token_for_subject("owner@test.com")
    r = client.get(f"/api/deals/{seeded.deal_id}", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["id"] == seeded.deal_id


def test_token_for_inactive_user_rejected(client, db_session, seeded):
    db_session.query(models.User).filter(models.User.id == seeded.owner_id).update({"active": False})
    db_session.commit()
    token = create_access_token_for_subject("owner@test.com")
    r = client.get(f"/api/deals/{seeded.deal_id}", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_invalid_token_rejected(client, seeded):
    r = client.get("/api/deals", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid credentials"


def test_health_endpoints(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["database"] == "ok"
    assert r.json()["environment"] == "test"

    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert r.headers["X-Request-ID"]


def test_request_id_is_propagated(client, login_as, seeded):
    login_as(models.RoleName.admin)
    r = client.get("/api/deals/9999", headers={"X-Request-ID": "req-abc"})
    assert r.status_code == 404
    assert r.headers["X-Request-ID"] == "req-abc"
    assert r.json()["request_id"] == "req-abc"
