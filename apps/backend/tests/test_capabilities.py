import pytest
from fastapi.testclient import TestClient

from app.db_config import db_config


@pytest.fixture
def client():
    from main import app
    return TestClient(app)


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    env_vars = [
        "SUPABASE_URL",
        "SUPABASE_ANON_KEY",
        "SUPABASE_SERVICE_KEY",
        "OPENROUTER_API_KEY",
        "PUPPETEER_SERVICE_URL",
        "CRON_SECRET",
    ]
    for var in env_vars:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(db_config, "supabase_db_url", None)
    yield


def test_capabilities_endpoint_returns_correct_shape(client):
    response = client.get("/api/capabilities")

    assert response.status_code == 200
    data = response.json()

    assert set(data) == {"ai_classification", "browser_sources", "cron_trigger", "admin_trigger"}
    assert all(isinstance(value, bool) for value in data.values())


def test_capabilities_with_no_env_returns_false(client):
    response = client.get("/api/capabilities")

    assert response.status_code == 200
    assert not any(response.json().values())


def test_capabilities_follow_env(client, monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "key")
    monkeypatch.setenv("CRON_SECRET", "secret")

    data = client.get("/api/capabilities").json()

    assert data["ai_classification"] is True
    assert data["cron_trigger"] is True
    assert data["browser_sources"] is False


def test_healthz_without_database(client):
    response = client.get("/api/healthz")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "amber"
    assert data["components"] == {"db": False, "ai": False, "renderer": False}


def test_metrics_endpoint(client):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "text/plain" in response.headers["content-type"]
