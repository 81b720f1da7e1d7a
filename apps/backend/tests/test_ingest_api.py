"""
Tests for the ingestion trigger endpoints: authorization, validation,
cooldown and response shapes.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from app.db_config import db_config
from app.ingest import get_ingestion_orchestrator
from app.rate_limit import limiter
from crawler.plugins import SourceName

from conftest import FakeHTMLCrawler, make_listing, record_for

CRON_SECRET = "test-cron-secret"
CRON_HEADERS = {"x-cron-secret": CRON_SECRET}


@pytest.fixture(autouse=True)
def cron_env(monkeypatch):
    monkeypatch.setenv("CRON_SECRET", CRON_SECRET)
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key")
    monkeypatch.setenv("SUPABASE_SERVICE_KEY", "service-key")
    limiter.reset()
    yield


@pytest.fixture
def crawler():
    return FakeHTMLCrawler({
        SourceName.STELLENMARKT.value: [
            make_listing("https://www.stellenmarkt.de/anzeige1.html"),
            make_listing("https://www.stellenmarkt.de/anzeige2.html", title="Assistenzarzt Urologie"),
        ],
    })


@pytest.fixture
def client(make_orchestrator, crawler):
    from main import app

    app.dependency_overrides[get_ingestion_orchestrator] = lambda: make_orchestrator(crawler=crawler)
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestAuthorization:

    def test_missing_credentials(self, client):
        response = client.post("/api/ingest/run", json={})
        assert response.status_code == 401

    def test_wrong_cron_secret(self, client):
        response = client.post("/api/ingest/run", json={}, headers={"x-cron-secret": "nope"})
        assert response.status_code == 401

    def test_non_admin_user_is_forbidden(self, client):
        with patch("security.admin_auth.fetch_user_id", AsyncMock(return_value="user-1")), \
                patch("security.admin_auth.fetch_user_role", AsyncMock(return_value="USER")):
            response = client.post(
                "/api/ingest/run",
                json={},
                headers={"Authorization": "Bearer user-token"},
            )
        assert response.status_code == 403

    def test_invalid_session_is_unauthorized(self, client):
        with patch("security.admin_auth.fetch_user_id", AsyncMock(return_value=None)):
            response = client.post(
                "/api/ingest/run",
                json={},
                headers={"Authorization": "Bearer expired"},
            )
        assert response.status_code == 401

    def test_admin_user_can_trigger(self, client, store):
        with patch("security.admin_auth.fetch_user_id", AsyncMock(return_value="admin-1")), \
                patch("security.admin_auth.fetch_user_role", AsyncMock(return_value="ADMIN")):
            response = client.post(
                "/api/ingest/run",
                json={"sources": ["stellenmarkt_medizin"]},
                headers={"Authorization": "Bearer admin-token"},
            )
        assert response.status_code == 200
        assert response.json()["imported"] == 2


class TestRun:

    def test_run_returns_summary(self, client, store):
        response = client.post("/api/ingest/run", json={"sources": ["stellenmarkt_medizin"]}, headers=CRON_HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["imported"] == 2
        assert data["totalListings"] == 2
        assert data["runId"].startswith("run_")
        assert len(store.records) == 2

    def test_run_without_body_scrapes_all_sources(self, client, crawler):
        response = client.post("/api/ingest/run", headers=CRON_HEADERS)

        assert response.status_code == 200
        assert sorted(crawler.calls) == sorted(s.value for s in SourceName)

    def test_unknown_source(self, client, crawler):
        response = client.post("/api/ingest/run", json={"sources": ["indeed"]}, headers=CRON_HEADERS)

        assert response.status_code == 400
        assert crawler.calls == []

    def test_cooldown(self, client, store, crawler):
        store.last_run_at = datetime.now(timezone.utc) - timedelta(minutes=2)

        response = client.post("/api/ingest/run", json={}, headers=CRON_HEADERS)

        assert response.status_code == 429
        assert "Retry-After" in response.headers
        assert crawler.calls == []

    def test_cooldown_elapsed(self, client, store):
        store.last_run_at = datetime.now(timezone.utc) - timedelta(minutes=30)
        response = client.post("/api/ingest/run", json={"sources": ["stellenmarkt_medizin"]}, headers=CRON_HEADERS)
        assert response.status_code == 200

    def test_no_listings_is_a_server_error(self, client):
        response = client.post("/api/ingest/run", json={"sources": ["xing"]}, headers=CRON_HEADERS)

        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert data["errorMessages"] == ["No listings found from any source"]

    def test_load_failure(self, client, store):
        store.fail_find_existing = True
        response = client.post("/api/ingest/run", json={"sources": ["stellenmarkt_medizin"]}, headers=CRON_HEADERS)
        assert response.status_code == 500

    def test_store_not_configured(self, monkeypatch):
        from main import app

        monkeypatch.setattr(db_config, "supabase_db_url", None)
        response = TestClient(app).post("/api/ingest/run", json={}, headers=CRON_HEADERS)
        assert response.status_code == 503


class TestBackfill:

    def test_backfill_fields(self, client, store):
        client.post("/api/ingest/run", json={"sources": ["stellenmarkt_medizin"]}, headers=CRON_HEADERS)

        response = client.post("/api/ingest/backfill-fields", json={"batchSize": 10}, headers=CRON_HEADERS)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total"] == 2
        assert data["updated"] == 2

    def test_backfill_unknown_source(self, client):
        response = client.post(
            "/api/ingest/backfill-fields",
            json={"source": "indeed"},
            headers=CRON_HEADERS,
        )
        assert response.status_code == 400

    def test_backfill_requires_auth(self, client):
        assert client.post("/api/ingest/backfill-fields", json={}).status_code == 401


class TestLocationBackfill:

    def test_backfill_locations(self, client, store):
        store.add(record_for(make_listing("https://www.stellenmarkt.de/anzeige9.html", location="Regensburg")))

        response = client.post("/api/ingest/backfill-locations", json={"batchSize": 10}, headers=CRON_HEADERS)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total"] == 1
        assert data["updated"] == 1
        assert data["failed"] == 0

    def test_backfill_locations_unknown_source(self, client):
        response = client.post(
            "/api/ingest/backfill-locations",
            json={"source": "indeed"},
            headers=CRON_HEADERS,
        )
        assert response.status_code == 400

    def test_backfill_locations_requires_auth(self, client):
        assert client.post("/api/ingest/backfill-locations", json={}).status_code == 401


class TestLinkCheck:

    def test_check_links(self, client, store):
        store.add(record_for(make_listing("https://www.stellenmarkt.de/anzeige9.html"), is_published=True))

        response = client.post("/api/ingest/check-links", json={"limit": 50}, headers=CRON_HEADERS)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["checked"] == 1
        assert data["active"] == 1
        assert data["stale_jobs"] == []

    def test_check_links_limit_is_validated(self, client):
        response = client.post("/api/ingest/check-links", json={"limit": 0}, headers=CRON_HEADERS)
        assert response.status_code == 422

    def test_check_links_requires_auth(self, client):
        assert client.post("/api/ingest/check-links", json={}).status_code == 401
