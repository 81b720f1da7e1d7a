"""
Tests for ingestion trigger authorization helpers.
"""

from unittest.mock import patch

import httpx
import pytest

from security import admin_auth


@pytest.fixture(autouse=True)
def supabase_env(monkeypatch):
    monkeypatch.setenv("CRON_SECRET", "s3cret")
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co/")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key")
    monkeypatch.setenv("SUPABASE_SERVICE_KEY", "service-key")


def mock_supabase(handler):
    real_client = httpx.AsyncClient
    transport = httpx.MockTransport(handler)
    return patch("security.admin_auth.httpx.AsyncClient", lambda **kwargs: real_client(transport=transport, **kwargs))


def test_verify_cron_secret(monkeypatch):
    assert admin_auth.verify_cron_secret("s3cret") is True
    assert admin_auth.verify_cron_secret("wrong") is False
    assert admin_auth.verify_cron_secret(None) is False

    monkeypatch.delenv("CRON_SECRET")
    assert admin_auth.verify_cron_secret("s3cret") is False


@pytest.mark.asyncio
async def test_fetch_user_id():
    def handler(request):
        assert request.url.path == "/auth/v1/user"
        assert request.headers["apikey"] == "anon-key"
        if request.headers["Authorization"] == "Bearer good":
            return httpx.Response(200, json={"id": "user-1", "email": "admin@klinik.de"})
        return httpx.Response(401, json={"msg": "invalid JWT"})

    with mock_supabase(handler):
        assert await admin_auth.fetch_user_id("good") == "user-1"
        assert await admin_auth.fetch_user_id("bad") is None


@pytest.mark.asyncio
async def test_fetch_user_role():
    def handler(request):
        assert request.url.path == "/rest/v1/profiles"
        assert request.url.params["user_id"] == "eq.user-1"
        assert request.headers["apikey"] == "service-key"
        return httpx.Response(200, json=[{"role": "ADMIN"}])

    with mock_supabase(handler):
        assert await admin_auth.fetch_user_role("user-1") == "ADMIN"


@pytest.mark.asyncio
async def test_fetch_user_role_without_profile():
    with mock_supabase(lambda request: httpx.Response(200, json=[])):
        assert await admin_auth.fetch_user_role("user-2") is None


@pytest.mark.asyncio
async def test_missing_supabase_config(monkeypatch):
    monkeypatch.delenv("SUPABASE_ANON_KEY")
    assert await admin_auth.fetch_user_id("token") is None


@pytest.mark.asyncio
async def test_fetch_user_role_matches_auth_user_column():
    def handler(request):
        if request.url.params.get("user_id") == "eq.auth-uid":
            return httpx.Response(200, json=[{"role": "ADMIN"}])
        return httpx.Response(200, json=[])

    with mock_supabase(handler):
        assert await admin_auth.fetch_user_role("auth-uid") == "ADMIN"
