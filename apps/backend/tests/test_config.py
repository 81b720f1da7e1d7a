from app.config import IngestSettings, get_env_presence


def test_defaults(monkeypatch):
    for name in ("KLARO_INGEST_MAX_PAGES", "KLARO_INGEST_BUDGET_SECONDS", "KLARO_INGEST_BACKFILL_PER_RUN"):
        monkeypatch.delenv(name, raising=False)

    settings = IngestSettings.from_env()

    assert settings.max_pages == 5
    assert settings.budget_seconds == 120.0
    assert settings.backfill_per_run == 5
    assert settings.expiration_grace_hours == 48.0


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("KLARO_INGEST_MAX_PAGES", "2")
    monkeypatch.setenv("KLARO_INGEST_PAGE_DELAY_SECONDS", "0.25")
    monkeypatch.setenv("KLARO_INGEST_COOLDOWN_MINUTES", "")

    settings = IngestSettings.from_env()

    assert settings.max_pages == 2
    assert settings.page_delay_seconds == 0.25
    assert settings.cooldown_minutes == 10.0


def test_env_presence(monkeypatch):
    monkeypatch.setenv("CRON_SECRET", "x")
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)

    presence = get_env_presence()

    assert presence["CRON_SECRET"] is True
    assert presence["OPENROUTER_API_KEY"] is False
