import os
from dataclasses import dataclass

import psycopg2

from app.db_config import db_config


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value not in (None, "") else default


@dataclass
class IngestSettings:
    """Tunables for one ingestion run"""
    max_pages: int = 5
    page_delay_seconds: float = 1.5
    item_delay_seconds: float = 0.5
    max_items_per_source: int = 50
    budget_seconds: float = 120.0
    expiration_grace_hours: float = 48.0
    cooldown_minutes: float = 10.0
    backfill_per_run: int = 5
    max_concurrent_sources: int = 5
    link_check_concurrency: int = 5
    link_check_delay_seconds: float = 0.5

    @classmethod
    def from_env(cls) -> "IngestSettings":
        return cls(
            max_pages=_env_int("KLARO_INGEST_MAX_PAGES", cls.max_pages),
            page_delay_seconds=_env_float("KLARO_INGEST_PAGE_DELAY_SECONDS", cls.page_delay_seconds),
            item_delay_seconds=_env_float("KLARO_INGEST_ITEM_DELAY_SECONDS", cls.item_delay_seconds),
            max_items_per_source=_env_int("KLARO_INGEST_MAX_ITEMS_PER_SOURCE", cls.max_items_per_source),
            budget_seconds=_env_float("KLARO_INGEST_BUDGET_SECONDS", cls.budget_seconds),
            expiration_grace_hours=_env_float("KLARO_INGEST_EXPIRATION_GRACE_HOURS", cls.expiration_grace_hours),
            cooldown_minutes=_env_float("KLARO_INGEST_COOLDOWN_MINUTES", cls.cooldown_minutes),
            backfill_per_run=_env_int("KLARO_INGEST_BACKFILL_PER_RUN", cls.backfill_per_run),
            max_concurrent_sources=_env_int("KLARO_INGEST_MAX_CONCURRENT_SOURCES", cls.max_concurrent_sources),
            link_check_concurrency=_env_int("KLARO_LINK_CHECK_CONCURRENCY", cls.link_check_concurrency),
            link_check_delay_seconds=_env_float("KLARO_LINK_CHECK_DELAY_SECONDS", cls.link_check_delay_seconds),
        )


class Capabilities:
    @staticmethod
    def is_db_enabled() -> bool:
        """Check if database is available via Supabase"""
        return db_config.is_db_enabled

    @staticmethod
    def check_db_connection() -> bool:
        """Verify database connection with a trivial query"""
        if not Capabilities.is_db_enabled():
            return False

        conn_params = db_config.get_connection_params()
        if not conn_params:
            return False

        try:
            # Use very short timeout for health checks (1 second max)
            conn = psycopg2.connect(**conn_params, connect_timeout=1)
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            cursor.fetchone()
            cursor.close()
            conn.close()
            return True
        except psycopg2.Error:
            return False

    @staticmethod
    def is_ai_enabled() -> bool:
        return bool(os.getenv("OPENROUTER_API_KEY"))

    @staticmethod
    def is_renderer_configured() -> bool:
        return bool(os.getenv("PUPPETEER_SERVICE_URL"))

    @staticmethod
    def is_cron_enabled() -> bool:
        return bool(os.getenv("CRON_SECRET"))

    @staticmethod
    def is_admin_auth_enabled() -> bool:
        return bool(os.getenv("SUPABASE_URL") and os.getenv("SUPABASE_ANON_KEY"))

    @classmethod
    def get_status(cls) -> dict:
        # db=true only if SUPABASE_DB_URL is configured and trivial query succeeds
        db = cls.check_db_connection()
        ai = cls.is_ai_enabled()
        renderer = cls.is_renderer_configured()

        if db and ai and renderer:
            status = "green"
        else:
            status = "amber"

        return {
            "status": status,
            "components": {
                "db": db,
                "ai": ai,
                "renderer": renderer,
            },
        }

    @classmethod
    def get_capabilities(cls) -> dict:
        return {
            "ai_classification": cls.is_ai_enabled(),
            "browser_sources": cls.is_renderer_configured(),
            "cron_trigger": cls.is_cron_enabled(),
            "admin_trigger": cls.is_admin_auth_enabled(),
        }


def get_env_presence() -> dict:
    required_vars = [
        "KLARO_ENV",
        "SUPABASE_URL",
        "SUPABASE_ANON_KEY",
        "SUPABASE_SERVICE_KEY",
        "SUPABASE_DB_URL",
        "CRON_SECRET",
        "OPENROUTER_API_KEY",
        "OPENROUTER_MODEL",
        "PUPPETEER_SERVICE_URL",
        "KLARO_CRAWLER_UA",
    ]

    return {var: bool(os.getenv(var)) for var in required_vars}
