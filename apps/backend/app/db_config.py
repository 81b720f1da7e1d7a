"""
Database configuration module.
Listings and run logs live in the Supabase PostgreSQL database,
reached directly through SUPABASE_DB_URL.
"""

import os
import logging
import socket
from typing import Optional
from urllib.parse import urlparse, unquote

logger = logging.getLogger(__name__)


class DBConfig:
    """Database configuration read from the environment"""

    def __init__(self):
        self.supabase_url = os.getenv("SUPABASE_URL")  # REST / Auth endpoint
        self.supabase_db_url = os.getenv("SUPABASE_DB_URL")  # Direct PostgreSQL connection string

        if self.supabase_url and not self.supabase_db_url:
            logger.warning(
                "[db_config] SUPABASE_URL is set but SUPABASE_DB_URL is missing. "
                "Ingestion runs need a direct PostgreSQL connection."
            )

    @property
    def is_db_enabled(self) -> bool:
        """Check if a direct database connection is configured"""
        return bool(self.supabase_db_url)

    def get_connection_params(self) -> Optional[dict]:
        """
        Get psycopg2 connection parameters.
        Returns dict with host, port, database, user, password.
        Direct (non-pooler) hostnames are resolved to IPv4 when possible.
        """
        if not self.supabase_db_url:
            return None

        # postgresql://user:pass@[hostname]:port/db
        cleaned_url = self.supabase_db_url.replace('[', '').replace(']', '')

        try:
            parsed = urlparse(cleaned_url)
        except ValueError as e:
            logger.error(f"[db_config] Failed to parse SUPABASE_DB_URL: {e}")
            return None

        if not parsed.hostname:
            return None

        hostname = parsed.hostname
        resolved_host = hostname
        is_pooler = 'pooler' in hostname.lower()
        is_ip_address = hostname.replace('.', '').isdigit()

        if not is_ip_address and not is_pooler:
            try:
                addr_info = socket.getaddrinfo(hostname, parsed.port or 5432, socket.AF_INET, socket.SOCK_STREAM)
                if addr_info:
                    resolved_host = addr_info[0][4][0]
                    logger.info(f"[db_config] Resolved {hostname} to IPv4: {resolved_host}")
            except (socket.gaierror, ValueError, OSError) as e:
                logger.warning(f"[db_config] Could not resolve {hostname} to IPv4, using original hostname: {e}")

        params = {
            "host": resolved_host,
            "port": parsed.port or 5432,
            "database": parsed.path.lstrip('/') or 'postgres',
            "user": parsed.username or 'postgres',
        }

        # URL-decode to handle special characters
        if parsed.password:
            params["password"] = unquote(parsed.password)

        logger.info(f"[db_config] Database connection params: host={resolved_host}, port={params['port']}, database={params['database']}, user={params['user']}")
        return params


# Global instance
db_config = DBConfig()
