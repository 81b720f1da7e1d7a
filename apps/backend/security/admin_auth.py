"""
Authorization for ingestion triggers.
Accepts either the scheduler's shared secret (x-cron-secret header) or a
Supabase session token belonging to a user whose profile role is ADMIN.
"""
import os
import logging
import secrets
from typing import Optional

import httpx
from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

CRON_SECRET_HEADER = "x-cron-secret"
ADMIN_ROLE = "ADMIN"
AUTH_TIMEOUT_SECONDS = 10.0


def get_cron_secret() -> Optional[str]:
    """Get CRON_SECRET from environment."""
    return os.getenv("CRON_SECRET")


def verify_cron_secret(provided: Optional[str]) -> bool:
    """
    Check the scheduler secret.
    Uses constant-time comparison to prevent timing attacks.
    """
    expected = get_cron_secret()
    if not expected or not provided:
        return False
    return secrets.compare_digest(provided, expected)


def get_bearer_token(request: Request) -> Optional[str]:
    """Extract the token from an `Authorization: Bearer <token>` header."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def fetch_user_id(token: str) -> Optional[str]:
    """Resolve a session token to a user id through Supabase Auth."""
    supabase_url = os.getenv("SUPABASE_URL")
    anon_key = os.getenv("SUPABASE_ANON_KEY")
    if not supabase_url or not anon_key:
        logger.warning("[admin_auth] SUPABASE_URL/SUPABASE_ANON_KEY not set, cannot verify session")
        return None

    async with httpx.AsyncClient(timeout=AUTH_TIMEOUT_SECONDS) as client:
        response = await client.get(
            f"{supabase_url.rstrip('/')}/auth/v1/user",
            headers={"apikey": anon_key, "Authorization": f"Bearer {token}"},
        )

    if response.status_code != 200:
        return None
    return response.json().get("id")


async def fetch_user_role(user_id: str) -> Optional[str]:
    """Read profiles.role for a user with the service key (rows keyed by profiles.user_id)."""
    supabase_url = os.getenv("SUPABASE_URL")
    service_key = os.getenv("SUPABASE_SERVICE_KEY")
    if not supabase_url or not service_key:
        logger.warning("[admin_auth] SUPABASE_SERVICE_KEY not set, cannot read profile role")
        return None

    async with httpx.AsyncClient(timeout=AUTH_TIMEOUT_SECONDS) as client:
        response = await client.get(
            f"{supabase_url.rstrip('/')}/rest/v1/profiles",
            params={"user_id": f"eq.{user_id}", "select": "role"},
            headers={"apikey": service_key, "Authorization": f"Bearer {service_key}"},
        )

    if response.status_code != 200:
        return None
    rows = response.json()
    if not rows:
        return None
    return rows[0].get("role")


async def ingest_trigger_required(request: Request) -> str:
    """
    FastAPI dependency guarding ingestion triggers.
    Returns "cron" or "admin:<user id>".
    Raises 401 without a valid credential, 403 for non-admin users.
    """
    if verify_cron_secret(request.headers.get(CRON_SECRET_HEADER)):
        return "cron"

    token = get_bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Authentication required")

    try:
        user_id = await fetch_user_id(token)
    except httpx.HTTPError as e:
        logger.error(f"[admin_auth] Session lookup failed: {e}")
        user_id = None

    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    try:
        role = await fetch_user_role(user_id)
    except httpx.HTTPError as e:
        logger.error(f"[admin_auth] Role lookup failed for {user_id}: {e}")
        role = None

    if role != ADMIN_ROLE:
        raise HTTPException(status_code=403, detail="Admin role required")

    return f"admin:{user_id}"
