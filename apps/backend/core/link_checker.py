"""
Apply-link status checks for published listings.

Uses HTTP HEAD to keep requests light and falls back to GET for servers
that answer 405. Redirects are followed.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from core.net import HTTPClient

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

# Gone for good
STALE_STATUS_CODES = {404, 410}


class LinkStatus(str, Enum):
    ACTIVE = "active"
    STALE = "stale"
    ERROR = "error"
    UNKNOWN = "unknown"


@dataclass
class LinkCheck:
    """Outcome of checking one apply URL"""
    url: str
    status: LinkStatus
    http_status: Optional[int] = None
    error: Optional[str] = None


def status_for_code(code: int) -> LinkStatus:
    if 200 <= code < 400:
        return LinkStatus.ACTIVE
    if code in STALE_STATUS_CODES:
        return LinkStatus.STALE
    if code >= 500:
        return LinkStatus.ERROR
    return LinkStatus.UNKNOWN


class LinkStatusChecker:
    """Classifies apply URLs as active, stale, error or unknown."""

    def __init__(self, http_client: Optional[HTTPClient] = None, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.http_client = http_client or HTTPClient()
        self.timeout = timeout

    async def check(self, url: str) -> LinkCheck:
        """
        Check one URL. Never raises.

        Timeouts are reported as unknown, other network failures as error.
        """
        try:
            code, _, _ = await self.http_client.fetch(url, method="HEAD", timeout=self.timeout)
            if code == 405:
                code, _, _ = await self.http_client.fetch(url, method="GET", timeout=self.timeout)
        except httpx.TimeoutException:
            return LinkCheck(url=url, status=LinkStatus.UNKNOWN, error="Timeout")
        except httpx.HTTPError as e:
            logger.warning(f"[link_checker] Request failed for {url}: {e}")
            return LinkCheck(url=url, status=LinkStatus.ERROR, error=str(e) or e.__class__.__name__)

        return LinkCheck(url=url, status=status_for_code(code), http_status=code)
