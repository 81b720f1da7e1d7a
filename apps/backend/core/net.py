"""
HTTP client for job board pages, redirect hops and JSON services.
Each call opens its own httpx client with an explicit timeout.
"""
import os
import time
import logging
from typing import Any, Dict, Iterable, Optional, Tuple
from urllib.parse import urlparse
import httpx

logger = logging.getLogger(__name__)

DEFAULT_UA = "Mozilla/5.0 (compatible; KlaroBot/1.0)"
DEFAULT_TIMEOUT = 30.0
DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
DEFAULT_ACCEPT_LANGUAGE = "de-DE,de;q=0.9,en;q=0.5"


def host_matches(url: Optional[str], domains: Iterable[str]) -> bool:
    """True if the URL's host is one of the domains or a subdomain of one."""
    if not url:
        return False
    host = (urlparse(url).hostname or "").lower()
    if not host:
        return False
    for domain in domains:
        domain = domain.lower()
        if host == domain or host.endswith("." + domain):
            return True
    return False


class HTTPClient:
    """HTTP client with bot identification and per-call timeouts"""

    def __init__(self, user_agent: Optional[str] = None, timeout: Optional[float] = None):
        self.user_agent = user_agent or os.getenv("KLARO_CRAWLER_UA", DEFAULT_UA)
        self.timeout = timeout or float(os.getenv("KLARO_PAGE_TIMEOUT_SECONDS", DEFAULT_TIMEOUT))

    def _get_headers(self, custom_headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Build request headers with UA and German language preference"""
        headers = {
            "User-Agent": self.user_agent,
            "Accept": DEFAULT_ACCEPT,
            "Accept-Language": DEFAULT_ACCEPT_LANGUAGE,
        }
        if custom_headers:
            headers.update(custom_headers)
        return headers

    async def fetch(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        json_data: Optional[Dict[str, Any]] = None,
        follow_redirects: bool = True,
        timeout: Optional[float] = None,
    ) -> Tuple[int, Dict[str, str], str]:
        """
        Fetch a URL once.

        Args:
            url: URL to fetch
            method: HTTP method (GET, POST or HEAD)
            headers: Custom headers to add
            json_data: JSON body for POST
            follow_redirects: False to receive 3xx responses as-is
            timeout: Per-call timeout in seconds (defaults to client timeout)

        Returns:
            (status_code, headers with lower-case names, body text)

        Raises:
            httpx.TimeoutException, httpx.TransportError on network failure
        """
        request_headers = self._get_headers(headers)
        client_timeout = httpx.Timeout(timeout or self.timeout)

        async with httpx.AsyncClient(timeout=client_timeout, follow_redirects=follow_redirects) as client:
            start_time = time.time()
            try:
                if method.upper() == "GET":
                    response = await client.get(url, headers=request_headers)
                elif method.upper() == "POST":
                    response = await client.post(url, headers=request_headers, json=json_data)
                elif method.upper() == "HEAD":
                    response = await client.head(url, headers=request_headers)
                else:
                    raise ValueError(f"Unsupported HTTP method: {method}")
            except httpx.TimeoutException as e:
                logger.warning(f"[net] Timeout fetching {url}: {e}")
                raise
            except httpx.TransportError as e:
                logger.warning(f"[net] Transport error fetching {url}: {e}")
                raise

            elapsed_ms = int((time.time() - start_time) * 1000)
            logger.info(f"[net] {method} {response.status_code} {url} ({len(response.content)} bytes, {elapsed_ms}ms)")

            response_headers = {k.lower(): v for k, v in response.headers.items()}
            return response.status_code, response_headers, response.text
