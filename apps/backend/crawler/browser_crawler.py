"""
Rendering-service client for JavaScript-heavy job boards.

Pages are rendered by an external headless-browser service:
POST {url, timeout, waitForSelector} -> {html, url}.
"""
import json
import logging
import os
from typing import Optional, Tuple

from core.net import HTTPClient

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_URL = "http://localhost:3001/scrape"
DEFAULT_RENDER_TIMEOUT_MS = 30000
# Extra time the service needs on top of its own page timeout
SERVICE_OVERHEAD_SECONDS = 5


class RenderServiceError(Exception):
    """The rendering service answered with something that is not a page."""


class BrowserCrawler:
    """Fetch rendered HTML through the rendering service"""

    def __init__(
        self,
        service_url: Optional[str] = None,
        http_client: Optional[HTTPClient] = None,
        timeout_ms: int = DEFAULT_RENDER_TIMEOUT_MS,
    ):
        self.service_url = service_url or os.getenv("PUPPETEER_SERVICE_URL", DEFAULT_SERVICE_URL)
        self.http_client = http_client or HTTPClient()
        self.timeout_ms = timeout_ms

    @property
    def health_url(self) -> str:
        if self.service_url.endswith("/scrape"):
            return self.service_url[:-len("/scrape")] + "/health"
        return self.service_url.rstrip("/") + "/health"

    async def fetch_html(self, url: str, wait_selector: Optional[str] = None) -> Tuple[int, str]:
        """
        Fetch HTML from URL using the rendering service.

        Args:
            url: Page to render
            wait_selector: CSS selector the service waits for before snapshotting

        Returns:
            (status_code, rendered_html); non-2xx statuses come with empty HTML

        Raises:
            RenderServiceError if a 2xx reply carries no HTML
        """
        payload = {"url": url, "timeout": self.timeout_ms}
        if wait_selector:
            payload["waitForSelector"] = wait_selector

        status, _, body = await self.http_client.fetch(
            self.service_url,
            method="POST",
            json_data=payload,
            headers={"Accept": "application/json"},
            timeout=self.timeout_ms / 1000 + SERVICE_OVERHEAD_SECONDS,
        )

        if not 200 <= status < 300:
            logger.warning(f"[browser_crawler] Render service returned {status} for {url}")
            return status, ""

        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise RenderServiceError(f"Invalid JSON from render service: {e}")

        html = data.get("html") if isinstance(data, dict) else None
        if not isinstance(html, str):
            raise RenderServiceError(f"Render service returned no HTML for {url}")

        logger.info(f"[browser_crawler] Rendered {url} ({len(html)} chars)")
        return status, html

    async def is_available(self) -> bool:
        """Check the service's health endpoint"""
        try:
            status, _, _ = await self.http_client.fetch(self.health_url, timeout=5)
            return 200 <= status < 300
        except Exception as e:
            logger.warning(f"[browser_crawler] Render service unavailable: {e}")
            return False
