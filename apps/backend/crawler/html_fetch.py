"""
HTML crawler: walk a job board's paginated results and extract listings
"""
import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Tuple

from core.net import HTTPClient
from crawler.plugins.base import ScrapedListing

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = int(os.getenv("KLARO_INGEST_MAX_PAGES", "5"))
DEFAULT_PAGE_DELAY_SECONDS = float(os.getenv("KLARO_INGEST_PAGE_DELAY_SECONDS", "1.5"))

FetchPage = Callable[[str], Awaitable[Tuple[int, str]]]
ExtractFn = Callable[[str], List[ScrapedListing]]
PageUrlFn = Callable[[str, int], str]


@dataclass
class CrawlResult:
    """Listings from one source plus how the walk ended"""
    listings: List[ScrapedListing] = field(default_factory=list)
    pages_fetched: int = 0
    stop_reason: str = ""
    error: Optional[str] = None


class HTMLCrawler:
    """Paginated job board crawler"""

    def __init__(
        self,
        http_client: Optional[HTTPClient] = None,
        page_delay: float = DEFAULT_PAGE_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.http_client = http_client or HTTPClient()
        self.page_delay = page_delay
        self._sleep = sleep

    async def fetch_html(self, url: str) -> Tuple[int, str]:
        """
        Fetch HTML page.

        Returns:
            (status_code, html_content)
        """
        status, _, html = await self.http_client.fetch(url)
        return status, html

    async def crawl(
        self,
        base_url: str,
        extract_fn: ExtractFn,
        page_url_fn: PageUrlFn,
        max_pages: int = DEFAULT_MAX_PAGES,
        fetch_page: Optional[FetchPage] = None,
        label: str = "",
    ) -> CrawlResult:
        """
        Fetch pages 1..max_pages in order and extract listings.

        Stops at the first non-2xx page, the first page without listings,
        the page limit, or a fetch error. Never raises for fetch errors.

        Args:
            base_url: First results page
            extract_fn: Page HTML -> listings
            page_url_fn: (base_url, page number) -> page URL
            max_pages: Page limit
            fetch_page: Page fetcher; defaults to plain HTTP
            label: Name used in log lines

        Returns:
            CrawlResult with listings in page order
        """
        fetch = fetch_page or self.fetch_html
        label = label or base_url
        result = CrawlResult()

        for page in range(1, max_pages + 1):
            url = page_url_fn(base_url, page)

            try:
                status, html = await fetch(url)
            except Exception as e:
                logger.error(f"[html_fetch] {label} page {page} error: {e}")
                result.stop_reason = "fetch error"
                result.error = str(e)
                break

            result.pages_fetched += 1

            if not 200 <= status < 300:
                logger.warning(f"[html_fetch] {label} page {page} returned {status}, stopping")
                result.stop_reason = f"status {status}"
                break

            listings = extract_fn(html)
            logger.info(f"[html_fetch] {label} page {page}: found {len(listings)} listings")
            if not listings:
                result.stop_reason = "empty page"
                break

            result.listings.extend(listings)

            if page < max_pages:
                await self._sleep(self.page_delay)
        else:
            result.stop_reason = "max pages"

        return result
