"""
Employer link resolution.

Job boards link to their own detail pages; the employer's application page
sits behind an "apply" button or a chain of tracking redirects. The resolver
finds the first URL that leaves the board's (aggregator) domains.

Redirects are followed by hand, one request per hop, so the chain can stop
as soon as it leaves the aggregator domains. Failures never raise; they come
back as an unresolved LinkResolution with a reason.
"""

import logging
import os
from dataclasses import dataclass
from typing import Callable, Iterable, Optional
from urllib.parse import urljoin, urlparse
from bs4 import BeautifulSoup

from core.net import HTTPClient, host_matches

logger = logging.getLogger(__name__)

# Maximum redirect hops to follow
MAX_REDIRECT_HOPS = int(os.getenv("KLARO_RESOLVER_MAX_HOPS", "3"))
RESOLVER_TIMEOUT_SECONDS = float(os.getenv("KLARO_RESOLVER_TIMEOUT_SECONDS", "8"))

APPLY_MARKERS = ("bewerb", "apply")


@dataclass
class LinkResolution:
    """Outcome of an employer link lookup"""
    url: Optional[str] = None
    reason: Optional[str] = None
    hops: int = 0

    @property
    def resolved(self) -> bool:
        return self.url is not None


def find_direct_apply_link(html: str, page_url: str, aggregator_domains: Iterable[str]) -> Optional[str]:
    """First apply/bewerben anchor on the page that points off the aggregator."""
    soup = BeautifulSoup(html, 'lxml')
    for anchor in soup.find_all('a', href=True):
        href = urljoin(page_url, anchor['href'].strip())
        if urlparse(href).scheme not in ('http', 'https'):
            continue
        if host_matches(href, aggregator_domains):
            continue

        classes = ' '.join(anchor.get('class') or [])
        haystack = f"{anchor.get_text(' ')} {classes} {anchor['href']}".lower()
        if any(marker in haystack for marker in APPLY_MARKERS):
            return href
    return None


class EmployerLinkResolver:
    """
    Resolve job board detail pages to employer application URLs.

    Features:
    - Direct apply links on the detail page
    - Board-specific apply endpoints (redirect chains)
    - Manual redirect following with a hop limit
    """

    def __init__(
        self,
        http_client: Optional[HTTPClient] = None,
        max_hops: int = MAX_REDIRECT_HOPS,
        timeout: float = RESOLVER_TIMEOUT_SECONDS,
    ):
        self.http_client = http_client or HTTPClient()
        self.max_hops = max_hops
        self.timeout = timeout

    async def resolve(
        self,
        detail_url: str,
        aggregator_domains: Iterable[str],
        find_apply_endpoint: Optional[Callable[[str, str], Optional[str]]] = None,
        apply_endpoint: Optional[str] = None,
    ) -> LinkResolution:
        """
        Resolve a detail page to the employer's application URL.

        Args:
            detail_url: Job board detail page
            aggregator_domains: Hosts that still belong to the board
            find_apply_endpoint: Board hook locating a redirect endpoint in the page
            apply_endpoint: Known redirect endpoint; skips the detail page fetch

        Returns:
            LinkResolution (resolved or with a reason)
        """
        domains = tuple(aggregator_domains)
        if apply_endpoint:
            return await self.follow_redirects(apply_endpoint, domains)

        try:
            status, _, html = await self.http_client.fetch(detail_url, timeout=self.timeout)
        except Exception as e:
            logger.warning(f"[link_resolver] Detail page fetch failed for {detail_url}: {e}")
            return LinkResolution(reason=f"Detail page fetch failed: {e}")

        if not 200 <= status < 300:
            return LinkResolution(reason=f"Detail page returned {status}")

        direct = find_direct_apply_link(html, detail_url, domains)
        if direct:
            logger.debug(f"[link_resolver] Direct apply link for {detail_url}: {direct}")
            return LinkResolution(url=direct)

        endpoint = find_apply_endpoint(html, detail_url) if find_apply_endpoint else None
        if not endpoint:
            return LinkResolution(reason="No apply link found on detail page")

        return await self.follow_redirects(endpoint, domains)

    async def follow_redirects(self, start_url: str, aggregator_domains: Iterable[str]) -> LinkResolution:
        """
        Follow Location headers until the chain leaves the aggregator domains.

        At most max_hops requests are made. The URL that leaves the
        aggregator is returned without being requested.
        """
        domains = tuple(aggregator_domains)
        current_url = start_url

        for hop in range(self.max_hops):
            try:
                status, headers, _ = await self.http_client.fetch(
                    current_url,
                    follow_redirects=False,
                    timeout=self.timeout,
                )
            except Exception as e:
                logger.warning(f"[link_resolver] Hop {hop + 1} failed for {current_url}: {e}")
                return LinkResolution(reason=f"Request failed: {e}", hops=hop)

            location = headers.get("location")
            if not location:
                return LinkResolution(reason=f"No redirect found (status: {status})", hops=hop + 1)

            next_url = urljoin(current_url, location)
            if not host_matches(next_url, domains):
                logger.info(f"[link_resolver] Resolved {start_url} -> {next_url} ({hop + 1} hops)")
                return LinkResolution(url=next_url, hops=hop + 1)

            current_url = next_url

        return LinkResolution(reason="Max hops reached, still on aggregator domain", hops=self.max_hops)
