"""
aerztestellen.aerzteblatt.de plugin.

Result links point at /de/stelle/<slug>-<numeric id>. Titles, employers and
locations are scanned from a window of markup around each link. Detail pages
hide the employer behind a /de/node/<id>/apply-external redirect.
"""
import re
from typing import List, Optional

from .base import ExtractionPlugin, ScrapedListing, SourceName, clean_href, clean_text

ORIGIN = "https://aerztestellen.aerzteblatt.de"
CONTEXT_RADIUS = 1000
DEFAULT_TITLE = "Assistenzarzt Position"
APPLY_ENDPOINT_TEMPLATE = ORIGIN + "/de/node/{node_id}/apply-external"

JOB_LINK_RE = re.compile(r'<a\s+href="(/de/stelle/[^"]+)"')
JOB_ID_RE = re.compile(r"-(\d+)$")
COMPANY_RE = re.compile(r"\d{2}\.\d{2}\.\d{4},\s*([^\n<]+)")
LOCATION_RE = re.compile(r"(\d{5}\s+[A-Za-zäöüÄÖÜß\s\-]+)")

NODE_IN_URL_RE = re.compile(r"/node/(\d+)")
NODE_ARTICLE_RE = re.compile(r'<article[^>]*id="node-(\d+)"')
NODE_APPLY_HREF_RE = re.compile(r'href="/de/node/(\d+)/apply-external"')


class AerzteblattPlugin(ExtractionPlugin):
    """Context-window scanning for Deutsches Ärzteblatt job pages."""

    source = SourceName.AERZTEBLATT
    base_url = f"{ORIGIN}/de/stellen/assistenzarzt-arzt-weiterbildung"
    aggregator_domains = ("aerzteblatt.de", "anzeigenvorschau.net")

    def parse_page(self, html: str) -> List[ScrapedListing]:
        listings = []

        for match in JOB_LINK_RE.finditer(html):
            path = match.group(1)
            if not JOB_ID_RE.search(path):
                continue

            start = max(0, match.start() - CONTEXT_RADIUS)
            context = html[start:match.start() + CONTEXT_RADIUS]

            title_re = re.compile(r'<a\s+href="' + re.escape(path) + r'"[^>]*>([^<]+)</a>')
            title_match = title_re.search(context)
            company_match = COMPANY_RE.search(context)
            location_match = LOCATION_RE.search(context)

            link = f"{ORIGIN}{clean_href(path)}"
            listings.append(self.listing(
                title=clean_text(title_match.group(1)) if title_match else DEFAULT_TITLE,
                external_link=link,
                employer_name=clean_text(company_match.group(1)) if company_match else "",
                location_raw=clean_text(location_match.group(1)) if location_match else "",
                source_unique_id=link,
            ))

        return listings

    def direct_apply_endpoint(self, detail_url: str) -> Optional[str]:
        """Apply endpoint derivable from the URL alone (node URLs)."""
        match = NODE_IN_URL_RE.search(detail_url or "")
        if match:
            return APPLY_ENDPOINT_TEMPLATE.format(node_id=match.group(1))
        return None

    def find_apply_endpoint(self, html: str, detail_url: str) -> Optional[str]:
        endpoint = self.direct_apply_endpoint(detail_url)
        if endpoint:
            return endpoint

        match = NODE_ARTICLE_RE.search(html) or NODE_APPLY_HREF_RE.search(html)
        if match:
            return APPLY_ENDPOINT_TEMPLATE.format(node_id=match.group(1))
        return None
