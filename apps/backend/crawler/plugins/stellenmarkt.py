"""
stellenmarkt.de plugin.

Each result is an anchor to /anzeige<ID>.html wrapping an <h2> heading.
Employer and location are not inside the anchor; they are scanned from a
bounded window of markup after the link.
"""
import re
from typing import List, Tuple
from urllib.parse import urljoin, urlparse

from .base import ExtractionPlugin, ScrapedListing, SourceName, clean_text

ORIGIN = "https://www.stellenmarkt.de"
CONTEXT_WINDOW = 2000
TITLE_ATTR_PREFIX = "Stellenangebot "

ANZEIGE_HREF_RE = re.compile(r"^(?:https?://www\.stellenmarkt\.de)?/anzeige\d+\.html$")
LOCATION_RE = re.compile(r'fa-map-marker-alt"></i>\s*([^<\n]+)')
COMPANY_RE = re.compile(r'title="Stellenangebote von ([^"]+)"')


class StellenmarktPlugin(ExtractionPlugin):
    """Anchor-and-heading pairing for stellenmarkt.de result pages."""

    source = SourceName.STELLENMARKT
    base_url = f"{ORIGIN}/stellenangebote--Assistenzarzt"
    aggregator_domains = ("stellenmarkt.de",)

    def parse_page(self, html: str) -> List[ScrapedListing]:
        soup = self.get_soup(html)
        listings = []

        for anchor in soup.find_all("a", href=ANZEIGE_HREF_RE):
            heading = anchor.find("h2")
            if heading is None:
                continue

            title_attr = anchor.get("title", "")
            if title_attr.startswith(TITLE_ATTR_PREFIX):
                title_attr = title_attr[len(TITLE_ATTR_PREFIX):]
            else:
                title_attr = ""

            title_from_attr = clean_text(title_attr)
            title_from_heading = clean_text(heading.get_text(" "))
            # The attribute is often the untruncated variant of the heading
            title = title_from_attr if len(title_from_attr) > len(title_from_heading) else title_from_heading

            path = urlparse(anchor["href"]).path
            link = urljoin(ORIGIN, path)
            employer, location = self._scan_context(html, path)

            listings.append(self.listing(
                title=title,
                external_link=link,
                employer_name=employer,
                location_raw=location,
                source_unique_id=link,
            ))

        return listings

    def _scan_context(self, html: str, path: str) -> Tuple[str, str]:
        """Find employer and location in the markup following the link."""
        start = html.find(path)
        if start == -1:
            return "", ""
        block = html[start:start + CONTEXT_WINDOW]

        location_match = LOCATION_RE.search(block)
        company_match = COMPANY_RE.search(block)
        return (
            clean_text(company_match.group(1)) if company_match else "",
            clean_text(location_match.group(1)) if location_match else "",
        )
