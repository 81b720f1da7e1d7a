"""
praktischarzt.de plugin.

Result pages are a sequence of <div id="job-N" class="... box-job ..."> blocks.
A block runs until the next block starts (or a fixed size for the last one).
Some blocks carry a direct "Bewerben" link to the employer's own site.
"""
import re
from typing import List, Optional

from core.net import host_matches
from .base import ExtractionPlugin, ScrapedListing, SourceName, clean_href, clean_text

MAX_BLOCK_SIZE = 5000

BLOCK_START_RE = re.compile(r'<div\s+id="job-\d+"[^>]*class="[^"]*box-job[^"]*"[^>]*>')
LINK_RE = re.compile(r'href="(https://www\.praktischarzt\.de/job/[^"]+)"')
TITLE_RE = re.compile(r'class="title-link\s+title\s+desktop_show"[^>]*>\s*([^<]+?)\s*</a>')
COMPANY_RE = re.compile(r'class="employer-name"[^>]*>.*?</i>\s*([^<]+)</a>', re.S)
LOCATION_RE = re.compile(r'class="svg-location"[^>]*>.*?</svg></span>([^<]+)', re.S)
EXTERNAL_ANCHOR_RE = re.compile(r'<a\s[^>]*href="(https?://[^"]+)"[^>]*>(.*?)</a>', re.S)


class PraktischArztPlugin(ExtractionPlugin):
    """Block segmentation for praktischarzt.de result pages."""

    source = SourceName.PRAKTISCHARZT
    base_url = "https://www.praktischarzt.de/assistenzarzt/"
    aggregator_domains = ("praktischarzt.de",)

    def page_url(self, base_url: str, page: int) -> str:
        if page <= 1:
            return base_url
        return f"{base_url}{page}/"

    def parse_page(self, html: str) -> List[ScrapedListing]:
        starts = [m.start() for m in BLOCK_START_RE.finditer(html)]
        listings = []

        for i, start in enumerate(starts):
            end = starts[i + 1] if i + 1 < len(starts) else min(start + MAX_BLOCK_SIZE, len(html))
            block = html[start:end]

            link_match = LINK_RE.search(block)
            title_match = TITLE_RE.search(block)
            if not link_match or not title_match:
                continue

            company_match = COMPANY_RE.search(block)
            location_match = LOCATION_RE.search(block)
            link = clean_href(link_match.group(1))

            listings.append(self.listing(
                title=clean_text(title_match.group(1)),
                external_link=link,
                employer_name=clean_text(company_match.group(1)) if company_match else "",
                location_raw=clean_text(location_match.group(1)) if location_match else "",
                source_unique_id=link,
                pre_resolved_employer_url=self._external_apply_link(block),
            ))

        return listings

    def _external_apply_link(self, block: str) -> Optional[str]:
        """First apply anchor in the block that leaves the board's domain."""
        for match in EXTERNAL_ANCHOR_RE.finditer(block):
            href, text = clean_href(match.group(1)), clean_text(match.group(2)).lower()
            if host_matches(href, self.aggregator_domains):
                continue
            if "bewerb" in text or "apply" in match.group(0).lower():
                return href
        return None
