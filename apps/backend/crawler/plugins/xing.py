"""
XING jobs plugin.

Search results are rendered client-side, so pages come from the rendering
service. Listings are read from JobPosting structured data; when a page
carries none, labelled job anchors are used instead (title only).
"""
import re
from typing import List
from urllib.parse import urljoin

from pipeline.jsonld import iter_job_postings, posting_employer, posting_locality, posting_url
from .base import ExtractionPlugin, ScrapedListing, SourceName, clean_text

ORIGIN = "https://www.xing.com"
MIN_ANCHOR_TITLE_LENGTH = 10
RESIDENT_MARKERS = ("assistenzarzt", "assistenzärztin", "arzt in weiterbildung")

JOB_HREF_RE = re.compile(r"^(?:https://www\.xing\.com)?/jobs/.+")


def is_resident_title(title: str) -> bool:
    lowered = title.lower()
    return any(marker in lowered for marker in RESIDENT_MARKERS)


class XingPlugin(ExtractionPlugin):
    """JobPosting JSON-LD extraction for XING search pages."""

    source = SourceName.XING
    base_url = f"{ORIGIN}/jobs/search?keywords=Assistenzarzt"
    aggregator_domains = ("xing.com",)
    requires_browser = True
    wait_for_selector = 'script[type="application/ld+json"]'

    def parse_page(self, html: str) -> List[ScrapedListing]:
        soup = self.get_soup(html)
        listings = []

        for posting in iter_job_postings(soup):
            url = posting_url(posting)
            title = clean_text(str(posting.get('title') or ''))
            if not url or not title or not is_resident_title(title):
                continue
            listings.append(self.listing(
                title=title,
                external_link=url,
                employer_name=clean_text(posting_employer(posting)),
                location_raw=clean_text(posting_locality(posting)),
                source_unique_id=url,
            ))

        if listings:
            return listings

        for anchor in soup.find_all("a", href=JOB_HREF_RE, attrs={"aria-label": True}):
            title = clean_text(anchor["aria-label"])
            if len(title) < MIN_ANCHOR_TITLE_LENGTH or not is_resident_title(title):
                continue
            url = urljoin(ORIGIN, anchor["href"])
            listings.append(self.listing(
                title=title,
                external_link=url,
                employer_name="",
                location_raw="",
                source_unique_id=url,
            ))

        return listings
