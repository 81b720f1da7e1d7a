"""
StepStone plugin.

Result cards are <article data-at="job-item"> elements holding a title
anchor and company/location spans. Pages are rendered by the rendering
service.
"""
from typing import List
from urllib.parse import urljoin, urlparse

from .base import ExtractionPlugin, ScrapedListing, SourceName, clean_text

ORIGIN = "https://www.stepstone.de"


class StepStonePlugin(ExtractionPlugin):
    """Card extraction for StepStone search pages."""

    source = SourceName.STEPSTONE
    base_url = f"{ORIGIN}/jobs/assistenzarzt"
    aggregator_domains = ("stepstone.de",)
    requires_browser = True
    wait_for_selector = 'article[data-at="job-item"]'

    def parse_page(self, html: str) -> List[ScrapedListing]:
        soup = self.get_soup(html)
        listings = []

        for card in soup.find_all("article", attrs={"data-at": "job-item"}):
            anchor = card.find("a", attrs={"data-at": "job-item-title"}, href=True)
            if anchor is None:
                continue

            url = urljoin(ORIGIN, anchor["href"])
            # Tracking parameters vary between page loads
            parsed = urlparse(url)
            canonical = f"{parsed.scheme}://{parsed.netloc}{parsed.path}"

            company = card.find(attrs={"data-at": "job-item-company-name"})
            location = card.find(attrs={"data-at": "job-item-location"})

            listings.append(self.listing(
                title=clean_text(anchor.get_text(" ")),
                external_link=canonical,
                employer_name=clean_text(company.get_text(" ")) if company else "",
                location_raw=clean_text(location.get_text(" ")) if location else "",
                source_unique_id=canonical,
            ))

        return listings
