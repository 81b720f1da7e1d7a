"""
Base plugin interface for job board listing extraction.
"""
import hashlib
import html as html_lib
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")


class SourceName(str, Enum):
    """Job boards the ingestion pipeline knows how to scrape."""
    STELLENMARKT = "stellenmarkt_medizin"
    AERZTEBLATT = "aerzteblatt"
    PRAKTISCHARZT = "praktischarzt"
    XING = "xing"
    STEPSTONE = "stepstone"


def clean_text(raw: Optional[str]) -> str:
    """Strip tags, decode HTML entities and collapse whitespace."""
    if not raw:
        return ""
    text = _TAG_RE.sub(" ", raw)
    text = html_lib.unescape(text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def clean_href(raw: Optional[str]) -> str:
    """Decode HTML entities in an href taken from raw markup."""
    if not raw:
        return ""
    return html_lib.unescape(raw).strip()


@dataclass
class ScrapedListing:
    """A single listing as seen on a job board results page."""
    title: str
    external_link: str
    employer_name: str
    location_raw: str
    source_unique_id: str
    source_name: SourceName
    pre_resolved_employer_url: Optional[str] = None

    def content_hash(self) -> str:
        """SHA-256 over the fields that define a listing's visible content."""
        canonical_str = f"{self.title}|{self.employer_name}|{self.location_raw}"
        return hashlib.sha256(canonical_str.encode("utf-8")).hexdigest()


class ExtractionPlugin(ABC):
    """
    Base class for job board plugins.

    Each plugin knows one board:
    1. How to build the URL of a results page
    2. How to turn a results page into listings
    3. Which hosts belong to the board (aggregator domains)
    4. Whether pages must go through the rendering service
    """

    source: SourceName
    base_url: str = ""
    aggregator_domains: Tuple[str, ...] = ()
    requires_browser: bool = False
    wait_for_selector: Optional[str] = None

    def __init__(self, name: Optional[str] = None):
        self.name = name or self.source.value
        self.logger = logging.getLogger(f"{__name__}.{self.name}")

    def page_url(self, base_url: str, page: int) -> str:
        """Results page URL; page 1 is the bare base URL."""
        if page <= 1:
            return base_url
        separator = "&" if "?" in base_url else "?"
        return f"{base_url}{separator}page={page}"

    @abstractmethod
    def parse_page(self, html: str) -> List[ScrapedListing]:
        """
        Parse one results page.

        Args:
            html: Raw page HTML

        Returns:
            Listings in page order, possibly with repeats
        """
        pass

    def extract(self, html: str) -> List[ScrapedListing]:
        """
        Extract listings from a results page.

        Never raises: malformed markup yields fewer (or zero) listings.
        Listings are unique by source_unique_id within the page.
        """
        if not html:
            return []
        try:
            listings = self.parse_page(html)
        except Exception as e:
            self.logger.warning(f"[{self.name}] Failed to parse page: {e}")
            return []

        unique: List[ScrapedListing] = []
        seen = set()
        for listing in listings:
            if not listing.title or not listing.source_unique_id:
                continue
            if listing.source_unique_id in seen:
                continue
            seen.add(listing.source_unique_id)
            unique.append(listing)
        return unique

    def direct_apply_endpoint(self, detail_url: str) -> Optional[str]:
        """Apply endpoint derivable from the detail URL without fetching it."""
        return None

    def find_apply_endpoint(self, html: str, detail_url: str) -> Optional[str]:
        """
        Locate a redirect-style apply endpoint on a detail page.

        Boards without one return None and rely on direct apply links.
        """
        return None

    def get_soup(self, html: str) -> BeautifulSoup:
        """Helper to create BeautifulSoup instance"""
        return BeautifulSoup(html, 'lxml')

    def listing(self, **fields) -> ScrapedListing:
        """Build a listing tagged with this plugin's source."""
        return ScrapedListing(source_name=self.source, **fields)

    def __repr__(self):
        return f"<{self.__class__.__name__}(name={self.name}, browser={self.requires_browser})>"
