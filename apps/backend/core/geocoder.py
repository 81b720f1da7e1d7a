"""
Location enrichment.
Appends the German federal state (or Österreich / Schweiz) to free-text
listing locations such as "74613 Öhringen" or "Klinikum Mülheim an der Ruhr".

Lookups are purely table-driven; no network calls.
"""

import logging
import re
from typing import Dict, Iterable, Optional

from core import location_data

logger = logging.getLogger(__name__)

POSTAL_CODE_RE = re.compile(r"\b\d{5}\b")
LEADING_NUMBER_RE = re.compile(r"^\d+\s*")
DIGITS_RE = re.compile(r"\d+")
SEGMENT_SPLIT_RE = re.compile(r"[,;]")
STREET_RE = re.compile(r"straße|strasse|str\.|weg\s|platz\s|allee\s|gasse")
PLACE_SUFFIX_RE = re.compile(
    r"^(.+?)\s+(?:an der|an den|an dem|am|im|in der|in dem|ob der|vor der|bei)\s+"
)
PARENTHETICAL_RE = re.compile(r"^(.+?)\s*\(.*\)\s*$")
WHITESPACE_RE = re.compile(r"\s+")
PLZ_CITY_RE = re.compile(
    r"\b(\d{5})\s+([A-ZÄÖÜ][A-Za-zäöüß\-]+(?:\s+(?:am|an der|im|in der|ob der)\s+[A-ZÄÖÜ][A-Za-zäöüß\-]+)?)"
)
CITY_HINT_RE = re.compile(r"(?:\bin|Standort:|Location:|Ort:)\s+([A-ZÄÖÜ][a-zäöüß]+(?:\s+[a-zäöü]+)?)")
NAME_SPLIT_RE = re.compile(r"[\s,]+")


class LocationEnricher:
    """
    Resolve a free-text location to a region label.

    Strategies are tried in order and the first hit wins:
    clinic override, postal codes, per-segment city lookups (exact,
    place suffix stripped, parenthetical stripped, first word(s)),
    and finally the whole string without digits.
    """

    def __init__(
        self,
        postal_codes: Optional[Dict[str, str]] = None,
        cities: Optional[Dict[str, str]] = None,
        foreign_cities: Optional[Dict[str, str]] = None,
        clinic_overrides: Optional[Dict[str, str]] = None,
        labels: Optional[Iterable[str]] = None,
    ):
        self.postal_codes = location_data.POSTAL_CODES if postal_codes is None else postal_codes
        self.cities = location_data.CITIES if cities is None else cities
        self.foreign_cities = location_data.FOREIGN_CITIES if foreign_cities is None else foreign_cities
        self.clinic_overrides = location_data.CLINIC_OVERRIDES if clinic_overrides is None else clinic_overrides
        self.labels = tuple(labels) if labels is not None else location_data.REGION_LABELS
        self._labels_lower = tuple(label.lower() for label in self.labels)

    def has_region(self, location: str) -> bool:
        """Check whether the text already carries a region label"""
        lowered = location.lower()
        return any(label in lowered for label in self._labels_lower)

    def lookup_city(self, name: str) -> Optional[str]:
        """Look up a single (lower-case) place or facility name"""
        key = WHITESPACE_RE.sub(" ", name).strip().lower()
        if not key:
            return None
        return (
            self.clinic_overrides.get(key)
            or self.cities.get(key)
            or self.foreign_cities.get(key)
        )

    def find_region(self, location: str) -> Optional[str]:
        """
        Find the region label for a location string.

        Args:
            location: Raw location text

        Returns:
            Region label, or None if no strategy matches
        """
        lowered = location.lower().strip()

        region = self.clinic_overrides.get(lowered)
        if region:
            return region

        for postal_code in POSTAL_CODE_RE.findall(location):
            region = self.postal_codes.get(postal_code)
            if region:
                return region

        for segment in SEGMENT_SPLIT_RE.split(lowered):
            region = self._lookup_segment(segment)
            if region:
                return region

        stripped = DIGITS_RE.sub("", lowered)
        stripped = WHITESPACE_RE.sub(" ", stripped).strip(" ,;-")
        if stripped and stripped != lowered:
            return self.lookup_city(stripped)

        return None

    def _lookup_segment(self, segment: str) -> Optional[str]:
        cleaned = POSTAL_CODE_RE.sub("", segment)
        cleaned = LEADING_NUMBER_RE.sub("", cleaned.strip())
        cleaned = WHITESPACE_RE.sub(" ", cleaned).strip()
        if not cleaned or STREET_RE.search(cleaned):
            return None

        region = self.lookup_city(cleaned)
        if region:
            return region

        suffix_match = PLACE_SUFFIX_RE.match(cleaned)
        if suffix_match:
            region = self.lookup_city(suffix_match.group(1))
            if region:
                return region

        paren_match = PARENTHETICAL_RE.match(cleaned)
        if paren_match:
            region = self.lookup_city(paren_match.group(1))
            if region:
                return region

        words = cleaned.split(" ")
        region = self.lookup_city(words[0])
        if region:
            return region
        if len(words) > 2:
            return self.lookup_city(" ".join(words[:2]))

        return None

    def enrich(self, location: Optional[str]) -> Optional[str]:
        """
        Append the region label to a location.

        Returns the input unchanged when it is empty, already labelled,
        or cannot be resolved.
        """
        if not location or not location.strip():
            return location
        if self.has_region(location):
            return location

        region = self.find_region(location)
        if not region:
            logger.debug(f"[geocoder] No region found for '{location}'")
            return location
        return f"{location}, {region}"

    def derive_location(
        self,
        hospital_name: Optional[str] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Optional[str]:
        """
        Guess a location for a listing stored without one.

        Tries the employer name, a postal code with city in the title or
        description, an "in <City>" / "Ort: <City>" hint in the description,
        and the first word of the employer name. A postal-code candidate is
        kept even without a region; the other candidates need one.
        """
        if hospital_name:
            enriched = self.enrich(hospital_name)
            if enriched != hospital_name:
                return enriched

        plz_match = PLZ_CITY_RE.search(f"{title or ''} {description or ''}")
        if plz_match:
            return self.enrich(f"{plz_match.group(1)} {plz_match.group(2)}")

        if description:
            hint = CITY_HINT_RE.search(description)
            if hint and hint.group(1).lower() not in location_data.NON_PLACE_TERMS:
                enriched = self.enrich(hint.group(1))
                if enriched != hint.group(1):
                    return enriched

        if hospital_name:
            first_word = NAME_SPLIT_RE.split(hospital_name.strip())[0]
            if len(first_word) >= 3:
                enriched = self.enrich(first_word)
                if enriched != first_word:
                    return enriched

        return None


_enricher: Optional[LocationEnricher] = None


def get_location_enricher() -> LocationEnricher:
    """Get or create the global location enricher"""
    global _enricher
    if _enricher is None:
        _enricher = LocationEnricher()
    return _enricher
