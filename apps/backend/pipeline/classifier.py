"""
Job field classifier.

Derives a department, tags and a short description for a listing.
Keyword rules run first; the AI fallback is consulted only when the rules
find nothing at all.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .ai_fallback import AIClassificationFallback

logger = logging.getLogger(__name__)

MAX_TAGS = 5

# Patterns run against normalized text (lower-case, umlauts transliterated)
DEPARTMENT_RULES: List[Tuple[str, List[str]]] = [
    ("Notaufnahme", [r"\bnotaufnahme\b", r"\bzentrale notaufnahme\b", r"\bzna\b", r"\brettungsstelle\b"]),
    ("Intensivmedizin", [r"\bintensivmedizin\b", r"\bintensivstation\b", r"\bits\b"]),
    ("Anästhesie", [r"\banaesthes", r"\banasthes", r"\bnarkose\b"]),
    ("Kardiologie", [r"\bkardiolog"]),
    ("Neurologie", [r"\bneurolog", r"\bstroke unit\b"]),
    ("Radiologie", [r"\bradiolog", r"\bbildgebung\b", r"\bmrt\b", r"\bct\b"]),
    ("Pädiatrie", [r"\bpaediatr", r"\bpadiatr", r"\bkinderheilkunde\b", r"\bkinderklinik\b", r"\bkindermedizin\b"]),
    ("Gynäkologie", [r"\bgynaekolog", r"\bgynakolog", r"\bfrauenheilkunde\b", r"\bgeburtshilfe\b", r"\bobstetrik\b"]),
    ("Psychiatrie", [r"\bpsychiatr", r"\bpsychosomatik\b", r"\bpsychotherapie\b"]),
    ("Urologie", [r"\burolog"]),
    ("Dermatologie", [r"\bdermatolog", r"\bhautklinik\b"]),
    ("HNO", [r"\bhno\b", r"\bhals[- ]?nasen[- ]?ohren\b"]),
    ("Augenheilkunde", [r"\baugenheil", r"\bophthalmolog"]),
    ("Orthopädie", [r"\borthopaed", r"\borthopad"]),
    ("Chirurgie", [r"\bchirurg", r"\bunfallchirurg", r"\bviszeralchirurg", r"\bgefaesschirurg", r"\bthoraxchirurg"]),
    ("Innere Medizin", [r"\binnere medizin\b", r"\binternist", r"\binternistische\b"]),
]

TAG_RULES: List[Tuple[str, str]] = [
    ("Vollzeit", r"\bvollzeit\b"),
    ("Teilzeit", r"\bteilzeit\b"),
    ("Weiterbildung", r"\bweiterbildung\b"),
    ("Notaufnahme", r"\bnotaufnahme\b"),
    ("Intensivstation", r"\bintensivstation\b"),
    ("OP", r"\bop\b"),
    ("Schichtdienst", r"\bschichtdienst\b"),
    ("Tarifvertrag", r"\btarifvertrag\b"),
]

RESIDENT_PATTERN = re.compile(r"\bassistenzarzt\b|\barzt in weiterbildung\b|\baiw\b")

_COMPILED_DEPARTMENTS = [
    (department, [re.compile(p) for p in patterns]) for department, patterns in DEPARTMENT_RULES
]
_COMPILED_TAGS = [(tag, re.compile(p)) for tag, p in TAG_RULES]

_TRANSLITERATION = str.maketrans({"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss"})


def normalize_text(value: Optional[str]) -> str:
    """Lower-case and transliterate German umlauts."""
    if not value:
        return ""
    return value.lower().translate(_TRANSLITERATION)


def detect_department(text: str) -> Optional[str]:
    """First department whose patterns match the normalized text."""
    if not text:
        return None
    for department, patterns in _COMPILED_DEPARTMENTS:
        if any(pattern.search(text) for pattern in patterns):
            return department
    return None


def detect_tags(text: str) -> List[str]:
    tags = [tag for tag, pattern in _COMPILED_TAGS if pattern.search(text)]
    if RESIDENT_PATTERN.search(text):
        tags.append("Weiterbildung")
    unique = []
    for tag in tags:
        if tag not in unique:
            unique.append(tag)
    return unique[:MAX_TAGS]


def template_description(title: str, employer_name: Optional[str] = None, location: Optional[str] = None) -> str:
    """Fallback description: "<title> bei <employer> in <location>." """
    description = title
    if employer_name:
        description += f" bei {employer_name}"
    if location:
        description += f" in {location}"
    return f"{description}."


@dataclass
class Classification:
    """Classifier output for one listing"""
    description: str
    department: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    classified_by: str = "none"  # rules | ai | none

    @property
    def has_signal(self) -> bool:
        return bool(self.department or self.tags)


def classify_by_rules(title: str, description: Optional[str] = None) -> Tuple[Optional[str], List[str]]:
    """
    Keyword classification.

    The department found in the title wins over one found in the description.
    Tags are collected from both.
    """
    normalized_title = normalize_text(title)
    normalized_description = normalize_text(description)

    department = detect_department(normalized_title) or detect_department(normalized_description)
    tags = detect_tags(f"{normalized_title}\n{normalized_description}")
    return department, tags


class JobFieldClassifier:
    """Rules first, AI fallback second; never raises."""

    def __init__(self, ai_fallback: Optional[AIClassificationFallback] = None, use_ai: bool = True):
        self.use_ai = use_ai
        self._ai_fallback = ai_fallback

    @property
    def ai_fallback(self) -> Optional[AIClassificationFallback]:
        if self.use_ai and self._ai_fallback is None:
            self._ai_fallback = AIClassificationFallback()
        return self._ai_fallback if self.use_ai else None

    async def classify(
        self,
        title: str,
        employer_name: Optional[str] = None,
        location: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Classification:
        """
        Classify a listing.

        Args:
            title: Listing title
            employer_name: Employer, used in the description
            location: Location, used in the description
            description: Existing long text, if any

        Returns:
            Classification; department None and tags empty when nothing matched
        """
        fallback_description = template_description(title, employer_name, location)

        try:
            department, tags = classify_by_rules(title, description)
        except Exception as e:
            logger.error(f"[classifier] Rule classification failed for '{title}': {e}")
            department, tags = None, []

        if department or tags:
            return Classification(
                description=fallback_description,
                department=department,
                tags=tags,
                classified_by="rules",
            )

        ai = self.ai_fallback
        if ai is None or not ai.enabled:
            return Classification(description=fallback_description)

        try:
            result = await ai.classify(title, employer_name, location, description)
        except Exception as e:
            logger.error(f"[classifier] AI classification failed for '{title}': {e}")
            result = None

        if result is None:
            return Classification(description=fallback_description)

        return Classification(
            description=result.description or fallback_description,
            department=result.department,
            tags=result.tags,
            classified_by="ai" if (result.department or result.tags) else "none",
        )
