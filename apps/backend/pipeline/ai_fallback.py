"""
AI fallback classifier.

Used only when the keyword rules find neither a department nor a tag.
The model must answer with one JSON object; anything else is discarded.
"""

import os
import logging
from typing import List, Optional
from pydantic import BaseModel, ValidationError, field_validator

from app.ai_service import AIService, get_ai_service

logger = logging.getLogger(__name__)

MAX_TAGS = 5
MAX_DESCRIPTION_INPUT = 1400
MIN_DESCRIPTION_LENGTH = 10

SYSTEM_PROMPT = (
    "Du extrahierst medizinische Fachbereiche aus deutschen Stellenanzeigen "
    "und schreibst kurze Zusammenfassungen. Antworte NUR mit JSON."
)


class AIClassification(BaseModel):
    """Validated model reply."""
    description: Optional[str] = None
    department: Optional[str] = None
    tags: List[str] = []

    @field_validator("description", "department", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if not isinstance(value, str):
            return None
        value = value.strip()
        return value if len(value) > 1 else None

    @field_validator("tags", mode="before")
    @classmethod
    def _clean_tags(cls, value):
        if not isinstance(value, list):
            return []
        tags = []
        for tag in value:
            if isinstance(tag, str) and tag.strip() and tag.strip() not in tags:
                tags.append(tag.strip())
        return tags[:MAX_TAGS]


class AIClassificationFallback:
    """AI-powered classification as last resort."""

    def __init__(self, ai_service: Optional[AIService] = None):
        self.ai_service = ai_service or get_ai_service()
        self.max_calls = int(os.getenv('KLARO_AI_CLASSIFY_MAX_CALLS', '500'))
        self.call_count = 0

    @property
    def enabled(self) -> bool:
        return self.ai_service.enabled and self.call_count < self.max_calls

    def _build_prompt(
        self,
        title: str,
        employer_name: Optional[str],
        location: Optional[str],
        description: Optional[str],
    ) -> str:
        context_parts = [f"TITEL: {title}"]
        if employer_name:
            context_parts.append(f"ARBEITGEBER: {employer_name}")
        if location:
            context_parts.append(f"STANDORT: {location}")
        if description:
            context_parts.append(f"BESCHREIBUNG: {description[:MAX_DESCRIPTION_INPUT]}")
        context = "\n".join(context_parts)

        return f"""Analysiere diese deutsche Stellenanzeige fuer Assistenzarzt-Rollen und extrahiere strukturierte Daten.

{context}

Antworte NUR mit validem JSON (kein Markdown):
{{
  "description": "Professionelle Zusammenfassung der Stelle in 2-3 Saetzen auf Deutsch",
  "department": "Medizinischer Fachbereich auf Deutsch, z.B. Innere Medizin, Chirurgie, Pädiatrie, Anästhesie, Neurologie. null wenn nicht eindeutig erkennbar.",
  "tags": ["Vollzeit oder Teilzeit (falls erkennbar)", "Weiterbildung (falls erwähnt)", "weitere Stichworte, max 5 gesamt"]
}}"""

    async def classify(
        self,
        title: str,
        employer_name: Optional[str] = None,
        location: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Optional[AIClassification]:
        """
        Classify a listing with the model.

        Returns:
            AIClassification, or None when AI is unavailable or the reply is unusable
        """
        if not self.enabled:
            return None

        prompt = self._build_prompt(title, employer_name, location, description)
        self.call_count += 1
        reply = await self.ai_service.complete_json(SYSTEM_PROMPT, prompt, max_tokens=300)
        if reply is None:
            return None

        try:
            result = AIClassification.model_validate(reply)
        except ValidationError as e:
            logger.warning(f"[ai_fallback] Discarding malformed classification: {e}")
            return None

        if result.description and len(result.description) <= MIN_DESCRIPTION_LENGTH:
            result.description = None
        return result
