"""
AI Service for OpenRouter integration.
Handles LLM calls that must answer with a single JSON object.
Includes retry with exponential backoff and circuit breaker for resilience.
"""
import os
import json
import logging
import re
import time
from typing import Any, Optional, Dict, List
from collections import deque
import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

logger = logging.getLogger(__name__)

OPENROUTER_MODEL = os.getenv("OPENROUTER_MODEL", "anthropic/claude-3-haiku")
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

# Circuit breaker configuration
CIRCUIT_BREAKER_ERROR_THRESHOLD = 0.10  # 10% error rate triggers circuit breaker
CIRCUIT_BREAKER_WINDOW_SECONDS = 300  # 5 minutes
CIRCUIT_BREAKER_RESET_SECONDS = 60  # 1 minute before retry
MAX_RETRIES = 3
INITIAL_RETRY_DELAY = 1.0  # Start with 1 second
MAX_RETRY_DELAY = 10.0  # Max 10 seconds
REQUEST_TIMEOUT_SECONDS = 30.0

CODE_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


class RetryableAIError(Exception):
    """Transient upstream failure (rate limit, overload, 5xx)."""


class CircuitBreaker:
    """Simple circuit breaker pattern for API resilience."""

    def __init__(self, error_threshold: float = 0.10, window_seconds: int = 300, reset_seconds: int = 60):
        self.error_threshold = error_threshold
        self.window_seconds = window_seconds
        self.reset_seconds = reset_seconds
        self.error_history = deque()  # (timestamp, is_error)
        self.circuit_open = False
        self.circuit_open_since = None

    def record_call(self, is_error: bool):
        """Record a call result."""
        now = time.time()
        self.error_history.append((now, is_error))

        # Remove old entries outside window
        cutoff = now - self.window_seconds
        while self.error_history and self.error_history[0][0] < cutoff:
            self.error_history.popleft()

        if len(self.error_history) >= 10:  # Need at least 10 calls to evaluate
            errors = sum(1 for _, is_err in self.error_history if is_err)
            error_rate = errors / len(self.error_history)

            if error_rate >= self.error_threshold and not self.circuit_open:
                self.circuit_open = True
                self.circuit_open_since = now
                logger.warning(f"[ai_service] Circuit breaker OPENED: error rate {error_rate:.1%} >= {self.error_threshold:.1%}")

    def can_make_call(self) -> bool:
        """Check if we can make a call (circuit is closed or reset period passed)."""
        if not self.circuit_open:
            return True

        if self.circuit_open_since:
            elapsed = time.time() - self.circuit_open_since
            if elapsed >= self.reset_seconds:
                # Half-open: let the next call through
                self.circuit_open = False
                self.circuit_open_since = None
                logger.info("[ai_service] Circuit breaker CLOSED (half-open state)")
                return True

        return False


def parse_json_reply(content: Any) -> Optional[Dict[str, Any]]:
    """Parse a model reply that should be a JSON object, tolerating code fences."""
    if isinstance(content, dict):
        return content
    if not isinstance(content, str):
        return None
    cleaned = CODE_FENCE_RE.sub("", content).strip()
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


class AIService:
    """Service for making AI calls via OpenRouter."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key if api_key is not None else os.getenv("OPENROUTER_API_KEY")
        self.model = model or OPENROUTER_MODEL
        self.base_url = OPENROUTER_BASE_URL
        self.enabled = bool(self.api_key)
        self.circuit_breaker = CircuitBreaker(
            error_threshold=CIRCUIT_BREAKER_ERROR_THRESHOLD,
            window_seconds=CIRCUIT_BREAKER_WINDOW_SECONDS,
            reset_seconds=CIRCUIT_BREAKER_RESET_SECONDS
        )

        if not self.enabled:
            logger.warning("[ai_service] OpenRouter API key not configured. AI features disabled.")

    @retry(
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential(multiplier=INITIAL_RETRY_DELAY, max=MAX_RETRY_DELAY),
        retry=retry_if_exception_type((RetryableAIError, httpx.TimeoutException, httpx.ConnectError)),
        reraise=True
    )
    async def _call_openrouter(self, payload: Dict[str, Any]) -> str:
        """POST a chat completion and return the first message's content."""
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": "https://klaro.health",
            "X-Title": "Klaro Job Ingestion",
        }

        async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS) as client:
            response = await client.post(f"{self.base_url}/chat/completions", headers=headers, json=payload)

        if response.status_code == 429 or response.status_code >= 500:
            logger.warning(f"[ai_service] HTTP {response.status_code} from OpenRouter, retrying")
            raise RetryableAIError(f"HTTP {response.status_code}")
        response.raise_for_status()

        data = response.json()
        choices = data.get("choices") or []
        if not choices:
            raise ValueError("Unexpected response format: no choices")
        return choices[0]["message"]["content"]

    async def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 300,
        temperature: float = 0.0,
    ) -> Optional[Dict[str, Any]]:
        """
        Ask the model for a JSON object.

        Returns:
            Parsed object, or None when AI is disabled, the circuit is open,
            the call fails or the reply is not a JSON object
        """
        if not self.enabled:
            return None

        if not self.circuit_breaker.can_make_call():
            logger.warning("[ai_service] Circuit breaker is OPEN, skipping call")
            return None

        messages: List[Dict[str, str]] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "response_format": {"type": "json_object"},
        }

        try:
            content = await self._call_openrouter(payload)
        except (RetryableAIError, httpx.HTTPError, ValueError, KeyError) as e:
            logger.error(f"[ai_service] OpenRouter call failed: {e}")
            self.circuit_breaker.record_call(True)
            return None

        parsed = parse_json_reply(content)
        self.circuit_breaker.record_call(parsed is None)
        if parsed is None:
            logger.warning(f"[ai_service] Reply was not a JSON object: {str(content)[:200]}")
        return parsed


_ai_service: Optional[AIService] = None


def get_ai_service() -> AIService:
    """Get or create the global AI service"""
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService()
    return _ai_service
