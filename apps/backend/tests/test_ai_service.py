"""
Tests for the OpenRouter client: JSON replies, retries and circuit breaker.
"""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from tenacity import stop_after_attempt, wait_none

from app.ai_service import AIService, CircuitBreaker, RetryableAIError, parse_json_reply


def completion(content):
    return {"choices": [{"message": {"content": content}}]}


@pytest.mark.parametrize("content,expected", [
    ('{"department": "Chirurgie"}', {"department": "Chirurgie"}),
    ('```json\n{"tags": ["Vollzeit"]}\n```', {"tags": ["Vollzeit"]}),
    ({"already": "parsed"}, {"already": "parsed"}),
    ('["not", "an", "object"]', None),
    ("Leider keine Angabe", None),
    (None, None),
])
def test_parse_json_reply(content, expected):
    assert parse_json_reply(content) == expected


class TestCircuitBreaker:

    def test_opens_on_error_rate(self):
        breaker = CircuitBreaker(error_threshold=0.5, reset_seconds=60)
        for _ in range(5):
            breaker.record_call(False)
        for _ in range(5):
            breaker.record_call(True)

        assert breaker.circuit_open is True
        assert breaker.can_make_call() is False

    def test_half_open_after_reset_period(self):
        breaker = CircuitBreaker(error_threshold=0.1, reset_seconds=60)
        for _ in range(10):
            breaker.record_call(True)
        breaker.circuit_open_since -= 61

        assert breaker.can_make_call() is True
        assert breaker.circuit_open is False


class TestAIService:

    @pytest.mark.asyncio
    async def test_disabled_without_key(self):
        service = AIService(api_key="")
        assert service.enabled is False
        assert await service.complete_json("system", "user") is None

    @pytest.mark.asyncio
    async def test_complete_json_requests_json_object(self):
        service = AIService(api_key="test-key", model="test/model")
        with patch.object(service, "_call_openrouter", AsyncMock(return_value='```json {"department": "HNO"} ```')) as call:
            reply = await service.complete_json("system", "user", max_tokens=50)

        assert reply == {"department": "HNO"}
        payload = call.call_args.args[0]
        assert payload["model"] == "test/model"
        assert payload["max_tokens"] == 50
        assert payload["response_format"] == {"type": "json_object"}
        assert [m["role"] for m in payload["messages"]] == ["system", "user"]

    @pytest.mark.asyncio
    async def test_failed_call_returns_none(self):
        service = AIService(api_key="test-key")
        with patch.object(service, "_call_openrouter", AsyncMock(side_effect=RetryableAIError("HTTP 503"))):
            assert await service.complete_json("system", "user") is None

    @pytest.mark.asyncio
    async def test_open_circuit_skips_call(self):
        service = AIService(api_key="test-key")
        service.circuit_breaker.circuit_open = True
        service.circuit_breaker.circuit_open_since = 10 ** 12
        with patch.object(service, "_call_openrouter", AsyncMock()) as call:
            assert await service.complete_json("system", "user") is None
        call.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_overloaded_upstream_is_retried(self):
        statuses = iter([503, 200])
        requests = []

        def handler(request):
            requests.append(request)
            status = next(statuses)
            if status != 200:
                return httpx.Response(status, json={"error": "overloaded"})
            return httpx.Response(200, json=completion('{"department": "Urologie"}'))

        real_client = httpx.AsyncClient
        transport = httpx.MockTransport(handler)
        service = AIService(api_key="test-key")
        call = AIService._call_openrouter.retry_with(wait=wait_none(), stop=stop_after_attempt(3))

        with patch("app.ai_service.httpx.AsyncClient", lambda **kwargs: real_client(transport=transport, **kwargs)):
            content = await call(service, {"model": "test/model", "messages": []})

        assert json.loads(content) == {"department": "Urologie"}
        assert len(requests) == 2
        assert requests[0].headers["Authorization"] == "Bearer test-key"
        assert str(requests[0].url) == "https://openrouter.ai/api/v1/chat/completions"
