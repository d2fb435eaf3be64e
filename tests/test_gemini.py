"""Tests for GeminiService with a mocked HTTP transport."""

from __future__ import annotations

import json
import logging

import httpx
import pytest

from disaster_api.config import Settings
from disaster_api.services.gemini import (
    GeminiService,
    fallback_location,
    fallback_verification,
)

VERIFIED = {
    "authentic": True,
    "confidence": 0.92,
    "manipulation_detected": False,
    "disaster_context": True,
    "notes": "Consistent flood scene",
}


def _candidate(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class FakeGemini:
    """Routes generateContent and image downloads; counts model calls."""

    def __init__(self, text_reply="Manhattan, NYC", vision_reply=None, status=200) -> None:
        self.text_reply = text_reply
        self.vision_reply = vision_reply if vision_reply is not None else json.dumps(VERIFIED)
        self.status = status
        self.model_calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "images.example.com":
            return httpx.Response(200, content=b"\xff\xd8fake-jpeg")
        self.model_calls += 1
        assert request.headers["x-goog-api-key"] == "test-key"
        assert "key" not in request.url.params
        if self.status != 200:
            return httpx.Response(self.status, json={"error": "quota"})
        if "gemini-pro-vision" in request.url.path:
            body = json.loads(request.content)
            assert body["contents"][0]["parts"][1]["inline_data"]["mime_type"] == "image/jpeg"
            return httpx.Response(200, json=_candidate(self.vision_reply))
        return httpx.Response(200, json=_candidate(self.text_reply))


def _service(cache, fake: FakeGemini, api_key: str = "test-key") -> GeminiService:
    settings = Settings(cache_backend="memory", gemini_api_key=api_key)
    return GeminiService(settings, cache, transport=httpx.MockTransport(fake))


class TestExtractLocation:
    async def test_extracts_and_caches(self, cache, store):
        fake = FakeGemini()
        service = _service(cache, fake)
        assert await service.extract_location("Flooding downtown") == "Manhattan, NYC"
        assert await service.extract_location("Flooding downtown") == "Manhattan, NYC"
        assert fake.model_calls == 1
        assert len(store) == 1
        await service.close()

    async def test_null_reply_cached_as_none(self, cache, store):
        fake = FakeGemini(text_reply="null")
        service = _service(cache, fake)
        assert await service.extract_location("No place here") is None
        assert await service.extract_location("No place here") is None
        assert fake.model_calls == 1
        await service.close()

    async def test_upstream_failure_falls_back_uncached(self, cache, store):
        fake = FakeGemini(status=429)
        service = _service(cache, fake)
        result = await service.extract_location("Water rising in Brooklyn, NYC tonight")
        assert result == "Brooklyn, NYC"
        assert len(store) == 0

        fake.status = 200
        assert await service.extract_location(
            "Water rising in Brooklyn, NYC tonight"
        ) == "Manhattan, NYC"
        await service.close()

    async def test_malformed_response_falls_back(self, cache, store):
        def handler(request):
            return httpx.Response(200, json={"candidates": []})

        settings = Settings(cache_backend="memory", gemini_api_key="test-key")
        service = GeminiService(settings, cache, transport=httpx.MockTransport(handler))
        assert await service.extract_location("Fire near Queens") == "Queens"
        assert len(store) == 0
        await service.close()

    async def test_without_api_key_uses_heuristic(self, cache, store):
        fake = FakeGemini()
        service = _service(cache, fake, api_key="")
        assert await service.extract_location("Storm hit around Staten Island") == "Staten Island"
        assert fake.model_calls == 0
        await service.close()


class TestVerifyImage:
    async def test_verifies_and_caches(self, cache, store):
        fake = FakeGemini()
        service = _service(cache, fake)
        url = "https://images.example.com/flood.jpg"
        first = await service.verify_image(url)
        second = await service.verify_image(url)
        assert first.authentic
        assert first.confidence == 0.92
        assert first == second
        assert fake.model_calls == 1
        await service.close()

    async def test_fenced_json_reply(self, cache):
        fake = FakeGemini(vision_reply="```json\n" + json.dumps(VERIFIED) + "\n```")
        service = _service(cache, fake)
        result = await service.verify_image("https://images.example.com/flood.png")
        assert result.notes == "Consistent flood scene"
        await service.close()

    async def test_unparseable_reply_falls_back_uncached(self, cache, store):
        fake = FakeGemini(vision_reply="looks real to me")
        service = _service(cache, fake)
        result = await service.verify_image("https://images.example.com/flood.jpg")
        assert result.confidence == 0.3
        assert "Basic URL validation" in result.notes
        assert len(store) == 0
        await service.close()

    async def test_image_fetch_failure_falls_back(self, cache, store):
        def handler(request):
            if request.url.host == "images.example.com":
                return httpx.Response(404)
            raise AssertionError("model should not be called")

        settings = Settings(cache_backend="memory", gemini_api_key="test-key")
        service = GeminiService(settings, cache, transport=httpx.MockTransport(handler))
        result = await service.verify_image("https://images.example.com/missing.gif")
        assert result.authentic
        assert len(store) == 0
        await service.close()


class TestFallbacks:
    def test_location_with_preposition(self):
        assert fallback_location("Heavy flooding in Manhattan, NYC after the storm") == "Manhattan, NYC"

    def test_location_city_comma_region(self):
        assert fallback_location("Lower East Side, NYC reports outages") == "Lower East Side, NYC"

    def test_location_none(self):
        assert fallback_location("water levels are rising everywhere") is None

    def test_verification_image_url(self):
        result = fallback_verification("https://cdn.example.com/photo.JPEG")
        assert result.authentic
        assert result.confidence == 0.3

    def test_verification_query_string_ignored(self):
        assert fallback_verification("https://cdn.example.com/photo.webp?w=200").authentic

    def test_verification_non_image(self):
        result = fallback_verification("https://example.com/page.html")
        assert not result.authentic
        assert result.confidence == 0.0
        assert result.notes == "Invalid image URL"


@pytest.mark.parametrize("reply", ["Null", "null", ""])
async def test_empty_or_null_location(cache, reply):
    service = _service(cache, FakeGemini(text_reply=reply))
    assert await service.extract_location("Nothing specific") is None
    await service.close()


@pytest.mark.parametrize("status", [401, 500])
async def test_api_key_never_logged_on_upstream_error(cache, caplog, status):
    seen_keys = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen_keys.append(request.headers.get("x-goog-api-key"))
        return httpx.Response(status, json={"error": "upstream"})

    settings = Settings(cache_backend="memory", gemini_api_key="SECRET-KEY-123")
    service = GeminiService(settings, cache, transport=httpx.MockTransport(handler))
    with caplog.at_level(logging.DEBUG):
        assert await service.extract_location("Flooding near Queens") == "Queens"

    assert seen_keys == ["SECRET-KEY-123"]
    assert f"HTTP {status}" in caplog.text
    assert "SECRET-KEY-123" not in caplog.text
    await service.close()
