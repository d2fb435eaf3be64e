"""Gemini-backed location extraction and image verification, cached.

Both operations go through `CacheManager.compute_if_absent`. Upstream
failures raise ProducerError inside the producer, so nothing is cached; the
service then answers with a local heuristic for that one request.
"""

from __future__ import annotations

import base64
import logging
import re
from typing import Any

import httpx
from pydantic import ValidationError

from disaster_api.api.models import ImageVerification
from disaster_api.config import Settings
from disaster_api.services.cache import CacheManager
from disaster_api.services.errors import ProducerError
from disaster_api.services.keys import cache_key

log = logging.getLogger(__name__)

TEXT_MODEL = "gemini-pro"
VISION_MODEL = "gemini-pro-vision"

LOCATION_PROMPT = """Extract the location name from this disaster description. Return only the location name in a simple format like "City, State" or "City, Country". If no clear location is found, return null.

Description: "{description}"

Location:"""

VERIFY_PROMPT = """Analyze this image for signs of manipulation or verify if it shows a real disaster context. Check for:
1. Signs of digital manipulation (Photoshop artifacts, inconsistent lighting, etc.)
2. Whether the image shows a real disaster situation
3. If the image appears to be authentic and relevant

Return a JSON response with:
{
  "authentic": true/false,
  "confidence": 0.0-1.0,
  "manipulation_detected": true/false,
  "disaster_context": true/false,
  "notes": "brief explanation"
}"""

_PLACE = r"[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*"
_REGION = r"(?:[A-Z]{2,}|[A-Z][a-z]+)"
LOCATION_PATTERNS = [
    re.compile(rf"\b(?i:in|at|near|around)\s+({_PLACE}(?:,\s*{_REGION})?)"),
    re.compile(rf"({_PLACE},\s*{_REGION})"),
]
IMAGE_URL_RE = re.compile(r"\.(jpg|jpeg|png|gif|webp)$", re.IGNORECASE)
_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


def fallback_location(description: str) -> str | None:
    """Pull a capitalised place name out of free text."""
    for pattern in LOCATION_PATTERNS:
        match = pattern.search(description)
        if match:
            location = match.group(1)
            log.info("Fallback location extracted: %s", location)
            return location
    return None


def fallback_verification(image_url: str) -> ImageVerification:
    """URL-shape check used when the vision model is unavailable."""
    path = httpx.URL(image_url).path if "://" in image_url else image_url
    is_image = bool(IMAGE_URL_RE.search(path))
    return ImageVerification(
        authentic=is_image,
        confidence=0.3 if is_image else 0.0,
        manipulation_detected=False,
        disaster_context=True,
        notes=(
            "Basic URL validation only - Gemini API not available"
            if is_image else "Invalid image URL"
        ),
    )


def _candidate_text(data: Any) -> str:
    try:
        return data["candidates"][0]["content"]["parts"][0]["text"].strip()
    except (KeyError, IndexError, TypeError, AttributeError) as e:
        raise ProducerError("gemini", f"unexpected response shape: {e}") from e


class GeminiService:
    """Location extraction and image verification via the Gemini API."""

    def __init__(
        self,
        settings: Settings,
        cache: CacheManager,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.cache = cache
        kwargs: dict[str, Any] = {}
        if transport is not None:
            kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**kwargs)
        if not settings.has_gemini:
            log.warning(
                "Gemini API key not configured. Location extraction and "
                "image verification will be limited."
            )

    async def close(self) -> None:
        await self._client.aclose()

    async def _generate(self, model: str, parts: list[dict], timeout: float) -> str:
        url = f"{self.settings.gemini_base_url}/{model}:generateContent"
        try:
            response = await self._client.post(
                url,
                headers={"x-goog-api-key": self.settings.gemini_api_key},
                json={"contents": [{"parts": parts}]},
                timeout=timeout,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ProducerError(model, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ProducerError(model, type(e).__name__) from e
        except ValueError as e:
            raise ProducerError(model, f"invalid JSON: {e}") from e
        return _candidate_text(data)

    # ── Location extraction ──

    async def extract_location(self, description: str) -> str | None:
        if not self.settings.has_gemini:
            return fallback_location(description)

        key = cache_key("gemini_location", description)
        try:
            return await self.cache.compute_if_absent(
                key,
                lambda: self._extract_location(description),
                self.settings.location_cache_ttl,
            )
        except ProducerError as e:
            log.error("Gemini location extraction error: %s", e)
            return fallback_location(description)

    async def _extract_location(self, description: str) -> str | None:
        prompt = LOCATION_PROMPT.format(description=description)
        text = await self._generate(
            TEXT_MODEL, [{"text": prompt}], self.settings.gemini_text_timeout,
        )
        if text and text.lower() != "null":
            log.info("Location extracted: %s from description", text)
            return text
        return None

    # ── Image verification ──

    async def verify_image(self, image_url: str) -> ImageVerification:
        if not self.settings.has_gemini:
            return fallback_verification(image_url)

        key = cache_key("gemini_verify", image_url)
        try:
            raw = await self.cache.compute_if_absent(
                key,
                lambda: self._verify_image(image_url),
                self.settings.verification_cache_ttl,
            )
        except ProducerError as e:
            log.error("Gemini image verification error: %s", e)
            return fallback_verification(image_url)
        return ImageVerification.model_validate(raw)

    async def _verify_image(self, image_url: str) -> dict:
        image_data = await self._fetch_image_base64(image_url)
        text = await self._generate(
            VISION_MODEL,
            [
                {"text": VERIFY_PROMPT},
                {"inline_data": {"mime_type": "image/jpeg", "data": image_data}},
            ],
            self.settings.gemini_vision_timeout,
        )
        try:
            result = ImageVerification.model_validate_json(_FENCE_RE.sub("", text))
        except ValidationError as e:
            raise ProducerError(VISION_MODEL, f"unparseable verification: {e}") from e
        log.info(
            "Image verification completed for %s: %s",
            image_url, "Authentic" if result.authentic else "Suspicious",
        )
        return result.model_dump(mode="json")

    async def _fetch_image_base64(self, image_url: str) -> str:
        try:
            response = await self._client.get(
                image_url, timeout=self.settings.image_fetch_timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ProducerError("image fetch", str(e)) from e
        return base64.b64encode(response.content).decode("ascii")
