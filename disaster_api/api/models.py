"""Pydantic models for cache entries and the payloads cached on behalf of callers."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class CacheEntry(BaseModel):
    key: str
    value: Any = None
    expires_at: datetime  # timezone-aware UTC

    def is_expired(self, now: datetime) -> bool:
        """An entry is dead from the instant its expiry is reached."""
        return self.expires_at <= now


class GeocodeResult(BaseModel):
    lat: float
    lng: float
    service: str = "mock"
    formatted_address: str


class ReverseGeocodeResult(BaseModel):
    address: str
    service: str = "mock"


class ImageVerification(BaseModel):
    authentic: bool
    confidence: float = Field(ge=0.0, le=1.0)
    manipulation_detected: bool = False
    disaster_context: bool = True
    notes: str = ""


class SocialMediaReport(BaseModel):
    id: str
    content: str
    user: str
    created_at: datetime
    source: str = "mock"
    disaster_id: str
    priority: str  # urgent, high, medium, low


class SocialMediaFeed(BaseModel):
    source: str = "mock"
    reports: list[SocialMediaReport] = Field(default_factory=list)
    timestamp: datetime


class ReportMention(BaseModel):
    content: str
    user: str
    priority: str


class ReportAnalysis(BaseModel):
    needs: list[ReportMention] = Field(default_factory=list)
    offers: list[ReportMention] = Field(default_factory=list)
    alerts: list[ReportMention] = Field(default_factory=list)
    sentiment: str = "neutral"
    priority_count: dict[str, int] = Field(
        default_factory=lambda: {"urgent": 0, "high": 0, "medium": 0, "low": 0}
    )
