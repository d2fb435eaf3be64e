"""Mock social-media feed for a disaster, cached, plus report triage."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from disaster_api.api.models import (
    ReportAnalysis,
    ReportMention,
    SocialMediaFeed,
    SocialMediaReport,
)
from disaster_api.services.cache import CacheManager
from disaster_api.services.keys import cache_key

log = logging.getLogger(__name__)

SOCIAL_MEDIA_TTL = 1800

# (content, user, priority)
MOCK_POSTS = [
    ("#floodrelief Need food and water in Manhattan, NYC", "citizen1", "high"),
    ("Emergency shelter available at Lower East Side, NYC. Contact 555-0123", "responder1", "medium"),
    ("Roads blocked due to flooding. Avoid Brooklyn, NYC area", "volunteer1", "high"),
    ("Medical supplies needed at Queens, NYC. Urgent!", "citizen2", "urgent"),
    ("Power restored in Bronx, NYC area. Relief efforts continuing", "reliefAdmin", "low"),
]

NEED_WORDS = ("need", "require", "looking for")
OFFER_WORDS = ("available", "offering", "can help")
ALERT_WORDS = ("alert", "warning", "avoid")


class SocialMediaService:
    """Serves recent reports for a disaster from the feed, cached briefly."""

    def __init__(self, cache: CacheManager, ttl: int = SOCIAL_MEDIA_TTL) -> None:
        self.cache = cache
        self.ttl = ttl

    async def get_reports(
        self, disaster_id: str, keywords: list[str] | None = None,
    ) -> SocialMediaFeed:
        keywords = list(keywords or [])
        key = cache_key("social_media", disaster_id, keywords)

        async def produce() -> dict:
            reports = self._mock_reports(disaster_id, keywords)
            log.info("Returned %d mock social media reports", len(reports))
            feed = SocialMediaFeed(reports=reports, timestamp=datetime.now(timezone.utc))
            return feed.model_dump(mode="json")

        raw = await self.cache.compute_if_absent(key, produce, self.ttl)
        return SocialMediaFeed.model_validate(raw)

    @staticmethod
    def _mock_reports(disaster_id: str, keywords: list[str]) -> list[SocialMediaReport]:
        now = datetime.now(timezone.utc)
        stamp = int(now.timestamp() * 1000)
        reports = [
            SocialMediaReport(
                id=f"mock_{stamp}_{i}",
                content=content,
                user=user,
                created_at=now,
                disaster_id=disaster_id,
                priority=priority,
            )
            for i, (content, user, priority) in enumerate(MOCK_POSTS, start=1)
        ]
        if keywords:
            wanted = [k.lower() for k in keywords]
            reports = [r for r in reports if any(k in r.content.lower() for k in wanted)]
        return reports

    @staticmethod
    def analyze_reports(reports: list[SocialMediaReport]) -> ReportAnalysis:
        """Sort reports into needs/offers/alerts and derive overall sentiment."""
        analysis = ReportAnalysis()
        for report in reports:
            content = report.content.lower()
            if report.priority in analysis.priority_count:
                analysis.priority_count[report.priority] += 1
            mention = ReportMention(
                content=report.content, user=report.user, priority=report.priority,
            )
            if any(w in content for w in NEED_WORDS):
                analysis.needs.append(mention)
            if any(w in content for w in OFFER_WORDS):
                analysis.offers.append(mention)
            if any(w in content for w in ALERT_WORDS):
                analysis.alerts.append(mention)

        if analysis.priority_count["urgent"] > 0:
            analysis.sentiment = "critical"
        elif analysis.priority_count["high"] > 2:
            analysis.sentiment = "concerning"
        elif len(analysis.offers) > len(analysis.needs):
            analysis.sentiment = "positive"
        return analysis
