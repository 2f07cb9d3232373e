"""Domain models shared by every stage of the analysis."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Sentiment = Literal["positive", "negative", "neutral"]
TrendDirection = Literal["rising", "falling", "stable"]

SENTIMENTS: tuple[Sentiment, ...] = ("positive", "negative", "neutral")


def _to_utc(value: datetime | None) -> datetime | None:
    """Naive datetimes are taken to be UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ── Input ──────────────────────────────────────────────────────────────────


class Engagement(_Frozen):
    likes: int = 0
    shares: int = 0
    comments: int = 0

    @property
    def total(self) -> int:
        return self.likes + self.shares + self.comments


class ConversationRecord(_Frozen):
    id: str
    platform: str
    content: str = ""
    timestamp: datetime | None = None
    sentiment: Sentiment | None = None
    keywords: tuple[str, ...] = ()
    engagement: Engagement | None = None

    @field_validator("timestamp")
    @classmethod
    def timestamp_as_utc(cls, value: datetime | None) -> datetime | None:
        return _to_utc(value)

    @field_validator("keywords")
    @classmethod
    def distinct_keywords(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        # A keyword listed twice must not count the conversation twice.
        return tuple(dict.fromkeys(value))

    def age(self, now: datetime) -> timedelta | None:
        """Time elapsed since the conversation, or None without a timestamp."""
        if self.timestamp is None:
            return None
        return now - self.timestamp

    @property
    def day(self) -> date | None:
        return self.timestamp.date() if self.timestamp else None


# ── Derived ────────────────────────────────────────────────────────────────


class TimeRange(_Frozen):
    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def bounds_as_utc(cls, value: datetime) -> datetime:
        return _to_utc(value)  # type: ignore[return-value]


class SentimentDistribution(_Frozen):
    positive: int = 0
    negative: int = 0
    neutral: int = 0

    @property
    def total(self) -> int:
        return self.positive + self.negative + self.neutral


class TrendingTopic(_Frozen):
    theme: str
    relevance_score: float
    conversation_count: int
    sentiment_distribution: SentimentDistribution = Field(
        default_factory=SentimentDistribution
    )
    platforms: tuple[str, ...] = ()
    time_range: TimeRange | None = None
    trend_direction: TrendDirection = "stable"
    emerging_trend: bool = False
    peak_timestamp: datetime | None = None
    sample_conversations: tuple[ConversationRecord, ...] = ()


class SentimentPoint(_Frozen):
    day: date
    sentiment: Sentiment
    count: int


class PlatformLink(_Frozen):
    platform_a: str
    platform_b: str
    shared_keywords: tuple[str, ...]
    link_strength: float


class StoryCluster(_Frozen):
    title: str
    summary: str
    main_theme: str
    sub_themes: tuple[str, ...] = ()
    relevance_score: float = 0.0
    conversation_ids: tuple[str, ...] = ()
    platforms: tuple[str, ...] = ()
    time_span: TimeRange | None = None
    sentiment_evolution: tuple[SentimentPoint, ...] = ()
    key_phrases: tuple[str, ...] = ()
    cross_platform_links: tuple[PlatformLink, ...] = ()


class SentimentShift(_Frozen):
    theme: str
    sentiment_change: float
    timeframe: str = "7d"


class CrossPlatformInsight(_Frozen):
    theme: str
    platforms: tuple[str, ...]
    correlation_strength: float


class AnalysisResult(_Frozen):
    trending_topics: tuple[TrendingTopic, ...] = ()
    story_clusters: tuple[StoryCluster, ...] = ()
    emerging_themes: tuple[str, ...] = ()
    declining_sentiments: tuple[SentimentShift, ...] = ()
    cross_platform_insights: tuple[CrossPlatformInsight, ...] = ()
    partial: bool = False  # set when the caller's deadline expired mid-run
