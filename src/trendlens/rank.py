"""Relevance scoring, trend classification and ranking of keyword groups."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from datetime import UTC, datetime, time, timedelta

from trendlens.models import (
    ConversationRecord,
    SentimentDistribution,
    TimeRange,
    TrendDirection,
    TrendingTopic,
)
from trendlens.options import AnalysisOptions

logger = logging.getLogger(__name__)

# ── Weights (sum to 1 so the score stays in [0, 1]) ────────────────────────
_W_FREQUENCY = 0.3
_W_RECENCY = 0.3
_W_ENGAGEMENT = 0.2
_W_SENTIMENT = 0.2

# ── Windows and thresholds ────────────────────────────────────────────────
_RECENCY_WINDOW = timedelta(days=7)
_EMERGING_WINDOW = timedelta(days=3)
_EMERGING_SHARE = 0.7
_DAY = timedelta(days=1)
_RISING_FACTOR = 1.2
_FALLING_FACTOR = 0.8
_ENGAGEMENT_SATURATION = 100.0
_SAMPLE_SIZE = 10


def _count_within(
    group: Sequence[ConversationRecord],
    now: datetime,
    upper: timedelta,
    lower: timedelta | None = None,
) -> int:
    """Count conversations aged ``lower < age <= upper``."""
    count = 0
    for record in group:
        age = record.age(now)
        if age is None or age > upper:
            continue
        if lower is not None and age <= lower:
            continue
        count += 1
    return count


def recency_score(group: Sequence[ConversationRecord], now: datetime) -> float:
    if not group:
        return 0.0
    return _count_within(group, now, _RECENCY_WINDOW) / len(group)


def engagement_score(group: Sequence[ConversationRecord]) -> float:
    """Mean likes+shares+comments over records with engagement, saturating at 100."""
    totals = [r.engagement.total for r in group if r.engagement is not None]
    if not totals:
        return 0.0
    return min(sum(totals) / len(totals) / _ENGAGEMENT_SATURATION, 1.0)


def sentiment_distribution(
    group: Sequence[ConversationRecord],
) -> SentimentDistribution:
    counts = Counter(r.sentiment for r in group if r.sentiment is not None)
    return SentimentDistribution(
        positive=counts["positive"],
        negative=counts["negative"],
        neutral=counts["neutral"],
    )


def sentiment_score(group: Sequence[ConversationRecord]) -> float:
    """Positive counts fully, neutral half, negative not at all."""
    dist = sentiment_distribution(group)
    if not group or dist.total == 0:
        return 0.0
    return (dist.positive * 1.0 + dist.neutral * 0.5) / len(group)


def relevance_score(
    group: Sequence[ConversationRecord],
    corpus_size: int,
    now: datetime,
) -> float:
    """Composite [0, 1] score from frequency, recency, engagement and sentiment."""
    if not group or corpus_size <= 0:
        return 0.0
    frequency = len(group) / corpus_size
    composite = (
        frequency * _W_FREQUENCY
        + recency_score(group, now) * _W_RECENCY
        + engagement_score(group) * _W_ENGAGEMENT
        + sentiment_score(group) * _W_SENTIMENT
    )
    return max(0.0, min(composite, 1.0))


def time_range(group: Sequence[ConversationRecord]) -> TimeRange | None:
    stamps = [r.timestamp for r in group if r.timestamp is not None]
    if not stamps:
        return None
    return TimeRange(start=min(stamps), end=max(stamps))


def trend_direction(
    group: Sequence[ConversationRecord], now: datetime
) -> TrendDirection:
    """Compare the last 24h against the 24h before it."""
    recent = _count_within(group, now, _DAY)
    previous = _count_within(group, now, 2 * _DAY, lower=_DAY)
    if recent > previous * _RISING_FACTOR:
        return "rising"
    if recent < previous * _FALLING_FACTOR:
        return "falling"
    return "stable"


def is_emerging(group: Sequence[ConversationRecord], now: datetime) -> bool:
    """True when more than 70% of the group is from the last three days."""
    if not group:
        return False
    return _count_within(group, now, _EMERGING_WINDOW) / len(group) > _EMERGING_SHARE


def peak_timestamp(group: Sequence[ConversationRecord]) -> datetime | None:
    """Noon UTC of the day with the most conversations (first-seen day wins ties)."""
    daily = Counter(r.day for r in group if r.day is not None)
    if not daily:
        return None
    peak_day, _ = daily.most_common(1)[0]
    return datetime.combine(peak_day, time(12, 0), tzinfo=UTC)


def score_group(
    keyword: str,
    group: Sequence[ConversationRecord],
    corpus_size: int,
    now: datetime,
    options: AnalysisOptions,
) -> TrendingTopic | None:
    """Build a :class:`TrendingTopic` for *group*, or None if it misses a threshold."""
    if len(group) < options.min_conversation_count:
        return None

    relevance = relevance_score(group, corpus_size, now)
    if relevance < options.min_relevance_score:
        logger.debug("Dropping '%s': relevance %.3f below threshold", keyword, relevance)
        return None

    return TrendingTopic(
        theme=keyword,
        relevance_score=relevance,
        conversation_count=len(group),
        sentiment_distribution=sentiment_distribution(group),
        platforms=tuple(dict.fromkeys(r.platform for r in group)),
        time_range=time_range(group),
        trend_direction=trend_direction(group, now),
        emerging_trend=is_emerging(group, now),
        peak_timestamp=peak_timestamp(group),
        sample_conversations=tuple(group[:_SAMPLE_SIZE]),
    )


def rank_topics(
    topics: Sequence[TrendingTopic], max_results: int
) -> list[TrendingTopic]:
    """Sort descending by relevance (ties keep input order) and cap."""
    ranked = sorted(topics, key=lambda t: t.relevance_score, reverse=True)[:max_results]
    logger.info(
        "Ranked %d topics (kept %d); top score=%.3f",
        len(topics),
        len(ranked),
        ranked[0].relevance_score if ranked else 0.0,
    )
    return ranked
