"""Secondary signals over the ranked topics.

- emerging themes: recent keywords that have not (yet) made the ranking
- sentiment shifts: change in positive share, last 3 days vs. the 4 before
- cross-platform insights: how closely platforms discuss a topic in time
"""

from __future__ import annotations

import logging
from bisect import bisect_left
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timedelta
from itertools import combinations

from trendlens import config
from trendlens.models import (
    ConversationRecord,
    CrossPlatformInsight,
    SentimentShift,
    TrendingTopic,
)

logger = logging.getLogger(__name__)

_RECENT_WINDOW = timedelta(days=7)
_EMERGING_MIN_COUNT = 3
_MAX_EMERGING = 10

_SHIFT_SPLIT = timedelta(days=3)
_SHIFT_HORIZON = timedelta(days=7)
_SHIFT_THRESHOLD = 0.1
_SHIFT_TIMEFRAME = "7d"

_OVERLAP_WINDOW = timedelta(days=1)
_CORRELATION_THRESHOLD = 0.3


# ── Emerging themes ───────────────────────────────────────────────────────


def emerging_themes(
    corpus: Iterable[ConversationRecord],
    topics: Sequence[TrendingTopic],
    now: datetime,
    scan_cap: int | None = None,
) -> list[str]:
    """Keywords seen at least three times in the past week that are not trending.

    Only the newest *scan_cap* recent conversations are scanned. Candidates
    are ordered by count (first-seen order on ties) before the cap of ten.
    """
    scan_cap = config.EMERGING_SCAN_CAP if scan_cap is None else scan_cap
    recent: list[ConversationRecord] = []
    for record in corpus:
        age = record.age(now)
        if age is not None and age <= _RECENT_WINDOW:
            recent.append(record)
    # Every record here has a timestamp
    recent.sort(key=lambda r: r.timestamp, reverse=True)  # type: ignore[arg-type,return-value]
    recent = recent[:scan_cap]

    counts = Counter(keyword for record in recent for keyword in record.keywords)
    existing = {topic.theme for topic in topics}
    candidates = [
        (keyword, count)
        for keyword, count in counts.items()
        if count >= _EMERGING_MIN_COUNT and keyword not in existing
    ]
    candidates.sort(key=lambda kv: kv[1], reverse=True)

    themes = [keyword for keyword, _ in candidates[:_MAX_EMERGING]]
    logger.info(
        "Scanned %d recent conversations; %d emerging themes", len(recent), len(themes)
    )
    return themes


# ── Sentiment shifts ──────────────────────────────────────────────────────


def _positive_ratio(records: Sequence[ConversationRecord]) -> float:
    return sum(1 for r in records if r.sentiment == "positive") / len(records)


def sentiment_change(
    conversations: Sequence[ConversationRecord], now: datetime
) -> float:
    """Positive share of the last 3 days minus that of days 3-7; 0 if either is empty."""
    recent: list[ConversationRecord] = []
    older: list[ConversationRecord] = []
    for record in conversations:
        age = record.age(now)
        if age is None or age > _SHIFT_HORIZON:
            continue
        (recent if age <= _SHIFT_SPLIT else older).append(record)

    if not recent or not older:
        return 0.0
    return _positive_ratio(recent) - _positive_ratio(older)


def sentiment_shifts(
    topics: Sequence[TrendingTopic],
    groups: Mapping[str, Sequence[ConversationRecord]],
    now: datetime,
) -> list[SentimentShift]:
    """Topics whose positive share moved by more than 0.1 in either direction."""
    shifts: list[SentimentShift] = []
    for topic in topics:
        change = sentiment_change(groups.get(topic.theme, ()), now)
        if abs(change) > _SHIFT_THRESHOLD:
            shifts.append(
                SentimentShift(
                    theme=topic.theme,
                    sentiment_change=change,
                    timeframe=_SHIFT_TIMEFRAME,
                )
            )

    shifts.sort(key=lambda s: abs(s.sentiment_change), reverse=True)
    return shifts


# ── Cross-platform correlation ────────────────────────────────────────────


def temporal_overlap(first: Sequence[datetime], second: Sequence[datetime]) -> float:
    """Share of *first* with a timestamp in *second* less than a day away.

    *second* must be sorted. The count is divided by the longer list's length.
    """
    if not first or not second:
        return 0.0
    hits = 0
    for stamp in first:
        i = bisect_left(second, stamp)
        neighbours = second[max(i - 1, 0) : i + 1]
        if any(abs(stamp - other) < _OVERLAP_WINDOW for other in neighbours):
            hits += 1
    return hits / max(len(first), len(second))


def correlation_strength(
    conversations: Sequence[ConversationRecord], platforms: Sequence[str]
) -> float:
    """Mean temporal overlap over platform pairs that both have timestamps."""
    stamps: dict[str, list[datetime]] = {platform: [] for platform in platforms}
    for record in conversations:
        if record.timestamp is not None and record.platform in stamps:
            stamps[record.platform].append(record.timestamp)
    for values in stamps.values():
        values.sort()

    overlaps = [
        temporal_overlap(stamps[a], stamps[b])
        for a, b in combinations(platforms, 2)
        if stamps[a] and stamps[b]
    ]
    return sum(overlaps) / len(overlaps) if overlaps else 0.0


def cross_platform_insights(
    topics: Sequence[TrendingTopic],
    groups: Mapping[str, Sequence[ConversationRecord]],
) -> list[CrossPlatformInsight]:
    insights: list[CrossPlatformInsight] = []
    for topic in topics:
        if len(topic.platforms) < 2:
            continue
        strength = correlation_strength(groups.get(topic.theme, ()), topic.platforms)
        if strength > _CORRELATION_THRESHOLD:
            insights.append(
                CrossPlatformInsight(
                    theme=topic.theme,
                    platforms=topic.platforms,
                    correlation_strength=strength,
                )
            )

    insights.sort(key=lambda i: i.correlation_strength, reverse=True)
    return insights
