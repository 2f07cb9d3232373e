"""Unit tests for emerging themes, sentiment shifts and cross-platform correlation."""

from datetime import UTC, datetime, timedelta

import pytest

from trendlens.models import ConversationRecord, TrendingTopic
from trendlens.signals import (
    correlation_strength,
    cross_platform_insights,
    emerging_themes,
    sentiment_change,
    sentiment_shifts,
    temporal_overlap,
)

NOW = datetime(2024, 6, 15, 18, 0, tzinfo=UTC)


def _make(
    conv_id: str,
    keywords: tuple[str, ...] = ("refund",),
    sentiment: str | None = None,
    hours_ago: float | None = 1,
    platform: str = "twitter",
) -> ConversationRecord:
    return ConversationRecord(
        id=conv_id,
        platform=platform,
        timestamp=NOW - timedelta(hours=hours_ago) if hours_ago is not None else None,
        sentiment=sentiment,
        keywords=keywords,
    )


def _topic(theme: str, platforms: tuple[str, ...] = ("twitter",)) -> TrendingTopic:
    return TrendingTopic(
        theme=theme, relevance_score=0.5, conversation_count=5, platforms=platforms
    )


def _refund_group() -> list[ConversationRecord]:
    recent = [
        _make(f"r{i}", sentiment="positive" if i < 6 else "negative", hours_ago=i + 1)
        for i in range(8)
    ]
    older = [
        _make("o1", sentiment="negative", hours_ago=24 * 4),
        _make("o2", sentiment="negative", hours_ago=24 * 5),
    ]
    return recent + older


class TestEmergingThemes:
    def test_recent_untrending_keywords(self) -> None:
        corpus = (
            [_make(f"r{i}", keywords=("refund",)) for i in range(3)]
            + [_make(f"b{i}", keywords=("billing",)) for i in range(4)]
            + [_make(f"o{i}", keywords=("legacy",), hours_ago=24 * 10) for i in range(5)]
            + [_make(f"n{i}", keywords=("rare",)) for i in range(2)]
            + [_make("x", keywords=("notime",), hours_ago=None) for _ in range(3)]
        )
        assert emerging_themes(corpus, [_topic("billing")], NOW) == ["refund"]

    def test_ordered_by_count(self) -> None:
        corpus = [_make(f"a{i}", keywords=("alpha",)) for i in range(3)] + [
            _make(f"b{i}", keywords=("beta",)) for i in range(5)
        ]
        assert emerging_themes(corpus, [], NOW) == ["beta", "alpha"]

    def test_capped_at_ten(self) -> None:
        corpus = [
            _make(f"{k}-{i}", keywords=(f"kw{k}",)) for k in range(15) for i in range(3)
        ]
        assert len(emerging_themes(corpus, [], NOW)) == 10

    def test_scan_cap_keeps_newest(self) -> None:
        corpus = [_make(f"old{i}", keywords=("old",), hours_ago=100 + i) for i in range(3)]
        corpus += [_make(f"new{i}", keywords=("new",), hours_ago=i + 1) for i in range(3)]
        assert emerging_themes(corpus, [], NOW, scan_cap=3) == ["new"]


class TestSentimentShift:
    def test_positive_shift(self) -> None:
        assert sentiment_change(_refund_group(), NOW) == pytest.approx(0.75)

    def test_empty_window_is_zero(self) -> None:
        recent_only = [_make(str(i), sentiment="positive") for i in range(4)]
        assert sentiment_change(recent_only, NOW) == 0.0

    def test_reported_in_either_direction(self) -> None:
        groups = {
            "refund": _refund_group(),
            "login": [
                _make("l1", ("login",), "negative", hours_ago=2),
                _make("l2", ("login",), "positive", hours_ago=24 * 5),
                _make("l3", ("login",), "negative", hours_ago=24 * 5),
            ],
            "quiet": [_make("q1", ("quiet",), "positive")],
        }
        topics = [_topic("login"), _topic("refund"), _topic("quiet")]
        shifts = sentiment_shifts(topics, groups, NOW)
        assert [s.theme for s in shifts] == ["refund", "login"]
        assert shifts[0].sentiment_change == pytest.approx(0.75)
        assert shifts[1].sentiment_change == pytest.approx(-0.5)
        assert {s.timeframe for s in shifts} == {"7d"}

    def test_small_change_ignored(self) -> None:
        group = [
            _make("1", sentiment="positive", hours_ago=2),
            _make("2", sentiment="positive", hours_ago=24 * 5),
        ]
        assert sentiment_shifts([_topic("refund")], {"refund": group}, NOW) == []


class TestCrossPlatform:
    def test_same_day_is_fully_correlated(self) -> None:
        group = [
            _make(f"t{i}", ("outage",), platform="twitter", hours_ago=i + 1) for i in range(5)
        ] + [_make(f"r{i}", ("outage",), platform="reddit", hours_ago=i + 2) for i in range(5)]
        topic = _topic("outage", platforms=("twitter", "reddit"))
        insights = cross_platform_insights([topic], {"outage": group})
        assert len(insights) == 1
        assert insights[0].theme == "outage"
        assert insights[0].platforms == ("twitter", "reddit")
        assert insights[0].correlation_strength == pytest.approx(1.0)

    def test_overlap_divides_by_longer_list(self) -> None:
        base = NOW - timedelta(days=5)
        first = [base, base + timedelta(days=3)]
        second = [base + timedelta(hours=2)]
        assert temporal_overlap(first, second) == pytest.approx(0.5)

    def test_exactly_one_day_apart_does_not_overlap(self) -> None:
        assert temporal_overlap([NOW], [NOW - timedelta(days=1)]) == 0.0

    def test_pairs_without_timestamps_skipped(self) -> None:
        group = [
            _make("t1", platform="twitter"),
            _make("r1", platform="reddit"),
            _make("f1", platform="forum", hours_ago=None),
        ]
        assert correlation_strength(group, ("twitter", "reddit", "forum")) == pytest.approx(1.0)

    def test_distant_platforms_not_reported(self) -> None:
        group = [
            _make("t1", platform="twitter", hours_ago=1),
            _make("r1", platform="reddit", hours_ago=24 * 5),
        ]
        topic = _topic("refund", platforms=("twitter", "reddit"))
        assert cross_platform_insights([topic], {"refund": group}) == []

    def test_single_platform_skipped(self) -> None:
        group = [_make(str(i)) for i in range(5)]
        assert cross_platform_insights([_topic("refund")], {"refund": group}) == []
