"""Unit tests for story clustering."""

from datetime import UTC, date, datetime, timedelta

import pytest

from trendlens.cluster import (
    build_cluster,
    cluster_topics,
    cross_platform_links,
    key_phrases,
    sentiment_evolution,
    sub_themes,
)
from trendlens.models import ConversationRecord, TrendingTopic

NOW = datetime(2024, 6, 15, 18, 0, tzinfo=UTC)


def _make(
    conv_id: str,
    content: str = "",
    platform: str = "twitter",
    keywords: tuple[str, ...] = ("outage",),
    sentiment: str | None = "negative",
    hours_ago: float | None = 1,
) -> ConversationRecord:
    return ConversationRecord(
        id=conv_id,
        platform=platform,
        content=content,
        timestamp=NOW - timedelta(hours=hours_ago) if hours_ago is not None else None,
        sentiment=sentiment,
        keywords=keywords,
    )


def _topic(theme: str = "outage", score: float = 0.7) -> TrendingTopic:
    return TrendingTopic(theme=theme, relevance_score=score, conversation_count=3)


class TestBuildCluster:
    def test_needs_three_conversations(self) -> None:
        convs = [_make("1"), _make("2")]
        assert build_cluster(_topic(), convs) is None

    def test_fields(self) -> None:
        convs = [
            _make("1", "site is down again", hours_ago=30),
            _make("2", "site is down for me", platform="reddit"),
            _make("3", "all good here", sentiment="positive", hours_ago=2),
        ]
        cluster = build_cluster(_topic(score=0.65), convs)
        assert cluster is not None
        assert cluster.title == "outage Discussion"
        assert cluster.main_theme == "outage"
        assert cluster.relevance_score == 0.65
        assert cluster.conversation_ids == ("1", "2", "3")
        assert cluster.platforms == ("twitter", "reddit")
        assert cluster.time_span is not None
        assert cluster.time_span.start == NOW - timedelta(hours=30)
        assert cluster.time_span.end == NOW - timedelta(hours=1)
        assert cluster.summary == (
            "3 conversations about outage across twitter, reddit "
            "with predominantly negative sentiment"
        )

    def test_summary_tie_prefers_positive(self) -> None:
        convs = [
            _make("1", sentiment="negative"),
            _make("2", sentiment="neutral"),
            _make("3", sentiment="positive"),
        ]
        cluster = build_cluster(_topic(), convs)
        assert cluster is not None
        assert cluster.summary.endswith("predominantly positive sentiment")


class TestSentimentEvolution:
    def test_grouped_by_day_and_sorted(self) -> None:
        convs = [
            _make("1", sentiment="positive", hours_ago=1),  # 06-15
            _make("2", sentiment="negative", hours_ago=30),  # 06-14
            _make("3", sentiment="positive", hours_ago=2),  # 06-15
            _make("4", sentiment="neutral", hours_ago=3),  # 06-15
            _make("5", sentiment=None, hours_ago=3),
            _make("6", sentiment="positive", hours_ago=None),
        ]
        points = [(p.day, p.sentiment, p.count) for p in sentiment_evolution(convs)]
        assert points == [
            (date(2024, 6, 14), "negative", 1),
            (date(2024, 6, 15), "positive", 2),
            (date(2024, 6, 15), "neutral", 1),
        ]


class TestKeyPhrases:
    def test_counts_bigrams(self) -> None:
        convs = [
            _make("1", "refund took forever"),
            _make("2", "refund took forever again"),
            _make("3", "so slow"),
        ]
        assert key_phrases(convs) == [
            "refund took",
            "took forever",
            "forever again",
            "so slow",
        ]

    def test_short_phrases_dropped(self) -> None:
        # "is ok" is exactly five characters
        assert key_phrases([_make("1", "is ok"), _make("2", "a b")]) == []

    def test_case_preserved(self) -> None:
        phrases = key_phrases([_make("1", "Refund took"), _make("2", "refund took")])
        assert phrases == ["Refund took", "refund took"]

    def test_capped_at_ten(self) -> None:
        text = " ".join(f"word{i}" for i in range(20))
        assert len(key_phrases([_make("1", text)])) == 10


class TestSubThemes:
    def test_excludes_main_theme_and_ranks(self) -> None:
        convs = [
            _make("1", keywords=("outage", "api")),
            _make("2", keywords=("outage", "status", "api")),
            _make("3", keywords=("outage", "login")),
        ]
        assert sub_themes(convs, "outage") == ["api", "status", "login"]

    def test_capped_at_five(self) -> None:
        convs = [_make("1", keywords=("outage", "a", "b", "c", "d", "e", "f"))]
        assert sub_themes(convs, "outage") == ["a", "b", "c", "d", "e"]


class TestCrossPlatformLinks:
    def test_links_sorted_by_strength(self) -> None:
        convs = [
            _make("1", platform="twitter", keywords=("outage", "api")),
            _make("2", platform="reddit", keywords=("outage", "api", "status")),
            _make("3", platform="forum", keywords=("billing",)),
            _make("4", platform="email", keywords=("outage",)),
        ]
        links = cross_platform_links(convs)
        summary = [(link.platform_a, link.platform_b, link.shared_keywords) for link in links]
        assert summary == [
            ("twitter", "reddit", ("outage", "api")),
            ("twitter", "email", ("outage",)),
            ("reddit", "email", ("outage",)),
        ]
        assert [link.link_strength for link in links] == pytest.approx([2 / 3, 1 / 2, 1 / 3])

    def test_single_platform(self) -> None:
        assert cross_platform_links([_make("1"), _make("2")]) == []


class TestClusterTopics:
    def test_skips_small_groups(self) -> None:
        groups = {
            "outage": [_make(str(i)) for i in range(4)],
            "niche": [_make("n1"), _make("n2")],
        }
        clusters = cluster_topics([_topic("outage"), _topic("niche")], groups)
        assert [c.main_theme for c in clusters] == ["outage"]
        assert len(clusters[0].conversation_ids) == 4

    def test_stops_when_expired(self) -> None:
        groups = {"outage": [_make(str(i)) for i in range(4)]}
        assert cluster_topics([_topic("outage")], groups, expired=lambda: True) == []

    def test_empty(self) -> None:
        assert cluster_topics([], {}) == []
