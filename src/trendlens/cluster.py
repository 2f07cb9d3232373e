"""Build story clusters around trending topics."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Mapping, Sequence
from datetime import date
from itertools import combinations

from trendlens.models import (
    SENTIMENTS,
    ConversationRecord,
    PlatformLink,
    Sentiment,
    SentimentPoint,
    StoryCluster,
    TrendingTopic,
)
from trendlens.rank import sentiment_distribution, time_range

logger = logging.getLogger(__name__)

# Clusters need at least this many conversations
_MIN_CLUSTER_SIZE = 3
_MAX_SUB_THEMES = 5
_MAX_KEY_PHRASES = 10
# Bigram text (including the joining space) must be longer than this
_MIN_PHRASE_LENGTH = 5


def sentiment_evolution(
    conversations: Sequence[ConversationRecord],
) -> list[SentimentPoint]:
    """Count conversations per (day, sentiment), oldest day first."""
    counts: Counter[tuple[date, Sentiment]] = Counter()
    for record in conversations:
        if record.day is not None and record.sentiment is not None:
            counts[(record.day, record.sentiment)] += 1

    points = [
        SentimentPoint(day=day, sentiment=sentiment, count=count)
        for (day, sentiment), count in counts.items()
    ]
    points.sort(key=lambda p: p.day)
    return points


def key_phrases(conversations: Sequence[ConversationRecord]) -> list[str]:
    """Most frequent adjacent word pairs across the conversations' content."""
    phrases: Counter[str] = Counter()
    for record in conversations:
        words = record.content.split()
        for first, second in zip(words, words[1:]):
            phrase = f"{first} {second}"
            if len(phrase) > _MIN_PHRASE_LENGTH:
                phrases[phrase] += 1

    ranked = sorted(phrases.items(), key=lambda kv: kv[1], reverse=True)
    return [phrase for phrase, _ in ranked[:_MAX_KEY_PHRASES]]


def sub_themes(
    conversations: Sequence[ConversationRecord], main_theme: str
) -> list[str]:
    """Up to five co-occurring keywords, most frequent first."""
    counts = Counter(
        keyword
        for record in conversations
        for keyword in record.keywords
        if keyword != main_theme
    )
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return [keyword for keyword, _ in ranked[:_MAX_SUB_THEMES]]


def cross_platform_links(
    conversations: Sequence[ConversationRecord],
) -> list[PlatformLink]:
    """Link every pair of platforms whose keyword vocabularies overlap."""
    vocab: dict[str, dict[str, None]] = {}
    for record in conversations:
        words = vocab.setdefault(record.platform, {})
        words.update(dict.fromkeys(record.keywords))

    links: list[PlatformLink] = []
    for platform_a, platform_b in combinations(vocab, 2):
        vocab_a, vocab_b = vocab[platform_a], vocab[platform_b]
        shared = tuple(k for k in vocab_a if k in vocab_b)
        if not shared:
            continue
        links.append(
            PlatformLink(
                platform_a=platform_a,
                platform_b=platform_b,
                shared_keywords=shared,
                link_strength=len(shared) / max(len(vocab_a), len(vocab_b)),
            )
        )

    links.sort(key=lambda link: link.link_strength, reverse=True)
    return links


def _summary(
    conversations: Sequence[ConversationRecord],
    theme: str,
    platforms: Sequence[str],
) -> str:
    dist = sentiment_distribution(conversations)
    counts = {sentiment: getattr(dist, sentiment) for sentiment in SENTIMENTS}
    dominant = max(counts, key=lambda s: counts[s])
    return (
        f"{len(conversations)} conversations about {theme} across "
        f"{', '.join(platforms)} with predominantly {dominant} sentiment"
    )


def build_cluster(
    topic: TrendingTopic,
    conversations: Sequence[ConversationRecord],
) -> StoryCluster | None:
    """Turn a topic's conversations into a story, or None if too few."""
    if len(conversations) < _MIN_CLUSTER_SIZE:
        return None

    platforms = tuple(dict.fromkeys(r.platform for r in conversations))
    return StoryCluster(
        title=f"{topic.theme} Discussion",
        summary=_summary(conversations, topic.theme, platforms),
        main_theme=topic.theme,
        sub_themes=tuple(sub_themes(conversations, topic.theme)),
        relevance_score=topic.relevance_score,
        conversation_ids=tuple(r.id for r in conversations),
        platforms=platforms,
        time_span=time_range(conversations),
        sentiment_evolution=tuple(sentiment_evolution(conversations)),
        key_phrases=tuple(key_phrases(conversations)),
        cross_platform_links=tuple(cross_platform_links(conversations)),
    )


def cluster_topics(
    topics: Sequence[TrendingTopic],
    groups: Mapping[str, Sequence[ConversationRecord]],
    expired: Callable[[], bool] | None = None,
) -> list[StoryCluster]:
    """Build one story per topic whose keyword group is large enough.

    *expired* is polled before each topic; once it returns True the clusters
    built so far are returned.
    """
    clusters: list[StoryCluster] = []
    for done, topic in enumerate(topics):
        if expired is not None and expired():
            logger.warning("Deadline reached after %d of %d topics", done, len(topics))
            break
        cluster = build_cluster(topic, groups.get(topic.theme, ()))
        if cluster is not None:
            clusters.append(cluster)

    logger.info("Clustered %d topics into %d stories", len(topics), len(clusters))
    return clusters
