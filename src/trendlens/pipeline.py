"""Analysis orchestration: filter → group → score → rank → cluster → signals."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from typing import Any

from trendlens import config
from trendlens.cluster import cluster_topics
from trendlens.corpus import filter_corpus
from trendlens.grouping import group_by_keyword
from trendlens.models import (
    AnalysisResult,
    ConversationRecord,
    StoryCluster,
    TrendingTopic,
)
from trendlens.options import AnalysisOptions, coerce_options
from trendlens.rank import rank_topics, score_group
from trendlens.signals import cross_platform_insights, emerging_themes, sentiment_shifts

logger = logging.getLogger(__name__)

OptionsLike = AnalysisOptions | Mapping[str, Any] | None


def _expiry(deadline: datetime | None) -> Callable[[], bool]:
    if deadline is None:
        return lambda: False
    if deadline.tzinfo is None:
        deadline = deadline.replace(tzinfo=UTC)
    return lambda: datetime.now(UTC) >= deadline


def _score_groups(
    groups: Mapping[str, Sequence[ConversationRecord]],
    corpus_size: int,
    now: datetime,
    options: AnalysisOptions,
    expired: Callable[[], bool],
) -> tuple[list[TrendingTopic], bool]:
    """Score every keyword group; return the surviving topics and whether all ran.

    Groups are independent, so large corpora are scored on a thread pool.
    Results are consumed in submission order to keep the output deterministic.
    """
    topics: list[TrendingTopic] = []

    if corpus_size < config.PARALLEL_THRESHOLD or config.MAX_WORKERS <= 1:
        for keyword, group in groups.items():
            if expired():
                return topics, False
            topic = score_group(keyword, group, corpus_size, now, options)
            if topic is not None:
                topics.append(topic)
        return topics, True

    logger.info(
        "Scoring %d groups on %d workers", len(groups), config.MAX_WORKERS
    )
    with ThreadPoolExecutor(max_workers=config.MAX_WORKERS) as executor:
        futures = [
            executor.submit(score_group, keyword, group, corpus_size, now, options)
            for keyword, group in groups.items()
        ]
        for future in futures:
            if expired():
                for pending in futures:
                    pending.cancel()
                return topics, False
            topic = future.result()
            if topic is not None:
                topics.append(topic)
    return topics, True


def analyze_trends(
    corpus: Iterable[ConversationRecord],
    options: OptionsLike = None,
    *,
    now: datetime | None = None,
    deadline: datetime | None = None,
) -> AnalysisResult:
    """Run the full analysis over an in-memory corpus.

    *now* anchors every age computation (defaults to the current UTC time);
    pin it to make runs reproducible. When *deadline* passes mid-run, the
    stages completed so far are returned with ``partial=True``.

    Raises :class:`~trendlens.options.ConfigurationError` on invalid options,
    before any work is done.
    """
    opts = coerce_options(options)
    now = now or datetime.now(UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    expired = _expiry(deadline)

    records = filter_corpus(corpus, opts)
    logger.info("=== trend analysis start [%d conversations] ===", len(records))
    if not records:
        return AnalysisResult()

    # ── 1. Group + score ──────────────────────────────────────────────
    groups = group_by_keyword(records)
    scored, complete = _score_groups(groups, len(records), now, opts, expired)

    # ── 2. Rank ───────────────────────────────────────────────────────
    topics = rank_topics(scored, opts.max_results)
    if not complete:
        logger.warning("Deadline reached while scoring; returning partial topics")
        return AnalysisResult(trending_topics=tuple(topics), partial=True)

    # ── 3. Story clusters ─────────────────────────────────────────────
    clusters = cluster_topics(topics, groups, expired=expired)
    if expired():
        return AnalysisResult(
            trending_topics=tuple(topics),
            story_clusters=tuple(clusters),
            partial=True,
        )

    # ── 4. Signals ────────────────────────────────────────────────────
    emerging = (
        emerging_themes(records, topics, now) if opts.include_emerging_trends else []
    )
    shifts = sentiment_shifts(topics, groups, now)
    insights = cross_platform_insights(topics, groups)

    result = AnalysisResult(
        trending_topics=tuple(topics),
        story_clusters=tuple(clusters),
        emerging_themes=tuple(emerging),
        declining_sentiments=tuple(shifts),
        cross_platform_insights=tuple(insights),
    )
    logger.info(
        "=== trend analysis done: %d topics, %d stories, %d emerging, "
        "%d shifts, %d cross-platform ===",
        len(topics),
        len(clusters),
        len(emerging),
        len(shifts),
        len(insights),
    )
    return result


def get_trending_topics(
    corpus: Iterable[ConversationRecord],
    options: OptionsLike = None,
    *,
    now: datetime | None = None,
    deadline: datetime | None = None,
) -> list[TrendingTopic]:
    result = analyze_trends(corpus, options, now=now, deadline=deadline)
    return list(result.trending_topics)


def get_story_clusters(
    corpus: Iterable[ConversationRecord],
    options: OptionsLike = None,
    *,
    now: datetime | None = None,
    deadline: datetime | None = None,
) -> list[StoryCluster]:
    result = analyze_trends(corpus, options, now=now, deadline=deadline)
    return list(result.story_clusters)
