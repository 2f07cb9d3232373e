"""Corpus boundary: normalise store rows into records and apply query filters."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from trendlens import config
from trendlens.models import ConversationRecord, Engagement, TimeRange
from trendlens.options import AnalysisOptions

logger = logging.getLogger(__name__)

_OLDEST = datetime.min.replace(tzinfo=UTC)


class ConversationSource(Protocol):
    """Read-only, already-authorised supplier of a tenant's conversations."""

    def fetch_conversations(
        self,
        tenant_id: str,
        *,
        time_range: TimeRange | None = None,
        platforms: Sequence[str] | None = None,
        keywords: Sequence[str] | None = None,
    ) -> list[ConversationRecord]: ...


def normalise_record(raw: Mapping[str, Any]) -> ConversationRecord:
    """Map a loosely typed store row onto a :class:`ConversationRecord`.

    Accepts the store's column names (``engagement_metrics``) as well as the
    model's own, lower-cases sentiment labels and treats null keywords as empty.
    """
    engagement = raw.get("engagement", raw.get("engagement_metrics"))
    if isinstance(engagement, Mapping):
        engagement = Engagement(
            likes=engagement.get("likes") or 0,
            shares=engagement.get("shares") or 0,
            comments=engagement.get("comments") or 0,
        )
    else:
        engagement = None

    sentiment = raw.get("sentiment")
    if isinstance(sentiment, str):
        sentiment = sentiment.strip().lower() or None

    return ConversationRecord(
        id=str(raw["id"]),
        platform=str(raw.get("platform") or "unknown"),
        content=raw.get("content") or "",
        timestamp=raw.get("timestamp") or None,
        sentiment=sentiment,
        keywords=tuple(raw.get("keywords") or ()),
        engagement=engagement,
    )


def normalise_rows(rows: Iterable[Any]) -> list[ConversationRecord]:
    """Normalise many rows, skipping (and logging) the ones that do not parse.

    Rows that are not objects, lack an ``id``, fail validation or have null
    content are dropped.
    """
    records: list[ConversationRecord] = []
    skipped = 0
    for row in rows:
        if not isinstance(row, Mapping):
            skipped += 1
            logger.warning("Skipping malformed conversation row %r: not an object", row)
            continue
        if row.get("content") is None:
            skipped += 1
            logger.warning("Skipping conversation row %r: null content", row.get("id"))
            continue
        try:
            records.append(normalise_record(row))
        except (KeyError, ValidationError) as exc:
            skipped += 1
            logger.warning("Skipping malformed conversation row %r: %s", row.get("id"), exc)
    if skipped:
        logger.info("Normalised %d rows (%d skipped)", len(records), skipped)
    return records


def load_corpus(path: Path) -> list[ConversationRecord]:
    """Read a corpus from a JSON array file or a JSON Lines file."""
    text = Path(path).read_text(encoding="utf-8")
    stripped = text.lstrip()
    if stripped.startswith("["):
        rows = json.loads(stripped)
    else:
        rows = [json.loads(line) for line in text.splitlines() if line.strip()]
    records = normalise_rows(rows)
    logger.info("Loaded %d conversations from %s", len(records), path)
    return records


def _newest_first(records: Iterable[ConversationRecord]) -> list[ConversationRecord]:
    return sorted(records, key=lambda r: r.timestamp or _OLDEST, reverse=True)


def filter_corpus(
    records: Iterable[ConversationRecord],
    options: AnalysisOptions,
    cap: int | None = None,
) -> list[ConversationRecord]:
    """Apply the options' time range, platform and keyword filters.

    The result is ordered newest first and holds at most *cap* records
    (default ``config.CORPUS_CAP``); the oldest records are dropped first.
    """
    cap = config.CORPUS_CAP if cap is None else cap
    platforms = set(options.platforms) if options.platforms else None
    keywords = set(options.keywords) if options.keywords else None
    window = options.time_range

    kept: list[ConversationRecord] = []
    for record in records:
        if window is not None:
            if record.timestamp is None:
                continue
            if not window.start <= record.timestamp <= window.end:
                continue
        if platforms is not None and record.platform not in platforms:
            continue
        if keywords is not None and keywords.isdisjoint(record.keywords):
            continue
        kept.append(record)

    ordered = _newest_first(kept)
    if len(ordered) > cap:
        logger.warning(
            "Corpus has %d records (cap %d); dropping the %d oldest",
            len(ordered),
            cap,
            len(ordered) - cap,
        )
        ordered = ordered[:cap]
    return ordered


def related_conversations(
    corpus: Iterable[ConversationRecord],
    theme: str,
    limit: int = 50,
) -> list[ConversationRecord]:
    """Return the newest conversations tagged with *theme*."""
    tagged = (record for record in corpus if theme in record.keywords)
    return _newest_first(tagged)[:limit]


class InMemoryConversationSource:
    """:class:`ConversationSource` over records already held in memory."""

    def __init__(self, tenants: Mapping[str, Iterable[ConversationRecord]]) -> None:
        self._tenants = {tenant: list(records) for tenant, records in tenants.items()}

    def fetch_conversations(
        self,
        tenant_id: str,
        *,
        time_range: TimeRange | None = None,
        platforms: Sequence[str] | None = None,
        keywords: Sequence[str] | None = None,
    ) -> list[ConversationRecord]:
        query = AnalysisOptions(
            time_range=time_range,
            platforms=tuple(platforms) if platforms else None,
            keywords=tuple(keywords) if keywords else None,
        )
        return filter_corpus(self._tenants.get(tenant_id, []), query)
