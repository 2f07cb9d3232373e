"""Group conversations by keyword."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable

from trendlens.models import ConversationRecord

logger = logging.getLogger(__name__)


def group_by_keyword(
    corpus: Iterable[ConversationRecord],
) -> dict[str, list[ConversationRecord]]:
    """Map each keyword to the conversations carrying it.

    A conversation with N keywords lands in N groups; one without keywords
    lands in none. Groups keep first-seen keyword order and corpus order.
    """
    groups: dict[str, list[ConversationRecord]] = defaultdict(list)
    for record in corpus:
        for keyword in record.keywords:
            groups[keyword].append(record)

    logger.debug("Grouped corpus into %d keyword groups", len(groups))
    return dict(groups)
