"""Analysis options and their validation."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from trendlens.models import TimeRange

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Raised when analysis options are invalid."""


class AnalysisOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    time_range: TimeRange | None = None
    min_conversation_count: int = 5
    min_relevance_score: float = 0.3
    platforms: tuple[str, ...] | None = None
    keywords: tuple[str, ...] | None = None
    include_emerging_trends: bool = True
    max_results: int = 20

    def validate_settings(self) -> None:
        """Raise :class:`ConfigurationError` if the options cannot be honoured."""
        if self.max_results <= 0:
            raise ConfigurationError(
                f"max_results must be positive, got {self.max_results}"
            )
        if self.min_conversation_count < 1:
            raise ConfigurationError(
                "min_conversation_count must be at least 1, "
                f"got {self.min_conversation_count}"
            )
        if not 0.0 <= self.min_relevance_score <= 1.0:
            raise ConfigurationError(
                "min_relevance_score must lie in [0, 1], "
                f"got {self.min_relevance_score}"
            )
        if self.time_range and self.time_range.start > self.time_range.end:
            raise ConfigurationError("time_range.start is after time_range.end")


def coerce_options(
    options: AnalysisOptions | Mapping[str, Any] | None,
) -> AnalysisOptions:
    """Build validated options from a model, a plain mapping or ``None``."""
    if options is None:
        built = AnalysisOptions()
    elif isinstance(options, AnalysisOptions):
        built = options
    else:
        try:
            built = AnalysisOptions.model_validate(dict(options))
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc
    built.validate_settings()
    return built


def load_options(path: Path) -> AnalysisOptions:
    """Parse a YAML options profile.

    The document is a flat mapping of :class:`AnalysisOptions` fields, e.g.::

        min_conversation_count: 3
        platforms: [twitter, reddit]
        time_range:
          start: 2024-01-01T00:00:00Z
          end: 2024-01-31T23:59:59Z
    """
    try:
        with open(path) as fh:
            cfg = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot read options from {path}: {exc}") from exc

    if not isinstance(cfg, dict):
        raise ConfigurationError(f"Options file {path} must contain a mapping")

    logger.debug("Loaded options from %s: %s", path, cfg)
    return coerce_options(cfg)
