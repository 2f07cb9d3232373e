"""CLI entry-point: ``python -m trendlens analyze`` / ``python -m trendlens topics``."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from trendlens import config
from trendlens.corpus import load_corpus
from trendlens.options import AnalysisOptions, ConfigurationError, load_options
from trendlens.pipeline import analyze_trends

logger = logging.getLogger(__name__)


def _setup_logging() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _resolve_options(args: argparse.Namespace) -> AnalysisOptions:
    if args.options:
        return load_options(Path(args.options))
    if args.profile:
        return load_options(config.options_path(args.profile))
    return AnalysisOptions()


def _parse_now(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _run(args: argparse.Namespace) -> None:
    try:
        options = _resolve_options(args)
        corpus = load_corpus(Path(args.corpus))
        result = analyze_trends(corpus, options, now=_parse_now(args.now))
    except ConfigurationError as exc:
        logger.error("Invalid options: %s", exc)
        sys.exit(1)
    except (OSError, ValueError) as exc:
        logger.error("Cannot analyse %s: %s", args.corpus, exc)
        sys.exit(1)

    if args.command == "topics":
        for topic in result.trending_topics:
            print(
                f"{topic.relevance_score:.3f}  {topic.trend_direction:<7}  "
                f"{topic.conversation_count:>5}  {topic.theme}"
            )
        return

    payload = result.model_dump_json(indent=2)
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        logger.info("Wrote analysis to %s", args.output)
    else:
        print(payload)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="trendlens",
        description="Trending topics and story clusters from a conversation corpus.",
    )
    sub = parser.add_subparsers(dest="command")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("corpus", help="JSON array or JSON Lines file of conversations.")
    source = common.add_mutually_exclusive_group()
    source.add_argument("--options", help="Path to a YAML options file.")
    source.add_argument(
        "--profile",
        help=f"Named options profile under {config.OPTIONS_DIR}.",
    )
    common.add_argument(
        "--now",
        help="ISO-8601 reference time for age windows (default: current UTC time).",
    )

    # ── analyze ────────────────────────────────────────────────────────
    analyze_parser = sub.add_parser(
        "analyze", parents=[common], help="Print the full analysis as JSON."
    )
    analyze_parser.add_argument("--output", help="Write JSON here instead of stdout.")

    # ── topics ─────────────────────────────────────────────────────────
    sub.add_parser("topics", parents=[common], help="Print ranked trending topics.")

    args = parser.parse_args(argv)

    if args.command in ("analyze", "topics"):
        _setup_logging()
        _run(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
