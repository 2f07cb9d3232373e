"""Engine settings loaded from environment variables and dotenv."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# ── Paths ──────────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parents[2]
OPTIONS_DIR: Path = Path(
    os.getenv("TRENDLENS_OPTIONS_DIR", str(PROJECT_ROOT / "config" / "options"))
)

# ── Corpus limits ──────────────────────────────────────────────────────────
CORPUS_CAP: int = int(os.getenv("TRENDLENS_CORPUS_CAP", "10000"))
EMERGING_SCAN_CAP: int = int(os.getenv("TRENDLENS_EMERGING_SCAN_CAP", "1000"))

# ── Worker pool ────────────────────────────────────────────────────────────
PARALLEL_THRESHOLD: int = int(os.getenv("TRENDLENS_PARALLEL_THRESHOLD", "2000"))
MAX_WORKERS: int = int(os.getenv("TRENDLENS_MAX_WORKERS", "4"))

# ── Logging ────────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("TRENDLENS_LOG_LEVEL", "INFO")


def options_path(profile: str) -> Path:
    """Return the YAML options file for a named profile."""
    return OPTIONS_DIR / f"{profile}.yml"
